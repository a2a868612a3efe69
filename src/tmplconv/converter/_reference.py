# pyright: reportExplicitAny=false
"""Typed extraction of the ``load``/``data`` fields of a template document."""

from pathlib import PurePosixPath
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError, field_validator

from tmplconv.exceptions import TemplateReferenceInvalidError


class TemplateReference(BaseModel):
    """A template document: which template to load and its input data.

    Attributes:
        kind: Always ``template``.
        load: Template file name, including its extension.
        data: Input values exposed to the template as ``input``.

    Example:
        >>> ref = TemplateReference(load="plugin.star", data={"image": "go"})
        >>> (ref.name, ref.extension)
        ('plugin', '.star')
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    kind: Literal["template"] = "template"
    load: StrictStr = Field(..., min_length=1)
    data: dict[StrictStr, Any] = Field(default_factory=dict)

    @field_validator("data", mode="before")
    @classmethod
    def _null_data_is_empty(cls, value: object) -> object:
        return {} if value is None else value

    @property
    def extension(self) -> str:
        """Final suffix of ``load``, including the dot (empty if none)."""
        return PurePosixPath(self.load).suffix

    @property
    def name(self) -> str:
        """``load`` without its final extension, used as the store key."""
        return self.load.removesuffix(self.extension) if self.extension else self.load


def extract_reference(value: dict[str, Any], index: int) -> TemplateReference:
    """Validate a decoded template document.

    Raises:
        TemplateReferenceInvalidError: If ``load`` is missing, empty or not a
            string, or ``data`` is not a mapping with string keys.
    """
    try:
        return TemplateReference.model_validate(value)
    except ValidationError as e:
        error = e.errors()[0]
        loc = error["loc"]
        field = str(loc[0]) if loc else "document"
        msg = f"document {index}: invalid template {field}: {error['msg']}"
        raise TemplateReferenceInvalidError(msg, field=field, document=index) from e
