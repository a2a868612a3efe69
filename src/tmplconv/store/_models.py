"""Stored template model."""

from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field


class Template(BaseModel):
    """A named template body owned by a template store.

    Attributes:
        name: Template name, without extension.
        namespace: Scoping key the template belongs to.
        extension: Nominal file extension the template was stored with
            (e.g. ``.star``), including the dot.
        data: Template body text.
        created: Creation time as a Unix timestamp.
        updated: Last modification time as a Unix timestamp.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    namespace: str = ""
    extension: str = ""
    data: str = ""
    created: int = 0
    updated: int = 0

    @property
    def filename(self) -> str:
        """Name with extension, as referenced by ``load``."""
        return f"{self.name}{self.extension}"
