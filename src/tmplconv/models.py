"""Request and result models for a template conversion."""

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field

from tmplconv.context import ConversionContext


class Build(BaseModel):
    """Build metadata exposed to templates as ``build``."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    number: int = 0
    event: str = ""
    action: str = ""
    environment: str = ""
    link: str = ""
    branch: str = ""
    source: str = ""
    source_repo: str = ""
    before: str = ""
    after: str = ""
    target: str = ""
    ref: str = ""
    commit: str = ""
    title: str = ""
    message: str = ""
    author_login: str = ""
    author_name: str = ""
    author_email: str = ""
    author_avatar: str = ""
    sender: str = ""
    params: dict[str, str] = Field(default_factory=dict)
    debug: bool = False
    cron: str = ""
    deploy_to: str = ""
    deploy_id: int = 0
    trigger: str = ""
    status: str = ""
    created: int = 0
    started: int = 0
    finished: int = 0


class Repo(BaseModel):
    """Repository metadata exposed to templates as ``repo``.

    ``namespace`` also scopes template lookup.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    uid: str = ""
    name: str = ""
    namespace: str = ""
    slug: str = ""
    git_http_url: str = ""
    git_ssh_url: str = ""
    link: str = ""
    branch: str = ""
    config: str = ""
    private: bool = False
    visibility: str = ""
    active: bool = False
    trusted: bool = False
    protected: bool = False
    ignore_forks: bool = False
    ignore_pulls: bool = False
    cancel_pulls: bool = False
    cancel_push: bool = False
    timeout: int = 0


@dataclass(slots=True, frozen=True)
class ConversionRequest:
    """Everything one conversion needs.

    Attributes:
        data: Raw configuration text.
        path: Declared path of the configuration file; its suffix decides
            whether the converter applies.
        build: Build metadata.
        repo: Repository metadata, including the lookup namespace.
        context: Cancellation and deadline for this conversion.
    """

    data: str
    path: str = ".drone.yml"
    build: Build = field(default_factory=Build)
    repo: Repo = field(default_factory=Repo)
    context: ConversionContext = field(default_factory=ConversionContext)

    @property
    def extension(self) -> str:
        """Suffix of the declared config path, including the dot."""
        return PurePosixPath(self.path).suffix

    @property
    def namespace(self) -> str:
        """Namespace used for template lookup."""
        return self.repo.namespace


@dataclass(slots=True, frozen=True)
class ConvertedConfig:
    """Merged configuration text produced by a successful conversion."""

    data: str
