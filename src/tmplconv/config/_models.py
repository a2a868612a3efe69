# pyright: reportExplicitAny=false, reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""Configuration models and the Config container."""

from enum import StrEnum
from pathlib import Path
from typing import Any, ClassVar, Self, TypeVar

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError

from tmplconv.config._defaults import DEFAULT_CONFIG
from tmplconv.config._loader import copy_value, deep_merge, parse_env_vars, read_toml_file
from tmplconv.exceptions import ConfigValidationError

T = TypeVar("T", bound=BaseModel)


class LogLevel(StrEnum):
    """Log level threshold values, from most to least verbose."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


class LoggingConfig(BaseModel):
    """Logging configuration section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
        file: Path to the log file (empty logs to stderr).
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    file: str = ""


class ScriptConfig(BaseModel):
    """Script backend ceilings. 0 disables a ceiling.

    Attributes:
        step_limit: Maximum evaluation steps per template expansion.
        size_limit: Maximum rendered output size in bytes.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    step_limit: int = Field(default=50_000, ge=0)
    size_limit: int = Field(default=1_048_576, ge=0)


class DataLangConfig(BaseModel):
    """Jsonnet evaluator limits."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    max_stack: int = Field(default=500, gt=0)
    max_trace: int = Field(default=20, ge=0)


class DataTemplateConfig(BaseModel):
    """Jinja2 sandbox settings."""

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    strict_undefined: bool = True


def _parse_logging(data: dict[str, Any], source: str | None) -> LoggingConfig:
    """Parse the logging section, falling back to defaults for unknown names."""
    if not isinstance(data, dict):
        msg = "Invalid configuration section 'logging': expected a table"
        raise ConfigValidationError(
            msg, key="logging", value=data, expected="table", source=source
        )
    try:
        level = LogLevel(str(data.get("level", "info")).lower())
    except ValueError:
        level = LogLevel.INFO
    try:
        log_format = LogFormat(str(data.get("format", "json")).lower())
    except ValueError:
        log_format = LogFormat.JSON
    return LoggingConfig(level=level, format=log_format, file=str(data.get("file", "")))


def _parse_section(
    model: type[T],
    section: str,
    data: dict[str, Any],
    source: str | None,
) -> T:
    """Validate one section, reporting the first invalid key.

    Raises:
        ConfigValidationError: If a value fails validation.
    """
    if not isinstance(data, dict):
        msg = f"Invalid configuration section {section!r}: expected a table"
        raise ConfigValidationError(
            msg, key=section, value=data, expected="table", source=source
        )
    try:
        return model.model_validate(data)
    except ValidationError as e:
        error = e.errors()[0]
        key = ".".join([section, *(str(part) for part in error["loc"])])
        msg = f"Invalid configuration value for {key}: {error['msg']}"
        raise ConfigValidationError(
            msg,
            key=key,
            value=error.get("input"),
            expected=error["type"],
            source=source,
        ) from e


class Config(BaseModel):
    """Configuration container with typed access.

    Use the factory methods rather than the constructor:

    Example:
        >>> config = Config.from_dict({"script": {"step_limit": 1000}})
        >>> config.script.step_limit
        1000
        >>> config.get("datalang.max_stack")
        500
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True)

    _data: dict[str, Any] = PrivateAttr(default_factory=dict)
    _logging: LoggingConfig = PrivateAttr(default_factory=LoggingConfig)
    _script: ScriptConfig = PrivateAttr(default_factory=ScriptConfig)
    _datalang: DataLangConfig = PrivateAttr(default_factory=DataLangConfig)
    _datatemplate: DataTemplateConfig = PrivateAttr(default_factory=DataTemplateConfig)

    def __init__(self, *, _data: dict[str, Any] | None = None, _source: str | None = None) -> None:
        """Initialize from a complete merged configuration dictionary.

        Raises:
            ConfigValidationError: If a section fails validation.
        """
        super().__init__()
        merged = _data if _data is not None else copy_value(DEFAULT_CONFIG)
        self._data = merged
        self._logging = _parse_logging(merged.get("logging", {}), _source)
        self._script = _parse_section(ScriptConfig, "script", merged.get("script", {}), _source)
        self._datalang = _parse_section(
            DataLangConfig, "datalang", merged.get("datalang", {}), _source
        )
        self._datatemplate = _parse_section(
            DataTemplateConfig, "datatemplate", merged.get("datatemplate", {}), _source
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create configuration from a dictionary merged over the defaults."""
        return cls(_data=deep_merge(DEFAULT_CONFIG, data))

    @classmethod
    def from_file(cls, path: Path) -> Self:
        """Load configuration from one TOML file merged over the defaults.

        Raises:
            FileNotFoundError: If the file does not exist.
            ConfigLoadError: If the file cannot be parsed.
            ConfigValidationError: If a value fails validation.
        """
        return cls(_data=deep_merge(DEFAULT_CONFIG, read_toml_file(path)), _source=str(path))

    @classmethod
    def load(cls, path: Path | None = None, *, include_env: bool = True) -> Self:
        """Load merged configuration.

        Sources are merged in precedence order: defaults, then the TOML file
        at ``path`` (when given), then ``TMPLCONV_<SECTION>__<KEY>``
        environment variables.

        Raises:
            FileNotFoundError: If ``path`` does not exist.
            ConfigLoadError: If the file cannot be parsed.
            ConfigValidationError: If a value fails validation.
        """
        merged = copy_value(DEFAULT_CONFIG)
        if path is not None:
            merged = deep_merge(merged, read_toml_file(path))
        if include_env:
            merged = deep_merge(merged, parse_env_vars())
        return cls(_data=merged, _source=str(path) if path is not None else None)

    @property
    def logging(self) -> LoggingConfig:
        """Return the logging configuration section."""
        return self._logging

    @property
    def script(self) -> ScriptConfig:
        """Return the script backend configuration section."""
        return self._script

    @property
    def datalang(self) -> DataLangConfig:
        """Return the Jsonnet backend configuration section."""
        return self._datalang

    @property
    def datatemplate(self) -> DataTemplateConfig:
        """Return the Jinja2 backend configuration section."""
        return self._datatemplate

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dot-notation key, or ``default``."""
        current: Any = self._data
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                return default
            current = current[part]
        return current

    def to_dict(self) -> dict[str, Any]:
        """Return a copy of the merged configuration dictionary."""
        return copy_value(self._data)
