"""tmplconv configuration.

Configuration is merged from built-in defaults, an optional TOML file and
``TMPLCONV_<SECTION>__<KEY>`` environment variables.

Example:
    >>> from tmplconv.config import Config
    >>> config = Config.load()
    >>> config.script.step_limit
    50000
"""

from tmplconv.exceptions import ConfigError, ConfigLoadError, ConfigValidationError

from ._defaults import DEFAULT_CONFIG
from ._loader import (
    ENV_PREFIX,
    deep_merge,
    parse_env_value,
    parse_env_vars,
    read_toml_file,
    set_nested_key,
)
from ._models import (
    Config,
    DataLangConfig,
    DataTemplateConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    ScriptConfig,
)

__all__ = [
    "DEFAULT_CONFIG",
    "ENV_PREFIX",
    "Config",
    "ConfigError",
    "ConfigLoadError",
    "ConfigValidationError",
    "DataLangConfig",
    "DataTemplateConfig",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "ScriptConfig",
    "deep_merge",
    "parse_env_value",
    "parse_env_vars",
    "read_toml_file",
    "set_nested_key",
]
