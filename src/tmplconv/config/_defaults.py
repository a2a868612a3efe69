"""Default configuration values.

This module defines the built-in default configuration values that are used
when no other configuration sources provide values.
"""

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
    "logging": {
        "level": "info",
        "format": "json",
        "file": "",
    },
    "script": {
        "step_limit": 50_000,
        "size_limit": 1_048_576,
    },
    "datalang": {
        "max_stack": 500,
        "max_trace": 20,
    },
    "datatemplate": {
        "strict_undefined": True,
    },
}
