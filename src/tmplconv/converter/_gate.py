"""Cheap applicability checks run before any decoding."""

import re
from pathlib import PurePosixPath

# Extensions of configuration files the converter processes
CONFIG_EXTENSIONS = frozenset({".yml", ".yaml"})

# A top-level ``kind: template`` line
TEMPLATE_KIND_RE = re.compile(r"^kind:[ \t]+template[ \t]*\r?$", re.MULTILINE)


def is_applicable(path: str, data: str) -> bool:
    """Whether a configuration file should go through template expansion.

    The file must be YAML and contain a column-0 ``kind: template`` line.

    Example:
        >>> is_applicable(".drone.yml", "kind: template\\nload: plugin.star\\n")
        True
        >>> is_applicable(".drone.star", "kind: template\\n")
        False
    """
    if PurePosixPath(path).suffix not in CONFIG_EXTENSIONS:
        return False
    return TEMPLATE_KIND_RE.search(data) is not None
