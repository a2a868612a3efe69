"""Template expansion engine for multi-document pipeline configuration."""

from tmplconv.context import ConversionContext
from tmplconv.converter import TemplateConverter
from tmplconv.models import Build, ConversionRequest, ConvertedConfig, Repo

__all__ = [
    "Build",
    "ConversionContext",
    "ConversionRequest",
    "ConvertedConfig",
    "Repo",
    "TemplateConverter",
]
