"""Unit tests for the exception hierarchy."""

import pytest

from tmplconv.exceptions import (
    BackendError,
    ConfigError,
    ConfigLoadError,
    ConfigValidationError,
    ConversionCancelledError,
    ConversionError,
    DeadlineExceededError,
    DocumentSyntaxError,
    InvalidExtensionError,
    ResourceLimitError,
    ScriptError,
    ScriptLimitError,
    StoreError,
    TemplateNotFoundError,
    TemplateReferenceInvalidError,
    TmplconvError,
    UnsupportedKindError,
)


@pytest.mark.parametrize(
    "error_type",
    [
        DocumentSyntaxError,
        UnsupportedKindError,
        TemplateReferenceInvalidError,
        TemplateNotFoundError,
        StoreError,
        InvalidExtensionError,
        BackendError,
        ResourceLimitError,
        ConversionCancelledError,
        DeadlineExceededError,
    ],
)
def test_conversion_errors_share_a_base(error_type: type[Exception]) -> None:
    assert issubclass(error_type, ConversionError)
    assert issubclass(error_type, TmplconvError)


def test_script_and_config_errors_are_not_conversion_errors() -> None:
    for error_type in (ScriptError, ScriptLimitError, ConfigLoadError, ConfigValidationError):
        assert issubclass(error_type, TmplconvError)
        assert not issubclass(error_type, ConversionError)
    assert issubclass(ConfigValidationError, ConfigError)


def test_document_index_defaults_to_none() -> None:
    error = ConversionError("failed")

    assert error.document is None
    assert str(error) == "failed"


def test_not_found_is_a_key_error_with_plain_message() -> None:
    error = TemplateNotFoundError("template 'a' not found", name="a", namespace="octocat")

    assert isinstance(error, KeyError)
    assert str(error) == "template 'a' not found"


def test_resource_limit_is_a_backend_error() -> None:
    error = ResourceLimitError(
        "too many steps", backend="script", template="a.star", limit="steps", maximum=10
    )

    assert isinstance(error, BackendError)
    assert (error.backend, error.template, error.limit, error.maximum) == (
        "script",
        "a.star",
        "steps",
        10,
    )
