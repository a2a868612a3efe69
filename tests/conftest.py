"""Shared test fixtures for tmplconv tests."""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, cast

import pytest
import structlog
from structlog.testing import LogCapture

from tmplconv.context import ConversionContext
from tmplconv.converter import TemplateConverter
from tmplconv.models import Build, ConversionRequest, Repo
from tmplconv.store import InMemoryTemplateStore

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger


@dataclass(frozen=True, slots=True)
class CapturedLogger:
    """A logger whose events are collected instead of written."""

    logger: "FilteringBoundLogger"
    capture: LogCapture

    @property
    def events(self) -> list[str]:
        return [str(entry["event"]) for entry in self.capture.entries]

    def find(self, event: str) -> list[dict[str, object]]:
        return [entry for entry in self.capture.entries if entry["event"] == event]


@pytest.fixture
def captured_logger() -> CapturedLogger:
    """Create a debug-level logger that records every event."""
    capture = LogCapture()
    logger = cast(
        "FilteringBoundLogger",
        structlog.wrap_logger(
            structlog.ReturnLogger(),
            processors=[capture],
            wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG),
            context_class=dict,
        ),
    )
    return CapturedLogger(logger=logger, capture=capture)


@pytest.fixture
def store() -> InMemoryTemplateStore:
    """Create an empty in-memory template store."""
    return InMemoryTemplateStore(record_lookups=True)


@pytest.fixture
def converter(store: InMemoryTemplateStore) -> TemplateConverter:
    """Create a converter over the in-memory store with default backends."""
    return TemplateConverter(store)


@pytest.fixture
def make_request():
    """Return a factory for conversion requests in the test namespace."""

    def _make(
        data: str,
        *,
        path: str = ".drone.yml",
        context: ConversionContext | None = None,
        build: Build | None = None,
        repo: Repo | None = None,
    ) -> ConversionRequest:
        return ConversionRequest(
            data=data,
            path=path,
            build=build if build is not None else Build(number=42, commit="abc123"),
            repo=repo if repo is not None else Repo(namespace="octocat", name="hello-world"),
            context=context if context is not None else ConversionContext.background(),
        )

    return _make
