"""Cancellation and deadline propagation for a single conversion."""

import threading
import time
from dataclasses import dataclass, field
from typing import Self

from tmplconv.exceptions import ConversionCancelledError, DeadlineExceededError


@dataclass(slots=True, frozen=True)
class ConversionContext:
    """Carries the caller's deadline and cancellation signal.

    The deadline is a ``time.monotonic()`` timestamp. Stores and the document
    assembler call :meth:`check` before blocking work so that a caller-imposed
    timeout aborts promptly.

    Example:
        >>> ctx = ConversionContext.with_timeout(5.0)
        >>> ctx.check()  # raises DeadlineExceededError once 5s have passed
        >>> ctx.cancel()
        >>> ctx.cancelled
        True
    """

    deadline: float | None = None
    _cancel_event: threading.Event = field(default_factory=threading.Event)

    @classmethod
    def with_timeout(cls, seconds: float) -> Self:
        """Create a context that expires ``seconds`` from now."""
        return cls(deadline=time.monotonic() + seconds)

    @classmethod
    def background(cls) -> Self:
        """Create a context with no deadline."""
        return cls()

    @property
    def cancelled(self) -> bool:
        """Whether :meth:`cancel` has been called."""
        return self._cancel_event.is_set()

    def cancel(self) -> None:
        """Signal cancellation to any work observing this context."""
        self._cancel_event.set()

    def remaining(self) -> float | None:
        """Seconds until the deadline, or None when there is no deadline.

        Never negative.
        """
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def expired(self) -> bool:
        """Whether the context is cancelled or past its deadline."""
        if self.cancelled:
            return True
        return self.deadline is not None and time.monotonic() >= self.deadline

    def check(self) -> None:
        """Raise if the context is cancelled or past its deadline.

        Raises:
            ConversionCancelledError: If cancel() was called.
            DeadlineExceededError: If the deadline has passed.
        """
        if self.cancelled:
            msg = "conversion cancelled"
            raise ConversionCancelledError(msg)
        if self.deadline is not None and time.monotonic() >= self.deadline:
            msg = "conversion deadline exceeded"
            raise DeadlineExceededError(msg)
