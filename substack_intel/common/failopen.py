"""
One-way switch for optional collaborators (cache, rate limiter).

A collaborator starts out active. The first backend failure swaps in its
no-op twin for the rest of the process lifetime; it never re-enables, so an
intermittently failing backend cannot flap the extractor between modes.
"""

import logging
from typing import Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FailOpen(Generic[T]):
    """Holds the active implementation of an optional collaborator."""

    def __init__(self, name: str, backend: Optional[T], noop: T):
        self.name = name
        self._noop = noop
        self._active: T = backend if backend is not None else noop
        self._enabled = backend is not None
        self.disabled_reason: Optional[str] = None if backend is not None else "not configured"

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def active(self) -> T:
        return self._active

    def disable(self, error: BaseException) -> None:
        """Permanently replace the backend with the no-op. Logs once."""
        if not self._enabled:
            return
        self._enabled = False
        self._active = self._noop
        self.disabled_reason = f"{type(error).__name__}: {error}"
        logger.warning(
            f"[{self.name.upper()}] Backend failed, disabling {self.name} for this process: "
            f"{self.disabled_reason}"
        )
