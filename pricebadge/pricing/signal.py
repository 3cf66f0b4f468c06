"""
Invalidation signal - tells renderers that a deferred label may be ready.

A monotonic version number plus subscribe/unsubscribe. Renderers either
poll ``version`` and redraw when it moves, or subscribe a callback.
"""

import logging
from typing import Callable, List

logger = logging.getLogger(__name__)

Listener = Callable[[int], None]


class InvalidationSignal:
    """Monotonic counter with change notification."""

    def __init__(self):
        self._version = 0
        self._listeners: List[Listener] = []

    @property
    def version(self) -> int:
        return self._version

    def bump(self) -> int:
        """Advance the version and notify listeners."""
        self._version += 1
        for listener in list(self._listeners):
            try:
                listener(self._version)
            except Exception:
                logger.exception(f"Invalidation listener {listener!r} failed")
        return self._version

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def readonly(self) -> "ReadOnlySignal":
        return ReadOnlySignal(self)

    def __repr__(self) -> str:
        return f"InvalidationSignal(version={self._version}, listeners={len(self._listeners)})"


class ReadOnlySignal:
    """Consumer view of an InvalidationSignal: observe, never bump."""

    __slots__ = ("_signal",)

    def __init__(self, signal: InvalidationSignal):
        self._signal = signal

    @property
    def version(self) -> int:
        return self._signal.version

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self._signal.subscribe(listener)

    def unsubscribe(self, listener: Listener) -> None:
        self._signal.unsubscribe(listener)

    def __repr__(self) -> str:
        return f"ReadOnlySignal(version={self.version})"
