from __future__ import annotations

from collections.abc import Callable
from typing import Generic, TypeVar

from loguru import logger

T = TypeVar("T")


class Subscription:
    """Handle returned by `Listeners.subscribe`; closing it unregisters the listener."""

    def __init__(self, on_close: Callable[[], None]):
        self._on_close: Callable[[], None] | None = on_close

    @property
    def closed(self) -> bool:
        return self._on_close is None

    def close(self) -> None:
        if self._on_close is None:
            return
        on_close, self._on_close = self._on_close, None
        on_close()

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class Listeners(Generic[T]):
    def __init__(self) -> None:
        self._listeners: list[Callable[[T], None]] = []

    def __len__(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Callable[[T], None]) -> Subscription:
        self._listeners.append(listener)
        return Subscription(lambda: self._remove(listener))

    def notify(self, value: T) -> None:
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception as ex:
                logger.warning(f"Listener {listener!r} failed: {ex}")

    def _remove(self, listener: Callable[[T], None]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)
