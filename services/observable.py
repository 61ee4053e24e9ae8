"""Minimal subscribe/notify channel used to fan out state changes."""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, List, Union

from core import get_logger

logger = get_logger(__name__)

Listener = Callable[..., Union[None, Awaitable[None]]]


class Observable:
    """Ordered list of listeners; both plain and ``async`` callables are accepted.

    A failing listener is logged and skipped so one broken consumer cannot
    stop the others from hearing about a change.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def clear(self) -> None:
        self._listeners.clear()

    def __len__(self) -> int:
        return len(self._listeners)

    async def emit(self, *args: Any) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Listener for '{self.name}' failed: {e}", exc_info=True)
