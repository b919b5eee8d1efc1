"""Cooperative cancellation for depth-map and planning requests."""

from __future__ import annotations

import threading

from ..errors import Cancelled


class CancelToken:
    """Flag shared between a request owner and the workers serving it.

    Workers call :meth:`raise_if_cancelled` at stage boundaries; the owner
    calls :meth:`cancel` from any thread.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Cancelled("request cancelled")


def check(token: CancelToken | None) -> None:
    """Raise :class:`Cancelled` if *token* is set (``None`` is never set)."""
    if token is not None:
        token.raise_if_cancelled()
