"""Cancellation tokens and per-(view, key) request slots."""

import threading
from typing import Dict, Hashable, Tuple

from .errors import Cancelled


class CancellationToken:
    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Cancelled()


class RequestSlots:
    """At most one outstanding request per (view, key).

    `begin` cancels whatever token currently holds the slot and hands out a
    fresh one. Work must check its token before committing state writes.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._slots: Dict[Tuple[str, Hashable], CancellationToken] = {}

    def begin(self, view: str, key: Hashable) -> CancellationToken:
        token = CancellationToken()
        with self._lock:
            prev = self._slots.get((view, key))
            if prev is not None:
                prev.cancel()
            self._slots[(view, key)] = token
        return token

    def finish(self, view: str, key: Hashable, token: CancellationToken) -> None:
        with self._lock:
            if self._slots.get((view, key)) is token:
                del self._slots[(view, key)]

    def outstanding(self) -> int:
        with self._lock:
            return len(self._slots)
