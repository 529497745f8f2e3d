"""Observed authentication state shared by the controller and the UI"""

from __future__ import annotations

from typing import Callable, Optional

from .db.entities import Session

SessionListener = Callable[[Optional[Session], Optional[Session]], None]


class SessionState:
    """
    Holds the current session and notifies listeners when it changes.

    The controller receives one of these instead of reading a global flag;
    every mutating operation reads `current` and passes it to the gateway.
    """

    def __init__(self, session: Optional[Session] = None):
        self._session = session
        self._listeners: list[SessionListener] = []

    @property
    def current(self) -> Optional[Session]:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        """Single-admin app: any session is the admin"""
        return self._session is not None

    def set(self, session: Optional[Session]) -> None:
        previous = self._session
        if previous == session:
            return
        self._session = session
        for listener in list(self._listeners):
            listener(previous, session)

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register `listener(previous, current)`; returns a function removing it"""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove
