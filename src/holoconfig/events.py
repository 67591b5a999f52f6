"""
Change notification for the configuration store.

The notifier is either ARMED (waiting for the next mutation) or FIRING
(dispatching one change to its subscribers). Every `notify()` call yields
exactly one dispatch; nothing is coalesced. A mutation made by a subscriber
while FIRING is queued and dispatched after the current one, so subscribers
always see changes in mutation order.
"""

from __future__ import annotations

import enum
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable

logger = logging.getLogger(__name__)

CONFIG_CHANGED = "on-config-changed"


class NotifierState(enum.Enum):
    ARMED = "armed"
    FIRING = "firing"


@dataclass(frozen=True)
class ConfigChange:
    event: str
    name: str
    old: Any
    new: Any


Subscriber = Callable[[ConfigChange], None]


class ChangeNotifier:
    def __init__(self) -> None:
        self._subscribers: dict[int, Subscriber] = {}
        self._next_token = 0
        self._pending: deque[ConfigChange] = deque()
        self._state = NotifierState.ARMED
        self._dispatched = 0

    @property
    def state(self) -> NotifierState:
        return self._state

    @property
    def dispatched(self) -> int:
        """Number of change events dispatched so far."""
        return self._dispatched

    def subscribe(self, callback: Subscriber) -> int:
        token = self._next_token
        self._next_token += 1
        self._subscribers[token] = callback
        return token

    def unsubscribe(self, token: int) -> bool:
        return self._subscribers.pop(token, None) is not None

    def notify(self, change: ConfigChange) -> None:
        self._pending.append(change)
        if self._state is NotifierState.FIRING:
            # The running dispatch loop below picks it up.
            return

        self._state = NotifierState.FIRING
        try:
            while self._pending:
                self._dispatch(self._pending.popleft())
        finally:
            self._pending.clear()
            self._state = NotifierState.ARMED

    def _dispatch(self, change: ConfigChange) -> None:
        self._dispatched += 1
        # Snapshot: (un)subscribing during dispatch only affects the next change.
        for token, callback in list(self._subscribers.items()):
            try:
                callback(change)
            except Exception:
                logger.exception("Subscriber %d failed while handling %s(%s)", token, change.event, change.name)
