from __future__ import annotations

import inspect
import logging
import threading
from enum import Enum
from typing import Any, Optional

from channel.listener import Listener, listener_or_default

logger = logging.getLogger(__name__)


class ReadyState(Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    ERROR = "error"
    CLOSING = "closing"
    CLOSED = "closed"


class ChannelState:
    """
    Ready state and listener of one channel.

    Both are read by the poll task and by callers (possibly from other
    threads), so every access goes through one lock. The lock is never held
    while a listener runs.
    """

    def __init__(self, listener: Optional[Listener] = None) -> None:
        self._lock = threading.Lock()
        self._ready_state = ReadyState.CLOSED
        self._listener: Listener = listener_or_default(listener)

    @property
    def ready_state(self) -> ReadyState:
        with self._lock:
            return self._ready_state

    def set(self, ready_state: ReadyState) -> ReadyState:
        """Switch to ``ready_state`` and return the previous state."""
        with self._lock:
            previous, self._ready_state = self._ready_state, ready_state
        if previous is not ready_state:
            logger.debug("Ready state %s -> %s", previous.value, ready_state.value)
        return previous

    def transition(self, expected: ReadyState, ready_state: ReadyState) -> bool:
        """Switch to ``ready_state`` only when currently ``expected``."""
        with self._lock:
            if self._ready_state is not expected:
                return False
            self._ready_state = ready_state
        logger.debug("Ready state %s -> %s", expected.value, ready_state.value)
        return True

    def is_open(self) -> bool:
        return self.ready_state is ReadyState.OPEN

    @property
    def listener(self) -> Listener:
        with self._lock:
            return self._listener

    def set_listener(self, listener: Optional[Listener]) -> None:
        """Replace the listener; None keeps the current one."""
        if listener is None:
            return
        with self._lock:
            self._listener = listener

    async def notify(self, event: str, *args: Any) -> None:
        """Invoke ``listener.<event>(*args)``; a failing listener is logged, never raised."""
        callback = getattr(self.listener, event, None)
        if callback is None:
            logger.debug("Listener has no %s handler", event)
            return
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as exc:
            logger.exception("Listener error in %s: %s", event, exc)


__all__ = ["ReadyState", "ChannelState"]
