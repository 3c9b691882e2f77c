from __future__ import annotations

import logging
from typing import Awaitable, Optional, Protocol, Union, runtime_checkable

logger = logging.getLogger(__name__)

MaybeAwaitable = Union[None, Awaitable[None]]


@runtime_checkable
class Listener(Protocol):
    """Callbacks a channel invokes. Each method may be a plain function or a coroutine."""

    def on_open(self) -> MaybeAwaitable: ...

    def on_message(self, payload: str) -> MaybeAwaitable: ...

    def on_error(self, status_code: int, status_text: str) -> MaybeAwaitable: ...

    def on_close(self) -> MaybeAwaitable: ...


class ChannelListener:
    """Default listener: logs every event and otherwise does nothing. Subclass and override."""

    def on_open(self) -> None:
        logger.debug("Channel opened")

    def on_message(self, payload: str) -> None:
        logger.debug("Channel message: %s", payload)

    def on_error(self, status_code: int, status_text: str) -> None:
        logger.debug("Channel error %s: %s", status_code, status_text)

    def on_close(self) -> None:
        logger.debug("Channel closed")


def listener_or_default(listener: Optional[Listener]) -> Listener:
    return listener if listener is not None else ChannelListener()


__all__ = ["Listener", "ChannelListener", "listener_or_default"]
