from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from talk.utils import chomp

from .session import ChannelSession
from .state import ChannelState, ReadyState
from .transport import HttpTransport, TransportError, ensure_success

logger = logging.getLogger(__name__)


class DevClient:
    """Local development server flavour: plain GETs against ``/_ah/channel/dev``."""

    def __init__(
        self,
        session: ChannelSession,
        state: ChannelState,
        transport: HttpTransport,
        poll_interval: float = 0.5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.session = session
        self.state = state
        self.transport = transport
        self.poll_interval = poll_interval
        self.sleep = sleep

    async def _command(self, command: str):
        return await self.transport.fetch("GET", self.session.dev_url, params=self.session.dev_params(command))

    async def handshake(self) -> None:
        response = ensure_success(await self._command("connect"))
        self.session.client_id = chomp(response.text)
        logger.info("Connected to dev channel as %s", self.session.client_id)

    async def shutdown(self) -> None:
        try:
            await self._command("disconnect")
        except TransportError as exc:
            logger.warning("Disconnect request failed: %s", exc)

    async def run(self) -> None:
        while self.state.is_open():
            try:
                response = await self._command("poll")
            except TransportError as exc:
                logger.warning("Poll failed: %s", exc)
            else:
                if not response.is_success:
                    logger.error("Poll returned %s %s", response.status_code, response.reason_phrase)
                    if self.state.transition(ReadyState.OPEN, ReadyState.ERROR):
                        await self.state.notify("on_error", response.status_code, response.reason_phrase)
                    break
                data = chomp(response.text)
                if data:
                    await self.state.notify("on_message", data)
            await self.sleep(self.poll_interval)
        logger.debug("Dev poll loop stopped (%s)", self.state.ready_state.value)


__all__ = ["DevClient"]
