from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Dict, Optional, Union

from channel.config import CHANNEL_CONFIG, production_override
from channel.core.bind import BindClient
from channel.core.dev import DevClient
from channel.core.session import ChannelSession, Mode, application_key_from_token, normalize_base_url
from channel.core.state import ChannelState, ReadyState
from channel.core.transport import HttpTransport, TransportError, ensure_success
from channel.listener import Listener
from talk.protocol.constants import TOKEN_PATH
from talk.protocol.errors import ProtocolError
from talk.protocol.messages import SendForm, TokenResponse

logger = logging.getLogger(__name__)


class ChannelAPI:
    """
    One push channel between an application server and this client.

    Build it with :meth:`create` (asks the application server for a new token)
    or :meth:`join` (reuses a token handed out earlier), then ``await open()``.
    Whether the channel talks to the local development server or to the
    production talk server is decided from the base URL unless ``production``
    (or the ``production`` config key) says otherwise.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        application_key: str,
        listener: Optional[Listener] = None,
        *,
        production: Optional[bool] = None,
        config: Optional[Dict[str, Any]] = None,
        transport: Optional[HttpTransport] = None,
    ) -> None:
        self.config = config or CHANNEL_CONFIG
        if production is None:
            production = production_override(self.config)
        mode = None if production is None else (Mode.PROD if production else Mode.DEV)

        self.session = ChannelSession(base_url, token, application_key, mode, talk_url=self.config["talk_url"])
        self.state = ChannelState(listener)
        self.transport = transport or HttpTransport(timeout=float(self.config["request_timeout"]))
        self.client: Union[BindClient, DevClient]
        if self.session.is_production:
            self.client = BindClient(self.session, self.state, self.transport, repoll_delay=float(self.config["repoll_delay"]))
        else:
            self.client = DevClient(self.session, self.state, self.transport, poll_interval=float(self.config["dev_poll_interval"]))
        self._poll_task: Optional[asyncio.Task] = None
        self._opened = False

    @classmethod
    async def create(
        cls,
        base_url: str,
        channel_key: str,
        listener: Optional[Listener] = None,
        **kwargs: Any,
    ) -> "ChannelAPI":
        """Ask the application server for a channel token for ``channel_key``."""
        config = kwargs.get("config") or CHANNEL_CONFIG
        transport = kwargs.pop("transport", None) or HttpTransport(timeout=float(config["request_timeout"]))
        url = normalize_base_url(base_url) + TOKEN_PATH
        response = ensure_success(await transport.fetch("GET", url, params={"c": channel_key}))
        token = TokenResponse.from_json(response.text).token
        logger.info("Created channel for key %s", channel_key)
        return cls(base_url, token, channel_key, listener, transport=transport, **kwargs)

    @classmethod
    def join(cls, base_url: str, token: str, listener: Optional[Listener] = None, **kwargs: Any) -> "ChannelAPI":
        """Attach to an existing channel; the application key is the token's last ``-`` segment."""
        return cls(base_url, token, application_key_from_token(token), listener, **kwargs)

    @property
    def ready_state(self) -> ReadyState:
        return self.state.ready_state

    @property
    def is_production(self) -> bool:
        return self.session.is_production

    def set_listener(self, listener: Optional[Listener]) -> None:
        self.state.set_listener(listener)

    async def open(self) -> bool:
        """
        Run the handshake and start polling. Returns False if the channel did
        not open. A channel opens at most once; after close() (or a failed
        handshake) create or join a new one.
        """
        if self._opened:
            logger.warning("open() ignored, a channel opens once; create or join a new one")
            return False
        if not self.state.transition(ReadyState.CLOSED, ReadyState.CONNECTING):
            logger.warning("open() ignored, channel is %s", self.state.ready_state.value)
            return False
        self._opened = True

        try:
            await self.client.handshake()
        except ProtocolError as exc:
            logger.error("Channel handshake failed: %s", exc)
            if not self.state.transition(ReadyState.CONNECTING, ReadyState.CLOSING):
                # closed while the handshake was running
                return False
            await self.state.notify("on_error", exc.status, exc.message)
            self.state.set(ReadyState.CLOSED)
            await self.state.notify("on_close")
            return False

        if not self.state.transition(ReadyState.CONNECTING, ReadyState.OPEN):
            logger.warning("Channel closed during handshake")
            return False
        await self.state.notify("on_open")
        self._poll_task = asyncio.create_task(self.client.run(), name=f"channel-poll-{self.session.mode.value}")
        return True

    async def send(self, message: str, path_suffix: Optional[str] = None) -> bool:
        """POST ``message`` to ``<base_url><path_suffix>``; False when the channel is not open."""
        if not self.state.is_open():
            return False

        path = path_suffix if path_suffix is not None else self.config["send_path"]
        form = SendForm(channelKey=self.session.application_key, message=message)
        try:
            response = await self.transport.fetch("POST", self.session.base_url + path, data=form.to_form())
        except TransportError as exc:
            logger.warning("Send failed: %s", exc)
            await self.state.notify("on_error", exc.status, exc.status_text)
            return True
        if not response.is_success:
            logger.warning("Send returned %s %s", response.status_code, response.reason_phrase)
            await self.state.notify("on_error", response.status_code, response.reason_phrase)
        return True

    async def close(self) -> None:
        """
        Close the channel. The poll loop is not interrupted; it stops at its
        next pass, so a message already read may still be delivered.
        """
        if self.state.ready_state in (ReadyState.CLOSING, ReadyState.CLOSED):
            return
        self.state.set(ReadyState.CLOSING)
        await self.client.shutdown()
        self.state.set(ReadyState.CLOSED)
        await self.state.notify("on_close")
        logger.info("Channel closed")

    async def wait_closed(self) -> None:
        """Wait for the poll loop to finish."""
        if self._poll_task is not None:
            await self._poll_task

    async def aclose(self) -> None:
        """Close the channel and release the HTTP client, cancelling a poll still in flight."""
        await self.close()
        if self._poll_task is not None and not self._poll_task.done():
            self._poll_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._poll_task
        await self.transport.aclose()

    async def __aenter__(self) -> "ChannelAPI":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


__all__ = ["ChannelAPI"]
