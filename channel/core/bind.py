"""
Production handshake and long-poll loop against the talk server's bind endpoint.

Opening a channel takes three requests, in order:

1. ``initialize`` loads the talk server's init page for the channel token and
   scrapes the client id and session id (gsessionid) out of it.
2. ``fetch_sid`` posts an empty batch to the bind endpoint; the first frame of
   the reply carries the SID.
3. ``connect`` registers the client on the channel (``connect-add-client``).

After that :meth:`BindClient.run` keeps one streaming GET open against the
bind endpoint and turns every application event in it into ``on_message``.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Awaitable, Callable, List, Optional, Tuple

import httpx

from talk.protocol import constants
from talk.protocol.errors import (
    DecodeError,
    MalformedFrame,
    ProtocolError,
    ProtocolMismatch,
    StatusCode,
    TypeMismatch,
)
from talk.protocol.framing import FrameReader
from talk.protocol.messages import ConnectForm, XpcParams
from talk.protocol.wire import WireValue
from talk.utils import random_string

from .session import ChannelSession
from .state import ChannelState, ReadyState
from .transport import HttpTransport, TransportError, ensure_success

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

_WCS_CLIENT_RE = re.compile(constants.WCS_CLIENT_PATTERN, re.IGNORECASE | re.MULTILINE)
_QUOTED_LITERAL_RE = re.compile(constants.QUOTED_LITERAL_PATTERN, re.MULTILINE)


def parse_init_page(html: str) -> List[str]:
    """Quoted arguments of the ``chat.WcsDataClient(...)`` call in the init page."""
    match = _WCS_CLIENT_RE.search(html)
    if not match:
        raise ProtocolMismatch("Init page does not contain a WcsDataClient call")
    literals = _QUOTED_LITERAL_RE.findall(match.group(1))
    if len(literals) < constants.WCS_LITERAL_COUNT:
        raise ProtocolMismatch(
            f"Expected {constants.WCS_LITERAL_COUNT} quoted arguments in WcsDataClient, found {len(literals)}"
        )
    return literals


def reduce_message(message: WireValue, session: ChannelSession) -> Optional[str]:
    """
    Extract the application payload from a decoded bind message.

    Updates ``session.last_message_id`` (and the session id when the server
    rotates it) along the way. Returns None for anything that is not an
    application event, including shapes this client does not know.
    """
    try:
        head = message.entry(0)
        session.last_message_id = head.entry(0).as_number()

        body = head.entry(1)
        kind = body.entry(0)
        if not (kind.is_string and kind.as_string() == constants.SESSION_CONTROL):
            return None

        control = body.entry(1)
        session_id = control.entry(0).as_string()
        if session_id != session.session_id:
            logger.info("Session id changed to %s", session_id)
            session.session_id = session_id

        event = control.entry(1)
        if event.entry(0).as_string().lower() != constants.APPLICATION_EVENT:
            return None
        return event.entry(1).as_string()
    except TypeMismatch as exc:
        logger.debug("Discarding message %s: %s", message, exc)
        return None


class BindClient:
    """Talks to the production bind endpoint for one channel session."""

    def __init__(
        self,
        session: ChannelSession,
        state: ChannelState,
        transport: HttpTransport,
        repoll_delay: float = 2.5,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.session = session
        self.state = state
        self.transport = transport
        self.repoll_delay = repoll_delay
        self.sleep = sleep

    async def handshake(self) -> None:
        await self.initialize()
        await self.fetch_sid()
        await self.connect()

    async def initialize(self) -> None:
        session = self.session
        xpc = XpcParams(
            cn=random_string(),
            lpu=session.talk_url + constants.XPC_BLANK,
            ppu=session.base_url + constants.CHANNEL_PATH + constants.XPC_BLANK,
        )
        params = {"token": session.channel_token, "xpc": xpc.model_dump_json()}
        response = await self.transport.fetch("GET", session.init_url, params=params)
        if not response.is_success:
            raise TransportError(response.status_code, f"Initialize failed: {response.reason_phrase}")

        literals = parse_init_page(response.text)
        session.client_id = literals[constants.WCS_CLIENT_ID_INDEX]
        session.session_id = literals[constants.WCS_SESSION_ID_INDEX]
        if literals[constants.WCS_TOKEN_INDEX] != session.channel_token:
            raise ProtocolMismatch("Tokens do not match!")
        logger.info("Initialized channel: clid=%s gsessionid=%s", session.client_id, session.session_id)

    async def fetch_sid(self) -> None:
        session = self.session
        query = session.bind_query(cver=constants.CLIENT_VERSION)
        response = await self.transport.stream("POST", session.bind_url, params=query.to_params(), data={"count": "0"})
        try:
            ensure_success(response)
            message = await FrameReader(self.transport.iter_text(response)).read_message()
        finally:
            await response.aclose()

        if message is None:
            raise DecodeError("Bind response ended before the SID frame")
        entries = message.entry(0).entry(1)
        marker = entries.entry(0).as_string()
        if marker != constants.SESSION_CONTROL:
            raise DecodeError(f"Expected first value to be '{constants.SESSION_CONTROL}', found: {marker}")
        session.sid = entries.entry(1).as_string()
        logger.info("Fetched SID %s", session.sid)

    async def connect(self) -> None:
        session = self.session
        query = session.bind_query(cver=constants.CLIENT_VERSION, aid=session.last_message_id)
        form = ConnectForm(req0_c=session.client_id or "")
        response = await self.transport.fetch("POST", session.bind_url, params=query.to_params(), data=form.to_form())
        ensure_success(response)
        logger.info("Connected client %s to channel", session.client_id)

    async def shutdown(self) -> None:
        """Nothing to tell the talk server; the poll loop notices the closed state itself."""
        logger.debug("Closing production channel %s", self.session.client_id)

    async def run(self) -> None:
        """Long-poll loop; runs while the channel is open."""
        response: Optional[httpx.Response] = None
        reader: Optional[FrameReader] = None
        try:
            while self.state.is_open():
                if reader is None:
                    try:
                        response, reader = await self._repoll()
                    except TransportError as exc:
                        logger.warning("Re-poll failed, retrying in %.1fs: %s", self.repoll_delay, exc)
                        await self.sleep(self.repoll_delay)
                        continue

                try:
                    message = await reader.read_message()
                except TransportError as exc:
                    logger.warning("Bind stream broke, retrying in %.1fs: %s", self.repoll_delay, exc)
                    await response.aclose()
                    response, reader = None, None
                    await self.sleep(self.repoll_delay)
                    continue
                except (MalformedFrame, DecodeError) as exc:
                    logger.error("Could not decode bind message: %s", exc)
                    await self._fail(exc)
                    return

                if message is None:
                    # stream exhausted, ask again straight away
                    await response.aclose()
                    response, reader = None, None
                    continue

                payload = reduce_message(message, self.session)
                if payload is not None:
                    await self.state.notify("on_message", payload)
        except Exception as exc:
            logger.exception("Long-poll loop crashed")
            await self._fail(ProtocolError(StatusCode.INTERNAL_ERROR, message=str(exc)))
        finally:
            if response is not None:
                await response.aclose()
            logger.debug("Long-poll loop stopped (%s)", self.state.ready_state.value)

    async def _repoll(self) -> Tuple[httpx.Response, FrameReader]:
        session = self.session
        query = session.bind_query(rpc=True, ci="0", aid=session.last_message_id, type="xmlhttp")
        response = await self.transport.stream("GET", session.bind_url, params=query.to_params())
        if not response.is_success:
            await response.aclose()
            raise TransportError.from_response(response)
        return response, FrameReader(self.transport.iter_text(response))

    async def _fail(self, exc: ProtocolError) -> None:
        """A stream that cannot be decoded, or a crashed loop, ends the channel: Error, then Closed."""
        if not self.state.transition(ReadyState.OPEN, ReadyState.ERROR):
            return
        await self.state.notify("on_error", exc.status, exc.message)
        if self.state.transition(ReadyState.ERROR, ReadyState.CLOSING):
            self.state.set(ReadyState.CLOSED)
            await self.state.notify("on_close")


__all__ = ["BindClient", "parse_init_page", "reduce_message"]
