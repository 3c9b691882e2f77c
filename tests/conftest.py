from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Union
from urllib.parse import parse_qs

import httpx
import pytest

from channel.api import ChannelAPI
from channel.config import CHANNEL_CONFIG, DEFAULT_CONFIG
from channel.core.transport import HttpTransport
from talk.protocol.framing import encode_frame

TOKEN = "AHRlWrq4yNDxAbCd-mykey"
APP_URL = "https://app.example.com"
DEV_URL = "http://localhost:8888"
FAIL = object()


def init_page(client_id: str = "CLID", session_id: str = "GSID", token: str = TOKEN) -> str:
    return (
        "<html><body><script>"
        f'var a = new chat.WcsDataClient("https://talkgadget.google.com/talkgadget/", "xpc", "{client_id}", '
        f'"{session_id}", "WCX", "0", "{token}");'
        "</script></body></html>"
    )


def form_of(request: httpx.Request) -> Dict[str, str]:
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


class RecordingListener:
    def __init__(self) -> None:
        self.events: List[tuple] = []
        self.messages: List[str] = []
        self.message_received = asyncio.Event()
        self.closed = asyncio.Event()

    def on_open(self) -> None:
        self.events.append(("open",))

    def on_message(self, payload: str) -> None:
        self.events.append(("message", payload))
        self.messages.append(payload)
        self.message_received.set()

    def on_error(self, status_code: int, status_text: str) -> None:
        self.events.append(("error", status_code, status_text))

    def on_close(self) -> None:
        self.events.append(("close",))
        self.closed.set()

    def kinds(self) -> List[str]:
        return [event[0] for event in self.events]


class FakeTalkServer:
    """Application server plus talk server, as seen through httpx.MockTransport."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.init_status = 200
        self.init_body = init_page()
        self.init_headers: Dict[str, str] = {}
        self.sid_body = encode_frame('[[0,["c","SID1","",8]]]')
        self.connect_status = 200
        self.send_status = 200
        self.token_body: Any = {"token": TOKEN}
        self.polls: List[Union[str, object, httpx.Response]] = []
        self.idle = asyncio.Event()

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path == "/talkgadget/d":
            return httpx.Response(self.init_status, text=self.init_body, headers=self.init_headers)
        if path == "/talkgadget/dch/bind":
            if request.method == "POST":
                if "req0_m" in form_of(request):
                    return httpx.Response(self.connect_status)
                return httpx.Response(200, text=self.sid_body)
            return await self._poll(request)
        if path == "/token":
            return httpx.Response(200, json=self.token_body)
        if path == "/chat":
            return httpx.Response(self.send_status)
        return httpx.Response(404)

    async def _poll(self, request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(0)
        if self.polls:
            item = self.polls.pop(0)
            if item is FAIL:
                raise httpx.ConnectError("connection refused", request=request)
            if isinstance(item, httpx.Response):
                return item
            return httpx.Response(200, text=item)
        self.idle.set()
        await asyncio.sleep(0.01)
        return httpx.Response(200, text="")

    def bind_requests(self, method: Optional[str] = None) -> List[httpx.Request]:
        return [
            request
            for request in self.requests
            if request.url.path == "/talkgadget/dch/bind" and (method is None or request.method == method)
        ]

    def polls_sent(self) -> List[httpx.Request]:
        return [request for request in self.bind_requests("GET") if request.url.params.get("RID") == "rpc"]


class FakeDevServer:
    """Local development server's ``/_ah/channel/dev`` endpoint."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.connect_status = 200
        self.client_id = "CLIENT42"
        self.polls: List[httpx.Response] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path != "/_ah/channel/dev":
            return httpx.Response(200)
        command = request.url.params.get("command")
        if command == "connect":
            return httpx.Response(self.connect_status, text=self.client_id + "\n")
        if command == "poll":
            await asyncio.sleep(0)
            if self.polls:
                return self.polls.pop(0)
            await asyncio.sleep(0.01)
            return httpx.Response(200, text="")
        return httpx.Response(200)

    def commands(self) -> List[str]:
        return [request.url.params.get("command") for request in self.requests]


def make_transport(handler) -> HttpTransport:
    return HttpTransport(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


async def fast_sleep(delay: float) -> None:
    await asyncio.sleep(0)


@pytest.fixture(autouse=True)
def restore_channel_config():
    yield
    CHANNEL_CONFIG.clear()
    CHANNEL_CONFIG.update(DEFAULT_CONFIG)


@pytest.fixture
def config() -> Dict[str, Any]:
    return dict(DEFAULT_CONFIG)


@pytest.fixture
def talk_server() -> FakeTalkServer:
    return FakeTalkServer()


@pytest.fixture
def dev_server() -> FakeDevServer:
    return FakeDevServer()


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def prod_channel(talk_server, listener, config) -> ChannelAPI:
    return ChannelAPI.join(APP_URL, TOKEN, listener, config=config, transport=make_transport(talk_server))


@pytest.fixture
def dev_channel(dev_server, listener, config) -> ChannelAPI:
    channel = ChannelAPI.join(DEV_URL, TOKEN, listener, config=config, transport=make_transport(dev_server))
    channel.client.sleep = fast_sleep
    return channel
