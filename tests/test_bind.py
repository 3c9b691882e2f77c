from __future__ import annotations

import asyncio

import httpx
import pytest

from channel.core.bind import parse_init_page, reduce_message
from channel.core.session import ChannelSession
from channel.core.state import ReadyState
from talk.protocol import ProtocolMismatch, decode_message, encode_frame
from conftest import APP_URL, FAIL, TOKEN, form_of, init_page


def app_event(aid: int, payload: str, session_id: str = "GSID") -> str:
    return encode_frame(f'[[{aid},["c",["{session_id}",["ae","{payload}"]]]]]')


def _session() -> ChannelSession:
    session = ChannelSession(APP_URL, TOKEN, "mykey")
    session.session_id = "GSID"
    return session


def test_parse_init_page_literals():
    literals = parse_init_page(init_page())
    assert literals[2] == "CLID"
    assert literals[3] == "GSID"
    assert literals[6] == TOKEN


def test_parse_init_page_without_client_call():
    with pytest.raises(ProtocolMismatch):
        parse_init_page("<html>maintenance</html>")
    with pytest.raises(ProtocolMismatch):
        parse_init_page('chat.WcsDataClient("a", "b")')


def test_reduce_application_event():
    session = _session()
    message = decode_message('[[7,["c",["GSID",["AE","hello"]]]]]')
    assert reduce_message(message, session) == "hello"
    assert session.last_message_id == 7


def test_reduce_rotates_session_id():
    session = _session()
    reduce_message(decode_message('[[2,["c",["NEWID",["ae","x"]]]]]'), session)
    assert session.session_id == "NEWID"


def test_reduce_discards_unknown_shapes():
    session = _session()
    assert reduce_message(decode_message('[[3,["noop"]]]'), session) is None
    assert session.last_message_id == 3
    assert reduce_message(decode_message('[[4,["c",["GSID",["bye"]]]]]'), session) is None
    assert reduce_message(decode_message('[["x"]]'), session) is None
    assert reduce_message(decode_message("[]"), session) is None
    assert session.last_message_id == 4


@pytest.mark.asyncio
async def test_open_runs_handshake_in_order(prod_channel, talk_server, listener):
    assert prod_channel.ready_state is ReadyState.CLOSED
    assert await prod_channel.open() is True
    assert prod_channel.ready_state is ReadyState.OPEN
    assert listener.events[0] == ("open",)

    session = prod_channel.session
    assert (session.client_id, session.session_id, session.sid) == ("CLID", "GSID", "SID1")

    init, sid, connect = talk_server.requests[:3]
    assert init.url.path == "/talkgadget/d"
    assert init.url.params["token"] == TOKEN
    assert '"lpu":"https://talkgadget.google.com/talkgadget/xpc_blank"' in init.url.params["xpc"]

    assert sid.method == "POST"
    assert sid.url.params["RID"] == "0"
    assert sid.url.params["VER"] == "8"
    assert sid.url.params["CVER"] == "1"
    assert sid.url.params["gsessionid"] == "GSID"
    assert "SID" not in sid.url.params
    assert form_of(sid) == {"count": "0"}

    assert connect.url.params["RID"] == "1"
    assert connect.url.params["SID"] == "SID1"
    assert connect.url.params["AID"] == "1"
    assert form_of(connect)["req0_m"] == '["connect-add-client"]'
    assert form_of(connect)["req0_c"] == "CLID"
    assert form_of(connect)["req0__sc"] == "c"

    await prod_channel.close()
    await asyncio.wait_for(prod_channel.wait_closed(), 1)
    assert listener.kinds() == ["open", "close"]


@pytest.mark.asyncio
async def test_long_poll_delivers_application_events(prod_channel, talk_server, listener):
    talk_server.polls = [encode_frame('[[2,["noop"]]]') + app_event(3, "first"), app_event(4, "second")]
    await prod_channel.open()
    await asyncio.wait_for(talk_server.idle.wait(), 1)

    assert listener.messages == ["first", "second"]
    assert prod_channel.session.last_message_id == 4
    polls = talk_server.polls_sent()
    assert polls[0].url.params["AID"] == "1"
    assert polls[0].url.params["TYPE"] == "xmlhttp"
    assert polls[0].url.params["CI"] == "0"
    assert polls[-1].url.params["AID"] == "4"
    await prod_channel.close()
    await asyncio.wait_for(prod_channel.wait_closed(), 1)


@pytest.mark.asyncio
async def test_long_poll_backs_off_on_failures(prod_channel, talk_server, listener):
    sleeps = []

    async def record_sleep(delay):
        sleeps.append(delay)
        await asyncio.sleep(0)

    prod_channel.client.sleep = record_sleep
    talk_server.polls = [FAIL, FAIL, httpx.Response(503), app_event(2, "after-retry")]
    await prod_channel.open()
    await asyncio.wait_for(listener.message_received.wait(), 1)

    assert sleeps == [2.5, 2.5, 2.5]
    assert listener.messages == ["after-retry"]
    await prod_channel.close()
    await asyncio.wait_for(prod_channel.wait_closed(), 1)
    assert sleeps == [2.5, 2.5, 2.5]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "stream",
    [encode_frame("[1;2]"), "abc\n[1]", encode_frame("[" * 5000 + "]" * 5000)],
    ids=["bad-separator", "bad-length", "deep-nesting"],
)
async def test_undecodable_stream_errors_then_closes(prod_channel, talk_server, listener, stream):
    talk_server.polls = [stream]
    await prod_channel.open()
    await asyncio.wait_for(prod_channel.wait_closed(), 1)

    assert listener.kinds() == ["open", "error", "close"]
    assert listener.events[1][1] == 500
    assert prod_channel.ready_state is ReadyState.CLOSED
    assert await prod_channel.send("late") is False


@pytest.mark.asyncio
async def test_crash_in_poll_loop_closes_channel(prod_channel, talk_server, listener, monkeypatch):
    def explode(message, session):
        raise RuntimeError("reduction failed")

    monkeypatch.setattr("channel.core.bind.reduce_message", explode)
    talk_server.polls = [app_event(2, "never")]
    await prod_channel.open()
    await asyncio.wait_for(prod_channel.wait_closed(), 1)

    assert listener.kinds() == ["open", "error", "close"]
    assert listener.events[1] == ("error", 500, "reduction failed")
    assert prod_channel.ready_state is ReadyState.CLOSED
    assert await prod_channel.send("late") is False


@pytest.mark.asyncio
async def test_token_mismatch_is_fatal(prod_channel, talk_server, listener):
    talk_server.init_body = init_page(token="someone-else")
    assert await prod_channel.open() is False
    assert prod_channel.ready_state is ReadyState.CLOSED
    assert listener.events == [("error", 502, "Tokens do not match!"), ("close",)]
    assert talk_server.bind_requests() == []


@pytest.mark.asyncio
async def test_initialize_http_error_is_fatal(prod_channel, talk_server, listener):
    talk_server.init_status = 500
    assert await prod_channel.open() is False
    assert prod_channel.ready_state is ReadyState.CLOSED
    assert listener.kinds() == ["error", "close"]
    assert listener.events[0][1] == 500


@pytest.mark.asyncio
async def test_unexpected_sid_frame_is_fatal(prod_channel, talk_server, listener):
    talk_server.sid_body = encode_frame('[[0,["x","SID1"]]]')
    assert await prod_channel.open() is False
    assert prod_channel.ready_state is ReadyState.CLOSED
    assert "open" not in listener.kinds()


@pytest.mark.asyncio
async def test_connect_failure_is_fatal(prod_channel, talk_server, listener):
    talk_server.connect_status = 400
    assert await prod_channel.open() is False
    assert prod_channel.ready_state is ReadyState.CLOSED
    assert listener.kinds() == ["error", "close"]
    assert talk_server.polls_sent() == []


@pytest.mark.asyncio
async def test_session_cookie_is_replayed(prod_channel, talk_server):
    talk_server.init_headers = {"Set-Cookie": "S=talk123; Path=/; HttpOnly"}
    assert await prod_channel.open()
    assert talk_server.requests[1].headers["cookie"] == "S=talk123"
    assert talk_server.requests[2].headers["cookie"] == "S=talk123"
    await prod_channel.close()
    await asyncio.wait_for(prod_channel.wait_closed(), 1)
