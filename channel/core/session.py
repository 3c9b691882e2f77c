from __future__ import annotations

from enum import Enum
from typing import Optional

from talk.protocol import constants
from talk.protocol.messages import BindQuery
from talk.utils import random_string


class Mode(Enum):
    DEV = "dev"
    PROD = "prod"


def detect_mode(base_url: str) -> Mode:
    """A base URL pointing at localhost is the local development server."""
    return Mode.DEV if "localhost" in base_url else Mode.PROD


def normalize_base_url(base_url: str) -> str:
    if base_url and base_url.endswith("/"):
        return base_url[:-1]
    return base_url


def application_key_from_token(token: str) -> str:
    """Tokens are suffixed with ``-<application key>``."""
    return token[token.rfind("-") + 1 :]


class ChannelSession:
    """Identifiers and counters negotiated for one channel."""

    def __init__(
        self,
        base_url: str,
        channel_token: str,
        application_key: str,
        mode: Optional[Mode] = None,
        talk_url: str = constants.DEFAULT_TALK_URL,
    ) -> None:
        self.base_url = normalize_base_url(base_url)
        self.channel_token = channel_token
        self.application_key = application_key
        self.mode = mode or detect_mode(self.base_url)
        self.talk_url = talk_url
        self.client_id: Optional[str] = None
        self.session_id: Optional[str] = None
        self.sid: Optional[str] = None
        self.request_id: int = 0
        self.last_message_id: int = 1

    @property
    def is_production(self) -> bool:
        return self.mode is Mode.PROD

    @property
    def bind_url(self) -> str:
        return self.talk_url + constants.BIND_PATH

    @property
    def init_url(self) -> str:
        return self.talk_url + constants.INIT_PATH

    @property
    def dev_url(self) -> str:
        return self.base_url + constants.DEV_PATH

    def next_request_id(self) -> int:
        rid = self.request_id
        self.request_id += 1
        return rid

    def bind_query(self, rpc: bool = False, **extra) -> BindQuery:
        """Base bind parameters; a numbered request consumes the next RID."""
        rid = constants.RPC_REQUEST_ID if rpc else self.next_request_id()
        return BindQuery(
            token=self.channel_token,
            gsessionid=self.session_id,
            clid=self.client_id,
            zx=random_string(),
            rid=rid,
            sid=self.sid,
            **extra,
        )

    def dev_params(self, command: str) -> dict:
        params = {"command": command, "channel": self.channel_token}
        if self.client_id is not None:
            params["client"] = self.client_id
        return params

    def __repr__(self) -> str:
        return (
            f"ChannelSession(mode={self.mode.value}, client_id={self.client_id!r}, "
            f"session_id={self.session_id!r}, sid={self.sid!r}, rid={self.request_id}, aid={self.last_message_id})"
        )


__all__ = ["ChannelSession", "Mode", "detect_mode", "normalize_base_url", "application_key_from_token"]
