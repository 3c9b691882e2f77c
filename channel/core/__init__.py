from .bind import BindClient, parse_init_page, reduce_message
from .cookies import CookieStore
from .dev import DevClient
from .session import ChannelSession, Mode
from .state import ChannelState, ReadyState
from .transport import HttpTransport, TransportError

__all__ = [
    "BindClient",
    "parse_init_page",
    "reduce_message",
    "CookieStore",
    "DevClient",
    "ChannelSession",
    "Mode",
    "ChannelState",
    "ReadyState",
    "HttpTransport",
    "TransportError",
]
