"""Protocol-wide constants for the talk channel wire format and bind endpoint."""

FRAME_LINE_END = "\n"

PROTOCOL_VERSION = "8"  # VER
CLIENT_VERSION = "1"  # CVER

DEFAULT_TALK_URL = "https://talkgadget.google.com/talkgadget/"
INIT_PATH = "d"
BIND_PATH = "dch/bind"
XPC_BLANK = "xpc_blank"
CHANNEL_PATH = "/_ah/channel/"
DEV_PATH = CHANNEL_PATH + "dev"
TOKEN_PATH = "/token"

# Arguments of this constructor call in the init page carry the session ids.
WCS_CLIENT_PATTERN = r"chat\.WcsDataClient\(([^\)]+)\)"
QUOTED_LITERAL_PATTERN = r"\"([^\"]*?)\"[\s,]*"
WCS_LITERAL_COUNT = 7
WCS_CLIENT_ID_INDEX = 2
WCS_SESSION_ID_INDEX = 3
WCS_TOKEN_INDEX = 6

SESSION_CONTROL = "c"
APPLICATION_EVENT = "ae"
CONNECT_ADD_CLIENT = '["connect-add-client"]'
RPC_REQUEST_ID = "rpc"

__all__ = [
    "FRAME_LINE_END",
    "PROTOCOL_VERSION",
    "CLIENT_VERSION",
    "DEFAULT_TALK_URL",
    "INIT_PATH",
    "BIND_PATH",
    "XPC_BLANK",
    "CHANNEL_PATH",
    "DEV_PATH",
    "TOKEN_PATH",
    "WCS_CLIENT_PATTERN",
    "QUOTED_LITERAL_PATTERN",
    "WCS_LITERAL_COUNT",
    "WCS_CLIENT_ID_INDEX",
    "WCS_SESSION_ID_INDEX",
    "WCS_TOKEN_INDEX",
    "SESSION_CONTROL",
    "APPLICATION_EVENT",
    "CONNECT_ADD_CLIENT",
    "RPC_REQUEST_ID",
]
