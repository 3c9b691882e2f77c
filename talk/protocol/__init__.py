"""
Talk protocol package: the array message grammar, length-prefixed framing,
handshake models and the error hierarchy shared by the channel client.
"""

from .constants import CLIENT_VERSION, DEFAULT_TALK_URL, PROTOCOL_VERSION
from .decoder import decode_message
from .errors import (
    DecodeError,
    ErrorCode,
    MalformedFrame,
    ProtocolError,
    ProtocolMismatch,
    StatusCode,
    TypeMismatch,
)
from .framing import FrameReader, encode_frame
from .messages import BindQuery, ConnectForm, SendForm, TokenResponse, XpcParams
from .wire import EMPTY, EntryKind, WireValue

__all__ = [
    "CLIENT_VERSION",
    "DEFAULT_TALK_URL",
    "PROTOCOL_VERSION",
    "decode_message",
    "DecodeError",
    "ErrorCode",
    "MalformedFrame",
    "ProtocolError",
    "ProtocolMismatch",
    "StatusCode",
    "TypeMismatch",
    "FrameReader",
    "encode_frame",
    "BindQuery",
    "ConnectForm",
    "SendForm",
    "TokenResponse",
    "XpcParams",
    "EMPTY",
    "EntryKind",
    "WireValue",
]
