from __future__ import annotations

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .constants import CONNECT_ADD_CLIENT, PROTOCOL_VERSION, SESSION_CONTROL
from .errors import DecodeError


class TokenResponse(BaseModel):
    """Body of the application server's ``/token`` endpoint."""

    model_config = ConfigDict(extra="allow")

    token: str = Field(..., min_length=1, description="Channel token issued for the key")

    @classmethod
    def from_json(cls, text: str) -> "TokenResponse":
        try:
            return cls.model_validate_json(text)
        except ValidationError as exc:
            raise DecodeError(f"Token response validation failed: {exc}") from exc


class XpcParams(BaseModel):
    """Cross-page channel description sent as the ``xpc`` query parameter."""

    cn: str = Field(..., description="Random channel name")
    tp: str = "null"
    lpu: str = Field(..., description="Local (talk server) blank page URL")
    ppu: str = Field(..., description="Peer (application) blank page URL")


class BindQuery(BaseModel):
    """Query parameters of a request to the bind endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    ver: str = Field(default=PROTOCOL_VERSION, alias="VER")
    token: str
    gsessionid: Optional[str] = None
    clid: Optional[str] = None
    prop: str = "data"
    zx: str
    t: str = "1"
    rid: Union[int, str] = Field(..., alias="RID")
    sid: Optional[str] = Field(default=None, alias="SID")
    cver: Optional[str] = Field(default=None, alias="CVER")
    aid: Optional[int] = Field(default=None, alias="AID")
    ci: Optional[str] = Field(default=None, alias="CI")
    type: Optional[str] = Field(default=None, alias="TYPE")

    def to_params(self) -> Dict[str, Any]:
        params = self.model_dump(by_alias=True, exclude_none=True)
        if not params.get("SID"):
            params.pop("SID", None)
        return params


class ConnectForm(BaseModel):
    """Form body of the ``connect-add-client`` bind request."""

    count: str = "1"
    ofs: str = "0"
    req0_m: str = CONNECT_ADD_CLIENT
    req0_c: str
    req0__sc: str = SESSION_CONTROL

    def to_form(self) -> Dict[str, str]:
        return self.model_dump()


class SendForm(BaseModel):
    """Form body posted to the application server by ``send``."""

    channelKey: str
    message: str

    def to_form(self) -> Dict[str, str]:
        return self.model_dump()


__all__ = ["TokenResponse", "XpcParams", "BindQuery", "ConnectForm", "SendForm"]
