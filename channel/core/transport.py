from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Dict, Mapping, Optional

import httpx

from talk.protocol.errors import ErrorCode, ProtocolError, StatusCode

from .cookies import CookieStore

logger = logging.getLogger(__name__)

Params = Optional[Mapping[str, Any]]


class TransportError(ProtocolError):
    """Non-2xx status or I/O failure while talking HTTP."""

    def __init__(self, status: int = StatusCode.INTERNAL_ERROR, status_text: str = "") -> None:
        self.status_text = status_text
        super().__init__(status, ErrorCode.TRANSPORT_FAILED, status_text)

    @classmethod
    def from_response(cls, response: httpx.Response) -> "TransportError":
        return cls(response.status_code, response.reason_phrase or f"HTTP {response.status_code}")


class HttpTransport:
    """httpx-backed request helper that replays the channel's session cookie."""

    def __init__(
        self,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
        cookies: Optional[CookieStore] = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None
        self.cookies = cookies or CookieStore()

    async def fetch(self, method: str, url: str, params: Params = None, data: Optional[Dict[str, Any]] = None) -> httpx.Response:
        """Send a request and read the whole body."""
        try:
            response = await self._client.request(method, url, params=params, data=data, headers=self._headers())
        except httpx.HTTPError as exc:
            raise TransportError(StatusCode.INTERNAL_ERROR, f"{method} {url} failed: {exc}") from exc
        self._remember(response)
        logger.debug("%s %s -> %s", method, url, response.status_code)
        return response

    async def stream(self, method: str, url: str, params: Params = None, data: Optional[Dict[str, Any]] = None) -> httpx.Response:
        """Send a request and return the response unread; the caller must ``aclose()`` it."""
        request = self._client.build_request(method, url, params=params, data=data, headers=self._headers())
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise TransportError(StatusCode.INTERNAL_ERROR, f"{method} {url} failed: {exc}") from exc
        self._remember(response)
        logger.debug("%s %s -> %s (streaming)", method, url, response.status_code)
        return response

    async def iter_text(self, response: httpx.Response) -> AsyncIterator[str]:
        """Decoded body chunks of a streaming response, with read failures as TransportError."""
        try:
            async for chunk in response.aiter_text():
                yield chunk
        except (httpx.HTTPError, httpx.StreamError) as exc:
            raise TransportError(StatusCode.INTERNAL_ERROR, f"Read failed: {exc}") from exc

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self) -> Dict[str, str]:
        cookie = self.cookies.header()
        return {"Cookie": cookie} if cookie else {}

    def _remember(self, response: httpx.Response) -> None:
        if self.cookies.capture(response.headers.get_list("set-cookie")):
            logger.debug("Captured session cookie from %s", response.url)


def ensure_success(response: httpx.Response) -> httpx.Response:
    if not response.is_success:
        raise TransportError.from_response(response)
    return response


__all__ = ["HttpTransport", "TransportError", "ensure_success"]
