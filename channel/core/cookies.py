from __future__ import annotations

import threading
from typing import Iterable, List, Optional


class CookieStore:
    """
    Keeps the session cookie between requests of one channel.

    Only the first response carrying ``Set-Cookie`` headers is captured; later
    ones are ignored. The name=value part of each captured cookie is replayed
    on every following request.
    """

    def __init__(self) -> None:
        self._cookies: Optional[List[str]] = None
        self._lock = threading.Lock()

    def capture(self, set_cookie_values: Iterable[str]) -> bool:
        """Store cookies from a response; returns True if these became the session cookies."""
        values = [value.split(";", 1)[0].strip() for value in set_cookie_values]
        values = [value for value in values if value]
        with self._lock:
            if self._cookies is not None or not values:
                return False
            self._cookies = values
            return True

    def header(self) -> Optional[str]:
        with self._lock:
            if not self._cookies:
                return None
            return "; ".join(self._cookies)


__all__ = ["CookieStore"]
