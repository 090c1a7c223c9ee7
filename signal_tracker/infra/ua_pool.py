"""User-Agent rotation for outbound scraping requests."""

from __future__ import annotations

import random
from threading import Lock
from typing import Iterable, List, Optional

DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:120.0) Gecko/20100101 Firefox/120.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15",
]


class UserAgentPool:
    """Return random user agents, falling back to a built-in desktop list."""

    def __init__(self, user_agents: Iterable[str] | None = None) -> None:
        self._lock = Lock()
        self._uas: List[str] = [ua.strip() for ua in user_agents or [] if ua.strip()]
        if not self._uas:
            self._uas = list(DEFAULT_USER_AGENTS)

    def get(self) -> Optional[str]:
        with self._lock:
            return random.choice(self._uas)

    def refresh(self, user_agents: Iterable[str]) -> None:
        with self._lock:
            refreshed = [ua.strip() for ua in user_agents if ua.strip()]
            self._uas = refreshed or list(DEFAULT_USER_AGENTS)


__all__ = ["DEFAULT_USER_AGENTS", "UserAgentPool"]
