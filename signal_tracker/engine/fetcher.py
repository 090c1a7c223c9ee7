"""HTTP fetching bound to the egress resource pool."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from threading import Lock, get_ident
from typing import Any, Dict

import httpx
import structlog

from ..errors import SourceError
from ..infra import ResourceHandle, ResourcePool, UserAgentPool


@dataclass(slots=True)
class FetchRequest:
    """Input for the fetcher."""

    url: str
    method: str = "GET"
    params: dict[str, Any] | None = None
    json: Any = None
    headers: dict[str, str] | None = None
    cookies: dict[str, str] | None = None
    timeout: float | None = None
    use_browser: bool = False
    # When rendering with a headless browser, wait for this CSS selector
    wait_selector: str | None = None
    scroll_rounds: int = 0


@dataclass(slots=True)
class FetchResponse:
    """Standardised response wrapper."""

    url: str
    status_code: int
    text: str
    headers: Dict[str, str]
    elapsed_ms: float = 0.0
    resource: str | None = None
    raw: httpx.Response | None = field(repr=False, default=None)

    def json(self) -> Any:
        if self.raw is not None:
            return self.raw.json()
        return json.loads(self.text)


class Fetcher:
    """Execute requests through pooled egress resources with UA rotation."""

    def __init__(
        self,
        resource_pool: ResourcePool | None = None,
        ua_pool: UserAgentPool | None = None,
        default_timeout: float = 20.0,
        transport: httpx.BaseTransport | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.resource_pool = resource_pool
        self.ua_pool = ua_pool or UserAgentPool()
        self.default_timeout = default_timeout
        self._transport = transport
        self.logger = logger or structlog.get_logger("signal_tracker.fetcher")
        self._clients: dict[str | None, httpx.Client] = {}
        self._client_lock = Lock()
        self._browser_sessions: dict[int, _PlaywrightSession] = {}
        self._browser_lock = Lock()

    def close(self) -> None:
        with self._client_lock:
            for client in self._clients.values():
                client.close()
            self._clients.clear()
        with self._browser_lock:
            for session in self._browser_sessions.values():
                try:
                    session.close()
                except Exception as exc:  # noqa: BLE001
                    self.logger.debug("browser_close_error", error=str(exc))
            self._browser_sessions.clear()

    def fetch(self, request: FetchRequest, strategy: str = "fetcher") -> FetchResponse:
        """Run one request; raises ``SourceError`` on network errors or blocking statuses."""

        handle = self.resource_pool.acquire() if self.resource_pool else None
        headers = dict(request.headers or {})
        user_agent = self.ua_pool.get()
        if user_agent:
            headers.setdefault("User-Agent", user_agent)
        timeout = request.timeout or self.default_timeout

        started = time.perf_counter()
        try:
            if request.use_browser:
                response = self._fetch_via_browser(request, headers, timeout, handle)
            else:
                response = self._client_for(handle).request(
                    request.method,
                    request.url,
                    params=request.params,
                    json=request.json,
                    headers=headers,
                    cookies=request.cookies,
                    timeout=timeout,
                )
        except SourceError:
            self._report(handle, False, started)
            raise
        except Exception as exc:  # noqa: BLE001
            self._report(handle, False, started)
            self.logger.warning(
                "fetch_error",
                url=request.url,
                strategy=strategy,
                resource=handle.label if handle else None,
                error=str(exc),
            )
            raise SourceError(strategy, f"request to {request.url} failed: {exc}") from exc

        elapsed_ms = self._report(handle, not self._is_failure(response), started)
        if self._is_failure(response):
            self.logger.info(
                "fetch_blocked",
                url=request.url,
                strategy=strategy,
                status=response.status_code,
                resource=handle.label if handle else None,
            )
            raise SourceError(strategy, f"unexpected status {response.status_code} from {request.url}")
        return FetchResponse(
            url=str(response.url),
            status_code=response.status_code,
            text=response.text,
            headers=dict(response.headers),
            elapsed_ms=elapsed_ms,
            resource=handle.label if handle else None,
            raw=response if isinstance(response, httpx.Response) else None,
        )

    # ------------------------------------------------------------------
    def _report(self, handle: ResourceHandle | None, success: bool, started: float) -> float:
        elapsed_ms = (time.perf_counter() - started) * 1000.0
        if handle is not None and self.resource_pool is not None:
            self.resource_pool.report_outcome(handle, success, elapsed_ms)
        return elapsed_ms

    def _client_for(self, handle: ResourceHandle | None) -> httpx.Client:
        key = handle.url if handle else None
        with self._client_lock:
            client = self._clients.get(key)
            if client is None:
                kwargs: dict[str, Any] = {"follow_redirects": True, "timeout": self.default_timeout}
                if self._transport is not None:
                    kwargs["transport"] = self._transport
                elif key:
                    kwargs["proxy"] = key
                client = httpx.Client(**kwargs)
                self._clients[key] = client
            return client

    def _fetch_via_browser(
        self,
        request: FetchRequest,
        headers: dict[str, str],
        timeout: float,
        handle: ResourceHandle | None,
    ) -> "BrowserResponse":
        session = self._ensure_browser_session(headers.get("User-Agent"), handle)
        return session.fetch(
            request.url,
            headers,
            timeout,
            wait_selector=request.wait_selector,
            scroll_rounds=request.scroll_rounds,
        )

    def _ensure_browser_session(
        self, user_agent: str | None, handle: ResourceHandle | None
    ) -> "_PlaywrightSession":
        thread_id = get_ident()
        with self._browser_lock:
            session = self._browser_sessions.get(thread_id)
            if session is None:
                session = _PlaywrightSession(user_agent, handle)
                self._browser_sessions[thread_id] = session
            return session

    @staticmethod
    def _is_failure(response: Any) -> bool:
        status_code = getattr(response, "status_code", 0)
        if status_code >= 500:
            return True
        if status_code in {401, 403, 429}:
            return True
        return False


@dataclass
class BrowserResponse:
    url: str
    status_code: int
    text: str
    headers: Dict[str, str]


class _PlaywrightSession:
    def __init__(self, user_agent: str | None, handle: ResourceHandle | None = None) -> None:
        self._user_agent = user_agent
        self._handle = handle
        self._lock = Lock()
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None

    def _ensure_started(self) -> None:
        if self._playwright is not None:
            return
        try:
            from playwright.sync_api import sync_playwright
        except ImportError as exc:  # pragma: no cover
            raise SourceError(
                "browser", "headless rendering requires installing the 'playwright' package"
            ) from exc

        launch_kwargs: dict[str, Any] = {"headless": True}
        if self._handle is not None:
            proxy: dict[str, str] = {
                "server": f"{self._handle.protocol}://{self._handle.host}:{self._handle.port}"
            }
            if self._handle.username:
                proxy["username"] = self._handle.username
                proxy["password"] = self._handle.password or ""
            launch_kwargs["proxy"] = proxy
        self._playwright = sync_playwright().start()
        self._browser = self._playwright.chromium.launch(**launch_kwargs)
        self._context = self._browser.new_context(
            user_agent=self._user_agent,
            locale="en-US",
            viewport={"width": 1920, "height": 1080},
        )
        self._page = self._context.new_page()

    def fetch(
        self,
        url: str,
        headers: dict[str, str],
        timeout: float,
        *,
        wait_selector: str | None = None,
        scroll_rounds: int = 0,
    ) -> BrowserResponse:
        from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

        timeout_ms = int(timeout * 1000)
        with self._lock:
            self._ensure_started()
            self._context.set_extra_http_headers(
                {key: value for key, value in headers.items() if key.lower() != "user-agent"}
            )
            try:
                response = self._page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
                if wait_selector:
                    self._page.wait_for_selector(wait_selector, timeout=timeout_ms)
            except PlaywrightTimeoutError as exc:
                raise SourceError("browser", f"playwright timeout: {exc}") from exc
            for _ in range(max(0, scroll_rounds)):
                self._page.evaluate("window.scrollTo(0, document.body.scrollHeight)")
                self._page.wait_for_timeout(300)
            return BrowserResponse(
                url=self._page.url,
                status_code=response.status if response else 200,
                text=self._page.content(),
                headers=dict(response.headers) if response else {},
            )

    def close(self) -> None:
        with self._lock:
            if self._page is not None:
                self._page.close()
                self._page = None
            if self._context is not None:
                self._context.close()
                self._context = None
            if self._browser is not None:
                self._browser.close()
                self._browser = None
            if self._playwright is not None:
                self._playwright.stop()
                self._playwright = None


__all__ = ["BrowserResponse", "Fetcher", "FetchRequest", "FetchResponse"]
