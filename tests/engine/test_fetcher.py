from __future__ import annotations

import httpx
import pytest

from signal_tracker.engine import FetchRequest, Fetcher
from signal_tracker.errors import SourceError
from signal_tracker.infra import ResourceHandle, ResourcePool, UserAgentPool


def _fetcher(handler, pool: ResourcePool | None = None) -> Fetcher:
    return Fetcher(
        resource_pool=pool,
        ua_pool=UserAgentPool(["TrackerTest/1.0"]),
        transport=httpx.MockTransport(handler),
    )


def test_fetch_sets_user_agent_and_reports_success() -> None:
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["ua"] = request.headers.get("user-agent")
        captured["cookie"] = request.headers.get("cookie")
        return httpx.Response(200, json={"ok": True})

    handle = ResourceHandle(host="10.0.0.1", port=8080)
    pool = ResourcePool([handle])
    fetcher = _fetcher(handler, pool)
    response = fetcher.fetch(
        FetchRequest(url="https://api.example/jobs", cookies={"li_at": "token"}), strategy="jobs_api"
    )
    fetcher.close()

    assert captured["ua"] == "TrackerTest/1.0"
    assert "li_at=token" in captured["cookie"]
    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert response.resource == "10.0.0.1:8080"
    assert handle.consecutive_failures == 0
    assert handle.last_response_time_ms is not None


@pytest.mark.parametrize("status", [403, 429, 503])
def test_blocking_status_raises_and_counts_failure(status) -> None:
    handle = ResourceHandle(host="10.0.0.1", port=8080)
    pool = ResourcePool([handle])
    fetcher = _fetcher(lambda request: httpx.Response(status), pool)
    with pytest.raises(SourceError) as excinfo:
        fetcher.fetch(FetchRequest(url="https://example.com"), strategy="career_page")
    assert excinfo.value.strategy == "career_page"
    assert str(status) in excinfo.value.reason
    assert handle.consecutive_failures == 1


def test_not_found_is_returned_to_caller() -> None:
    fetcher = _fetcher(lambda request: httpx.Response(404, text="missing"))
    response = fetcher.fetch(FetchRequest(url="https://example.com/careers"))
    assert response.status_code == 404
    assert response.resource is None


def test_network_error_becomes_source_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    handle = ResourceHandle(host="10.0.0.1", port=8080)
    pool = ResourcePool([handle], failure_threshold=1)
    fetcher = _fetcher(handler, pool)
    with pytest.raises(SourceError):
        fetcher.fetch(FetchRequest(url="https://example.com"), strategy="website_news")
    assert not handle.is_active


def test_clients_are_cached_per_resource() -> None:
    fetcher = _fetcher(lambda request: httpx.Response(200))
    handle = ResourceHandle(host="10.0.0.1", port=8080)
    assert fetcher._client_for(None) is fetcher._client_for(None)
    assert fetcher._client_for(handle) is not fetcher._client_for(None)
    fetcher.close()
