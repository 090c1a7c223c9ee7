from __future__ import annotations

import httpx
import pytest

from signal_tracker.config import StrategyConfig
from signal_tracker.engine import Fetcher
from signal_tracker.engine.strategies import (
    AuthenticatedProfileStrategy,
    CareerPageStrategy,
    CustomSearchStrategy,
    JobsApiStrategy,
    WebsiteNewsStrategy,
    build_chain,
)
from signal_tracker.errors import ConfigurationError, SourceError, StrategyUnavailable
from signal_tracker.infra import UserAgentPool
from signal_tracker.models import Company, DetectionType, SourceTag

ACME = Company(
    name="Acme Corp",
    website="https://acme.example",
    linkedin_url="https://www.linkedin.com/company/acme/",
)


def _fetcher(handler) -> Fetcher:
    return Fetcher(ua_pool=UserAgentPool(["TrackerTest/1.0"]), transport=httpx.MockTransport(handler))


def _unreachable(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected request to {request.url}")


# ----------------------------------------------------------------------
# Authenticated profile
# ----------------------------------------------------------------------
def test_authenticated_profile_requires_cookie() -> None:
    strategy = AuthenticatedProfileStrategy(DetectionType.HIRES, _fetcher(_unreachable), environ={})
    with pytest.raises(StrategyUnavailable):
        strategy.fetch(ACME)


def test_authenticated_profile_requires_linkedin_url() -> None:
    strategy = AuthenticatedProfileStrategy(
        DetectionType.HIRES, _fetcher(_unreachable), environ={"LINKEDIN_SESSION_COOKIE": "abc"}
    )
    with pytest.raises(StrategyUnavailable):
        strategy.fetch(Company(name="Acme Corp"))


def test_authenticated_profile_detects_login_redirect() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.startswith("/authwall"):
            return httpx.Response(200, text="<html><body><p>Sign in</p></body></html>")
        return httpx.Response(302, headers={"Location": "https://www.linkedin.com/authwall?trk=acme"})

    strategy = AuthenticatedProfileStrategy(
        DetectionType.HIRES, _fetcher(handler), environ={"LINKEDIN_SESSION_COOKIE": "abc"}
    )
    with pytest.raises(SourceError) as excinfo:
        strategy.fetch(ACME)
    assert "login" in excinfo.value.reason


def test_authenticated_profile_hire_posts() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["cookie"] = request.headers.get("cookie")
        return httpx.Response(
            200,
            text=(
                "<html><body><article><p>We are thrilled to announce Jane Doe has joined the team "
                "as Chief Revenue Officer.</p></article></body></html>"
            ),
        )

    strategy = AuthenticatedProfileStrategy(
        DetectionType.HIRES, _fetcher(handler), options={"session_cookie": "abc"}, environ={}
    )
    items = strategy.fetch(ACME)
    assert seen["path"] == "/company/acme/posts/"
    assert "li_at=abc" in seen["cookie"]
    assert items[0].source_tag is SourceTag.AUTHENTICATED_SCRAPE
    assert "Jane Doe" in items[0].text


def test_authenticated_profile_job_cards_are_structured() -> None:
    html = """
    <html><body>
      <div class="base-card">
        <a href="/jobs/view/1"><h3 class="base-search-card__title">Senior Data Engineer</h3></a>
        <span class="job-search-card__location">Berlin, Germany</span>
      </div>
    </body></html>
    """
    strategy = AuthenticatedProfileStrategy(
        DetectionType.JOBS,
        _fetcher(lambda request: httpx.Response(200, text=html)),
        environ={"LINKEDIN_SESSION_COOKIE": "abc"},
    )
    items = strategy.fetch(ACME)
    assert items[0].fields == {
        "title": "Senior Data Engineer",
        "location": "Berlin, Germany",
        "url": "https://www.linkedin.com/jobs/view/1",
    }


# ----------------------------------------------------------------------
# Jobs API
# ----------------------------------------------------------------------
def test_jobs_api_unavailable_without_endpoint() -> None:
    strategy = JobsApiStrategy(DetectionType.JOBS, _fetcher(_unreachable), environ={})
    with pytest.raises(StrategyUnavailable):
        strategy.fetch(ACME)


def test_jobs_api_maps_records() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("authorization")
        return httpx.Response(
            200,
            json={
                "jobs": [
                    {
                        "title": "Senior Data Engineer",
                        "location": {"name": "Berlin"},
                        "absolute_url": "https://boards.example/acmecorp/jobs/1",
                    },
                    {"text": "Account Executive", "categories": {"location": "Remote"}},
                    "not-a-record",
                ]
            },
        )

    strategy = JobsApiStrategy(
        DetectionType.JOBS,
        _fetcher(handler),
        options={"endpoint": "https://boards.example/v1/{slug}/jobs"},
        environ={"JOBS_API_TOKEN": "secret"},
    )
    items = strategy.fetch(ACME)
    assert seen["url"] == "https://boards.example/v1/acmecorp/jobs"
    assert seen["auth"] == "Bearer secret"
    assert [item.fields["title"] for item in items] == ["Senior Data Engineer", "Account Executive"]
    assert items[0].fields["location"] == "Berlin"
    assert items[1].fields["location"] == "Remote"
    assert items[1].fields["url"] == "https://boards.example/v1/acmecorp/jobs"
    assert items[0].source_tag is SourceTag.PUBLIC_API


def test_jobs_api_rejects_unknown_shape() -> None:
    strategy = JobsApiStrategy(
        DetectionType.JOBS,
        _fetcher(lambda request: httpx.Response(200, json={"unexpected": True})),
        options={"endpoint": "https://boards.example/{slug}"},
        environ={},
    )
    with pytest.raises(SourceError):
        strategy.fetch(ACME)


# ----------------------------------------------------------------------
# Career page and website news
# ----------------------------------------------------------------------
def test_career_page_falls_back_to_website_path() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        return httpx.Response(
            200, text='<html><body><ul><li><a href="/jobs/7">Senior Backend Engineer - London</a></li></ul></body></html>'
        )

    items = CareerPageStrategy(DetectionType.JOBS, _fetcher(handler), environ={}).fetch(ACME)
    assert seen["url"] == "https://acme.example/careers"
    assert items[0].text == "Senior Backend Engineer - London"
    assert items[0].url == "https://acme.example/jobs/7"
    assert items[0].source_tag is SourceTag.CAREER_PAGE


def test_career_page_unavailable_without_locators() -> None:
    strategy = CareerPageStrategy(DetectionType.JOBS, _fetcher(_unreachable), environ={})
    with pytest.raises(StrategyUnavailable):
        strategy.fetch(Company(name="Acme Corp"))


def test_website_news_tolerates_missing_sections() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/news":
            return httpx.Response(200, text="<html><body><p>Acme names John Smith as CFO.</p></body></html>")
        return httpx.Response(503)

    items = WebsiteNewsStrategy(DetectionType.HIRES, _fetcher(handler), environ={}).fetch(ACME)
    assert [item.text for item in items] == ["Acme names John Smith as CFO."]
    assert items[0].source_tag is SourceTag.HEURISTIC


def test_website_news_raises_when_every_page_fails() -> None:
    strategy = WebsiteNewsStrategy(
        DetectionType.HIRES, _fetcher(lambda request: httpx.Response(503)), environ={}
    )
    with pytest.raises(SourceError):
        strategy.fetch(ACME)


# ----------------------------------------------------------------------
# Custom search
# ----------------------------------------------------------------------
SEARCH_ENV = {"GOOGLE_CUSTOM_SEARCH_API_KEY": "key", "GOOGLE_CUSTOM_SEARCH_ENGINE_ID": "cx"}


def test_custom_search_requires_credentials() -> None:
    strategy = CustomSearchStrategy(DetectionType.HIRES, _fetcher(_unreachable), environ={})
    with pytest.raises(StrategyUnavailable):
        strategy.fetch(ACME)


def test_custom_search_collects_unique_snippets() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={
                "items": [
                    {
                        "title": "Acme Corp welcomes Jane Doe",
                        "snippet": "Acme Corp is pleased to welcome Jane Doe as our new VP of Engineering.",
                        "link": "https://news.example/acme-jane-doe",
                    }
                ]
            },
        )

    strategy = CustomSearchStrategy(DetectionType.HIRES, _fetcher(handler), environ=SEARCH_ENV)
    items = strategy.fetch(ACME)
    assert len(requests) == 3
    params = requests[0].url.params
    assert params["cx"] == "cx"
    assert params["dateRestrict"] == "w1"
    assert "Acme Corp" in params["q"]
    assert len(items) == 1
    assert items[0].text.splitlines()[1].startswith("Acme Corp is pleased")
    assert items[0].source_tag is SourceTag.SEARCH_SNIPPET
    assert "Acme Corp" in items[0].metadata["query"]


def test_custom_search_surfaces_api_errors() -> None:
    strategy = CustomSearchStrategy(
        DetectionType.JOBS,
        _fetcher(lambda request: httpx.Response(200, json={"error": {"message": "quota exceeded"}})),
        environ=SEARCH_ENV,
    )
    with pytest.raises(SourceError) as excinfo:
        strategy.fetch(ACME)
    assert "quota exceeded" in excinfo.value.reason


# ----------------------------------------------------------------------
# Chain construction
# ----------------------------------------------------------------------
def test_build_chain_orders_enabled_strategies() -> None:
    chain = build_chain(
        DetectionType.JOBS,
        [
            StrategyConfig(name="jobs_api"),
            StrategyConfig(name="authenticated_profile", enabled=False),
            StrategyConfig(name="career_page", timeout=5),
        ],
        _fetcher(_unreachable),
        environ={},
    )
    assert chain.names == ["jobs_api", "career_page"]
    assert chain.entries[1].timeout == 5


def test_build_chain_rejects_unknown_strategy() -> None:
    with pytest.raises(ConfigurationError):
        build_chain(DetectionType.JOBS, [StrategyConfig(name="crystal_ball")], _fetcher(_unreachable))


def test_build_chain_rejects_unsupported_detection_type() -> None:
    with pytest.raises(ConfigurationError):
        build_chain(DetectionType.JOBS, [StrategyConfig(name="website_news")], _fetcher(_unreachable))
