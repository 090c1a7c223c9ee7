"""Concrete acquisition strategies and the registry used to build chains from config."""

from __future__ import annotations

import os
from concurrent.futures import Executor
from typing import Any, ClassVar, Iterable, List, Mapping
from urllib.parse import quote_plus, urljoin

import structlog
from selectolax.parser import HTMLParser

from ...config import StrategyConfig
from ...errors import ConfigurationError, SourceError, StrategyUnavailable
from ...models import Company, DetectionType, RawContent, SourceTag
from ..fetcher import Fetcher, FetchRequest, FetchResponse
from ..parser import BLOCK_SELECTOR, extract_links, html_to_units
from .chain import ChainEntry, StrategyChain

GOOGLE_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"

DEFAULT_SEARCH_QUERIES: dict[DetectionType, list[str]] = {
    DetectionType.HIRES: [
        '"{company}" "pleased to announce" OR "excited to welcome" OR "thrilled to welcome"',
        '"{company}" "joined our team" OR "welcome to the team" OR "has joined"',
        '"{company}" ("appoints" OR "names" OR "hires") ("CEO" OR "CTO" OR "CFO" OR "VP" OR "Director")',
    ],
    DetectionType.JOBS: [
        '"{company}" jobs OR careers site:linkedin.com/jobs',
        '"{company}" jobs OR careers site:indeed.com OR site:glassdoor.com',
    ],
}
DEFAULT_DATE_RESTRICT = {DetectionType.HIRES: "w1", DetectionType.JOBS: "m1"}


class BaseStrategy:
    """Shared plumbing: options, credentials lookup and fetcher access."""

    name: ClassVar[str] = "base"
    source_tag: ClassVar[SourceTag] = SourceTag.HEURISTIC
    supports: ClassVar[frozenset[DetectionType]] = frozenset(DetectionType)

    def __init__(
        self,
        detection_type: DetectionType,
        fetcher: Fetcher,
        options: Mapping[str, Any] | None = None,
        timeout: float = 20.0,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.detection_type = detection_type
        self.fetcher = fetcher
        self.options = dict(options or {})
        self.timeout = timeout
        self.environ = os.environ if environ is None else environ
        self.logger = structlog.get_logger(f"signal_tracker.strategy.{self.name}").bind(
            strategy=self.name, detection_type=detection_type.value
        )

    def fetch(self, company: Company) -> List[RawContent]:
        raise NotImplementedError

    # ------------------------------------------------------------------
    def _setting(self, option: str, env_var: str | None = None) -> str | None:
        value = self.options.get(option)
        if not value and env_var:
            value = self.environ.get(env_var)
        return str(value) if value else None

    def _get(self, url: str, **kwargs: Any) -> FetchResponse:
        request = FetchRequest(
            url=url,
            timeout=self.timeout,
            use_browser=bool(self.options.get("use_browser")),
            wait_selector=self.options.get("wait_selector"),
            **kwargs,
        )
        return self.fetcher.fetch(request, strategy=self.name)

    def _raw(self, text: str, url: str | None = None, **extra: Any) -> RawContent:
        return RawContent(text=text, source_tag=self.source_tag, strategy=self.name, url=url, **extra)

    def _units(self, response: FetchResponse, selector: str | None = None) -> list[RawContent]:
        units = html_to_units(response.text, selector or self.options.get("selector") or BLOCK_SELECTOR)
        links = {link.text: link.url for link in extract_links(response.text, response.url)}
        return [self._raw(unit, links.get(unit, response.url)) for unit in units]

    def _unavailable(self, reason: str) -> StrategyUnavailable:
        return StrategyUnavailable(self.name, reason)


class AuthenticatedProfileStrategy(BaseStrategy):
    """Company page on LinkedIn fetched with a logged-in session cookie."""

    name = "authenticated_profile"
    source_tag = SourceTag.AUTHENTICATED_SCRAPE

    POST_SELECTOR = (
        ".feed-shared-update-v2__description, .update-components-text, "
        ".feed-shared-text, article p"
    )
    JOB_CARD_SELECTOR = ".job-card-container, .base-card, .jobs-search__results-list li"
    JOB_TITLE_SELECTOR = ".job-card-list__title, .base-search-card__title, h3"
    JOB_LOCATION_SELECTOR = (
        ".job-card-container__metadata-item, .job-search-card__location, .base-search-card__metadata"
    )

    def fetch(self, company: Company) -> List[RawContent]:
        cookie = self._setting("session_cookie", "LINKEDIN_SESSION_COOKIE")
        if not cookie:
            raise self._unavailable("no LinkedIn session cookie configured")
        if not company.linkedin_url:
            raise self._unavailable("company has no linkedin_url")

        suffix = "/posts/" if self.detection_type is DetectionType.HIRES else "/jobs/"
        url = company.linkedin_url.rstrip("/") + suffix
        response = self._get(
            url,
            cookies={"li_at": cookie},
            headers={"Accept-Language": "en-US,en;q=0.9"},
        )
        if any(marker in response.url for marker in ("/login", "/authwall", "/checkpoint")):
            raise SourceError(self.name, "session cookie rejected (redirected to login)")

        if self.detection_type is DetectionType.JOBS:
            cards = self._job_cards(response)
            if cards:
                return cards
            return self._units(response)
        return self._units(response, self.options.get("post_selector") or self.POST_SELECTOR)

    def _job_cards(self, response: FetchResponse) -> list[RawContent]:
        tree = HTMLParser(response.text)
        items: list[RawContent] = []
        for card in tree.css(self.options.get("job_card_selector") or self.JOB_CARD_SELECTOR):
            title_node = card.css_first(self.JOB_TITLE_SELECTOR)
            if title_node is None:
                continue
            title = title_node.text(separator=" ", strip=True)
            location_node = card.css_first(self.JOB_LOCATION_SELECTOR)
            link_node = card.css_first("a[href]")
            fields = {
                "title": title,
                "location": location_node.text(separator=" ", strip=True) if location_node else "",
                "url": urljoin(response.url, link_node.attributes.get("href") or "")
                if link_node
                else response.url,
            }
            items.append(self._raw(card.text(separator=" ", strip=True), fields["url"], fields=fields))
        return items


class JobsApiStrategy(BaseStrategy):
    """Structured JSON job board API (Greenhouse, Lever and similar)."""

    name = "jobs_api"
    source_tag = SourceTag.PUBLIC_API
    supports = frozenset({DetectionType.JOBS})

    FIELD_CANDIDATES = {
        "title": ("title", "text", "name", "position"),
        "location": ("location", "location_name", "city", "categories"),
        "url": ("absolute_url", "url", "hostedUrl", "apply_url", "link"),
    }
    RESULT_KEYS = ("jobs", "results", "data", "items", "postings")

    def fetch(self, company: Company) -> List[RawContent]:
        endpoint = self._setting("endpoint")
        if not endpoint:
            raise self._unavailable("no jobs API endpoint configured")
        slug = self.options.get("slugs", {}).get(company.name) or company.name.lower().replace(" ", "")
        url = endpoint.format(company=quote_plus(company.name), slug=slug)
        headers = {"Accept": "application/json"}
        token = self._setting("token", self.options.get("token_env", "JOBS_API_TOKEN"))
        if token:
            headers["Authorization"] = f"Bearer {token}"
        response = self._get(url, headers=headers, params=self.options.get("params"))
        try:
            payload = response.json()
        except ValueError as exc:
            raise SourceError(self.name, f"invalid JSON from {url}") from exc
        return [self._to_raw(record, response.url) for record in self._records(payload)]

    def _records(self, payload: Any) -> list[dict]:
        if isinstance(payload, dict):
            key = self.options.get("results_key")
            keys = (key,) if key else self.RESULT_KEYS
            for candidate in keys:
                if isinstance(payload.get(candidate), list):
                    payload = payload[candidate]
                    break
            else:
                raise SourceError(self.name, "response has no job list")
        if not isinstance(payload, list):
            raise SourceError(self.name, "unexpected response shape")
        return [record for record in payload if isinstance(record, dict)]

    def _to_raw(self, record: dict, fallback_url: str) -> RawContent:
        fields = {name: self._pick(record, keys) for name, keys in self.FIELD_CANDIDATES.items()}
        fields["url"] = fields["url"] or fallback_url
        text = " - ".join(value for value in (fields["title"], fields["location"]) if value)
        return self._raw(text, fields["url"], fields=fields)

    @staticmethod
    def _pick(record: dict, keys: Iterable[str]) -> str:
        for key in keys:
            value = record.get(key)
            if isinstance(value, dict):
                value = value.get("name") or value.get("location")
            if value:
                return str(value).strip()
        return ""


class CareerPageStrategy(BaseStrategy):
    """The company's own careers page, parsed into text units."""

    name = "career_page"
    source_tag = SourceTag.CAREER_PAGE
    supports = frozenset({DetectionType.JOBS})

    def fetch(self, company: Company) -> List[RawContent]:
        url = company.career_page_url
        if not url and company.website:
            url = company.website.rstrip("/") + self.options.get("path", "/careers")
        if not url:
            raise self._unavailable("company has neither career_page_url nor website")
        return self._units(self._get(url))


class CustomSearchStrategy(BaseStrategy):
    """Google Custom Search JSON API; each result becomes one snippet."""

    name = "custom_search"
    source_tag = SourceTag.SEARCH_SNIPPET

    def fetch(self, company: Company) -> List[RawContent]:
        api_key = self._setting("api_key", "GOOGLE_CUSTOM_SEARCH_API_KEY")
        engine_id = self._setting("engine_id", "GOOGLE_CUSTOM_SEARCH_ENGINE_ID")
        if not api_key or not engine_id:
            raise self._unavailable("Google Custom Search credentials missing")

        templates = self.options.get("queries") or DEFAULT_SEARCH_QUERIES[self.detection_type]
        items: list[RawContent] = []
        seen: set[str] = set()
        for template in templates[: int(self.options.get("max_queries", len(templates)))]:
            params = {
                "key": api_key,
                "cx": engine_id,
                "q": template.format(company=company.name),
                "num": int(self.options.get("num", 10)),
                "dateRestrict": self.options.get(
                    "date_restrict", DEFAULT_DATE_RESTRICT[self.detection_type]
                ),
            }
            response = self._get(self.options.get("endpoint", GOOGLE_SEARCH_URL), params=params)
            try:
                payload = response.json()
            except ValueError as exc:
                raise SourceError(self.name, "invalid JSON from search API") from exc
            if not isinstance(payload, dict):
                raise SourceError(self.name, "unexpected search API response")
            error = payload.get("error")
            if error:
                message = error.get("message") if isinstance(error, dict) else error
                raise SourceError(self.name, f"search API error: {message}")
            for result in payload.get("items") or []:
                link = result.get("link")
                if link in seen:
                    continue
                seen.add(link)
                text = "\n".join(
                    part.strip() for part in (result.get("title"), result.get("snippet")) if part
                )
                items.append(self._raw(text, link, metadata={"query": params["q"]}))
        self.logger.debug("search_results", company=company.name, items=len(items))
        return items


class WebsiteNewsStrategy(BaseStrategy):
    """News and press pages on the company website, matched heuristically."""

    name = "website_news"
    source_tag = SourceTag.HEURISTIC
    supports = frozenset({DetectionType.HIRES})

    DEFAULT_PATHS = ("/news", "/press", "/blog")

    def fetch(self, company: Company) -> List[RawContent]:
        if not company.website:
            raise self._unavailable("company has no website")
        items: list[RawContent] = []
        last_error: SourceError | None = None
        for path in self.options.get("paths") or self.DEFAULT_PATHS:
            url = company.website.rstrip("/") + path
            try:
                items.extend(self._units(self._get(url)))
            except SourceError as exc:
                self.logger.debug("news_page_failed", url=url, error=exc.reason)
                last_error = exc
        if not items and last_error is not None:
            raise last_error
        return items


STRATEGY_REGISTRY: dict[str, type[BaseStrategy]] = {
    cls.name: cls
    for cls in (
        AuthenticatedProfileStrategy,
        JobsApiStrategy,
        CareerPageStrategy,
        CustomSearchStrategy,
        WebsiteNewsStrategy,
    )
}


def build_chain(
    detection_type: DetectionType,
    strategies: Iterable[StrategyConfig],
    fetcher: Fetcher,
    executor: Executor | None = None,
    environ: Mapping[str, str] | None = None,
) -> StrategyChain:
    """Instantiate the configured, enabled strategies in priority order."""

    entries: list[ChainEntry] = []
    for config in strategies:
        if not config.enabled:
            continue
        strategy_cls = STRATEGY_REGISTRY.get(config.name)
        if strategy_cls is None:
            raise ConfigurationError(f"Unknown strategy '{config.name}'")
        if detection_type not in strategy_cls.supports:
            raise ConfigurationError(
                f"Strategy '{config.name}' does not support {detection_type.value} detection"
            )
        strategy = strategy_cls(
            detection_type,
            fetcher,
            options=config.options,
            timeout=config.timeout,
            environ=environ,
        )
        entries.append(ChainEntry(strategy=strategy, timeout=config.timeout))
    return StrategyChain(detection_type, entries, executor=executor)


__all__ = [
    "AuthenticatedProfileStrategy",
    "BaseStrategy",
    "CareerPageStrategy",
    "CustomSearchStrategy",
    "DEFAULT_SEARCH_QUERIES",
    "JobsApiStrategy",
    "STRATEGY_REGISTRY",
    "WebsiteNewsStrategy",
    "build_chain",
]
