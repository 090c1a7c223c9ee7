"""Shared fixtures: isolated tracker home, config builders and a temporary store."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Iterable

import pytest

from signal_tracker.config import ConfigLocator, ConfigRepository, ScanConfig, TrackerConfig
from signal_tracker.infra import SQLiteStore
from signal_tracker.models import Company


@pytest.fixture(autouse=True)
def tracker_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("SIGNAL_TRACKER_HOME", str(tmp_path))
    for name in (
        "LINKEDIN_SESSION_COOKIE",
        "GOOGLE_CUSTOM_SEARCH_API_KEY",
        "GOOGLE_CUSTOM_SEARCH_ENGINE_ID",
        "JOBS_API_TOKEN",
        "PROXY_LIST",
    ):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


@pytest.fixture
def sample_tracker_config() -> Callable[..., TrackerConfig]:
    def _builder(**scan_overrides: Any) -> TrackerConfig:
        scan: dict[str, Any] = {
            "batch_size": 3,
            "intra_batch_delay": (0.0, 0.0),
            "inter_batch_delay": (0.0, 0.0),
        }
        scan.update(scan_overrides)
        return TrackerConfig(scan=ScanConfig(**scan))

    return _builder


@pytest.fixture
def company_factory() -> Callable[..., Company]:
    def _builder(name: str = "Acme Corp", **overrides: Any) -> Company:
        base: dict[str, Any] = {
            "name": name,
            "website": "https://acme.example",
            "linkedin_url": "https://www.linkedin.com/company/acme",
        }
        base.update(overrides)
        return Company(**base)

    return _builder


@pytest.fixture
def temp_store(tmp_path: Path) -> Iterable[SQLiteStore]:
    store = SQLiteStore(tmp_path / "data" / "tracker.db")
    yield store
    store.close()


@pytest.fixture
def temp_config_repository(tmp_path: Path) -> Iterable[ConfigRepository]:
    locator = ConfigLocator(project_root=tmp_path)
    yield ConfigRepository(locator)
