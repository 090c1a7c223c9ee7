"""Pydantic models used across signal tracker configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_SENIORITY_KEYWORDS = [
    "ceo",
    "cto",
    "cfo",
    "coo",
    "cmo",
    "cpo",
    "ciso",
    "chief",
    "president",
    "vice president",
    "vp",
    "svp",
    "evp",
    "founder",
    "partner",
    "head",
    "director",
    "executive",
    "officer",
    "senior",
    "lead",
    "principal",
    "manager",
]

DEFAULT_JOB_KEYWORDS = [
    "engineer",
    "developer",
    "manager",
    "director",
    "lead",
    "senior",
    "principal",
    "analyst",
    "specialist",
    "coordinator",
    "designer",
    "architect",
    "consultant",
    "executive",
    "officer",
    "head",
    "chief",
    "scientist",
    "administrator",
    "associate",
    "representative",
    "vp",
]

DEFAULT_NAME_DENYLIST = [
    "team",
    "company",
    "position",
    "new",
    "announce",
    "welcome",
    "excited",
    "basketball",
    "football",
    "soccer",
    "tennis",
    "sports",
    "star",
    "player",
    "striker",
    "midfielder",
    "defender",
    "goalkeeper",
    "league",
    "season",
    "content",
    "market",
    "working",
    "reviews",
    "pros",
    "cons",
    "recently",
    "started",
    "very",
    "our",
    "the",
    "linkedin",
]

DEFAULT_TITLE_DENYLIST = [
    "apply",
    "click",
    "view all",
    "see all",
    "learn more",
    "read more",
    "back to",
    "cookie",
    "privacy",
    "terms",
    "sign in",
]

DEFAULT_HIRE_TRIGGERS = [
    "welcome",
    "joined",
    "joins",
    "joining",
    "appointed",
    "appoints",
    "named",
    "names",
    "hired",
    "hires",
    "new role",
    "announce",
    "promoted",
]

DEFAULT_JOB_TRIGGERS = [
    "hiring",
    "job",
    "jobs",
    "career",
    "careers",
    "position",
    "opening",
    "vacancy",
    "role",
    "apply",
    *DEFAULT_JOB_KEYWORDS,
]


def _coerce_range(value: Any, name: str) -> tuple[float, float]:
    if isinstance(value, (list, tuple)) and len(value) == 2:
        low, high = float(value[0]), float(value[1])
        if low < 0 or high < 0:
            raise ValueError(f"{name} values must be non-negative")
        if high < low:
            raise ValueError(f"{name} upper bound must be >= lower bound")
        return (low, high)
    raise ValueError(f"{name} expects two items [low, high]")


class ScanConfig(BaseModel):
    """Batching, backpressure and acceptance settings for one scan."""

    batch_size: int = Field(default=3, ge=1)
    intra_batch_delay: tuple[float, float] = (3.0, 5.0)
    inter_batch_delay: tuple[float, float] = (30.0, 35.0)
    confidence_floor: int = Field(default=60, ge=0, le=100)

    @field_validator("intra_batch_delay", "inter_batch_delay", mode="before")
    @classmethod
    def _coerce_delays(cls, value: Any, info) -> tuple[float, float]:
        return _coerce_range(value, info.field_name)


class ResourceEndpoint(BaseModel):
    """One statically configured egress endpoint."""

    host: str
    port: int = Field(ge=1, le=65535)
    username: str | None = None
    password: str | None = None
    protocol: Literal["http", "https", "socks4", "socks5"] = "http"


class ResourcePoolConfig(BaseModel):
    """Egress pool sources and circuit-breaker parameters."""

    enabled: bool = True
    endpoints: list[ResourceEndpoint] = Field(default_factory=list)
    source_file: Path | None = None
    env_var: str | None = "PROXY_LIST"
    failure_threshold: int = Field(default=3, ge=1)
    health_probe_interval: int = Field(default=300, ge=1)
    probe_url: str = "https://httpbin.org/ip"
    probe_timeout: float = Field(default=10.0, gt=0)

    @field_validator("source_file", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path | None:
        if value in (None, ""):
            return None
        return Path(value)


class StrategyConfig(BaseModel):
    """One entry in a detection type's ordered strategy list."""

    name: str
    enabled: bool = True
    timeout: float = Field(default=20.0, ge=1.0, le=120.0)
    options: dict[str, Any] = Field(default_factory=dict)


def _default_job_strategies() -> list[StrategyConfig]:
    return [
        StrategyConfig(name="authenticated_profile"),
        StrategyConfig(name="jobs_api"),
        StrategyConfig(name="career_page"),
        StrategyConfig(name="custom_search"),
    ]


def _default_hire_strategies() -> list[StrategyConfig]:
    return [
        StrategyConfig(name="authenticated_profile"),
        StrategyConfig(name="custom_search"),
        StrategyConfig(name="website_news"),
    ]


class StrategiesConfig(BaseModel):
    """Priority-ordered strategy lists per detection type."""

    jobs: list[StrategyConfig] = Field(default_factory=_default_job_strategies)
    hires: list[StrategyConfig] = Field(default_factory=_default_hire_strategies)

    @model_validator(mode="after")
    def _unique_names(self) -> "StrategiesConfig":
        for label, entries in (("jobs", self.jobs), ("hires", self.hires)):
            names = [entry.name for entry in entries]
            if len(names) != len(set(names)):
                raise ValueError(f"duplicate strategy names in {label}: {names}")
        return self


class VocabularyConfig(BaseModel):
    """Keyword vocabularies driving pre-filtering and validation."""

    seniority_keywords: list[str] = Field(default_factory=lambda: list(DEFAULT_SENIORITY_KEYWORDS))
    job_keywords: list[str] = Field(default_factory=lambda: list(DEFAULT_JOB_KEYWORDS))
    name_denylist: list[str] = Field(default_factory=lambda: list(DEFAULT_NAME_DENYLIST))
    title_denylist: list[str] = Field(default_factory=lambda: list(DEFAULT_TITLE_DENYLIST))
    hire_trigger_keywords: list[str] = Field(default_factory=lambda: list(DEFAULT_HIRE_TRIGGERS))
    job_trigger_keywords: list[str] = Field(default_factory=lambda: list(DEFAULT_JOB_TRIGGERS))

    @field_validator("*", mode="after")
    @classmethod
    def _lowercase(cls, value: list[str]) -> list[str]:
        return [item.strip().lower() for item in value if item and item.strip()]


class SinkConfig(BaseModel):
    """Notification sinks enabled for emitted candidates."""

    jsonl_dir: Path | None = None
    slack_webhook_url: str | None = None
    slack_timeout: float = 10.0

    @field_validator("jsonl_dir", mode="before")
    @classmethod
    def _coerce_dir(cls, value: Any) -> Path | None:
        if value in (None, ""):
            return None
        return Path(value)


class TrackerConfig(BaseModel):
    """Global controls shared by every scan."""

    scan: ScanConfig = Field(default_factory=ScanConfig)
    resources: ResourcePoolConfig = Field(default_factory=ResourcePoolConfig)
    strategies: StrategiesConfig = Field(default_factory=StrategiesConfig)
    vocabulary: VocabularyConfig = Field(default_factory=VocabularyConfig)
    sinks: SinkConfig = Field(default_factory=SinkConfig)
    user_agent_list: list[str] | Path | None = None
    store_path: Path = Field(default=Path("data/tracker.db"))

    @field_validator("store_path", mode="before")
    @classmethod
    def _coerce_store(cls, value: Any) -> Path:
        return Path(value)

    @model_validator(mode="after")
    def _apply_user_agents(self) -> "TrackerConfig":
        if isinstance(self.user_agent_list, Path):
            if not self.user_agent_list.exists():
                raise ValueError(f"UA file not found: {self.user_agent_list}")
            content = self.user_agent_list.read_text(encoding="utf-8").splitlines()
            self.user_agent_list = [line.strip() for line in content if line.strip()]
        return self

    def resolved_store_path(self, base_dir: Path) -> Path:
        """Return the SQLite store path relative to the project data directory."""

        if not self.store_path.is_absolute():
            return (base_dir / self.store_path).resolve()
        return self.store_path


__all__ = [
    "ResourceEndpoint",
    "ResourcePoolConfig",
    "ScanConfig",
    "SinkConfig",
    "StrategiesConfig",
    "StrategyConfig",
    "TrackerConfig",
    "VocabularyConfig",
]
