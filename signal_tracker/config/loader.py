"""Configuration loading helpers for the signal tracker."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import ValidationError

from ..errors import ConfigurationError
from ..models import Company
from .models import TrackerConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
TRACKER_CONFIG_FILENAME = "tracker_config.yaml"
COMPANIES_FILENAME = "companies.yaml"


def _read_file(path: Path) -> dict | list:
    text = path.read_text(encoding="utf-8")
    if path.suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, (dict, list)):
        raise ConfigurationError(f"Configuration file must contain a mapping or list: {path}")
    return data


def _write_file(path: Path, payload: dict | list) -> None:
    with path.open("w", encoding="utf-8") as stream:
        if path.suffix in (".yaml", ".yml"):
            yaml.safe_dump(payload, stream, allow_unicode=True, sort_keys=False)
        else:
            json.dump(payload, stream, indent=2, ensure_ascii=False)


@dataclass(slots=True)
class ConfigLocator:
    """Resolve important paths from project root."""

    project_root: Path | None = None
    data_dir: Path | None = None
    outputs_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get("SIGNAL_TRACKER_HOME")
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.outputs_dir = (self.data_dir / "outputs").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.outputs_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def config_path(self) -> Path:
        return self.data_dir / TRACKER_CONFIG_FILENAME

    def companies_path(self) -> Path:
        return self.data_dir / COMPANIES_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._cache: TrackerConfig | None = None

    def load_config(self) -> TrackerConfig:
        if self._cache is not None:
            return self._cache
        path = self.locator.config_path()
        if path.exists():
            payload = _read_file(path)
            if not isinstance(payload, dict):
                raise ConfigurationError(f"Tracker configuration must be a mapping: {path}")
            try:
                config = TrackerConfig.model_validate(payload)
            except ValidationError as exc:
                raise ConfigurationError(f"Invalid tracker configuration {path}: {exc}") from exc
        else:
            config = TrackerConfig()
            self.save_config(config)
        self._cache = config
        return config

    def save_config(self, config: TrackerConfig) -> None:
        path = self.locator.config_path()
        payload = config.model_dump(mode="json")
        _write_file(path, payload)
        self._cache = config

    def store_path(self) -> Path:
        return self.load_config().resolved_store_path(self.locator.project_root)

    def load_companies(self, path: Path | None = None) -> list[Company]:
        """Read a companies roster (list of mappings, or ``{"companies": [...]}``)."""

        target = path or self.locator.companies_path()
        if not target.exists():
            return []
        payload = _read_file(target)
        if isinstance(payload, dict):
            payload = payload.get("companies") or []
        try:
            return [Company.model_validate(item) for item in payload]
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid companies roster {target}: {exc}") from exc


__all__ = ["ConfigLocator", "ConfigRepository", "CONFIG_EXTENSIONS"]
