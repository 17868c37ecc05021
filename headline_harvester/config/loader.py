"""Configuration loading helpers for the harvester."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

import yaml
from pydantic import ValidationError

from ..exceptions import ConfigurationError
from .models import HarvesterConfig

CONFIG_EXTENSIONS = (".yaml", ".yml", ".json")
CONFIG_FILENAME = "harvester.yaml"


def _read_file(path: Path) -> dict:
    try:
        text = path.read_text(encoding="utf-8")
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text) or {}
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError, OSError) as exc:
        raise ConfigurationError(
            "Invalid configuration file", {"path": str(path), "error": str(exc)}
        ) from exc
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration file must contain a mapping", {"path": str(path)})
    return data


def _write_file(path: Path, payload: dict) -> None:
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
    output_dir: Path | None = None
    logs_dir: Path | None = None

    def __post_init__(self) -> None:
        env_root = os.environ.get("HEADLINE_HARVESTER_HOME")
        if env_root:
            root = Path(env_root).expanduser().resolve()
        else:
            root = (self.project_root or Path(__file__).resolve().parents[2]).resolve()
        self.project_root = root
        self.data_dir = (root / "data").resolve()
        self.output_dir = (self.data_dir / "output").resolve()
        self.logs_dir = (root / "logs").resolve()
        self.ensure_directories()

    def ensure_directories(self) -> None:
        for directory in (self.data_dir, self.output_dir, self.logs_dir):
            directory.mkdir(parents=True, exist_ok=True)

    def config_path(self) -> Path:
        return self.data_dir / CONFIG_FILENAME


class ConfigRepository:
    """Repository encapsulating config IO and schema validation."""

    def __init__(self, locator: ConfigLocator | None = None) -> None:
        self.locator = locator or ConfigLocator()
        self._cache: HarvesterConfig | None = None

    def load(self) -> HarvesterConfig:
        if self._cache is not None:
            return self._cache
        path = self.locator.config_path()
        if path.exists():
            payload = _read_file(path)
            try:
                config = HarvesterConfig.model_validate(payload)
            except ValidationError as exc:
                raise ConfigurationError(
                    "Invalid configuration", {"path": str(path), "errors": exc.errors()}
                ) from exc
        else:
            config = HarvesterConfig()
            self.save(config)
        self._cache = config
        return config

    def save(self, config: HarvesterConfig) -> None:
        path = self.locator.config_path()
        _write_file(path, config.model_dump(mode="json"))
        self._cache = config

    def database_path(self) -> Path:
        config = self.load()
        return config.resolve(self.locator.project_root, config.database_path)

    def output_dir(self) -> Path:
        config = self.load()
        path = config.resolve(self.locator.project_root, config.output_dir)
        path.mkdir(parents=True, exist_ok=True)
        return path


__all__ = ["CONFIG_EXTENSIONS", "ConfigLocator", "ConfigRepository"]
