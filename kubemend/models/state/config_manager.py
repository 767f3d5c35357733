"""Settings loading from YAML files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from kubemend.models.state.app_settings import (
    ConfigError,
    ConfigLoadError,
    RemediationSettings,
)

logger = logging.getLogger(__name__)


class ConfigManager:
    """Load ``RemediationSettings`` from an optional YAML file plus overrides."""

    @staticmethod
    def _read_yaml(path: Path) -> dict[str, Any]:
        try:
            with path.open(encoding="utf-8") as handle:
                content = yaml.safe_load(handle)
        except OSError as exc:
            raise ConfigLoadError(f"Cannot read config file {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigLoadError(f"Invalid YAML in config file {path}: {exc}") from exc

        if content is None:
            return {}
        if not isinstance(content, dict):
            raise ConfigLoadError(f"Config file {path} must contain a mapping")
        return content

    @classmethod
    def load(
        cls,
        path: str | Path | None = None,
        overrides: dict[str, Any] | None = None,
    ) -> RemediationSettings:
        """Build settings from file values, then apply non-None overrides.

        Raises:
            ConfigLoadError: The file is unreadable or values fail validation.
        """
        data: dict[str, Any] = {}
        if path is not None:
            data.update(cls._read_yaml(Path(path)))
            logger.debug("Loaded %d setting(s) from %s", len(data), path)

        for key, value in (overrides or {}).items():
            if value is not None:
                data[key] = value

        try:
            return RemediationSettings(**data)
        except ValidationError as exc:
            raise ConfigLoadError(f"Invalid settings: {exc}") from exc


__all__ = ["ConfigError", "ConfigLoadError", "ConfigManager"]
