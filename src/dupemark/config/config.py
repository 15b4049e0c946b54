"""
Configuration management for dupemark using Pydantic.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from dupemark.dedup.registry import SeenRegistry

# --- Setup Logging ---
log = logging.getLogger(__name__)

# --- Comparison Configuration ---


class ComparisonConfig(BaseModel):
    """
    Which request facets participate in fingerprinting.

    Instances are immutable snapshots. A classification reads one snapshot and
    uses it for the whole decision; writers replace the snapshot through
    ``ConfigStore`` instead of mutating it.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Static files
    static_images: bool = Field(default=True, description="Classify image paths as static assets.")
    static_scripts: bool = Field(default=True, description="Classify script/style paths as static assets.")
    static_fonts_media: bool = Field(default=True, description="Classify font/media paths as static assets.")

    # Parameter comparison
    use_query_param_names: bool = True
    use_query_param_values: bool = True
    use_body_param_names: bool = True
    use_body_param_values: bool = False
    use_json_keys: bool = Field(default=True, description="Include top-level JSON keys from JSON bodies.")

    # Cookie / header comparison
    use_cookie_names: bool = False
    use_cookie_values: bool = False
    use_header_names: bool = False
    use_header_values: bool = False

    disable_duplicate_marking: bool = Field(
        default=False, description="Report duplicates and static assets as suppressed."
    )

    @classmethod
    def flag_names(cls) -> list[str]:
        return list(cls.model_fields)


class ConfigStore:
    """
    Holds the active ``ComparisonConfig`` snapshot.

    Reads are a single reference load. Updates build a new snapshot, swap it in
    and clear the seen registry under one writer lock. A classification that
    read the old snapshot just before the swap may still record its fingerprint
    after the clear; that one stale entry is accepted.
    """

    def __init__(self, initial: Optional[ComparisonConfig] = None, registry: Optional[SeenRegistry] = None) -> None:
        self._config = initial or ComparisonConfig()
        self._registry = registry
        self._write_lock = threading.Lock()

    def snapshot(self) -> ComparisonConfig:
        return self._config

    def update(self, **flags: bool) -> ComparisonConfig:
        """
        Apply flag changes and clear the registry.

        Raises:
            ValueError: If a flag name is unknown or a value is not a bool
        """
        unknown = sorted(set(flags) - set(ComparisonConfig.flag_names()))
        if unknown:
            raise ValueError(f"Unknown comparison flag(s): {', '.join(unknown)}")
        for name, value in flags.items():
            if not isinstance(value, bool):
                raise ValueError(f"Comparison flag {name!r} must be a bool, got {type(value).__name__}")

        with self._write_lock:
            current = self._config
            changed = {name: value for name, value in flags.items() if getattr(current, name) != value}
            if not changed:
                return current
            self._config = current.model_copy(update=changed)
            if self._registry is not None:
                self._registry.clear(reason="config_change")

        log.info("Comparison configuration updated: %s", changed)
        return self._config

    def replace(self, config: ComparisonConfig) -> ComparisonConfig:
        """Swap in a whole snapshot, e.g. one reloaded from a settings file."""
        return self.update(**config.model_dump())


# --- Nested Settings Models ---


class RegistryConfig(BaseModel):
    """Configuration for the seen-fingerprint registry."""

    num_shards: int = Field(default=16, ge=1, le=256, description="Number of independently locked shards.")


class MonitoringConfig(BaseModel):
    """Configuration for logging and metrics."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: str | None = Field(default=None, description="Path to log file. If None, logs to console.")
    prometheus_port: int | None = Field(default=None, description="Port for Prometheus metrics exporter.")

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


# --- Main Settings Class ---


class Settings(BaseSettings):
    project_name: str = "dupemark"
    comparison: ComparisonConfig = Field(default_factory=ComparisonConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="DUPEMARK_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Settings:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data: Dict[str, Any] | None = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            return cls.model_validate({})
        return cls.model_validate(yaml_data)


def find_config_file() -> Path | None:
    current_dir = Path.cwd()
    for name in ("dupemark.yaml", "dupemark.yml", "config.yaml"):
        path = current_dir / name
        if path.exists():
            return path
    return None
