"""Scan settings — YAML file, validated with pydantic, passed explicitly."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from slopscan.errors import ConfigError
from slopscan.rules.models import Severity

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = (".slopscan.yaml", ".slopscan.yml")

# Named strictness levels → minimum severity included in the report
THRESHOLDS: dict[str, Severity] = {
    "relaxed": Severity.CRITICAL,
    "balanced": Severity.HIGH,
    "nitpicky": Severity.MEDIUM,
    "brutal": Severity.LOW,
}


def resolve_threshold(name: str) -> Severity:
    """Map a level name or a severity name to a minimum severity."""
    key = name.strip().lower()
    if key in THRESHOLDS:
        return THRESHOLDS[key]
    try:
        return Severity(key)
    except ValueError:
        choices = ", ".join(list(THRESHOLDS) + [s.value for s in Severity])
        raise ValueError(f"Unknown threshold {name!r} (expected one of {choices})") from None


class RuleOverrides(BaseModel):
    """Per-rule tuning knobs."""

    model_config = ConfigDict(extra="ignore")

    max_function_length: int = Field(default=50, ge=1)
    max_file_length: int = Field(default=400, ge=1)


class SlopScanConfig(BaseModel):
    """Settings record for a scan or fix run. Unknown fields are ignored."""

    model_config = ConfigDict(extra="ignore")

    threshold: str = "brutal"
    fail_on: str = "high"
    autofix: list[str] = Field(default_factory=list)
    ignore: list[str] = Field(default_factory=list)
    disable: list[str] = Field(default_factory=list)
    overrides: RuleOverrides = Field(default_factory=RuleOverrides)
    rules: list[dict] = Field(default_factory=list)
    max_file_size: int = Field(default=1_048_576, ge=1)

    @field_validator("threshold", "fail_on")
    @classmethod
    def _known_threshold(cls, v: str) -> str:
        resolve_threshold(v)
        return v.strip().lower()

    @property
    def min_severity(self) -> Severity:
        return resolve_threshold(self.threshold)

    @property
    def fail_severity(self) -> Severity:
        return resolve_threshold(self.fail_on)

    @classmethod
    def from_mapping(cls, data: dict) -> SlopScanConfig:
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    @classmethod
    def load(cls, path: str | Path | None) -> SlopScanConfig:
        """Load settings from a YAML file; a missing file means defaults."""
        if path is None:
            return cls()
        path = Path(path)
        if not path.is_file():
            logger.debug("No config at %s, using defaults", path)
            return cls()
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read config {path}: {e}") from e
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError(f"Config {path} must be a mapping")
        logger.debug("Loaded config from %s", path)
        return cls.from_mapping(data)


def find_config(root: str | Path) -> Path | None:
    """Return the first config file found at ``root``, if any."""
    root = Path(root)
    if root.is_file():
        root = root.parent
    for name in CONFIG_FILENAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None
