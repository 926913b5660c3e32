# ABOUTME: Holds the thresholds, limits and reference timezone used by every caller.
# ABOUTME: Loads overrides from YAML so consoles and jobs share one policy.

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import tzinfo
from pathlib import Path
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml


@dataclass(frozen=True)
class AnalyticsConfig:
    timezone: str = "UTC"
    fallback_duration_seconds: float = 600.0
    at_risk_threshold: float = 0.4
    at_risk_min_samples: int = 2
    at_risk_limit: Optional[int] = 8
    weak_question_min_attempts: int = 3
    weak_question_limit: Optional[int] = 8
    chapter_insight_limit: Optional[int] = 10
    recent_attempt_limit: Optional[int] = 10

    @property
    def tzinfo(self) -> tzinfo:
        return resolve_timezone(self.timezone)


DEFAULT_CONFIG = AnalyticsConfig()

_SECTION_KEYS = {
    "thresholds": {
        "fallback_duration_seconds",
        "at_risk_threshold",
        "at_risk_min_samples",
        "weak_question_min_attempts",
    },
    "limits": {
        "at_risk_limit",
        "weak_question_limit",
        "chapter_insight_limit",
        "recent_attempt_limit",
    },
}


def resolve_timezone(name: str) -> tzinfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone '{name}'.") from exc


def config_from_dict(raw: Optional[Dict[str, Any]]) -> AnalyticsConfig:
    """
    Build a config from the parsed YAML mapping.

    Expected layout::

        timezone: Europe/Paris
        thresholds:
          at_risk_threshold: 0.4
        limits:
          at_risk_limit: 8
    """

    if not raw:
        return DEFAULT_CONFIG

    overrides: Dict[str, Any] = {}
    for key, value in raw.items():
        if key == "timezone":
            overrides["timezone"] = str(value)
            continue
        if key not in _SECTION_KEYS:
            raise ValueError(f"Unsupported config section '{key}'.")
        section = value or {}
        for name, item in section.items():
            if name not in _SECTION_KEYS[key]:
                raise ValueError(f"Unsupported key '{name}' in section '{key}'.")
            overrides[name] = item

    config = replace(DEFAULT_CONFIG, **overrides)
    _validate(config)
    return config


def load_config(path: Optional[Path]) -> AnalyticsConfig:
    if path is None:
        return DEFAULT_CONFIG
    with open(path) as f:
        cfg = yaml.safe_load(f)
    return config_from_dict(cfg)


def _validate(config: AnalyticsConfig) -> None:
    resolve_timezone(config.timezone)
    if not 0.0 <= float(config.at_risk_threshold) <= 1.0:
        raise ValueError("at_risk_threshold must lie in [0, 1].")
    if float(config.fallback_duration_seconds) <= 0:
        raise ValueError("fallback_duration_seconds must be positive.")
    for f in fields(config):
        if f.name.endswith("_limit"):
            value = getattr(config, f.name)
            if value is not None and int(value) < 0:
                raise ValueError(f"{f.name} must be non-negative or null.")
