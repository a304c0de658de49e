"""Application configuration loader.

Loads centralized configuration from data/config/app_config_v1.yaml
with built-in defaults when the file is missing.

Usage:
    from edugest.config.app_config import load_app_config, get_grading_config

    config = load_app_config()
    grading = get_grading_config()
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
import yaml

logger = structlog.get_logger(__name__)

# Config file path (relative to project root)
CONFIG_FILE = Path("data/config/app_config_v1.yaml")

# Environment override for the SQLite file
DB_PATH_ENV = "EDUGEST_DB_PATH"


@dataclass
class DatabaseConfig:
    """Location of the SQLite database."""

    path: str = "db/edugest.db"


@dataclass
class GradingConfig:
    """Grading scale and transition thresholds (Angolan 0-20 scale)."""

    scale_min: float = 0
    scale_max: float = 20
    approval_threshold: float = 10
    excellent_min: float = 17
    good_min: float = 14
    sufficient_min: float = 10
    primary_threshold: float = 5
    attendance_minimum: float = 66.67


@dataclass
class AuditConfig:
    """Audit log listing limits."""

    default_limit: int = 100
    max_limit: int = 500


@dataclass
class ApiConfig:
    """HTTP API settings."""

    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class AppConfig:
    """Application-wide configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    grading: GradingConfig = field(default_factory=GradingConfig)
    audit: AuditConfig = field(default_factory=AuditConfig)
    api: ApiConfig = field(default_factory=ApiConfig)


# Module-level cache
_cached_config: AppConfig | None = None


def _get_defaults() -> dict[str, Any]:
    """Get default configuration values."""
    return {
        "database": {"path": "db/edugest.db"},
        "grading": {
            "scale_min": 0,
            "scale_max": 20,
            "approval_threshold": 10,
            "excellent_min": 17,
            "good_min": 14,
            "sufficient_min": 10,
            "primary_threshold": 5,
            "attendance_minimum": 66.67,
        },
        "audit": {"default_limit": 100, "max_limit": 500},
        "api": {"cors_origins": ["*"]},
    }


def _parse_config(data: dict[str, Any]) -> AppConfig:
    """Parse configuration dictionary into AppConfig object."""
    defaults = GradingConfig()
    grading_data = data.get("grading") or {}
    grading = GradingConfig(
        scale_min=float(grading_data.get("scale_min", defaults.scale_min)),
        scale_max=float(grading_data.get("scale_max", defaults.scale_max)),
        approval_threshold=float(
            grading_data.get("approval_threshold", defaults.approval_threshold)
        ),
        excellent_min=float(grading_data.get("excellent_min", defaults.excellent_min)),
        good_min=float(grading_data.get("good_min", defaults.good_min)),
        sufficient_min=float(grading_data.get("sufficient_min", defaults.sufficient_min)),
        primary_threshold=float(
            grading_data.get("primary_threshold", defaults.primary_threshold)
        ),
        attendance_minimum=float(
            grading_data.get("attendance_minimum", defaults.attendance_minimum)
        ),
    )

    db_data = data.get("database") or {}
    database = DatabaseConfig(
        path=os.environ.get(DB_PATH_ENV) or db_data.get("path", DatabaseConfig.path)
    )

    audit_data = data.get("audit") or {}
    audit = AuditConfig(
        default_limit=int(audit_data.get("default_limit", 100)),
        max_limit=int(audit_data.get("max_limit", 500)),
    )

    api_data = data.get("api") or {}
    origins = api_data.get("cors_origins") or ["*"]
    if isinstance(origins, str):
        origins = [o.strip() for o in origins.split(",") if o.strip()]
    api = ApiConfig(cors_origins=list(origins))

    return AppConfig(database=database, grading=grading, audit=audit, api=api)


def load_app_config(force_reload: bool = False) -> AppConfig:
    """Load application config, falling back to defaults.

    Args:
        force_reload: If True, ignore cached config and reload from file.

    Returns:
        AppConfig object with all settings.
    """
    global _cached_config

    if _cached_config is not None and not force_reload:
        return _cached_config

    data: dict[str, Any]

    if CONFIG_FILE.exists():
        logger.debug("loading_app_config", source=str(CONFIG_FILE))
        data = yaml.safe_load(CONFIG_FILE.read_text(encoding="utf-8")) or {}
    else:
        logger.info("using_default_config")
        data = _get_defaults()

    _cached_config = _parse_config(data)
    return _cached_config


def get_grading_config() -> GradingConfig:
    """Shortcut for the grading section of the app config."""
    return load_app_config().grading


def clear_config_cache() -> None:
    """Clear the configuration cache.

    Useful for testing or when config is modified at runtime.
    """
    global _cached_config
    _cached_config = None
