"""Configuration package for EduGest."""

from edugest.config.app_config import (
    ApiConfig,
    AppConfig,
    AuditConfig,
    DatabaseConfig,
    GradingConfig,
    clear_config_cache,
    get_grading_config,
    load_app_config,
)

__all__ = [
    "ApiConfig",
    "AppConfig",
    "AuditConfig",
    "DatabaseConfig",
    "GradingConfig",
    "clear_config_cache",
    "get_grading_config",
    "load_app_config",
]
