"""Tests for app configuration.

Tests YAML loading, defaults and the database path override.
"""

import pytest

from edugest.config import app_config
from edugest.config.app_config import (
    AppConfig,
    DB_PATH_ENV,
    GradingConfig,
    get_grading_config,
    load_app_config,
)


@pytest.fixture
def config_dir(tmp_path, monkeypatch):
    """Run from an empty directory so the config file is looked up there."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(DB_PATH_ENV, raising=False)
    return tmp_path


def _write_config(root, text):
    path = root / "data" / "config" / "app_config_v1.yaml"
    path.parent.mkdir(parents=True)
    path.write_text(text, encoding="utf-8")


class TestLoadAppConfig:
    """Tests for load_app_config function."""

    def test_defaults_when_file_missing(self, config_dir):
        """Missing file falls back to built-in defaults."""
        config = load_app_config()
        assert isinstance(config, AppConfig)
        assert config.database.path == "db/edugest.db"
        assert config.grading == GradingConfig()
        assert config.audit.max_limit == 500
        assert config.api.cors_origins == ["*"]

    def test_load_from_yaml(self, config_dir):
        _write_config(
            config_dir,
            "grading:\n  approval_threshold: 9.5\naudit:\n  max_limit: 50\n",
        )
        config = load_app_config()
        assert config.grading.approval_threshold == 9.5
        assert config.grading.scale_max == 20
        assert config.audit.max_limit == 50

    def test_cors_origins_from_string(self, config_dir):
        _write_config(config_dir, "api:\n  cors_origins: 'http://a.ao, http://b.ao'\n")
        assert load_app_config().api.cors_origins == ["http://a.ao", "http://b.ao"]

    def test_env_overrides_db_path(self, config_dir, monkeypatch):
        monkeypatch.setenv(DB_PATH_ENV, str(config_dir / "other.db"))
        assert load_app_config().database.path == str(config_dir / "other.db")

    def test_config_is_cached(self, config_dir):
        first = load_app_config()
        assert load_app_config() is first
        assert load_app_config(force_reload=True) is not first

    def test_grading_shortcut(self, config_dir):
        assert get_grading_config() is load_app_config().grading


class TestSuiteIsolation:
    """Tests for the per-test configuration reset and phase markers."""

    def test_cache_empty_at_test_start(self):
        assert app_config._cached_config is None

    def test_loaded_config_not_shared(self, config_dir):
        load_app_config()
        assert app_config._cached_config is not None

    def test_cache_cleared_after_previous_test(self):
        assert app_config._cached_config is None

    def test_marked_with_phase(self, request):
        assert request.node.get_closest_marker("f1") is not None
        assert request.node.get_closest_marker("f5") is None
