"""
Unit tests for Config.

Environment parsing with validation fallbacks, and the reload of the
engine settings.
"""

import pytest

from reputation_engine.core.config import Config, Environment, LockBackend


RELOADED_KEYS = ("LOCK_BACKEND", "RECOMPUTE_MAX_ATTEMPTS", "SCORING_TABLES_PATH", "HISTORY_CAPACITY")


@pytest.fixture
def restore_config():
    """Put back the settings a test reloaded."""
    saved = {key: getattr(Config, key) for key in RELOADED_KEYS}
    yield
    for key, value in saved.items():
        setattr(Config, key, value)


@pytest.mark.unit
class TestEnvironmentParsing:
    """Test the typed environment readers."""

    def test_safe_int_reads_environment(self, monkeypatch):
        """A valid integer is returned."""
        monkeypatch.setenv("HISTORY_CAPACITY", "250")
        assert Config._safe_int("HISTORY_CAPACITY", 100, min_val=1) == 250

    @pytest.mark.parametrize("raw", ["abc", "0", "100000"])
    def test_safe_int_falls_back_on_invalid(self, monkeypatch, raw):
        """Unparsable or out-of-range integers use the default."""
        monkeypatch.setenv("HISTORY_CAPACITY", raw)
        assert Config._safe_int("HISTORY_CAPACITY", 100, min_val=1, max_val=10_000) == 100

    @pytest.mark.parametrize("raw, expected", [("yes", True), ("off", False), ("1", True)])
    def test_safe_bool_values(self, monkeypatch, raw, expected):
        """Common boolean spellings are recognized."""
        monkeypatch.setenv("DEBUG", raw)
        assert Config._safe_bool("DEBUG", False) is expected

    def test_safe_float_lower_bound(self, monkeypatch):
        """Floats below the minimum use the default."""
        monkeypatch.setenv("LOCK_RETRY_INTERVAL_SECONDS", "0")
        assert Config._safe_float("LOCK_RETRY_INTERVAL_SECONDS", 0.05, min_val=0.001) == 0.05

    def test_unknown_environment_defaults_to_development(self):
        """Unknown environment names fall back to development."""
        assert Environment.from_string("moon") is Environment.DEVELOPMENT


@pytest.mark.unit
class TestConfigLoad:
    """Test Config.load()."""

    def test_engine_settings_loaded(self, monkeypatch, restore_config):
        """Engine settings are read from the environment."""
        # Arrange
        monkeypatch.setenv("LOCK_BACKEND", "Redis")
        monkeypatch.setenv("RECOMPUTE_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("SCORING_TABLES_PATH", "/etc/reputation/scoring.yaml")

        # Act
        Config.load()

        # Assert
        assert Config.LOCK_BACKEND == LockBackend.REDIS.value
        assert Config.RECOMPUTE_MAX_ATTEMPTS == 5
        assert Config.SCORING_TABLES_PATH == "/etc/reputation/scoring.yaml"

    def test_invalid_lock_backend_falls_back(self, monkeypatch, restore_config):
        """An unknown lock backend uses the local default."""
        # Arrange
        monkeypatch.setenv("LOCK_BACKEND", "zookeeper")

        # Act
        Config.load()

        # Assert
        assert Config.LOCK_BACKEND == "local"

    def test_summary_hides_urls(self):
        """The summary exposes only the database scheme."""
        # Act
        summary = Config.get_config_summary()

        # Assert
        assert "database_url" not in summary
        assert summary["database_url_scheme"] == Config.DATABASE_URL.split(":", 1)[0]

    def test_load_report_lists_rejected_values(self, monkeypatch, restore_config):
        """Rejected values are reported and replaced by defaults."""
        # Arrange
        monkeypatch.setenv("HISTORY_CAPACITY", "lots")

        # Act
        Config.load()
        report = Config.get_load_report()

        # Assert
        assert Config.HISTORY_CAPACITY == 100
        assert "HISTORY_CAPACITY" in report["rejected"]
        assert "HISTORY_CAPACITY" in report["defaulted"]
