"""
Unit tests for system/config.py.

- JournalConfig / PriceConfig / LoggingConfig defaults
- SystemConfig.load(): file lookup, merge over defaults, env substitution
- Singleton functions: get_system_config(), reload_system_config()
"""

from pathlib import Path

import pytest

from tradejournal.system import config as config_module
from tradejournal.system.config import (
    CONFIG_ENV_VAR,
    JournalConfig,
    LoggingConfig,
    PriceConfig,
    SystemConfig,
    _deep_merge,
    _substitute_env_vars,
    get_system_config,
    reload_system_config,
)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Run every test from an empty directory with no config env var or cached singleton."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.setattr(config_module, "_system_config", None)


def write_config(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


class TestSectionDefaults:
    """Test dataclass defaults."""

    def test_journal_defaults(self):
        config = JournalConfig()

        assert config.ledger_backend == "sqlite"
        assert config.database_path == "tradejournal.db"

    def test_price_defaults(self):
        config = PriceConfig()

        assert config.cache_expiry_minutes == 5
        assert config.quotes_file is None

    def test_logging_defaults(self):
        config = LoggingConfig()

        assert config.level == "INFO"
        assert config.format == "console"
        assert config.enable_file is True
        assert config.file_path == "logs/tradejournal.log"
        assert config.file_level == "WARNING"

    def test_logging_to_logger_config(self):
        """Test conversion to the pydantic LoggingConfig."""
        logger_config = LoggingConfig(level="DEBUG", file_path="var/app.log", enable_file=False).to_logger_config()

        assert logger_config.level == "DEBUG"
        assert logger_config.file_path == Path("var/app.log")
        assert logger_config.enable_file is False


class TestSystemConfigLoad:
    """Test loading configuration files."""

    def test_defaults_when_no_file(self):
        config = SystemConfig.load()

        assert config.journal.ledger_backend == "sqlite"
        assert config.prices.cache_expiry_minutes == 5

    def test_explicit_path_merged_over_defaults(self, tmp_path):
        path = write_config(
            tmp_path / "custom.yaml",
            "journal:\n  ledger_backend: memory\nlogging:\n  level: DEBUG\n",
        )

        config = SystemConfig.load(path)

        assert config.journal.ledger_backend == "memory"
        # Unspecified keys keep their defaults
        assert config.journal.database_path == "tradejournal.db"
        assert config.logging.level == "DEBUG"
        assert config.logging.file_level == "WARNING"

    def test_env_var_path(self, tmp_path, monkeypatch):
        path = write_config(tmp_path / "env.yaml", "prices:\n  cache_expiry_minutes: 1\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

        assert SystemConfig.load().prices.cache_expiry_minutes == 1

    def test_default_location(self, tmp_path):
        write_config(tmp_path / "config" / "tradejournal.yaml", "journal:\n  database_path: data/j.db\n")

        assert SystemConfig.load().journal.database_path == "data/j.db"

    def test_env_substitution_in_values(self, tmp_path, monkeypatch):
        monkeypatch.setenv("JOURNAL_HOME", "/srv/journal")
        path = write_config(tmp_path / "c.yaml", "journal:\n  database_path: ${JOURNAL_HOME}/trades.db\n")

        assert SystemConfig.load(path).journal.database_path == "/srv/journal/trades.db"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = write_config(tmp_path / "empty.yaml", "")
        assert SystemConfig.load(path) == SystemConfig()

    def test_missing_explicit_file_gives_defaults(self, tmp_path):
        assert SystemConfig.load(tmp_path / "absent.yaml") == SystemConfig()

    def test_unknown_key_rejected(self, tmp_path):
        path = write_config(tmp_path / "bad.yaml", "journal:\n  backend: memory\n")

        with pytest.raises(TypeError):
            SystemConfig.load(path)


class TestHelpers:
    """Test merge and substitution helpers."""

    def test_deep_merge_nested(self):
        base = {"a": {"b": 1, "c": 2}, "d": 3}
        merged = _deep_merge(base, {"a": {"b": 10}, "e": 5})

        assert merged == {"a": {"b": 10, "c": 2}, "d": 3, "e": 5}
        assert base == {"a": {"b": 1, "c": 2}, "d": 3}

    def test_deep_merge_replaces_non_dict(self):
        assert _deep_merge({"a": {"b": 1}}, {"a": None}) == {"a": None}

    def test_substitute_env_vars_recursive(self, monkeypatch):
        monkeypatch.setenv("SYM", "BTC")

        result = _substitute_env_vars({"x": ["${SYM}", 1], "y": "pre-${SYM}"})

        assert result == {"x": ["BTC", 1], "y": "pre-BTC"}

    def test_undefined_var_left_as_is(self, monkeypatch):
        monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)
        assert _substitute_env_vars("${NOT_SET_ANYWHERE}") == "${NOT_SET_ANYWHERE}"


class TestSingleton:
    """Test get_system_config / reload_system_config."""

    def test_get_caches_instance(self):
        assert get_system_config() is get_system_config()

    def test_reload_replaces_instance(self, tmp_path):
        first = get_system_config()
        path = write_config(tmp_path / "c.yaml", "journal:\n  ledger_backend: memory\n")

        reloaded = reload_system_config(path)

        assert reloaded is not first
        assert get_system_config().journal.ledger_backend == "memory"

    def test_get_with_path_loads_file(self, tmp_path):
        path = write_config(tmp_path / "c.yaml", "prices:\n  quotes_file: quotes.yaml\n")
        assert get_system_config(path).prices.quotes_file == "quotes.yaml"
