"""Tests for environment-driven settings."""

import pytest

from src.reconciliation.config import ReconciliationConfig
from src.settings import Settings, get_settings


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.reconciliation_tolerance == 0.01
        assert settings.batch_chunk_size == 50
        assert settings.batch_chunk_delay_seconds == 0.0
        assert settings.invoice_due_days == 30
        assert settings.log_level == "INFO"
        assert settings.log_format == "json"

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("TRADEBILL_BATCH_CHUNK_SIZE", "25")
        monkeypatch.setenv("TRADEBILL_RECONCILIATION_TOLERANCE", "0.5")
        settings = Settings()
        assert settings.batch_chunk_size == 25
        assert settings.reconciliation_tolerance == 0.5

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()

    def test_cache_clear_rereads_env(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("TRADEBILL_BATCH_CHUNK_SIZE", "10")
        get_settings.cache_clear()
        second = get_settings()
        assert first is not second
        assert second.batch_chunk_size == 10


class TestReconciliationConfigFromSettings:
    def test_maps_fields(self):
        settings = Settings(
            reconciliation_tolerance=0.05,
            batch_chunk_size=20,
            batch_chunk_delay_seconds=0.1,
            invoice_due_days=45,
        )
        config = ReconciliationConfig.from_settings(settings)
        assert config.tolerances.amount_tolerance == 0.05
        assert config.chunk_size == 20
        assert config.chunk_delay_seconds == 0.1
        assert config.invoice_due_days == 45

    def test_invalid_settings_rejected(self):
        with pytest.raises(ValueError):
            ReconciliationConfig.from_settings(Settings(batch_chunk_size=0))
