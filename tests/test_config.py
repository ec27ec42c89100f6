"""Env-driven engine tunables and settings."""
import pytest

from inat_notify.config import Settings
from inat_notify.core import engine_config
from inat_notify.core.engine_config import EngineConfig, get_engine_config


@pytest.fixture
def clean_env(monkeypatch):
    for key in ("INAT_DEFAULT_PER_PAGE", "INAT_OBSERVATION_BATCH_SIZE", "INAT_DEDUP_BUCKET_MINUTES",
                "INAT_JWT_LIFETIME_HOURS", "INAT_API_TOKEN", "INAT_SESSION_COOKIE"):
        monkeypatch.delenv(key, raising=False)


def test_snapshot_matches_module_values():
    cfg = get_engine_config()
    assert isinstance(cfg, EngineConfig)
    assert cfg.default_per_page == engine_config.DEFAULT_PER_PAGE
    assert cfg.observation_batch_size == engine_config.OBSERVATION_BATCH_SIZE
    assert cfg.dedup_bucket_minutes == engine_config.DEDUP_BUCKET_MINUTES
    assert cfg.jwt_lifetime_hours == engine_config.JWT_LIFETIME_HOURS
    assert 1 <= cfg.observation_batch_size <= 200
    assert 1 <= cfg.jwt_lifetime_hours <= 24


def test_int_default_when_unset_or_invalid(clean_env, monkeypatch):
    assert engine_config._int("INAT_DEFAULT_PER_PAGE", 20, min_val=1, max_val=200) == 20
    monkeypatch.setenv("INAT_DEFAULT_PER_PAGE", "lots")
    assert engine_config._int("INAT_DEFAULT_PER_PAGE", 20, min_val=1, max_val=200) == 20


def test_int_is_clamped(clean_env, monkeypatch):
    monkeypatch.setenv("INAT_OBSERVATION_BATCH_SIZE", " 500 ")
    assert engine_config._int("INAT_OBSERVATION_BATCH_SIZE", 30, min_val=1, max_val=200) == 200
    monkeypatch.setenv("INAT_OBSERVATION_BATCH_SIZE", "0")
    assert engine_config._int("INAT_OBSERVATION_BATCH_SIZE", 30, min_val=1, max_val=200) == 1


def test_settings_strip_values(clean_env, monkeypatch):
    monkeypatch.setenv("INAT_API_TOKEN", "  tok  ")
    monkeypatch.setenv("INAT_SITE_BASE_URL", "https://site.test/")
    s = Settings(_env_file=None)
    assert s.api_token == "tok"
    assert s.site_base_url == "https://site.test"
