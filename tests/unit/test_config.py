"""Tests for configuration loading."""

import pytest

import threatflow.storage as storage
from threatflow.config import load_config
from threatflow.storage import InMemoryKeyValueStore, SQLiteKeyValueStore, get_store
from threatflow.storage.redis import RedisKeyValueStore


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in (
        "THREATFLOW_DATABASE_URL",
        "DATABASE_URL",
        "THREATFLOW_MODEL",
        "AI_MAX_TOKENS",
        "AI_TEMPERATURE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(storage, "_store_instance", None)


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
database_url: sqlite:///tmp/threatflow.db
storage:
  redis:
    host: testhost
    port: 1234
llm:
  model: test
  max_tokens: 512
log_level: DEBUG
"""
    )
    monkeypatch.setenv("THREATFLOW_CONFIG", str(config_path))

    config = load_config()
    assert config.database_url == "sqlite:///tmp/threatflow.db"
    assert config.storage.redis.host == "testhost"
    assert config.storage.redis.port == 1234
    assert config.llm.model == "test"
    assert config.llm.max_tokens == 512
    assert config.llm.temperature == 0.7
    assert config.log_level == "DEBUG"


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("THREATFLOW_CONFIG", str(tmp_path / "absent.yaml"))
    monkeypatch.setenv("DATABASE_URL", "redis://cache:6390/2")
    monkeypatch.setenv("THREATFLOW_MODEL", "anthropic:claude-3-5-haiku-latest")
    monkeypatch.setenv("AI_MAX_TOKENS", "1024")
    monkeypatch.setenv("AI_TEMPERATURE", "0.2")

    config = load_config()
    assert config.database_url == "redis://cache:6390/2"
    assert config.llm.model == "anthropic:claude-3-5-haiku-latest"
    assert config.llm.max_tokens == 1024
    assert config.llm.temperature == 0.2


def test_get_store_defaults_to_memory(tmp_path, monkeypatch):
    monkeypatch.setenv("THREATFLOW_CONFIG", str(tmp_path / "absent.yaml"))
    store = get_store()
    assert isinstance(store, InMemoryKeyValueStore)
    assert get_store() is store


def test_get_store_uses_config(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
storage:
  redis:
    host: confighost
    port: 6380
    namespace: "tf:"
"""
    )
    monkeypatch.setenv("THREATFLOW_CONFIG", str(config_path))
    config = load_config()

    store = get_store("redis://", config=config)
    assert isinstance(store, RedisKeyValueStore)
    assert store.host == "confighost"
    assert store.port == 6380
    assert store.namespace == "tf:"

    sqlite_store = get_store(f"sqlite://{tmp_path / 'kv.db'}", config=config)
    assert isinstance(sqlite_store, SQLiteKeyValueStore)


def test_get_store_rejects_unknown_scheme(tmp_path, monkeypatch):
    monkeypatch.setenv("THREATFLOW_CONFIG", str(tmp_path / "absent.yaml"))
    with pytest.raises(ValueError):
        get_store("mongodb://localhost")
