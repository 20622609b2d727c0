import dotenv
import pytest

from config import load_config

_VARIABLES = [
    "BOT_TOKEN", "LOG_LEVEL", "OLLAMA_MODEL", "ROUTING_ACTIVE", "ROUTING_THRESHOLD",
    "RECOGNIZER_THRESHOLD", "CONTEXT_STORE", "DB_PATH", "MAX_REQUESTS_PER_MINUTE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.setattr(dotenv, "load_dotenv", lambda *args, **kwargs: False)
    for name in _VARIABLES:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch) -> None:
    monkeypatch.setenv("BOT_TOKEN", "123:abc")

    config = load_config()

    assert config.BOT_TOKEN == "123:abc"
    assert config.CONTEXT_STORE == "memory"
    assert config.ROUTING_ACTIVE is False
    assert config.ROUTING_THRESHOLD == 0.7
    assert config.RECOGNIZER_THRESHOLD == 0.7
    assert config.MAX_REQUESTS_PER_MINUTE == 10


def test_missing_token_is_rejected() -> None:
    with pytest.raises(ValueError):
        load_config()


def test_token_is_optional_for_offline_tools() -> None:
    assert load_config(require_token=False).BOT_TOKEN is None


def test_overrides(monkeypatch) -> None:
    monkeypatch.setenv("BOT_TOKEN", "t")
    monkeypatch.setenv("ROUTING_ACTIVE", "Yes")
    monkeypatch.setenv("ROUTING_THRESHOLD", "0.5")
    monkeypatch.setenv("CONTEXT_STORE", "SQLite")
    monkeypatch.setenv("DB_PATH", "/tmp/ctx.db")

    config = load_config()

    assert config.ROUTING_ACTIVE is True
    assert config.ROUTING_THRESHOLD == 0.5
    assert config.CONTEXT_STORE == "sqlite"
    assert config.DB_PATH == "/tmp/ctx.db"


def test_unknown_context_store(monkeypatch) -> None:
    monkeypatch.setenv("BOT_TOKEN", "t")
    monkeypatch.setenv("CONTEXT_STORE", "redis")

    with pytest.raises(ValueError):
        load_config()
