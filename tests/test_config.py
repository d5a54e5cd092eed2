import logging

import pytest

from ollama_gateway.config import (
    DEFAULT_TIMEOUT,
    Settings,
    choose_default_model,
    parse_duration,
    parse_model_list,
    parse_timeout,
)

ENV_VARS = ["OLLAMA_URL", "OLLAMA_MODEL", "OLLAMA_ALLOWED_MODELS", "OLLAMA_TIMEOUT", "CHAT_PROVIDER"]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_parse_model_list():
    assert parse_model_list("") == ()
    assert parse_model_list(" a, b ,,a, c ,b") == ("a", "b", "c")
    assert parse_model_list("llama3:8b") == ("llama3:8b",)


@pytest.mark.parametrize("value,seconds", [
    ("0", 0.0),
    ("90s", 90.0),
    ("2m", 120.0),
    ("1m30s", 90.0),
    ("1.5h", 5400.0),
    ("500ms", 0.5),
    ("-3s", -3.0),
    ("+1h", 3600.0),
])
def test_parse_duration(value, seconds):
    assert parse_duration(value) == pytest.approx(seconds)


@pytest.mark.parametrize("value", ["", "10", "abc", "5 m", "1d", "s", "-", "9999999999999999h", "2562048h"])
def test_parse_duration_rejects_garbage(value):
    with pytest.raises(ValueError):
        parse_duration(value)


def test_parse_duration_upper_bound():
    assert parse_duration("2562047h") == pytest.approx(2562047 * 3600.0)


def test_parse_timeout_defaults(caplog):
    assert parse_timeout("") == DEFAULT_TIMEOUT
    assert parse_timeout("   ") == DEFAULT_TIMEOUT
    assert parse_timeout("45s") == 45.0
    assert caplog.records == []


@pytest.mark.parametrize("value", ["forever", "0", "-5s", "9999999999999999h"])
def test_parse_timeout_falls_back(caplog, value):
    with caplog.at_level(logging.WARNING):
        assert parse_timeout(value) == DEFAULT_TIMEOUT
    assert "invalid OLLAMA_TIMEOUT" in caplog.text


def test_choose_default_model():
    assert choose_default_model(" m1 ", ()) == "m1"
    assert choose_default_model("m2", ("m1", "m2")) == "m2"
    assert choose_default_model("m3", ("m1", "m2")) == "m1"
    assert choose_default_model("", ("m1", "m2")) == "m1"


def test_settings_from_env_defaults(clean_env):
    settings = Settings.from_env()
    assert settings.base_url == "http://ollama:11434"
    assert settings.default_model == "gpt-oss:20b"
    assert settings.allowed_models == ()
    assert settings.timeout == DEFAULT_TIMEOUT
    assert settings.provider == "ollama"


def test_settings_from_env(clean_env):
    clean_env.setenv("OLLAMA_URL", "http://localhost:11434/")
    clean_env.setenv("OLLAMA_MODEL", "m2")
    clean_env.setenv("OLLAMA_ALLOWED_MODELS", "m1, m2, m1")
    clean_env.setenv("OLLAMA_TIMEOUT", "30s")
    clean_env.setenv("CHAT_PROVIDER", "Mock")

    settings = Settings.from_env()
    assert settings.base_url == "http://localhost:11434"
    assert settings.default_model == "m2"
    assert settings.allowed_models == ("m1", "m2")
    assert settings.timeout == 30.0
    assert settings.provider == "mock"


def test_settings_default_must_be_allowed(clean_env, caplog):
    clean_env.setenv("OLLAMA_MODEL", "gpt-oss:20b")
    clean_env.setenv("OLLAMA_ALLOWED_MODELS", "llama3,phi3")

    with caplog.at_level(logging.WARNING):
        settings = Settings.from_env()
    assert settings.default_model == "llama3"
    assert "not in OLLAMA_ALLOWED_MODELS" in caplog.text


def test_settings_is_allowed():
    open_settings = Settings.create(default_model="m1")
    assert open_settings.is_allowed("anything")

    restricted = Settings.create(default_model="m1", allowed_models=["m1", "m2"])
    assert restricted.is_allowed("m2")
    assert not restricted.is_allowed("m3")


def test_settings_are_immutable():
    settings = Settings.create()
    with pytest.raises(AttributeError):
        settings.default_model = "other"
