import pytest
from pydantic import ValidationError

from notify_relay.core.config import RelayConfig
from notify_relay.core.settings import RelaySettings


def test_defaults():
    config = RelayConfig()

    assert config.target == "https://api2.transloadit.com/assemblies/"
    assert config.listen_port == 8888
    assert config.poll_interval_ms == 2000
    assert config.poll_interval == 2.0
    assert config.poll_max_attempts == 10
    assert config.notify_url == "http://127.0.0.1:3000/transloadit"
    assert config.notify_max_attempts == 1


def test_config_is_frozen():
    config = RelayConfig()
    with pytest.raises(ValidationError):
        config.poll_interval_ms = 10


@pytest.mark.parametrize(
    "overrides",
    [
        {"target": "ftp://upstream.test/"},
        {"notify_url": "/transloadit"},
        {"poll_interval_ms": 0},
        {"poll_max_attempts": 0},
        {"listen_port": 70000},
        {"unknown_field": True},
    ],
)
def test_invalid_values_are_rejected(overrides):
    with pytest.raises(ValidationError):
        RelayConfig(**overrides)


def test_secret_is_hidden_but_usable():
    config = RelayConfig(shared_secret="s3cret")
    assert "s3cret" not in repr(config)
    assert config.secret_bytes == b"s3cret"


def test_from_app_settings_reads_environment(monkeypatch):
    monkeypatch.setenv("RELAY_TARGET", "http://upstream.test/assemblies/")
    monkeypatch.setenv("RELAY_PORT", "9999")
    monkeypatch.setenv("RELAY_POLL_INTERVAL_MS", "500")
    monkeypatch.setenv("RELAY_SECRET", "from-env")

    config = RelayConfig.from_app_settings(RelaySettings())

    assert config.target == "http://upstream.test/assemblies/"
    assert config.listen_port == 9999
    assert config.poll_interval == 0.5
    assert config.secret_bytes == b"from-env"
    assert config.poll_max_attempts == 10
