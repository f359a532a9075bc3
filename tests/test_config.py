"""Tests for configuration loading."""
import pytest
import yaml

from skelpo_metrics.config import ClientConfig, Config, load_config
from skelpo_metrics.errors import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("SKELPO_METRICS_URL", "SKELPO_METRICS_KEY", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


def write_config(tmp_path, data):
    path = tmp_path / "metrics.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


def test_load_from_yaml(tmp_path):
    """Test that a YAML file is validated into a Config."""
    path = write_config(tmp_path, {
        "global": {"log_level": "DEBUG"},
        "client": {"url": "https://metrics.example.com/events/", "key": "k", "timeout_s": 2.5},
        "self_metrics": {"enabled": False},
    })

    config = load_config(path)

    assert isinstance(config, Config)
    assert config.client.url == "https://metrics.example.com/events"
    assert config.client.key == "k"
    assert config.client.timeout_s == 2.5
    assert config.client.max_workers == 4
    assert config.global_.log_level == "DEBUG"
    assert config.self_metrics.enabled is False


def test_load_from_environment(monkeypatch):
    """Test that env vars alone are enough."""
    monkeypatch.setenv("SKELPO_METRICS_URL", "https://env.example.com/events")
    monkeypatch.setenv("SKELPO_METRICS_KEY", "env-key")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")

    config = load_config()

    assert config.client.url == "https://env.example.com/events"
    assert config.client.key == "env-key"
    assert config.global_.log_level == "WARNING"
    assert config.self_metrics.enabled is True


def test_environment_overrides_file(tmp_path, monkeypatch):
    """Test env vars win over the file."""
    path = write_config(tmp_path, {"client": {"url": "https://file.example.com", "key": "file-key"}})
    monkeypatch.setenv("SKELPO_METRICS_KEY", "env-key")

    config = load_config(path)

    assert config.client.url == "https://file.example.com"
    assert config.client.key == "env-key"


@pytest.mark.parametrize("client, missing", [
    ({}, "SKELPO_METRICS_URL"),
    ({"url": "https://metrics.example.com"}, "SKELPO_METRICS_KEY"),
])
def test_missing_values(tmp_path, client, missing):
    """Test that missing url or key is a missingEnvVar error."""
    path = write_config(tmp_path, {"client": client})

    with pytest.raises(ConfigError) as exc_info:
        load_config(path)

    assert exc_info.value.identifier == "missingEnvVar"
    assert missing in str(exc_info.value)


def test_invalid_values(tmp_path):
    """Test that validation failures become ConfigError."""
    path = write_config(tmp_path, {"client": {"url": "https://x", "key": "k", "timeout_s": -1}})

    with pytest.raises(ConfigError) as exc_info:
        load_config(path)

    assert exc_info.value.identifier == "invalidConfig"


def test_missing_file():
    """Test that an explicit path must exist."""
    with pytest.raises(FileNotFoundError):
        load_config("/nonexistent/metrics.yaml")


def test_empty_file(tmp_path, monkeypatch):
    """Test that an empty YAML file falls back to env vars."""
    path = tmp_path / "empty.yaml"
    path.write_text("")
    monkeypatch.setenv("SKELPO_METRICS_URL", "https://env.example.com")
    monkeypatch.setenv("SKELPO_METRICS_KEY", "k")

    assert load_config(str(path)).client.url == "https://env.example.com"


def test_client_config_rejects_blank_url():
    """Test direct model validation."""
    with pytest.raises(ValueError):
        ClientConfig(url="  /", key="k")
