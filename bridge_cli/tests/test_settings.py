import pytest
from pydantic import ValidationError

from bridge_cli.cli import CONFIG_ENV, parse_args, settings_overrides
from bridge_cli.config import ClientSettings, load_settings


@pytest.fixture(autouse=True)
def _isolated(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    # --config writes the variable directly; record it so it is undone.
    monkeypatch.setenv(CONFIG_ENV, "")
    monkeypatch.delenv(CONFIG_ENV)
    for name in ("HOST", "PORT", "MONITOR", "LOG_LEVEL"):
        monkeypatch.delenv(f"MESH_BRIDGE_{name}", raising=False)


def test_defaults():
    settings = ClientSettings()

    assert settings.server_url == "ws://localhost:9999/"
    assert settings.log_level == "WARNING"
    assert settings.monitor is False
    assert settings.transport == "websocket"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("MESH_BRIDGE_HOST", "bridge.local")
    monkeypatch.setenv("MESH_BRIDGE_PORT", "8080")
    monkeypatch.setenv("MESH_BRIDGE_LOG_LEVEL", "debug")

    settings = ClientSettings()

    assert settings.server_url == "ws://bridge.local:8080/"
    assert settings.log_level == "DEBUG"


def test_yaml_file_and_explicit_overrides(monkeypatch, tmp_path):
    config = tmp_path / "custom.yaml"
    config.write_text("host: yaml-host\nport: 7000\npath: bridge\nmonitor: true\n", encoding="utf-8")
    monkeypatch.setenv(CONFIG_ENV, str(config))

    settings = load_settings(port=7100, host=None)

    assert settings.host == "yaml-host"
    assert settings.port == 7100
    assert settings.path == "/bridge"
    assert settings.monitor is True
    assert settings.config_path == config


def test_invalid_yaml_top_level(monkeypatch, tmp_path):
    config = tmp_path / "bad.yaml"
    config.write_text("- just\n- a list\n", encoding="utf-8")
    monkeypatch.setenv(CONFIG_ENV, str(config))

    with pytest.raises(ValueError):
        ClientSettings()


def test_backoff_bounds_validated():
    with pytest.raises(ValidationError):
        ClientSettings(reconnect_initial_delay_ms=5000, reconnect_max_delay_ms=1000)
    with pytest.raises(ValidationError):
        ClientSettings(reconnect_multiplier=1)


def test_cli_flags_map_to_settings(tmp_path):
    config = tmp_path / "cli.yaml"
    config.write_text("domain: ops\n", encoding="utf-8")
    args = parse_args(["--host", "h", "--port", "1234", "-m", "--log-level", "info", "--config", str(config)])

    settings = load_settings(**settings_overrides(args))

    assert settings.server_url == "ws://h:1234/"
    assert settings.monitor is True
    assert settings.log_level == "INFO"
    assert settings.domain == "ops"


def test_unset_flags_keep_defaults():
    args = parse_args([])

    settings = load_settings(**settings_overrides(args))

    assert settings.port == 9999
    assert settings.monitor is False
