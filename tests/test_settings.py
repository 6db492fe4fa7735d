from __future__ import annotations

import json
from pathlib import Path

import pytest

from llama_switch.app.settings import build_settings, get_app_config_dir, get_app_log_dir
from llama_switch.config.switcher_config import SwitcherConfig
from llama_switch.errors import ConfigError


def test_defaults_match_reference_paths():
    cfg = build_settings()

    assert cfg.models_dir == Path("/srv/ai/models")
    assert cfg.service_file == Path("/etc/systemd/system/llama-server.service")
    assert cfg.service_name == "llama-server.service"
    assert cfg.model_extensions == (".gguf",)
    assert cfg.backup_file == Path("/etc/systemd/system/llama-server.service.bak")
    assert cfg.systemctl_cmd == ("systemctl",)


def test_layering_file_env_cli(tmp_path, monkeypatch):
    cfg_dir = tmp_path / "cfg"
    cfg_dir.mkdir()
    (cfg_dir / "config.json").write_text(
        json.dumps({"models_dir": "/from/file", "service_name": "file.service", "verify_attempts": 3}),
        encoding="utf-8",
    )
    monkeypatch.setenv("LLAMA_SWITCH_SERVICE_NAME", "env.service")
    monkeypatch.setenv("LLAMA_SWITCH_SYSTEMCTL", "sudo systemctl")

    cfg = build_settings({"verify_attempts": 7, "models_dir": None})

    assert cfg.models_dir == Path("/from/file")
    assert cfg.service_name == "env.service"
    assert cfg.systemctl_cmd == ("sudo", "systemctl")
    assert cfg.verify_attempts == 7


def test_env_numbers_are_parsed(monkeypatch):
    monkeypatch.setenv("LLAMA_SWITCH_VERIFY_ATTEMPTS", "2")
    monkeypatch.setenv("LLAMA_SWITCH_VERIFY_INTERVAL", "0.5")
    monkeypatch.setenv("LLAMA_SWITCH_HEALTH_URL", "http://127.0.0.1:8081/health")

    cfg = build_settings()

    assert cfg.verify_attempts == 2
    assert cfg.verify_interval_s == 0.5
    assert cfg.health_url == "http://127.0.0.1:8081/health"


def test_unknown_config_file_key(tmp_path):
    cfg_dir = tmp_path / "cfg"
    cfg_dir.mkdir()
    (cfg_dir / "config.json").write_text(json.dumps({"model_dir": "/typo"}), encoding="utf-8")

    with pytest.raises(ConfigError, match="model_dir"):
        build_settings()


def test_broken_config_file(tmp_path):
    cfg_dir = tmp_path / "cfg"
    cfg_dir.mkdir()
    (cfg_dir / "config.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(ConfigError):
        build_settings()


@pytest.mark.parametrize(
    "overrides",
    [
        {"verify_attempts": 0},
        {"verify_attempts": "many"},
        {"verify_interval_s": -1},
        {"service_name": " "},
        {"health_url": "ftp://nope"},
        {"model_extensions": "gguf"},
        {"model_flags": "model"},
    ],
)
def test_invalid_values(overrides):
    with pytest.raises(ConfigError):
        build_settings(overrides)


def test_from_strings_splits_lists(tmp_path):
    cfg = SwitcherConfig.from_strings(
        models_dir="~/models",
        service_file=tmp_path / "x.service",
        service_name="x.service",
        model_extensions=".GGUF, .bin",
        model_flags="--model,-m",
    )

    assert cfg.models_dir == Path("~/models").expanduser()
    assert cfg.model_extensions == (".gguf", ".bin")
    assert cfg.model_flags == ("--model", "-m")


def test_app_dirs_follow_env(tmp_path):
    env = {"LLAMA_SWITCH_CONFIG_DIR": str(tmp_path / "c"), "LLAMA_SWITCH_LOG_DIR": str(tmp_path / "l")}
    assert get_app_config_dir(env) == (tmp_path / "c").resolve()
    assert get_app_log_dir(env) == (tmp_path / "l").resolve()


def test_app_dirs_default_to_platformdirs():
    assert get_app_config_dir({}).name == "llama-switch"
    assert "llama-switch" in str(get_app_log_dir({}))
