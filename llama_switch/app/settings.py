from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Optional
import json
import logging
import os

from platformdirs import user_config_dir, user_log_dir

from llama_switch.config.switcher_config import SwitcherConfig
from llama_switch.errors import ConfigError

logger = logging.getLogger(__name__)

APP_NAME = "llama-switch"
CONFIG_FILENAME = "config.json"

DEFAULTS: dict[str, Any] = {
    "models_dir": "/srv/ai/models",
    "service_file": "/etc/systemd/system/llama-server.service",
    "service_name": "llama-server.service",
    "model_extensions": (".gguf",),
    "model_flags": ("--model", "-m"),
    "backup_suffix": ".bak",
    "systemctl_cmd": ("systemctl",),
    "verify_attempts": 5,
    "verify_interval_s": 2.0,
    "health_url": None,
    "health_timeout_s": 60.0,
}

# Environment variable -> settings key
ENV_KEYS: dict[str, str] = {
    "LLAMA_SWITCH_MODELS_DIR": "models_dir",
    "LLAMA_SWITCH_SERVICE_FILE": "service_file",
    "LLAMA_SWITCH_SERVICE_NAME": "service_name",
    "LLAMA_SWITCH_SYSTEMCTL": "systemctl_cmd",
    "LLAMA_SWITCH_VERIFY_ATTEMPTS": "verify_attempts",
    "LLAMA_SWITCH_VERIFY_INTERVAL": "verify_interval_s",
    "LLAMA_SWITCH_HEALTH_URL": "health_url",
}


# Config dir: LLAMA_SWITCH_CONFIG_DIR wins, otherwise the OS-standard user config dir.
def get_app_config_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    env = os.environ if environ is None else environ
    override = env.get("LLAMA_SWITCH_CONFIG_DIR")
    if override:
        return Path(override).expanduser().resolve()
    return Path(user_config_dir(APP_NAME)).resolve()


# Log dir: LLAMA_SWITCH_LOG_DIR wins, otherwise the OS-standard user log dir.
def get_app_log_dir(environ: Optional[Mapping[str, str]] = None) -> Path:
    env = os.environ if environ is None else environ
    override = env.get("LLAMA_SWITCH_LOG_DIR")
    if override:
        return Path(override).expanduser().resolve()
    return Path(user_log_dir(APP_NAME)).resolve()


def _apply_overrides(values: dict[str, Any], overrides: Optional[Mapping[str, Any]], source: str) -> dict[str, Any]:
    if not overrides:
        return values
    unknown = sorted(set(overrides.keys()) - set(values.keys()))
    if unknown:
        raise ConfigError(f"Unknown {source} keys: {', '.join(unknown)}")
    for key, val in overrides.items():
        if val is not None:
            values[key] = val
    return values


def load_config_file(config_dir: Path) -> dict[str, Any]:
    """Load config.json from the config dir; a missing file means no overrides."""
    path = config_dir / CONFIG_FILENAME
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Could not read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a JSON object.")
    logger.debug("Loaded config file %s: %s", path, data)
    return data


def env_overrides(environ: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
    env = os.environ if environ is None else environ
    return {key: env[name] for name, key in ENV_KEYS.items() if env.get(name)}


def build_settings(
    cli_overrides: Optional[Mapping[str, Any]] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
) -> SwitcherConfig:
    """
    Layer defaults, config file, environment and CLI flags into a validated SwitcherConfig.
    """
    values = dict(DEFAULTS)
    values = _apply_overrides(values, load_config_file(get_app_config_dir(environ)), "config file")
    values = _apply_overrides(values, env_overrides(environ), "environment")
    values = _apply_overrides(values, cli_overrides, "CLI")

    cfg = SwitcherConfig.from_strings(**values)
    logger.info("Resolved SwitcherConfig: %s", cfg)
    return cfg
