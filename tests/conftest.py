"""
Shared fixtures: an isolated config/log dir, a models dir with controllable
mtimes, a llama-server unit file and a scripted stand-in for systemctl.
"""
from __future__ import annotations

import logging
import os
import time
from pathlib import Path

import pytest

from llama_switch.config.switcher_config import SwitcherConfig
from llama_switch.errors import ServiceCommandError
from llama_switch.interfaces.service.manager import ServiceState

UNIT_TEXT = (
    "[Unit]\n"
    "Description=llama.cpp server\n"
    "After=network.target\n"
    "\n"
    "[Service]\n"
    "# previous: --model /models/older.gguf\n"
    "ExecStart=/opt/llama.cpp/build/bin/llama-server --model /models/old.gguf --host 0.0.0.0 \\\n"
    "  --port 8081\n"
    "Restart=always\n"
    "\n"
    "[Install]\n"
    "WantedBy=multi-user.target\n"
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    monkeypatch.setenv("LLAMA_SWITCH_CONFIG_DIR", str(tmp_path / "cfg"))
    monkeypatch.setenv("LLAMA_SWITCH_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("NO_COLOR", "1")
    for name in (
        "LLAMA_SWITCH_MODELS_DIR",
        "LLAMA_SWITCH_SERVICE_FILE",
        "LLAMA_SWITCH_SERVICE_NAME",
        "LLAMA_SWITCH_SYSTEMCTL",
        "LLAMA_SWITCH_VERIFY_ATTEMPTS",
        "LLAMA_SWITCH_VERIFY_INTERVAL",
        "LLAMA_SWITCH_HEALTH_URL",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
    root = logging.getLogger()
    for h in list(root.handlers):
        if getattr(h, "_llama_switch", False):
            root.removeHandler(h)
            h.close()


def make_model(directory: Path, name: str, age_s: float, size: int = 16) -> Path:
    """Create a fake model file whose mtime is `age_s` seconds in the past."""
    p = directory / name
    p.write_bytes(b"\0" * size)
    ts = time.time() - age_s
    os.utime(p, (ts, ts))
    return p


@pytest.fixture
def models_dir(tmp_path) -> Path:
    d = tmp_path / "models"
    d.mkdir()
    return d


@pytest.fixture
def unit_file(tmp_path) -> Path:
    p = tmp_path / "llama-server.service"
    p.write_text(UNIT_TEXT, encoding="utf-8")
    return p


@pytest.fixture
def cfg(models_dir, unit_file) -> SwitcherConfig:
    return SwitcherConfig.from_strings(
        models_dir=models_dir,
        service_file=unit_file,
        service_name="llama-server.service",
        verify_attempts=1,
        verify_interval_s=0,
    )


class FakeServiceManager:
    """Records systemctl calls and replays scripted is-active answers."""

    def __init__(self, states=None, fail_reload=False, fail_restart=False):
        self.states = list(states or [ServiceState.ACTIVE])
        self.fail_reload = fail_reload
        self.fail_restart = fail_restart
        self.calls: list[tuple[str, ...]] = []

    def reload(self) -> None:
        self.calls.append(("daemon-reload",))
        if self.fail_reload:
            raise ServiceCommandError(["systemctl", "daemon-reload"], 1, "boom")

    def restart(self, name: str) -> None:
        self.calls.append(("restart", name))
        if self.fail_restart:
            raise ServiceCommandError(["systemctl", "restart", name], 5, "Unit not found.")

    def state(self, name: str) -> ServiceState:
        self.calls.append(("is-active", name))
        if len(self.states) > 1:
            return self.states.pop(0)
        return self.states[0]


@pytest.fixture
def fake_manager() -> FakeServiceManager:
    return FakeServiceManager()


def scripted_input(*answers: str):
    """Return an input() replacement that replays `answers` and records prompts."""
    it = iter(answers)
    prompts: list[str] = []

    def _input(prompt: str = "") -> str:
        prompts.append(prompt)
        try:
            return next(it)
        except StopIteration:
            raise EOFError from None

    _input.prompts = prompts  # type: ignore[attr-defined]
    return _input
