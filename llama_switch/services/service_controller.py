from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence
import logging
import subprocess
import time

import requests

from llama_switch.errors import ServiceCommandError, ServiceRestartError
from llama_switch.interfaces.service.manager import ServiceManager, ServiceState

logger = logging.getLogger(__name__)


@dataclass
class SystemdServiceManager:
    """
    Thin wrapper over `systemctl`.

    `systemctl_cmd` is the command prefix, e.g. ("sudo", "systemctl").
    """
    systemctl_cmd: Sequence[str] = ("systemctl",)
    timeout_s: float = 120.0

    def _run(self, *args: str) -> subprocess.CompletedProcess:
        cmd = [*self.systemctl_cmd, *args]
        logger.info("Running: %s", cmd)
        try:
            return subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=self.timeout_s,
                check=False,
            )
        except FileNotFoundError as e:
            raise ServiceCommandError(cmd, 127, str(e)) from e
        except subprocess.TimeoutExpired as e:
            raise ServiceCommandError(cmd, -1, f"timed out after {self.timeout_s}s") from e

    def _check(self, *args: str) -> None:
        proc = self._run(*args)
        if proc.returncode != 0:
            raise ServiceCommandError([*self.systemctl_cmd, *args], proc.returncode, proc.stdout or "")

    def reload(self) -> None:
        self._check("daemon-reload")

    def restart(self, name: str) -> None:
        self._check("restart", name)

    def state(self, name: str) -> ServiceState:
        # is-active exits non-zero for anything but "active"; the text still says which state
        proc = self._run("is-active", name)
        state = ServiceState.parse(proc.stdout or "")
        logger.debug("is-active %s -> %s (rc=%s)", name, state.value, proc.returncode)
        return state


def wait_for_health(
    url: str,
    timeout_s: float,
    *,
    interval_s: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> bool:
    """Poll `url` until it answers HTTP 200 or `timeout_s` runs out."""
    deadline = clock() + timeout_s
    while True:
        try:
            r = requests.get(url, timeout=min(5.0, max(timeout_s, 0.1)))
            if r.status_code == 200:
                return True
            # llama-server answers 503 while the model is still loading
            logger.debug("Health check %s -> HTTP %s", url, r.status_code)
        except requests.RequestException as e:
            logger.debug("Health check %s failed: %s", url, e)
        if clock() >= deadline:
            return False
        sleep(interval_s)


@dataclass
class ServiceController:
    manager: ServiceManager
    verify_attempts: int = 5
    verify_interval_s: float = 2.0
    health_url: Optional[str] = None
    health_timeout_s: float = 60.0
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    def reload(self) -> bool:
        """Reload unit definitions; a failure is logged and the caller carries on."""
        try:
            self.manager.reload()
            return True
        except ServiceCommandError as e:
            logger.warning("daemon-reload failed, continuing: %s", e)
            return False

    def restart(self, service_name: str) -> None:
        try:
            self.manager.restart(service_name)
        except ServiceCommandError as e:
            raise ServiceRestartError(f"Could not restart {service_name}: {e}") from e

    def verify(self, service_name: str) -> ServiceState:
        state = ServiceState.UNKNOWN
        for attempt in range(1, self.verify_attempts + 1):
            self.sleep(self.verify_interval_s)
            state = self.manager.state(service_name)
            logger.info("Verify %s attempt %d/%d: %s", service_name, attempt, self.verify_attempts, state.value)
            if state in {ServiceState.ACTIVE, ServiceState.FAILED}:
                break

        if state is ServiceState.ACTIVE and self.health_url:
            if not wait_for_health(
                self.health_url, self.health_timeout_s, sleep=self.sleep, clock=self.clock
            ):
                logger.warning("%s is active but %s never answered 200", service_name, self.health_url)
                return ServiceState.INACTIVE
        return state

    def apply(self, service_name: str) -> ServiceState:
        """Reload, restart and verify `service_name`; returns the observed state."""
        self.reload()
        self.restart(service_name)
        return self.verify(service_name)
