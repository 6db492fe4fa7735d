from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import logging

from llama_switch.app.model_selection import (
    HardwareInfo,
    InputFn,
    OutputFn,
    choose,
    get_hardware_info,
    render_catalog,
    resolve_selection,
)
from llama_switch.config.switcher_config import SwitcherConfig
from llama_switch.errors import ServiceVerificationFailed, SwitchError
from llama_switch.interfaces.model.artifact import ModelArtifact
from llama_switch.interfaces.model.selection import SelectionSession
from llama_switch.interfaces.service.manager import ServiceManager, ServiceState
from llama_switch.services import catalog as catalog_scanner
from llama_switch.services import descriptor
from llama_switch.services.descriptor import PatchResult
from llama_switch.services.service_controller import ServiceController
from llama_switch.utils.terminal_ui import Color, paint

logger = logging.getLogger(__name__)


class WorkflowState(str, Enum):
    SCANNING = "scanning"
    SELECTING = "selecting"
    PATCHING = "patching"
    RELOADING = "reloading"
    RESTARTING = "restarting"
    VERIFYING = "verifying"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class SwitchResult:
    state: WorkflowState
    artifact: Optional[ModelArtifact]
    patch: Optional[PatchResult]
    service_state: Optional[ServiceState]


@dataclass
class SwitchWorkflow:
    """
    One model switch: scan -> select -> patch -> reload -> restart -> verify.

    Every stage runs once. Any SwitchError stops the run where it happened and
    leaves `state` at FAILED; the backup file is the only recovery aid.
    """
    cfg: SwitcherConfig
    manager: ServiceManager
    input_fn: InputFn = input
    out: OutputFn = print
    controller: Optional[ServiceController] = None
    hw: Optional[HardwareInfo] = None
    state: WorkflowState = field(default=WorkflowState.SCANNING, init=False)
    session: SelectionSession = field(default_factory=SelectionSession, init=False)

    def __post_init__(self) -> None:
        if self.controller is None:
            self.controller = ServiceController(
                manager=self.manager,
                verify_attempts=self.cfg.verify_attempts,
                verify_interval_s=self.cfg.verify_interval_s,
                health_url=self.cfg.health_url,
                health_timeout_s=self.cfg.health_timeout_s,
            )

    def _enter(self, state: WorkflowState) -> None:
        logger.info("State %s -> %s", self.state.value, state.value)
        self.state = state

    def _active_model(self) -> Optional[str]:
        # Only a display hint; a broken descriptor is reported later by patch()
        if not self.cfg.service_file.is_file():
            return None
        try:
            return descriptor.read_model_path(
                self.cfg.service_file, self.cfg.model_flags, self.cfg.model_extensions
            )
        except SwitchError as e:
            logger.debug("Could not read active model: %s", e)
            return None

    def _scan(self) -> list[ModelArtifact]:
        self._enter(WorkflowState.SCANNING)
        items = catalog_scanner.scan(self.cfg.models_dir, self.cfg.model_extensions)
        self.session.catalog = items
        return items

    def _render(self, items: list[ModelArtifact]) -> None:
        render_catalog(items, active_path=self._active_model(), hw=self.hw, out=self.out)

    def list_catalog(self) -> list[ModelArtifact]:
        items = self._scan()
        self._render(items)
        return items

    def _restart_and_verify(self) -> ServiceState:
        assert self.controller is not None
        name = self.cfg.service_name

        self._enter(WorkflowState.RELOADING)
        self.out(paint("\nReloading systemd daemon...", Color.BLUE))
        if not self.controller.reload():
            self.out(paint("Warning: daemon-reload failed, continuing", Color.YELLOW))

        self._enter(WorkflowState.RESTARTING)
        self.out(paint(f"Restarting {name}...", Color.BLUE))
        self.controller.restart(name)

        self._enter(WorkflowState.VERIFYING)
        service_state = self.controller.verify(name)
        if service_state is not ServiceState.ACTIVE:
            self._enter(WorkflowState.FAILED)
            raise ServiceVerificationFailed(name, service_state)
        return service_state

    def run(self, select: Optional[str] = None, restart: bool = True) -> SwitchResult:
        try:
            return self._run(select, restart)
        except SwitchError:
            self.state = WorkflowState.FAILED
            raise

    def _run(self, select: Optional[str], restart: bool) -> SwitchResult:
        if self.hw is None:
            self.hw = get_hardware_info()
        items = self._scan()

        self._enter(WorkflowState.SELECTING)
        if select is not None:
            idx = resolve_selection(items, select)
        else:
            self._render(items)
            idx = choose(items, input_fn=self.input_fn, out=self.out)
        artifact = items[idx - 1]
        self.session.index = idx
        self.session.artifact = artifact
        self.out(f"\n{paint('Selected model:', Color.GREEN)} {artifact.name}")

        self._enter(WorkflowState.PATCHING)
        result = descriptor.patch(
            self.cfg.service_file,
            artifact.path,
            flags=self.cfg.model_flags,
            extensions=self.cfg.model_extensions,
            backup_suffix=self.cfg.backup_suffix,
            on_backup=lambda p: self.out(f"{paint('Backup created:', Color.GREEN)} {p}"),
        )
        if result.changed:
            self.out(paint("Service file updated", Color.GREEN))
        else:
            self.out(paint("Service file already points at this model", Color.GREEN))

        if not restart:
            self._enter(WorkflowState.SUCCEEDED)
            self.out(paint("Skipping restart; run systemctl daemon-reload and restart to apply.", Color.YELLOW))
            return SwitchResult(self.state, artifact, result, None)

        service_state = self._restart_and_verify()
        self._enter(WorkflowState.SUCCEEDED)
        self.out(paint("\n✓ Service restarted successfully!", Color.GREEN))
        self.out(f"{paint('✓ Now using model:', Color.GREEN)} {artifact.name}")
        return SwitchResult(self.state, artifact, result, service_state)

    def restore(self, restart: bool = True) -> SwitchResult:
        """Put the previous descriptor back from its backup, then restart the service."""
        try:
            self._enter(WorkflowState.PATCHING)
            backup = descriptor.restore_backup(self.cfg.service_file, self.cfg.backup_suffix)
            self.out(f"{paint('Restored from backup:', Color.GREEN)} {backup}")
            service_state = self._restart_and_verify() if restart else None
        except SwitchError:
            self.state = WorkflowState.FAILED
            raise
        self._enter(WorkflowState.SUCCEEDED)
        self.out(paint("\n✓ Previous service file restored", Color.GREEN))
        return SwitchResult(self.state, None, None, service_state)
