from __future__ import annotations


class SwitchError(RuntimeError):
    """
    Base class for every fatal condition of a model switch.

    The CLI maps any SwitchError to exit status 1.
    """
    exit_code: int = 1


class ConfigError(SwitchError, ValueError):
    pass


class NotFoundError(SwitchError, FileNotFoundError):
    pass


class NoArtifactsError(SwitchError):
    pass


class InvalidSelectionError(SwitchError, ValueError):
    pass


class DescriptorMissingError(SwitchError, FileNotFoundError):
    pass


class BackupFailedError(SwitchError):
    pass


class PatchNotAppliedWarning(SwitchError):
    """The model argument was not found, so the descriptor was left as it was."""


class AmbiguousDescriptorError(SwitchError):
    pass


class DescriptorIOError(SwitchError):
    """The service file or its backup could not be read or written."""


class ServiceCommandError(SwitchError):
    def __init__(self, cmd: list[str], returncode: int, output: str = "") -> None:
        self.cmd = list(cmd)
        self.returncode = returncode
        self.output = output
        detail = f": {output.strip()}" if output and output.strip() else ""
        super().__init__(f"Command failed ({returncode}): {' '.join(self.cmd)}{detail}")


class ServiceRestartError(SwitchError):
    pass


class ServiceVerificationFailed(SwitchError):
    def __init__(self, service_name: str, state: object) -> None:
        self.service_name = service_name
        self.state = state
        super().__init__(
            f"Service {service_name} failed to start (state: {getattr(state, 'value', state)}). "
            f"Check status with: systemctl status {service_name} "
            f"or logs with: journalctl -u {service_name}"
        )
