from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path

from llama_switch.errors import ConfigError

@dataclass(frozen=True, slots=True)
class SwitcherConfig:
    """
    Locations and knobs used by the model switcher.

    Paths are stored as Path objects with ~ expanded. Build one with
    `from_strings()` (which validates) or via `app.settings.build_settings()`.
    """
    models_dir: Path
    service_file: Path
    service_name: str
    model_extensions: tuple[str, ...]
    model_flags: tuple[str, ...]
    backup_suffix: str
    systemctl_cmd: tuple[str, ...]
    verify_attempts: int
    verify_interval_s: float
    health_url: str | None = None
    health_timeout_s: float = 60.0

    @property
    def backup_file(self) -> Path:
        return self.service_file.with_name(self.service_file.name + self.backup_suffix)

    def validate(self) -> None:
        if not isinstance(self.service_name, str) or not self.service_name.strip():
            raise ConfigError("SwitcherConfig.service_name must be a non-empty string.")
        if not self.model_extensions:
            raise ConfigError("SwitcherConfig.model_extensions must not be empty.")
        for ext in self.model_extensions:
            if not isinstance(ext, str) or not ext.startswith(".") or len(ext) < 2:
                raise ConfigError(f"SwitcherConfig.model_extensions entries must look like '.gguf': {ext!r}")
        if not self.model_flags:
            raise ConfigError("SwitcherConfig.model_flags must not be empty.")
        for flag in self.model_flags:
            if not isinstance(flag, str) or not flag.startswith("-"):
                raise ConfigError(f"SwitcherConfig.model_flags entries must start with '-': {flag!r}")
        if not isinstance(self.backup_suffix, str) or not self.backup_suffix.strip():
            raise ConfigError("SwitcherConfig.backup_suffix must be a non-empty string.")
        if not self.systemctl_cmd:
            raise ConfigError("SwitcherConfig.systemctl_cmd must not be empty.")
        if not isinstance(self.verify_attempts, int) or isinstance(self.verify_attempts, bool) or self.verify_attempts <= 0:
            raise ConfigError("SwitcherConfig.verify_attempts must be a positive integer.")
        if not isinstance(self.verify_interval_s, (int, float)) or self.verify_interval_s < 0:
            raise ConfigError("SwitcherConfig.verify_interval_s must be a non-negative number.")
        if self.health_url is not None:
            if not isinstance(self.health_url, str) or not self.health_url.startswith(("http://", "https://")):
                raise ConfigError("SwitcherConfig.health_url must be an http(s) URL or None.")
        if not isinstance(self.health_timeout_s, (int, float)) or self.health_timeout_s <= 0:
            raise ConfigError("SwitcherConfig.health_timeout_s must be a positive number.")
        if self.service_file.exists() and self.service_file.is_dir():
            raise ConfigError(f"service_file exists but is a directory: {self.service_file}")

    @staticmethod
    def from_strings(
        models_dir: str | Path,
        service_file: str | Path,
        service_name: str,
        model_extensions: str | list[str] | tuple[str, ...] = (".gguf",),
        model_flags: str | list[str] | tuple[str, ...] = ("--model", "-m"),
        backup_suffix: str = ".bak",
        systemctl_cmd: str | list[str] | tuple[str, ...] = ("systemctl",),
        verify_attempts: int | str = 5,
        verify_interval_s: float | str = 2.0,
        health_url: str | None = None,
        health_timeout_s: float | str = 60.0,
    ) -> "SwitcherConfig":
        """
        Convenience constructor for CLI/env/JSON usage.

        Comma separated strings are accepted for the tuple fields, and a
        whitespace separated string for `systemctl_cmd` (e.g. "sudo systemctl").
        """
        try:
            attempts = int(verify_attempts)
            interval = float(verify_interval_s)
            health_timeout = float(health_timeout_s)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid numeric setting: {e}") from e

        cfg = SwitcherConfig(
            models_dir=SwitcherConfig._norm(models_dir),
            service_file=SwitcherConfig._norm(service_file),
            service_name=service_name,
            model_extensions=tuple(e.lower() for e in SwitcherConfig._split(model_extensions, ",")),
            model_flags=SwitcherConfig._split(model_flags, ","),
            backup_suffix=backup_suffix,
            systemctl_cmd=SwitcherConfig._split(systemctl_cmd, None),
            verify_attempts=attempts,
            verify_interval_s=interval,
            health_url=health_url or None,
            health_timeout_s=health_timeout,
        )
        cfg.validate()
        return cfg

    @staticmethod
    def _split(value: str | list[str] | tuple[str, ...], sep: str | None) -> tuple[str, ...]:
        if isinstance(value, str):
            parts = value.split(sep)
        else:
            parts = list(value)
        return tuple(p.strip() for p in parts if isinstance(p, str) and p.strip())

    @staticmethod
    def _norm(p: str | Path) -> Path:
        """
        Normalize a path: expand ~ and make it absolute.

        Symlinks are kept as they are; /etc/systemd/system units are often links.
        """
        return Path(p).expanduser().absolute()
