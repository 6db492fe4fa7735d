from __future__ import annotations

from enum import Enum
from typing import Protocol


class ServiceState(str, Enum):
    ACTIVE = "active"
    ACTIVATING = "activating"
    INACTIVE = "inactive"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: str) -> "ServiceState":
        text = (raw or "").strip().splitlines()
        word = text[0].strip().lower() if text else ""
        if word in {"reloading", "refreshing"}:
            return cls.ACTIVE
        if word == "deactivating":
            return cls.INACTIVE
        try:
            return cls(word)
        except ValueError:
            return cls.UNKNOWN


class ServiceManager(Protocol):
    def reload(self) -> None:
        ...

    def restart(self, name: str) -> None:
        ...

    def state(self, name: str) -> ServiceState:
        ...
