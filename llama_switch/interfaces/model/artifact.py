from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path


@dataclass(frozen=True)
class ModelArtifact:
    path: Path
    modified_at: float
    size_bytes: int = 0

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def modified_display(self) -> str:
        return datetime.fromtimestamp(self.modified_at).strftime("%Y-%m-%d %H:%M:%S")

    @property
    def size_gb(self) -> float:
        return self.size_bytes / (1024 ** 3)
