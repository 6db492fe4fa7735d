from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from llama_switch.interfaces.model.artifact import ModelArtifact


@dataclass
class SelectionSession:
    catalog: list[ModelArtifact] = field(default_factory=list)
    index: Optional[int] = None
    artifact: Optional[ModelArtifact] = None
