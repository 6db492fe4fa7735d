from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence
import logging
import os

import psutil

from llama_switch.errors import InvalidSelectionError
from llama_switch.interfaces.model.artifact import ModelArtifact
from llama_switch.utils.terminal_ui import Color, paint

logger = logging.getLogger(__name__)

InputFn = Callable[[str], str]
OutputFn = Callable[[str], None]


@dataclass(frozen=True, slots=True)
class HardwareInfo:
    total_ram_gb: float
    available_ram_gb: float
    cpu_count: int

    @property
    def summary(self) -> str:
        return (
            f"RAM: {self.total_ram_gb:.1f} GB ({self.available_ram_gb:.1f} GB free) | "
            f"CPU: {self.cpu_count}"
        )


def get_hardware_info() -> HardwareInfo:
    """Collect the RAM/CPU stats shown above the catalog."""
    mem = psutil.virtual_memory()
    return HardwareInfo(
        total_ram_gb=mem.total / (1024 ** 3),
        available_ram_gb=mem.available / (1024 ** 3),
        cpu_count=os.cpu_count() or 1,
    )


def _fits_model(artifact: ModelArtifact, hw: HardwareInfo) -> bool:
    """A GGUF has to be loaded whole, so a file bigger than total RAM cannot fit."""
    return artifact.size_gb <= hw.total_ram_gb


def _same_path(a: Path, b: Optional[str]) -> bool:
    if not b:
        return False
    try:
        return a.resolve() == Path(b).expanduser().resolve()
    except OSError:
        return str(a) == b


def format_artifact_line(
    idx: int,
    artifact: ModelArtifact,
    active_path: Optional[str] = None,
    hw: Optional[HardwareInfo] = None,
) -> str:
    """Format a single catalog entry (two lines) for the selection UI."""
    markers = ""
    if _same_path(artifact.path, active_path):
        markers += " (Active)"
    if hw is not None and not _fits_model(artifact, hw):
        markers += " (Exceeds RAM)"
    return (
        f"{paint(f'{idx}.', Color.YELLOW)} {artifact.name}{markers}\n"
        f"   Modified: {artifact.modified_display} | {artifact.size_gb:.2f} GB"
    )


def render_catalog(
    catalog: Sequence[ModelArtifact],
    *,
    active_path: Optional[str] = None,
    hw: Optional[HardwareInfo] = None,
    out: OutputFn = print,
) -> None:
    out(paint("Available models (newest to oldest):", Color.GREEN))
    if hw is not None:
        out(hw.summary)
    out("")
    for i, artifact in enumerate(catalog, start=1):
        out(format_artifact_line(i, artifact, active_path, hw))
        out("")


def parse_choice(raw: str, count: int) -> Optional[int]:
    """Return the 1-based index for `raw`, or None if it is not a number in range."""
    text = raw.strip()
    if not text.isdigit() or not text.isascii():
        return None
    idx = int(text)
    return idx if 1 <= idx <= count else None


def choose(
    catalog: Sequence[ModelArtifact],
    *,
    input_fn: InputFn = input,
    out: OutputFn = print,
) -> int:
    """
    Ask for a catalog number until a valid one is entered; returns it (1-based).

    Bad input only re-prompts. There is no attempt limit: the loop ends on a
    valid answer or when `input_fn` raises (EOF, Ctrl-C).
    """
    count = len(catalog)
    if count == 0:
        raise ValueError("choose() needs a non-empty catalog")
    prompt = f"Select model number (1-{count}): "

    while True:
        raw = input_fn(prompt)
        idx = parse_choice(raw, count)
        if idx is not None:
            logger.debug("Selected index %d (%s)", idx, catalog[idx - 1].name)
            return idx
        logger.debug("Rejected selection input %r", raw)
        out(paint(f"Invalid selection. Please enter a number between 1 and {count}", Color.RED))


def resolve_selection(catalog: Sequence[ModelArtifact], token: str) -> int:
    """Resolve a non-interactive selection (index or exact file name) to a 1-based index."""
    idx = parse_choice(token, len(catalog))
    if idx is not None:
        return idx
    wanted = token.strip()
    for i, artifact in enumerate(catalog, start=1):
        if artifact.name == wanted:
            return i
    raise InvalidSelectionError(
        f"No model matches {token!r}; use a number between 1 and {len(catalog)} or a file name"
    )
