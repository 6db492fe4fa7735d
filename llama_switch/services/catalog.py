from __future__ import annotations

from pathlib import Path
from typing import Iterable
import logging

from llama_switch.errors import NoArtifactsError, NotFoundError
from llama_switch.interfaces.model.artifact import ModelArtifact

logger = logging.getLogger(__name__)


def _is_model_file(p: Path, extensions: tuple[str, ...]) -> bool:
    return p.suffix.lower() in extensions and p.is_file()


def scan(directory: str | Path, extensions: Iterable[str] = (".gguf",)) -> list[ModelArtifact]:
    """
    List the model files directly inside `directory`, newest first.

    Raises NotFoundError if the directory is missing and NoArtifactsError if it
    holds no model files. Equal mtimes come out in reverse name order.
    """
    root = Path(directory).expanduser()
    exts = tuple(e.lower() for e in extensions)
    if not root.is_dir():
        raise NotFoundError(f"Models directory not found: {root}")

    found: list[ModelArtifact] = []
    for p in sorted(root.iterdir(), key=lambda c: c.name, reverse=True):
        if not _is_model_file(p, exts):
            continue
        st = p.stat()
        found.append(ModelArtifact(path=p.absolute(), modified_at=st.st_mtime, size_bytes=st.st_size))

    if not found:
        raise NoArtifactsError(f"No {'/'.join(exts)} model files found in {root}")

    # sorted() is stable, so ties stay in reverse name order
    catalog = sorted(found, key=lambda a: a.modified_at, reverse=True)
    logger.debug("Scanned %s: %s", root, [a.name for a in catalog])
    return catalog
