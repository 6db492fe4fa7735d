from __future__ import annotations

from pathlib import Path
from typing import Optional
import logging
import sys

LOG_FILENAME = "switch-model.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: bool = False, log_dir: Optional[Path] = None) -> Optional[Path]:
    """
    Send warnings (or everything, with verbose) to stderr and append a full
    DEBUG log to `<log_dir>/switch-model.log`. Returns the log file path, or
    None when file logging is unavailable.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        if getattr(h, "_llama_switch", False):
            root.removeHandler(h)
            h.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    console._llama_switch = True  # type: ignore[attr-defined]
    root.addHandler(console)

    if log_dir is None:
        return None

    log_file = log_dir / LOG_FILENAME
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
    except OSError as e:
        logging.getLogger(__name__).warning("File logging disabled (%s): %s", log_file, e)
        return None
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    file_handler._llama_switch = True  # type: ignore[attr-defined]
    root.addHandler(file_handler)
    return log_file
