from __future__ import annotations

from enum import Enum
from typing import Optional, TextIO
import os
import sys


class Color(str, Enum):
    GREEN = "\033[0;32m"
    BLUE = "\033[0;34m"
    YELLOW = "\033[1;33m"
    RED = "\033[0;31m"
    RESET = "\033[0m"


def use_color(stream: Optional[TextIO] = None) -> bool:
    """Colour only real terminals, and never when NO_COLOR is set."""
    if os.getenv("NO_COLOR"):
        return False
    stream = stream if stream is not None else sys.stdout
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def paint(text: str, color: Optional[Color], stream: Optional[TextIO] = None) -> str:
    if color is None or not use_color(stream):
        return text
    return f"{color.value}{text}{Color.RESET.value}"


def type_print(text: str, color: Optional[Color] = None, *, file: Optional[TextIO] = None) -> None:
    stream = file if file is not None else sys.stdout
    print(paint(text, color, stream), file=stream, flush=True)
