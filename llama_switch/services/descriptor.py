from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional
import logging
import os
import re
import shutil
import tempfile

from llama_switch.errors import (
    AmbiguousDescriptorError,
    BackupFailedError,
    DescriptorIOError,
    DescriptorMissingError,
    PatchNotAppliedWarning,
)

logger = logging.getLogger(__name__)

# A word runs until unquoted whitespace, so --model="/a b.gguf" is one token.
_TOKEN_RE = re.compile(r"(?:[^\s\"']+|\"[^\"]*\"|'[^']*')+")

# Unit files are not guaranteed to be UTF-8; undecodable bytes round-trip unchanged.
_ENCODING = "utf-8"
_ERRORS = "surrogateescape"

DEFAULT_FLAGS: tuple[str, ...] = ("--model", "-m")
DEFAULT_EXTENSIONS: tuple[str, ...] = (".gguf",)


@dataclass(frozen=True, slots=True)
class ModelArgument:
    line_no: int
    flag: str
    value: str
    start: int
    end: int
    quote: str = ""
    inline: bool = False


@dataclass(frozen=True, slots=True)
class PatchResult:
    descriptor_path: Path
    backup_path: Path
    previous_model: str
    new_model: str
    changed: bool


def _unquote(token: str) -> tuple[str, str]:
    if len(token) >= 2 and token[0] == token[-1] and token[0] in {"'", '"'}:
        return token[1:-1], token[0]
    return token, ""


def _is_comment(line: str) -> bool:
    stripped = line.lstrip()
    return stripped.startswith("#") or stripped.startswith(";")


def _is_model_value(value: str, extensions: tuple[str, ...]) -> bool:
    return bool(value) and value.lower().endswith(extensions)


def _scan_line(
    line_no: int,
    line: str,
    flags: tuple[str, ...],
    extensions: tuple[str, ...],
) -> list[ModelArgument]:
    tokens = list(_TOKEN_RE.finditer(line))
    out: list[ModelArgument] = []
    i = 0
    while i < len(tokens):
        tok = tokens[i].group(0)
        if tok in flags:
            if i + 1 < len(tokens):
                nxt = tokens[i + 1]
                value, quote = _unquote(nxt.group(0))
                if _is_model_value(value, extensions):
                    out.append(ModelArgument(line_no, tok, value, nxt.start(), nxt.end(), quote))
                    i += 2
                    continue
        else:
            for flag in flags:
                if flag.startswith("--") and tok.startswith(flag + "="):
                    value, quote = _unquote(tok[len(flag) + 1:])
                    if _is_model_value(value, extensions):
                        start = tokens[i].start() + len(flag) + 1
                        out.append(ModelArgument(line_no, flag, value, start, tokens[i].end(), quote, inline=True))
                    break
        i += 1
    return out


def find_model_arguments(
    text: str,
    flags: Iterable[str] = DEFAULT_FLAGS,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
) -> list[ModelArgument]:
    """
    Locate every `<flag> <path>` (or `--flag=<path>`) occurrence in a unit file.

    The path must end in one of `extensions`, so `python3 -m module` is not a
    model argument. Comment lines are skipped. Bare paths that merely end in a
    model extension are never matched; the flag is what identifies them.
    """
    flag_tuple = tuple(flags)
    ext_tuple = tuple(e.lower() for e in extensions)
    found: list[ModelArgument] = []
    for line_no, line in enumerate(text.splitlines()):
        if _is_comment(line):
            continue
        found.extend(_scan_line(line_no, line, flag_tuple, ext_tuple))
    return found


def _single_argument(
    path: Path,
    text: str,
    flags: Iterable[str],
    extensions: Iterable[str],
) -> Optional[ModelArgument]:
    args = find_model_arguments(text, flags, extensions)
    if len(args) > 1:
        lines = ", ".join(str(a.line_no + 1) for a in args)
        raise AmbiguousDescriptorError(
            f"Expected one model argument in {path}, found {len(args)} (lines {lines})"
        )
    return args[0] if args else None


def read_model_path(
    descriptor_path: str | Path,
    flags: Iterable[str] = DEFAULT_FLAGS,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
) -> Optional[str]:
    """Return the model path currently configured in the descriptor, or None."""
    path = Path(descriptor_path)
    if not path.is_file():
        raise DescriptorMissingError(f"Service file not found: {path}")
    text = _read_bytes(path).decode(_ENCODING, _ERRORS)
    arg = _single_argument(path, text, flags, extensions)
    return arg.value if arg else None


def _read_bytes(path: Path) -> bytes:
    try:
        return path.read_bytes()
    except OSError as e:
        raise DescriptorIOError(f"Could not read {path}: {e}") from e


def backup_path_for(descriptor_path: str | Path, backup_suffix: str = ".bak") -> Path:
    path = Path(descriptor_path)
    return path.with_name(path.name + backup_suffix)


def _write_atomic(target: Path, data: bytes) -> None:
    # Write next to the target so os.replace stays on one filesystem
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=str(target.parent))
    except OSError as e:
        raise DescriptorIOError(f"Could not write {target}: {e}") from e
    tmp = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        shutil.copymode(target, tmp)
        os.replace(tmp, target)
    except BaseException as e:
        tmp.unlink(missing_ok=True)
        if isinstance(e, OSError):
            raise DescriptorIOError(f"Could not write {target}: {e}") from e
        raise


def patch(
    descriptor_path: str | Path,
    new_model_path: str | Path,
    *,
    flags: Iterable[str] = DEFAULT_FLAGS,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    backup_suffix: str = ".bak",
    on_backup: Optional[Callable[[Path], None]] = None,
) -> PatchResult:
    """
    Point the descriptor's model argument at `new_model_path`.

    The descriptor is copied to `<descriptor><backup_suffix>` before anything
    else happens; a failed copy aborts with the original untouched. Only the
    path token of the single model argument changes, every other byte is kept.
    `on_backup` is called with the backup path as soon as the copy exists,
    even if the patch itself then fails.
    """
    path = Path(descriptor_path)
    if not path.is_file():
        raise DescriptorMissingError(f"Service file not found: {path}")

    backup = backup_path_for(path, backup_suffix)
    try:
        shutil.copy2(path, backup)
    except OSError as e:
        raise BackupFailedError(f"Could not back up {path} to {backup}: {e}") from e
    logger.info("Backed up %s to %s", path, backup)
    if on_backup is not None:
        on_backup(backup)

    raw = _read_bytes(path)
    text = raw.decode(_ENCODING, _ERRORS)
    new_value = str(new_model_path)
    flag_tuple = tuple(flags)

    arg = _single_argument(path, text, flag_tuple, extensions)
    if arg is None:
        raise PatchNotAppliedWarning(
            f"No model argument ({', '.join(flag_tuple)}) found in {path}; service file left unchanged"
        )

    lines = text.splitlines(keepends=True)
    line = lines[arg.line_no]
    quote = arg.quote or ('"' if any(c.isspace() for c in new_value) else "")
    replacement = f"{quote}{new_value}{quote}"
    lines[arg.line_no] = line[:arg.start] + replacement + line[arg.end:]
    patched = "".join(lines).encode(_ENCODING, _ERRORS)

    changed = patched != raw
    if changed:
        # Follow a symlinked unit to its real file instead of replacing the link
        _write_atomic(path.resolve(), patched)
        logger.info("Patched %s line %d: %s -> %s", path, arg.line_no + 1, arg.value, new_value)
    else:
        logger.info("%s already points at %s", path, new_value)

    return PatchResult(
        descriptor_path=path,
        backup_path=backup,
        previous_model=arg.value,
        new_model=new_value,
        changed=changed,
    )


def restore_backup(descriptor_path: str | Path, backup_suffix: str = ".bak") -> Path:
    """Copy `<descriptor><backup_suffix>` back over the descriptor."""
    path = Path(descriptor_path)
    backup = backup_path_for(path, backup_suffix)
    if not backup.is_file():
        raise DescriptorMissingError(f"Backup file not found: {backup}")
    target = path.resolve() if path.exists() else path
    try:
        shutil.copy2(backup, target)
    except OSError as e:
        raise DescriptorIOError(f"Could not restore {path} from {backup}: {e}") from e
    logger.info("Restored %s from %s", path, backup)
    return backup
