# fsutil.py
from __future__ import annotations

import re
import shutil
from pathlib import Path


class PatchError(Exception):
    """A source patch did not match the file it targets."""


def ensure_dir_empty(path: str | Path) -> Path:
    """Delete `path` recursively if present, then recreate it empty."""
    p = Path(path)
    if p.exists():
        shutil.rmtree(p)
    p.mkdir(parents=True)
    return p


def copy_file(src: str | Path, dest: str | Path) -> Path:
    """Copy a single file, creating the destination directory if needed."""
    src_p, dest_p = Path(src), Path(dest)
    if not src_p.is_file():
        raise FileNotFoundError(f"Expected artifact not found: {src_p}")
    dest_p.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(src_p, dest_p)
    return dest_p


def copy_tree(src: str | Path, dest: str | Path) -> Path:
    """Copy a directory tree, merging into `dest` if it already exists."""
    src_p, dest_p = Path(src), Path(dest)
    if not src_p.is_dir():
        raise FileNotFoundError(f"Expected directory not found: {src_p}")
    shutil.copytree(src_p, dest_p, dirs_exist_ok=True)
    return dest_p


def remove_tree(path: str | Path) -> None:
    p = Path(path)
    if not p.is_dir():
        raise FileNotFoundError(f"Directory to remove not found: {p}")
    shutil.rmtree(p)


def relocate(src: str | Path, dest: str | Path) -> Path:
    """Move `src` to `dest`. `dest` must not exist yet."""
    src_p, dest_p = Path(src), Path(dest)
    if dest_p.exists():
        raise FileExistsError(f"Relocation target already exists: {dest_p}")
    dest_p.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(src_p), str(dest_p))
    return dest_p


def _split_eol(line: str) -> tuple[str, str]:
    body = line.rstrip("\r\n")
    return body, line[len(body):]


def apply_patch(path: str | Path, pattern: str, replacement: str) -> None:
    """
    Rewrite the first line matching `pattern` with `replacement`.

    The pattern is matched against each line without its line ending, so
    `^` and `$` anchor to the line. `replacement` is literal text; a "\\n"
    inside it is written with the patched line's own ending. Every other
    byte of the file is left as it was.

    Raises PatchError when nothing matches or the file is not UTF-8.
    """
    p = Path(path)
    if not p.is_file():
        raise PatchError(f"File to patch not found: {p}")
    try:
        with open(p, encoding="utf-8", newline="") as f:
            lines = f.readlines()
    except UnicodeDecodeError as e:
        raise PatchError(f"Cannot patch {p}: not valid UTF-8 ({e.reason} at byte {e.start})") from e

    regex = re.compile(pattern)
    for i, line in enumerate(lines):
        body, eol = _split_eol(line)
        patched, count = regex.subn(lambda _m: replacement, body, count=1)
        if count:
            lines[i] = patched.replace("\n", eol or "\n") + eol
            break
    else:
        raise PatchError(f"Pattern {pattern!r} not found in {p}")

    with open(p, "w", encoding="utf-8", newline="") as f:
        f.writelines(lines)
