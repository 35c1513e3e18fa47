"""Shared test fixtures."""

from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import pytest

from depbuild.ui.console import Console, set_console


@dataclass
class Call:
    args: object
    cwd: Optional[str]

    @property
    def is_git(self) -> bool:
        return isinstance(self.args, list) and self.args[:1] == ["git"]

    @property
    def text(self) -> str:
        if isinstance(self.args, list):
            return " ".join(self.args)
        return str(self.args)


@dataclass
class FakeProcesses:
    """
    Stand-in for subprocess.run.

    - `git clone <url> <name>` creates <cwd>/<name> (with an empty .git) populated with
      `repo_files[url]` (relative path -> str or bytes content)
    - every other command succeeds with empty output unless `fail_on`
      matches its text, in which case it exits 2
    - `on_command` hooks can create files as a side effect
    """
    calls: List[Call] = field(default_factory=list)
    repo_files: Dict[str, Dict[str, Union[str, bytes]]] = field(default_factory=dict)
    fail_on: Optional[str] = None
    on_command: List[Callable[[Call], None]] = field(default_factory=list)

    def __call__(self, args, **kwargs):
        call = Call(args=args, cwd=kwargs.get("cwd"))
        self.calls.append(call)

        if call.is_git and args[1] == "clone":
            url, name = args[2], args[3]
            dest = Path(call.cwd) / name
            (dest / ".git").mkdir(parents=True)
            for rel, content in self.repo_files.get(url, {}).items():
                target = dest / rel
                target.parent.mkdir(parents=True, exist_ok=True)
                if isinstance(content, bytes):
                    target.write_bytes(content)
                else:
                    target.write_text(content, encoding="utf-8")

        for hook in self.on_command:
            hook(call)

        code = 2 if self.fail_on and self.fail_on in call.text else 0
        return subprocess.CompletedProcess(args, code, stdout="", stderr="boom" if code else "")

    @property
    def shell_commands(self) -> List[str]:
        return [c.text for c in self.calls if not c.is_git]

    @property
    def git_commands(self) -> List[str]:
        return [c.text for c in self.calls if c.is_git]


@pytest.fixture(autouse=True)
def console() -> Console:
    """Fresh, non-debug console for every test."""
    c = Console(debug=False)
    set_console(c)
    return c


@pytest.fixture
def fake_processes(monkeypatch: pytest.MonkeyPatch) -> FakeProcesses:
    fake = FakeProcesses()
    monkeypatch.setattr(subprocess, "run", fake)
    return fake


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[..., Path]:
    def _write(data: dict, name: str = "config.json", root: Path | None = None) -> Path:
        path = (root or tmp_path) / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data), encoding="utf-8")
        return path

    return _write


def dep(name: str, *, build: bool = True, test: bool = False, debug: Optional[bool] = None, dirname: str | None = None) -> dict:
    """A configuration entry pointing at a fake URL."""
    entry: dict = {
        "build": build,
        "dirname": dirname or name,
        "test": test,
        "git": {"url": f"https://example.invalid/{name}.git", "tag": "v1.0"},
    }
    if debug is not None:
        entry["debug"] = debug
    return entry


def tree(root: Path) -> List[str]:
    """Sorted relative paths of everything under `root`."""
    if not root.exists():
        return []
    return sorted(p.relative_to(root).as_posix() for p in root.rglob("*"))
