# git.py
# Small, focused wrapper around the Git CLI.
# This module centralizes all Git interactions so the rest of the codebase
# never needs to call subprocess("git ...") directly.

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import List, Optional


class GitError(Exception):
    """A git command exited with a non-zero status."""

    def __init__(self, args: List[str], returncode: int, stderr: str, cwd: Optional[str] = None):
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr
        self.cwd = cwd
        super().__init__(str(self))

    @property
    def command(self) -> str:
        return "git " + " ".join(self.args_list)

    def __str__(self) -> str:
        msg = f"`{self.command}` failed (exit={self.returncode})"
        if self.cwd:
            msg += f" in {self.cwd}"
        if self.stderr:
            msg += f": {self.stderr}"
        return msg


def _git(args: list[str], cwd: Optional[str | Path] = None) -> str:
    """
    Execute a git command and return its stdout as a clean string.

    This is the single low-level entry point for all Git operations in this file.
    Every other function builds on top of this to ensure:
    - consistent invocation of git
    - consistent text output (not bytes)
    - a single error type (GitError) for every failure

    Args:
        args: List of git arguments (e.g. ["status", "--porcelain"])
        cwd: Optional working directory in which to run the git command.

    Returns:
        Stdout from the git command with surrounding whitespace removed.

    Raises:
        GitError: if git exits non-zero.
    """
    cwd_s = str(cwd) if cwd is not None else None
    proc = subprocess.run(
        ["git", *args],
        cwd=cwd_s,
        text=True,
        capture_output=True,
        check=False,
    )
    if proc.returncode != 0:
        raise GitError(args, proc.returncode, (proc.stderr or "").strip(), cwd=cwd_s)

    # Strip trailing newlines so callers can do clean string comparisons
    return (proc.stdout or "").strip()


def clone(url: str, dest: str | Path) -> None:
    """
    Clone `url` into `dest`, creating parent directories as needed.

    The clone is a plain full clone: pinned tags are resolved locally
    afterwards, so shallow clones would not be able to reach them.
    """
    dest_p = Path(dest)
    dest_p.parent.mkdir(parents=True, exist_ok=True)
    _git(["clone", url, dest_p.name], cwd=dest_p.parent)


def reset_hard(repo: str | Path) -> None:
    """Throw away every tracked modification (including previous patches)."""
    _git(["reset", "--hard", "HEAD"], cwd=repo)


def clean(repo: str | Path) -> None:
    """
    Remove untracked files and directories, including ignored ones.

    `-x` matters here: in-source build outputs are usually git-ignored.
    """
    _git(["clean", "-dxf"], cwd=repo)


def has_ref(repo: str | Path, ref: str) -> bool:
    """
    Return True if `ref` resolves to a commit in the local clone.

    Uses `rev-parse --verify --quiet` which exits 1 for unknown refs
    instead of printing an error.
    """
    try:
        _git(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"], cwd=repo)
    except GitError:
        return False
    return True


def fetch_tags(repo: str | Path, remote: str = "origin") -> None:
    """Fetch new commits and tags from `remote`."""
    _git(["fetch", "--tags", remote], cwd=repo)


def checkout_detached(repo: str | Path, ref: str) -> None:
    """
    Check out `ref` as a detached HEAD.

    advice.detachedHead is switched off so the (expected) detached state
    does not flood the build log.
    """
    _git(["-c", "advice.detachedHead=false", "checkout", ref], cwd=repo)


def status(repo: str | Path) -> str:
    """Return `git status` output for the build log."""
    return _git(["status"], cwd=repo)


def head_sha(repo: str | Path) -> str:
    """
    Return the full SHA hash of the current HEAD commit.

    Returns:
        Full commit SHA as a string.
    """
    return _git(["rev-parse", "HEAD"], cwd=repo)


def checkout_tag(dest: str | Path, url: str, tag: str) -> str:
    """
    Bring `dest` to exactly `tag`, whatever state it was left in.

    - clones `url` if `dest` does not exist yet, refuses a `dest` that
      exists but is not a clone
    - hard-resets and cleans the working tree
    - fetches tags if the existing clone does not know `tag`
    - checks out `tag` detached

    Returns:
        The `git status` output after checkout.
    """
    dest_p = Path(dest)
    if not dest_p.exists():
        clone(url, dest_p)
    elif not (dest_p / ".git").exists():
        # reset/clean must never reach an enclosing repository
        raise GitError(
            ["reset", "--hard", "HEAD"],
            128,
            f"{dest_p} exists but is not a git clone; remove it to re-clone",
            cwd=str(dest_p),
        )

    reset_hard(dest_p)
    clean(dest_p)

    if not has_ref(dest_p, tag):
        fetch_tags(dest_p)

    checkout_detached(dest_p, tag)
    return status(dest_p)
