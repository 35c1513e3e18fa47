import shutil
import subprocess
from pathlib import Path

import pytest

from depbuild.git_facts import git

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def _run(args: list[str], cwd: Path) -> str:
    return subprocess.run(
        ["git", "-c", "user.name=depbuild", "-c", "user.email=depbuild@example.invalid", *args],
        cwd=cwd,
        check=True,
        text=True,
        capture_output=True,
    ).stdout.strip()


def _create_origin(path: Path) -> Path:
    path.mkdir(parents=True)
    _run(["init", "-q"], path)
    (path / ".gitignore").write_text("out/\n", encoding="utf-8")
    (path / "zlib.h").write_text("version 1\n", encoding="utf-8")
    _run(["add", "."], path)
    _run(["commit", "-q", "-m", "v1"], path)
    _run(["tag", "v1"], path)
    (path / "zlib.h").write_text("version 2\n", encoding="utf-8")
    _run(["commit", "-q", "-am", "v2"], path)
    _run(["tag", "v2"], path)
    return path


def _snapshot(root: Path) -> dict:
    return {
        p.relative_to(root).as_posix(): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file() and ".git" not in p.relative_to(root).parts
    }


def test_checkout_tag_clones_then_resets_cleans_and_checks_out(tmp_path: Path, fake_processes) -> None:
    dest = tmp_path / "src" / "zlib"

    git.checkout_tag(dest, "https://example.invalid/zlib.git", "v1.3")

    assert fake_processes.git_commands == [
        "git clone https://example.invalid/zlib.git zlib",
        "git reset --hard HEAD",
        "git clean -dxf",
        "git rev-parse --verify --quiet v1.3^{commit}",
        "git -c advice.detachedHead=false checkout v1.3",
        "git status",
    ]
    assert fake_processes.calls[0].cwd == str(tmp_path / "src")
    assert all(c.cwd == str(dest) for c in fake_processes.calls[1:])


def test_checkout_tag_reuses_existing_clone(tmp_path: Path, fake_processes) -> None:
    dest = tmp_path / "src" / "zlib"
    (dest / ".git").mkdir(parents=True)

    git.checkout_tag(dest, "https://example.invalid/zlib.git", "v1.3")

    assert not any("clone" in c for c in fake_processes.git_commands)


def test_checkout_tag_fetches_unknown_tag(tmp_path: Path, fake_processes) -> None:
    dest = tmp_path / "src" / "zlib"
    (dest / ".git").mkdir(parents=True)
    fake_processes.fail_on = "rev-parse --verify"

    git.checkout_tag(dest, "https://example.invalid/zlib.git", "v1.3.1")

    assert "git fetch --tags origin" in fake_processes.git_commands


def test_checkout_tag_refuses_directory_that_is_not_a_clone(tmp_path: Path, fake_processes) -> None:
    dest = tmp_path / "src" / "zlib"
    dest.mkdir(parents=True)
    (dest / "leftover.c").write_text("int x;\n", encoding="utf-8")

    with pytest.raises(git.GitError, match="not a git clone"):
        git.checkout_tag(dest, "https://example.invalid/zlib.git", "v1.3")

    assert fake_processes.calls == []
    assert (dest / "leftover.c").is_file()


def test_git_failure_raises_git_error(tmp_path: Path, fake_processes) -> None:
    fake_processes.fail_on = "checkout"

    with pytest.raises(git.GitError) as excinfo:
        git.checkout_tag(tmp_path / "zlib", "https://example.invalid/zlib.git", "v1.3")

    assert excinfo.value.returncode == 2
    assert "advice.detachedHead=false checkout v1.3" in excinfo.value.command
    assert "boom" in str(excinfo.value)


@requires_git
def test_checkout_is_deterministic_for_a_pinned_tag(tmp_path: Path) -> None:
    origin = _create_origin(tmp_path / "origin")
    dest = tmp_path / "src" / "zlib"

    git.checkout_tag(dest, str(origin), "v1")
    first = _snapshot(dest)
    first_head = git.head_sha(dest)

    # leave the checkout dirty the way a failed build would
    (dest / "zlib.h").write_text("patched\n", encoding="utf-8")
    (dest / "untracked.c").write_text("int x;\n", encoding="utf-8")
    (dest / "out").mkdir()
    (dest / "out" / "zlib.obj").write_bytes(b"\x00")

    git.checkout_tag(dest, str(origin), "v1")

    assert _snapshot(dest) == first
    assert git.head_sha(dest) == first_head
    assert first["zlib.h"] == b"version 1\n"


@requires_git
def test_checkout_switches_tags_and_fetches_new_ones(tmp_path: Path) -> None:
    origin = _create_origin(tmp_path / "origin")
    dest = tmp_path / "src" / "zlib"
    git.checkout_tag(dest, str(origin), "v1")

    git.checkout_tag(dest, str(origin), "v2")
    assert (dest / "zlib.h").read_text(encoding="utf-8") == "version 2\n"

    (origin / "zlib.h").write_text("version 3\n", encoding="utf-8")
    _run(["commit", "-q", "-am", "v3"], origin)
    _run(["tag", "v3"], origin)

    git.checkout_tag(dest, str(origin), "v3")
    assert (dest / "zlib.h").read_text(encoding="utf-8") == "version 3\n"
