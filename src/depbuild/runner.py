# runner.py
from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence

from .config import BuildConfig, ConfigError, DependencyConfig
from .dag import disabled_needs, validate_order
from .fsutil import (
    PatchError,
    apply_patch,
    copy_file,
    copy_tree,
    ensure_dir_empty,
    relocate,
    remove_tree,
)
from .git_facts import git
from .model import Action, FileOp, Recipe, Step, Variant
from .ui.console import get_console

PASSES = ("release", "debug")

# keep this much of a captured command's output on failure
OUTPUT_TAIL = 4000


# ----------------------------------------------------------------------
# Errors
# ----------------------------------------------------------------------

@dataclass
class BuildError(Exception):
    """
    Structured build error with enough context for:
      - clean CLI output
      - telling which recipe and which command broke the run
    """
    kind: str            # git | command | patch | filesystem | config
    recipe: str
    step: str | None
    message: str
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        lines = [f"{self.kind}: {self.message}", f"recipe={self.recipe}"]
        if self.step:
            lines.append(f"step={self.step}")
        for k, v in self.details.items():
            lines.append(f"{k}={v}")
        return "\n".join(lines)


@dataclass
class StepFailure(Exception):
    recipe: str
    step: str
    cmd: str
    exit_code: int
    output: str = ""

    def __str__(self) -> str:
        return f"[{self.recipe}] step '{self.step}' failed (exit={self.exit_code}): {self.cmd}"


# ----------------------------------------------------------------------
# Layout and per-recipe context
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class Layout:
    """Directory layout of one workspace: src/, build/, dist/, out/."""
    root: Path

    @classmethod
    def at(cls, root: str | Path) -> "Layout":
        return cls(Path(root).resolve())

    @property
    def src_root(self) -> Path:
        return self.root / "src"

    @property
    def build_root(self) -> Path:
        return self.root / "build"

    @property
    def dist_root(self) -> Path:
        return self.root / "dist"

    @property
    def out_root(self) -> Path:
        return self.root / "out"

    def src_dir(self, name: str) -> Path:
        return self.src_root / name

    def build_dir(self, name: str) -> Path:
        return self.build_root / name

    def dist_dir(self, dirname: str) -> Path:
        return self.dist_root / dirname


class DistDirs(Mapping):
    """`{deps[<name>]}` lookups: another dependency's distribution directory."""

    def __init__(self, config: BuildConfig, layout: Layout):
        self._config = config
        self._layout = layout

    def __getitem__(self, name: str) -> str:
        cf = self._config.deps.get(name)
        if cf is None or not cf.dirname:
            raise ConfigError(f"Dependency '{name}' has no 'dirname' configured")
        return str(self._layout.dist_dir(cf.dirname))

    def __iter__(self) -> Iterator[str]:
        return (n for n, cf in self._config.deps.items() if cf.dirname)

    def __len__(self) -> int:
        return sum(1 for _ in self)


@dataclass(frozen=True)
class RecipeContext:
    name: str
    src: Path
    build: Path
    dist: Path
    debug: bool
    deps: DistDirs

    @property
    def variant(self) -> str:
        return "debug" if self.debug else "release"

    @property
    def cmake_config(self) -> str:
        return "Debug" if self.debug else "RelWithDebInfo"

    @property
    def msbuild_config(self) -> str:
        return "Debug" if self.debug else "Release"

    def values(self) -> Dict[str, object]:
        return {
            "src": str(self.src),
            "build": str(self.build),
            "dist": str(self.dist),
            "dist_posix": str(self.dist).replace("\\", "/"),
            "cmake_config": self.cmake_config,
            "msbuild_config": self.msbuild_config,
            "d": "d" if self.debug else "",
            "deps": self.deps,
        }

    def render(self, template: str) -> str:
        return template.format(**self.values())

    def applies(self, only: Variant) -> bool:
        return only is None or only == self.variant


def make_context(recipe: Recipe, cf: DependencyConfig, config: BuildConfig, layout: Layout) -> RecipeContext:
    return RecipeContext(
        name=recipe.name,
        src=layout.src_dir(recipe.name),
        build=layout.build_dir(recipe.name),
        dist=layout.dist_dir(cf.dirname or recipe.name),
        debug=config.debug_enabled(recipe.name),
        deps=DistDirs(config, layout),
    )


# ----------------------------------------------------------------------
# Execution primitives
# ----------------------------------------------------------------------

def _run_step(recipe: Recipe, step: Step, ctx: RecipeContext, *, capture: bool = False) -> None:
    console = get_console()
    cmd = ctx.render(step.run)
    cwd = Path(ctx.render(step.cwd)) if step.cwd else ctx.src
    if not cwd.exists():
        raise FileNotFoundError(f"[{recipe.name}] step '{step.name}' cwd not found: {cwd}")

    console.print_command(cmd, cwd=str(cwd))
    proc = subprocess.run(
        cmd,
        shell=True,
        cwd=str(cwd),
        env=os.environ.copy(),
        text=True,
        capture_output=capture,
    )

    if proc.returncode != 0:
        output = ""
        if capture:
            output = ((proc.stdout or "") + (proc.stderr or ""))[-OUTPUT_TAIL:]
        raise StepFailure(
            recipe=recipe.name,
            step=step.name,
            cmd=cmd,
            exit_code=proc.returncode,
            output=output,
        )


def _run_file_op(op: FileOp, ctx: RecipeContext) -> None:
    console = get_console()
    src = ctx.render(op.src)
    dest = ctx.render(op.dest) if op.dest else None

    if op.kind == "copy":
        console.print_file_op(f"copy {src} -> {dest}")
        copy_file(src, dest)
    elif op.kind == "copytree":
        console.print_file_op(f"copy tree {src} -> {dest}")
        copy_tree(src, dest)
    elif op.kind == "rmtree":
        console.print_file_op(f"remove {src}")
        remove_tree(src)
    else:
        raise ValueError(f"Unknown file operation: {op.kind}")


def _run_action(recipe: Recipe, action: Action, ctx: RecipeContext, *, capture: bool) -> None:
    if not ctx.applies(action.only):
        return
    if isinstance(action, Step):
        get_console().print_step(action.name)
        _run_step(recipe, action, ctx, capture=capture)
    else:
        _run_file_op(action, ctx)


def _checkout(recipe: Recipe, cf: DependencyConfig, ctx: RecipeContext) -> None:
    console = get_console()
    console.print_step("checkout")
    console.print_info(f"Checking out [{cf.git.url}] tag [{cf.git.tag}] into [{ctx.src}]")
    status = git.checkout_tag(ctx.src, cf.git.url, cf.git.tag)
    console.print_debug(status)
    console.print_info(f"HEAD is now {git.head_sha(ctx.src)}")


def _apply_patches(recipe: Recipe, ctx: RecipeContext) -> None:
    console = get_console()
    for p in recipe.patches:
        path = ctx.render(p.path)
        console.print_file_op(f"patch {path}" + (f" ({p.description})" if p.description else ""))
        apply_patch(path, p.pattern, p.replacement)


# ----------------------------------------------------------------------
# Recipe execution
# ----------------------------------------------------------------------

def run_recipe(recipe: Recipe, config: BuildConfig, layout: Layout, *, capture: bool = False) -> str:
    """
    Run one recipe end to end.

    Returns:
      - "skipped(disabled)"  (build flag false: nothing touched, nothing spawned)
      - "ok"
    Raises BuildError on any failure.
    """
    console = get_console()
    if not config.is_enabled(recipe.name):
        console.print_recipe_skipped(recipe.name, "disabled")
        return "skipped(disabled)"

    cf = config.dep(recipe.name)
    phase = "setup"
    try:
        ctx = make_context(recipe, cf, config, layout)
        console.print_recipe_start(recipe.name, ctx.variant)

        phase = "checkout"
        _checkout(recipe, cf, ctx)

        phase = "patch"
        _apply_patches(recipe, ctx)

        phase = "setup"
        for action in recipe.setup:
            _run_action(recipe, action, ctx, capture=capture)

        phase = "configure"
        if recipe.uses_build_dir:
            ensure_dir_empty(ctx.build)
        for step in recipe.configure:
            _run_action(recipe, step, ctx, capture=capture)

        phase = "build"
        for step in recipe.build:
            _run_action(recipe, step, ctx, capture=capture)

        phase = "test"
        if cf.test:
            if not recipe.test:
                console.print_warning(f"[{recipe.name}] test requested but this recipe has no test steps")
            for step in recipe.test:
                _run_action(recipe, step, ctx, capture=capture)

        phase = "install"
        ensure_dir_empty(ctx.dist)
        for action in recipe.install:
            _run_action(recipe, action, ctx, capture=capture)

        phase = "post-install"
        for op in recipe.post_install:
            _run_action(recipe, op, ctx, capture=capture)

    except StepFailure as e:
        details = {"cmd": e.cmd, "exit_code": e.exit_code}
        if e.output:
            details["output"] = e.output
        raise BuildError("command", recipe.name, e.step, f"command failed during {phase}", details) from e
    except git.GitError as e:
        raise BuildError("git", recipe.name, phase, str(e), {"cmd": e.command}) from e
    except PatchError as e:
        raise BuildError("patch", recipe.name, phase, str(e)) from e
    except ConfigError as e:
        raise BuildError("config", recipe.name, phase, str(e)) from e
    except OSError as e:
        raise BuildError("filesystem", recipe.name, phase, str(e)) from e

    console.print_success(recipe.name, str(ctx.dist))
    return "ok"


# ----------------------------------------------------------------------
# Passes
# ----------------------------------------------------------------------

@dataclass
class PassResult:
    variant: str
    results: Dict[str, str] = field(default_factory=dict)
    error: Optional[BuildError] = None
    output_dir: Optional[Path] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_pass(
    recipes: Sequence[Recipe],
    config: BuildConfig,
    layout: Layout,
    *,
    capture: bool = False,
) -> PassResult:
    """Run every recipe in table order; stop at the first failure."""
    console = get_console()
    variant = "debug" if config.debug else "release"
    result = PassResult(variant=variant)

    console.print_pass_started(variant, str(layout.root), len([r for r in recipes if config.is_enabled(r.name)]))
    ensure_dir_empty(layout.dist_root)

    for recipe in recipes:
        try:
            result.results[recipe.name] = run_recipe(recipe, config, layout, capture=capture)
        except BuildError as e:
            result.results[recipe.name] = "failed"
            result.error = e
            console.print_build_error(e)
            break

    return result


def run_all(
    recipes: Sequence[Recipe],
    config: BuildConfig,
    layout: Layout,
    *,
    passes: Sequence[str] = PASSES,
    capture: bool = False,
) -> List[PassResult]:
    """
    Top-level driver: one pass per variant, each relocated to out/<variant>.

    The release and debug configurations are derived from `config` up front;
    `config` itself is never modified.
    """
    console = get_console()
    validate_order(recipes)
    for name, missing in disabled_needs(recipes, config).items():
        console.print_warning(f"{name} needs {', '.join(missing)}, which is not built in this run")

    derived = {variant: config.for_pass(variant == "debug") for variant in passes}

    # trees of passes not selected in this run are left alone
    layout.out_root.mkdir(parents=True, exist_ok=True)
    for variant in passes:
        target = layout.out_root / variant
        if target.exists():
            remove_tree(target)

    results: List[PassResult] = []
    for variant in passes:
        res = run_pass(recipes, derived[variant], layout, capture=capture)
        results.append(res)
        if not res.ok:
            break
        res.output_dir = relocate(layout.dist_root, layout.out_root / variant)
        console.print_info(f"\n{variant} tree: {res.output_dir}")

    return results


# ----------------------------------------------------------------------
# Plan (dry run)
# ----------------------------------------------------------------------

def _describe(action: Action, ctx: RecipeContext) -> str:
    if isinstance(action, Step):
        cwd = ctx.render(action.cwd) if action.cwd else str(ctx.src)
        return f"[{action.name}] {ctx.render(action.run)}  (in {cwd})"
    src = ctx.render(action.src)
    if action.kind == "rmtree":
        return f"[file] remove {src}"
    return f"[file] {action.kind} {src} -> {ctx.render(action.dest)}"


def plan_recipe(recipe: Recipe, config: BuildConfig, layout: Layout) -> List[str]:
    """Render everything run_recipe would do, without doing it."""
    if not config.is_enabled(recipe.name):
        return []
    cf = config.dep(recipe.name)
    ctx = make_context(recipe, cf, config, layout)

    lines = [f"[checkout] {cf.git.url} @ {cf.git.tag} -> {ctx.src}"]
    lines.extend(f"[patch] {ctx.render(p.path)}" for p in recipe.patches)
    lines.extend(_describe(a, ctx) for a in recipe.setup if ctx.applies(a.only))
    if recipe.uses_build_dir:
        lines.append(f"[file] reset {ctx.build}")
    lines.extend(_describe(a, ctx) for a in recipe.configure if ctx.applies(a.only))
    lines.extend(_describe(a, ctx) for a in recipe.build if ctx.applies(a.only))
    if cf.test:
        lines.extend(_describe(a, ctx) for a in recipe.test if ctx.applies(a.only))
    lines.append(f"[file] reset {ctx.dist}")
    lines.extend(_describe(a, ctx) for a in recipe.install if ctx.applies(a.only))
    lines.extend(_describe(a, ctx) for a in recipe.post_install if ctx.applies(a.only))
    return lines
