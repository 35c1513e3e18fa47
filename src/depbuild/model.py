# model.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional, Tuple, Union

# Which pass an action belongs to. None means both passes.
Variant = Optional[Literal["debug", "release"]]


@dataclass(frozen=True)
class Step:
    """A single external command inside a recipe.

    `run` and `cwd` are templates, rendered against the recipe context
    (see `runner.RecipeContext`) right before execution.
    """
    name: str
    run: str
    cwd: str | None = None
    only: Variant = None


@dataclass(frozen=True)
class FileOp:
    """
    A filesystem action inside a recipe.

    kind:
      - "copy":      copy file `src` to `dest`
      - "copytree":  copy directory `src` into `dest`, merging
      - "rmtree":    remove directory `src`
    """
    kind: Literal["copy", "copytree", "rmtree"]
    src: str
    dest: str | None = None
    only: Variant = None


@dataclass(frozen=True)
class Patch:
    """Regex substitution applied to one source file after checkout."""
    path: str
    pattern: str
    replacement: str
    description: str = ""


Action = Union[Step, FileOp]


@dataclass(frozen=True)
class Recipe:
    """
    Declarative description of how one dependency is built.

    Phases run in this order:
      checkout -> patches -> setup -> configure -> build -> [test] -> install -> post_install

    `name` is the configuration key. `needs` names the recipes whose
    distribution directories this one reads.
    """
    name: str
    needs: Tuple[str, ...] = ()

    patches: Tuple[Patch, ...] = ()
    setup: Tuple[Action, ...] = ()
    configure: Tuple[Step, ...] = ()
    build: Tuple[Step, ...] = ()
    test: Tuple[Step, ...] = ()
    install: Tuple[Action, ...] = ()
    post_install: Tuple[FileOp, ...] = ()

    # out-of-source builds get build/<name> wiped before configure
    uses_build_dir: bool = True

    # free-form notes shown by `depbuild list`
    description: str = field(default="", compare=False)