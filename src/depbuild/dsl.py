# src/depbuild/dsl.py
from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from .model import Action, FileOp, Patch, Recipe, Step, Variant

# Templates are rendered with str.format against the recipe context:
#   {src} {build} {dist} {dist_posix} {cmake_config} {msbuild_config} {d} {deps[<name>]}


# ---------------------------------------------------------------------
# Step helpers
# ---------------------------------------------------------------------

def sh(name: str, cmd: str, *, cwd: str | None = None, only: Variant = None) -> Step:
    """Create a shell step."""
    return Step(name=name, run=cmd, cwd=cwd, only=only)


def copy(src: str, dest: str, *, only: Variant = None) -> FileOp:
    return FileOp(kind="copy", src=src, dest=dest, only=only)


def copytree(src: str, dest: str, *, only: Variant = None) -> FileOp:
    return FileOp(kind="copytree", src=src, dest=dest, only=only)


def rmtree(path: str, *, only: Variant = None) -> FileOp:
    return FileOp(kind="rmtree", src=path, only=only)


def patch(path: str, pattern: str, replacement: str, description: str = "") -> Patch:
    return Patch(path=path, pattern=pattern, replacement=replacement, description=description)


# ---------------------------------------------------------------------
# CMake / MSBuild sugar
# ---------------------------------------------------------------------

def cmake_configure(
    lists_dir: str = "{src}",
    *flags: str,
    build_type: bool = False,
    prefix: bool = True,
    generator: Optional[str] = None,
) -> Step:
    """
    `cmake <lists_dir> [-G gen] [-DCMAKE_BUILD_TYPE=..] [-DCMAKE_INSTALL_PREFIX=..] flags...`

    Multi-config generators (Visual Studio) ignore CMAKE_BUILD_TYPE, so it is
    only passed where a recipe asks for it.
    """
    parts = [f"cmake {lists_dir}"]
    if generator:
        parts.append(f'-G "{generator}"')
    if build_type:
        parts.append("-DCMAKE_BUILD_TYPE={cmake_config}")
    if prefix:
        parts.append("-DCMAKE_INSTALL_PREFIX={dist}")
    parts.extend(flags)
    return sh("configure", " ".join(parts), cwd="{build}")


def cmake_build() -> Step:
    return sh("build", "cmake --build . --config {cmake_config}", cwd="{build}")


def cmake_install() -> Step:
    return sh("install", "cmake --build . --config {cmake_config} --target install", cwd="{build}")


def ctest() -> Step:
    return sh("test", "ctest", cwd="{build}")


def msbuild(project: str, *props: str) -> Step:
    parts = [f"msbuild {project}", "/p:Configuration={msbuild_config}", "/p:Platform=x64"]
    parts.extend(props)
    return sh("build", " ".join(parts), cwd="{src}")


# ---------------------------------------------------------------------
# Recipe helpers
# ---------------------------------------------------------------------

def recipe(
    name: str,
    *,
    needs: Optional[Sequence[str]] = None,
    patches: Optional[Iterable[Patch]] = None,
    setup: Optional[Iterable[Action]] = None,
    configure: Optional[Iterable[Step]] = None,
    build: Optional[Iterable[Step]] = None,
    test: Optional[Iterable[Step]] = None,
    install: Optional[Iterable[Action]] = None,
    post_install: Optional[Iterable[FileOp]] = None,
    uses_build_dir: bool = True,
    description: str = "",
) -> Recipe:
    build_steps = tuple(build or ())
    install_actions = tuple(install or ())
    if not build_steps and not install_actions:
        raise ValueError(f"recipe({name!r}) must have at least one build or install action")

    return Recipe(
        name=name,
        needs=tuple(needs or ()),
        patches=tuple(patches or ()),
        setup=tuple(setup or ()),
        configure=tuple(configure or ()),
        build=build_steps,
        test=tuple(test or ()),
        install=install_actions,
        post_install=tuple(post_install or ()),
        uses_build_dir=uses_build_dir,
        description=description,
    )


def cmake_recipe(
    name: str,
    *flags: str,
    lists_dir: str = "{src}",
    build_type: bool = False,
    tested: bool = False,
    **kwargs,
) -> Recipe:
    """The common configure / build / [ctest] / install shape."""
    return recipe(
        name,
        configure=[cmake_configure(lists_dir, *flags, build_type=build_type)],
        build=[cmake_build()],
        test=[ctest()] if tested else None,
        install=[cmake_install()],
        **kwargs,
    )


def table(*recipes: Recipe) -> List[Recipe]:
    """
    Recipe table helper. Order is build order: a recipe must come after
    every recipe it `needs` (checked by dag.validate_order).
    """
    return list(recipes)
