# cli.py
from __future__ import annotations

import sys
from pathlib import Path
from typing import Tuple

import click

from depbuild.config import CONFIG_ENV_VAR, BuildConfig, ConfigError, find_config_file, load_config
from depbuild.dag import validate_order
from depbuild.recipes import RECIPES
from depbuild.runner import PASSES, Layout, plan_recipe, run_all
from depbuild.ui.console import Console, get_console, set_console


def _passes(pass_name: str) -> list[str]:
    if pass_name == "all":
        return list(PASSES)
    return [pass_name]


def _load(root: str, config_path: str | None, deps: Tuple[str, ...]) -> Tuple[BuildConfig, Path]:
    """
    Load the configuration, restricted to `deps` when given.

    Exits with status 1 on configuration errors.
    """
    console = get_console()
    try:
        path = find_config_file(root, config_path)
        config = load_config(root, path)
        if deps:
            config = config.select(deps)
    except ConfigError as e:
        console.print_error(
            "Configuration error",
            str(e),
            suggestion=(
                "Create config.json next to config-default.json, or pass one explicitly:\n"
                "  depbuild build --config my-config.json"
            ),
        )
        sys.exit(1)
    return config, path


def selection_options(f):
    """Options shared by `build` and `plan`."""
    f = click.option(
        "--pass",
        "pass_name",
        type=click.Choice(["all", *PASSES]),
        default="all",
        show_default=True,
        help="Which pass(es) to run",
    )(f)
    f = click.option(
        "--dep",
        "deps",
        multiple=True,
        help="Only build this dependency (repeatable)",
    )(f)
    f = click.option(
        "--config",
        "config_path",
        default=None,
        envvar=CONFIG_ENV_VAR,
        help="Configuration file (defaults to config.json, then config-default.json under --root)",
    )(f)
    f = click.option(
        "--root",
        default=".",
        show_default=True,
        type=click.Path(file_okay=False),
        help="Workspace root holding src/, build/, dist/ and out/",
    )(f)
    return f


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """depbuild: build pinned native dependencies into release and debug trees."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@selection_options
@click.option("--quiet", is_flag=True, default=False, help="Capture tool output; show it only when a command fails")
@click.pass_context
def build(ctx, root, config_path, deps, pass_name, quiet):
    """Check out, build and install every enabled dependency."""
    console = get_console()
    config, path = _load(root, config_path, deps)
    layout = Layout.at(root)
    passes = _passes(pass_name)

    try:
        console.print_run_started(
            root=str(layout.root),
            config=str(path),
            passes=passes,
            recipe_count=sum(1 for r in RECIPES if config.is_enabled(r.name)),
        )

        results = run_all(RECIPES, config, layout, passes=passes, capture=quiet)

        console.print_results({r.variant: r.results for r in results})

        if any(not r.ok for r in results):
            sys.exit(1)

    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)


@cli.command()
@selection_options
@click.pass_context
def plan(ctx, root, config_path, deps, pass_name):
    """Print every command and file operation a build would perform."""
    console = get_console()
    config, path = _load(root, config_path, deps)
    layout = Layout.at(root)

    try:
        validate_order(RECIPES)
        for variant in _passes(pass_name):
            pass_config = config.for_pass(variant == "debug")
            console.print_header(f"PASS: {variant}")
            for recipe in RECIPES:
                lines = plan_recipe(recipe, pass_config, layout)
                if not lines:
                    continue
                console.print_info(f"\n{recipe.name}:")
                for line in lines:
                    console.print_info(f"  {line}")
            console.print_info(f"\n  [file] move {layout.dist_root} -> {layout.out_root / variant}")
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)


@cli.command(name="list")
@click.option("--root", default=".", show_default=True, type=click.Path(file_okay=False))
@click.option("--config", "config_path", default=None, envvar=CONFIG_ENV_VAR)
@click.pass_context
def list_recipes(ctx, root, config_path):
    """List known dependencies and how the configuration treats them."""
    console = get_console()
    config, path = _load(root, config_path, ())

    console.print_header(f"Dependencies ({path})")
    for recipe in RECIPES:
        cf = config.deps.get(recipe.name)
        if cf is None:
            console.print_info(f"  {recipe.name}: not configured")
            continue
        state = "build" if cf.build else "skip"
        tag = cf.git.tag if cf.git else "-"
        variants = "/".join(
            "debug" if config.for_pass(p == "debug").debug_enabled(recipe.name) else "release"
            for p in PASSES
        )
        tests = ", tests" if cf.test else ""
        console.print_info(
            f"  {recipe.name}: {state}, dir={cf.dirname or '-'}, tag={tag}, "
            f"variants={variants}{tests}"
        )
        if recipe.description:
            console.print_debug(f"    {recipe.description}")

    known = {r.name for r in RECIPES}
    for name in sorted(set(config.deps) - known):
        console.print_warning(f"configuration entry '{name}' has no recipe and is ignored")


if __name__ == "__main__":
    cli()
