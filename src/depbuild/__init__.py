from .config import BuildConfig, ConfigError, DependencyConfig, load_config
from .dsl import cmake_recipe, copy, copytree, patch, recipe, sh
from .model import FileOp, Patch, Recipe, Step
from .recipes import RECIPES
from .runner import BuildError, Layout, run_all, run_pass, run_recipe

__all__ = [
    "BuildConfig",
    "ConfigError",
    "DependencyConfig",
    "load_config",
    "cmake_recipe",
    "copy",
    "copytree",
    "patch",
    "recipe",
    "sh",
    "FileOp",
    "Patch",
    "Recipe",
    "Step",
    "RECIPES",
    "BuildError",
    "Layout",
    "run_all",
    "run_pass",
    "run_recipe",
]
