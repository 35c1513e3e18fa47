# config.py
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

CONFIG_FILE = "config.json"
DEFAULT_CONFIG_FILE = "config-default.json"
CONFIG_ENV_VAR = "DEPBUILD_CONFIG"


class ConfigError(Exception):
    """Raised when the configuration cannot be located, parsed or validated."""


# -------------------- Schemas --------------------

class GitSource(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    tag: str


class DependencyConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    build: bool = False
    dirname: Optional[str] = None
    debug: Optional[bool] = None
    test: bool = False
    git: Optional[GitSource] = None

    @model_validator(mode="after")
    def _enabled_needs_source(self) -> "DependencyConfig":
        # disabled entries may be stubs like {"build": false}
        if self.build:
            if not self.dirname:
                raise ValueError("'dirname' is required when 'build' is true")
            if self.git is None:
                raise ValueError("'git' is required when 'build' is true")
        return self


class BuildConfig(BaseModel):
    """
    Whole-run configuration.

    On disk the dependencies sit next to the global `debug` flag:

        {"debug": false, "zlib": {"build": true, "dirname": "zlib", "git": {...}}, ...}
    """
    model_config = ConfigDict(frozen=True)

    debug: bool = False
    deps: Dict[str, DependencyConfig] = Field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: dict) -> "BuildConfig":
        if not isinstance(data, dict):
            raise ConfigError("Configuration root must be a JSON object")
        deps = {k: v for k, v in data.items() if k != "debug"}
        try:
            return cls(debug=data.get("debug", False), deps=deps)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration:\n{e}") from e

    def dep(self, name: str) -> DependencyConfig:
        try:
            return self.deps[name]
        except KeyError:
            raise ConfigError(f"No configuration entry for dependency '{name}'") from None

    def is_enabled(self, name: str) -> bool:
        cf = self.deps.get(name)
        return bool(cf and cf.build)

    def debug_enabled(self, name: str) -> bool:
        """Per-dependency `debug` wins over the global default."""
        cf = self.deps.get(name)
        if cf is not None and cf.debug is not None:
            return cf.debug
        return self.debug

    def for_pass(self, debug: bool) -> "BuildConfig":
        return self.model_copy(update={"debug": debug})

    def select(self, names: Iterable[str]) -> "BuildConfig":
        """Derive a configuration that builds only `names`."""
        wanted = list(names)
        unknown = sorted(n for n in wanted if n not in self.deps)
        if unknown:
            raise ConfigError(
                f"Unknown dependencies: {', '.join(unknown)}. "
                f"Known: {', '.join(sorted(self.deps))}"
            )
        deps = {
            name: cf if name in wanted else cf.model_copy(update={"build": False})
            for name, cf in self.deps.items()
        }
        for name in wanted:
            if not deps[name].build:
                raise ConfigError(f"Dependency '{name}' is disabled in the configuration")
        return self.model_copy(update={"deps": deps})


# -------------------- Loading --------------------

def find_config_file(root: str | Path, explicit: str | Path | None = None) -> Path:
    """
    Resolve which configuration file to read.

    Order: explicit path (or $DEPBUILD_CONFIG), <root>/config.json,
    <root>/config-default.json.
    """
    if explicit is None:
        explicit = os.environ.get(CONFIG_ENV_VAR) or None
    if explicit is not None:
        path = Path(explicit).expanduser()
        if not path.is_file():
            raise ConfigError(f"Configuration file not found: {path}")
        return path

    root_p = Path(root)
    override = root_p / CONFIG_FILE
    if override.is_file():
        return override
    default = root_p / DEFAULT_CONFIG_FILE
    if default.is_file():
        return default
    raise ConfigError(
        f"No configuration found in {root_p.resolve()} "
        f"(looked for {CONFIG_FILE} and {DEFAULT_CONFIG_FILE})"
    )


def load_config(root: str | Path = ".", explicit: str | Path | None = None) -> BuildConfig:
    path = find_config_file(root, explicit)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigError(f"Could not parse {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Could not read {path}: {e}") from e
    return BuildConfig.from_mapping(data)
