from pathlib import Path

import pytest

from depbuild.config import (
    CONFIG_ENV_VAR,
    BuildConfig,
    ConfigError,
    find_config_file,
    load_config,
)

from conftest import dep


def test_falls_back_to_default_config(tmp_path: Path, write_config) -> None:
    write_config({"debug": True, "zlib": dep("zlib")}, name="config-default.json")

    config = load_config(tmp_path)

    assert config.debug is True
    assert config.is_enabled("zlib")


def test_override_file_wins_over_default(tmp_path: Path, write_config) -> None:
    write_config({"zlib": dep("zlib")}, name="config-default.json")
    write_config({"zlib": dep("zlib", build=False)}, name="config.json")

    assert find_config_file(tmp_path) == tmp_path / "config.json"
    assert not load_config(tmp_path).is_enabled("zlib")


def test_explicit_path_and_env_var(tmp_path: Path, write_config, monkeypatch: pytest.MonkeyPatch) -> None:
    write_config({"zlib": dep("zlib")}, name="config.json")
    custom = write_config({"lz4": dep("lz4")}, name="custom.json")

    assert load_config(tmp_path, custom).is_enabled("lz4")

    monkeypatch.setenv(CONFIG_ENV_VAR, str(custom))
    assert find_config_file(tmp_path) == custom


def test_explicit_path_must_exist(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        find_config_file(tmp_path, tmp_path / "nope.json")


def test_missing_config_is_fatal(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="No configuration found"):
        load_config(tmp_path)


def test_unparseable_config_is_fatal(tmp_path: Path) -> None:
    (tmp_path / "config.json").write_text("{not json", encoding="utf-8")

    with pytest.raises(ConfigError, match="Could not parse"):
        load_config(tmp_path)


def test_enabled_dependency_requires_git_and_dirname() -> None:
    with pytest.raises(ConfigError, match="git"):
        BuildConfig.from_mapping({"zlib": {"build": True, "dirname": "zlib"}})
    with pytest.raises(ConfigError, match="dirname"):
        BuildConfig.from_mapping({"zlib": {"build": True, "git": {"url": "u", "tag": "t"}}})


def test_disabled_dependency_may_be_a_stub() -> None:
    config = BuildConfig.from_mapping({"zlib": {"build": False}})

    assert not config.is_enabled("zlib")
    assert not config.is_enabled("never-mentioned")


def test_dependency_debug_override_beats_global_default() -> None:
    config = BuildConfig.from_mapping(
        {
            "debug": True,
            "zlib": dep("zlib", debug=False),
            "lz4": dep("lz4"),
        }
    )

    assert config.debug_enabled("zlib") is False
    assert config.debug_enabled("lz4") is True


def test_for_pass_derives_without_mutating() -> None:
    base = BuildConfig.from_mapping({"debug": False, "zlib": dep("zlib")})

    debug = base.for_pass(True)

    assert debug.debug is True
    assert base.debug is False
    assert debug.deps == base.deps


def test_config_is_frozen() -> None:
    config = BuildConfig.from_mapping({"zlib": dep("zlib")})

    with pytest.raises(Exception):
        config.debug = True  # type: ignore[misc]


def test_select_builds_only_named() -> None:
    config = BuildConfig.from_mapping({"zlib": dep("zlib"), "lz4": dep("lz4"), "zstd": dep("zstd")})

    selected = config.select(["lz4"])

    assert [n for n in selected.deps if selected.is_enabled(n)] == ["lz4"]
    assert config.is_enabled("zlib")


def test_select_rejects_unknown_and_disabled() -> None:
    config = BuildConfig.from_mapping({"zlib": dep("zlib"), "lz4": {"build": False}})

    with pytest.raises(ConfigError, match="Unknown"):
        config.select(["zlbi"])
    with pytest.raises(ConfigError, match="disabled"):
        config.select(["lz4"])


def test_non_utf8_config_is_a_config_error(tmp_path: Path) -> None:
    (tmp_path / "config.json").write_bytes(b'{"zlib": {"build": false, "dirname": "caf\xe9"}}')

    with pytest.raises(ConfigError, match="Could not parse"):
        load_config(tmp_path)
