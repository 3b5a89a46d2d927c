"""Typed configuration loading.

Release defaults live in an optional ``relctl.toml`` at the repository root::

    [release]
    image = "ghcr.io/org/app"
    manifest = "config/manager/manager.yaml"
    major_branch = true
    minor_branch = true

Unset keys stay ``None`` so the CLI can tell "not configured" apart from an
explicit value when layering flags over the file.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_str, get_table

__all__ = [
    "CONFIG_FILENAME",
    "Config",
    "ConfigError",
    "ReleaseConfig",
    "config_path_for",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILENAME = "relctl.toml"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """The ``[release]`` table."""

    image: str | None = None
    manifest: str | None = None
    major_branch: bool | None = None
    minor_branch: bool | None = None
    allow_default_version: bool | None = None
    default_version: str | None = None
    target: str | None = None


@dataclass(frozen=True, slots=True)
class Config:
    release: ReleaseConfig = field(default_factory=ReleaseConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a parsed TOML mapping."""
        release: StrDict = get_table(data, "release") or {}

        for key in ("major_branch", "minor_branch", "allow_default_version"):
            if key in release and get_bool(release, key) is None:
                raise TypeError(f"release.{key} must be a boolean")

        return cls(
            release=ReleaseConfig(
                image=get_str(release, "image"),
                manifest=get_str(release, "manifest"),
                major_branch=get_bool(release, "major_branch"),
                minor_branch=get_bool(release, "minor_branch"),
                allow_default_version=get_bool(release, "allow_default_version"),
                default_version=get_str(release, "default_version"),
                target=get_str(release, "target"),
            )
        )


def config_path_for(repo_root: Path) -> Path:
    return repo_root / CONFIG_FILENAME


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to relctl.toml

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path) -> Result[Config, ConfigError]:
    """Like load_config, but a missing file yields the default config.

    A file that exists but does not parse is still an error.
    """
    if not path.exists():
        return Ok(Config())
    return load_config(path)
