"""Typed configuration loading for ``relpub.toml``.

Every value is optional; command-line options override whatever the file sets.

Example:
    [release]
    repo = "owner/widget"
    make_latest = true

    [upload]
    retry_attempts = 3
    retry_delay_seconds = 2.0
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_float, get_int, get_str, get_table

__all__ = [
    "CONFIG_FILE_NAME",
    "Config",
    "ConfigError",
    "ReleaseConfig",
    "UploadConfig",
    "load_config",
    "resolve_config",
]

CONFIG_FILE_NAME = "relpub.toml"

# Faithful baseline: a failed upload is reported, not retried.
DEFAULT_UPLOAD_RETRY_ATTEMPTS = 1
DEFAULT_UPLOAD_RETRY_DELAY_SECONDS = 2.0


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    """Where releases go and how assets are named.

    Attributes:
        repo: GitHub slug ``owner/name`` of the release store.
        name: Binary/repository name used in asset names (defaults to the
            name part of ``repo``).
        source: Clone URL or local path of the source tree.
        make_latest: Mark the release as the repository's latest.
    """

    repo: str | None = None
    name: str | None = None
    source: str | None = None
    make_latest: bool = True


@dataclass(frozen=True, slots=True)
class UploadConfig:
    retry_attempts: int = DEFAULT_UPLOAD_RETRY_ATTEMPTS
    retry_delay_seconds: float = DEFAULT_UPLOAD_RETRY_DELAY_SECONDS


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    release: ReleaseConfig = field(default_factory=ReleaseConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from parsed TOML.

        Raises:
            ValueError: A known key holds a value of the wrong type.
        """
        release: StrDict = _table(data, "release")
        upload: StrDict = _table(data, "upload")

        _expect(release, "repo", get_str, "a non-empty string")
        _expect(release, "name", get_str, "a non-empty string")
        _expect(release, "source", get_str, "a non-empty string")
        _expect(release, "make_latest", get_bool, "a boolean")
        _expect(upload, "retry_attempts", get_int, "an integer")
        _expect(upload, "retry_delay_seconds", get_float, "a number")

        attempts = get_int(upload, "retry_attempts")
        if attempts is not None and attempts < 1:
            raise ValueError("upload.retry_attempts must be >= 1")
        delay = get_float(upload, "retry_delay_seconds")
        if delay is not None and delay < 0:
            raise ValueError("upload.retry_delay_seconds must be >= 0")

        make_latest = get_bool(release, "make_latest")
        return cls(
            release=ReleaseConfig(
                repo=get_str(release, "repo"),
                name=get_str(release, "name"),
                source=get_str(release, "source"),
                make_latest=True if make_latest is None else make_latest,
            ),
            upload=UploadConfig(
                retry_attempts=attempts or DEFAULT_UPLOAD_RETRY_ATTEMPTS,
                retry_delay_seconds=(
                    DEFAULT_UPLOAD_RETRY_DELAY_SECONDS if delay is None else delay
                ),
            ),
        )


def _table(data: Mapping[str, object], key: str) -> StrDict:
    if key not in data:
        return {}
    table = get_table(data, key)
    if table is None:
        raise ValueError(f"[{key}] must be a table")
    return table


def _expect(
    table: StrDict,
    key: str,
    getter: Callable[[StrDict, str], object | None],
    what: str,
) -> None:
    if key not in table:
        return
    if getter(table, key) is None:
        raise ValueError(f"{key} must be {what}")


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to relpub.toml

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


def resolve_config(explicit: Path | None, *, cwd: Path) -> Result[Config, ConfigError]:
    """Load ``explicit`` if given, else ``cwd/relpub.toml`` if present, else defaults."""
    if explicit is not None:
        return load_config(explicit)

    candidate = cwd / CONFIG_FILE_NAME
    if candidate.is_file():
        return load_config(candidate)
    return Ok(Config())
