"""On-disk configuration: where it lives, how it is written, which profile is active.

Layout (Linux and the BSDs follow XDG; everything else uses ``~/.oauth2flow``)::

    <config_dir>/config.json            GlobalConfig
    <config_dir>/profiles/<name>.json   one Profile per authorization server
    <data_dir>/credential.json          written by CredentialStore
    <data_dir>/logs/                    crash logs

Every write goes through :func:`atomic_write`, so a reader sees either the
old file or the new one. Errors in what was read are reported as
:class:`~oauth2flow.exceptions.ConfigError`.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Callable, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from oauth2flow.exceptions import ConfigError
from oauth2flow.models import GlobalConfig, Profile

APP_DIR_NAME = "oauth2flow"
PROFILE_ENV_VAR = "OAUTH2FLOW_PROFILE"

_ModelT = TypeVar("_ModelT", bound=BaseModel)


# --- directories ---


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(xdg_var: str, xdg_default: Path, fallback: Path) -> Path:
    if _is_xdg_platform():
        root = Path(os.environ.get(xdg_var) or xdg_default)
        path = root / APP_DIR_NAME
    else:
        path = fallback
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """``$XDG_CONFIG_HOME/oauth2flow`` or ``~/.oauth2flow``; created on first use."""
    home = Path.home()
    return _app_dir("XDG_CONFIG_HOME", home / ".config", home / f".{APP_DIR_NAME}")


def get_data_dir() -> Path:
    """``$XDG_DATA_HOME/oauth2flow`` or ``~/.oauth2flow/data``; created on first use."""
    home = Path.home()
    return _app_dir(
        "XDG_DATA_HOME", home / ".local" / "share", home / f".{APP_DIR_NAME}" / "data"
    )


def get_profiles_dir() -> Path:
    path = get_config_dir() / "profiles"
    path.mkdir(exist_ok=True)
    return path


# --- writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Replace *path* with *data* in one rename.

    The content is staged in a sibling temp file, fsynced, then moved over
    *path* with :func:`os.replace`. *mode*, when given, is set on the temp
    file before anything is written to it. A failed write leaves *path*
    untouched and removes the temp file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    handle, staged = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(handle, "w", encoding="utf-8") as stream:
            if mode is not None:
                os.chmod(staged, mode)
            stream.write(data)
            stream.flush()
            os.fsync(stream.fileno())
        os.replace(staged, path)
    except BaseException:
        Path(staged).unlink(missing_ok=True)
        raise


def _dump(model: BaseModel) -> str:
    return json.dumps(model.model_dump(mode="json"), indent=2) + "\n"


def _read_model(path: Path, model: type[_ModelT], label: str) -> _ModelT:
    try:
        return model.model_validate_json(path.read_bytes())
    except ValidationError as exc:
        raise ConfigError(f"Invalid {label} at {path}: {exc}") from exc


# --- global config ---


def _global_config_path() -> Path:
    return get_config_dir() / "config.json"


def load_global_config() -> GlobalConfig:
    """Read ``config.json``; a missing file yields the defaults."""
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    return _read_model(path, GlobalConfig, "global config")


def save_global_config(config: GlobalConfig) -> None:
    atomic_write(_global_config_path(), _dump(config))


# --- profiles ---


def _profile_path(name: str) -> Path:
    return get_profiles_dir() / f"{name}.json"


def _existing_profile_path(name: str) -> Path:
    path = _profile_path(name)
    if not path.is_file():
        raise ConfigError(f"Profile '{name}' not found at {path}")
    return path


def list_profiles() -> list[str]:
    return sorted(p.stem for p in get_profiles_dir().glob("*.json") if p.is_file())


def profile_exists(name: str) -> bool:
    return _profile_path(name).is_file()


def load_profile(name: str) -> Profile:
    """Read ``profiles/<name>.json``.

    Raises:
        ConfigError: The file is missing, is not JSON, or does not describe
            a valid profile.
    """
    return _read_model(_existing_profile_path(name), Profile, f"profile '{name}'")


def save_profile(profile: Profile) -> None:
    atomic_write(_profile_path(profile.name), _dump(profile))


def delete_profile(name: str) -> None:
    _existing_profile_path(name).unlink()


def resolve_profile(
    cli_profile: Optional[str] = None,
    global_config: Optional[GlobalConfig] = None,
) -> Profile:
    """Load the profile this invocation should use.

    The first name found wins: ``--profile``, then ``$OAUTH2FLOW_PROFILE``,
    then ``default_profile`` from the global config. With none of those set
    and ``auto_select_single_profile`` enabled, a lone saved profile is used.

    Raises:
        ConfigError: No name could be chosen, or the chosen profile does not load.
    """
    if global_config is None:
        global_config = load_global_config()

    name = cli_profile or os.environ.get(PROFILE_ENV_VAR) or global_config.default_profile
    if name is None and global_config.auto_select_single_profile:
        saved = list_profiles()
        if len(saved) == 1:
            name = saved[0]
    if name is None:
        raise ConfigError(
            "No profile selected. Pass --profile, set OAUTH2FLOW_PROFILE, "
            "or create exactly one profile."
        )
    return load_profile(name)


# --- client secrets ---


def _secret_from_env(var: str) -> str:
    try:
        return os.environ[var]
    except KeyError:
        raise ConfigError(f"Environment variable '{var}' is not set") from None


def _secret_from_file(location: str) -> str:
    path = Path(location).expanduser()
    try:
        return path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        raise ConfigError(f"Secret file not found: {path}") from None
    except OSError as exc:
        raise ConfigError(f"Cannot read secret file {path}: {exc}") from exc


def _secret_from_prompt(_: str) -> str:
    if not sys.stdin.isatty():
        raise ConfigError("Cannot prompt for the client secret: stdin is not a TTY")
    return getpass.getpass("Client secret: ")


_SECRET_READERS: dict[str, Callable[[str], str]] = {
    "env": _secret_from_env,
    "file": _secret_from_file,
    "literal": lambda value: value,
}


def resolve_secret(source: str) -> str:
    """Turn a profile's ``client_secret_source`` into the secret itself.

    ``env:NAME`` reads an environment variable, ``file:PATH`` reads a file
    (surrounding whitespace removed), ``literal:VALUE`` is the value as
    written, and ``prompt`` asks on the terminal.
    """
    if source == "prompt":
        return _secret_from_prompt(source)
    kind, sep, rest = source.partition(":")
    reader = _SECRET_READERS.get(kind) if sep else None
    if reader is None:
        raise ConfigError(f"Unknown secret source format: {source}")
    return reader(rest)
