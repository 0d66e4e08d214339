# src/courier_rates/config/env.py
from __future__ import annotations

import os
from dataclasses import fields
from pathlib import Path
from typing import Dict, Optional

from dotenv import dotenv_values, find_dotenv, load_dotenv

from courier_rates.models import EnvCfg


# --- Public contract ---------------------------------------------------------

class EnvError(RuntimeError):
    """Raised when the environment cannot support any rate provider."""


_NUMERIC_KEYS = {
    "RATES_PROVIDER_TIMEOUT": float,
    "RATES_HTTP_RETRIES": int,
}


def load_project_dotenv(start: Optional[Path] = None, *, override: bool = False) -> Path:
    """
    Load variables from the nearest `.env` file (searching upward from `start` or CWD).
    Does NOT override existing env vars unless `override=True`.
    Returns the resolved Path to the .env file if found; otherwise Path().
    """
    start_path = Path.cwd() if start is None else Path(start)

    dotenv_str = find_dotenv(filename=".env", usecwd=True)
    dotenv_path = Path(dotenv_str) if dotenv_str else Path()

    # find_dotenv only walks up from CWD; honour an explicit start directory too
    if not dotenv_str:
        for p in (start_path, *start_path.parents):
            candidate = p / ".env"
            if candidate.exists():
                dotenv_path = candidate
                break

    if not dotenv_path.exists() or dotenv_path.is_dir():
        return Path()

    load_dotenv(dotenv_path=dotenv_path, override=override)
    return dotenv_path.resolve()


def env(name: str, *, default: Optional[str] = None, required: bool = False, cast=None):
    """
    Test-friendly accessor.

    - If `required=True` and var is missing, raise KeyError(name).
    - If `cast` is provided, apply it to the raw string and propagate cast errors.
    - Returns `default` when missing and not required.
    """
    raw = os.getenv(name)
    if raw is None or raw == "":
        if required:
            raise KeyError(name)
        return default

    if cast is not None:
        return cast(raw)
    return raw


def _read_env_cfg() -> EnvCfg:
    """EnvCfg from the process environment; unset keys keep their defaults."""
    values = {}
    for f in fields(EnvCfg):
        raw = os.getenv(f.name)
        if raw is None or raw == "":
            continue
        cast = _NUMERIC_KEYS.get(f.name)
        if cast is None:
            values[f.name] = raw
            continue
        try:
            values[f.name] = cast(raw)
        except ValueError as ex:
            raise EnvError(f"Invalid value for {f.name}: {raw!r}") from ex
    return EnvCfg(**values)


def load_env(
    dotenv_path: Optional[Path] = None,
    *,
    override: bool = False,
    strict: bool = False,
) -> Dict[str, str]:
    """
    Load env vars from a .env file into the process environment and return the
    key/value pairs found in that file.

    - If `dotenv_path` is provided, load exactly that file.
    - Otherwise, auto-discover the nearest .env via `load_project_dotenv`.
    - If `strict=True`, at least one provider must be fully configured after
      loading; otherwise raise EnvError.
    - `override` controls whether .env values replace existing process env values.
    """
    loaded: Dict[str, str] = {}

    if dotenv_path:
        path = Path(dotenv_path)
        if path.exists():
            load_dotenv(dotenv_path=path, override=override)
            loaded = {k: v for k, v in dotenv_values(path).items() if v is not None}
    else:
        path = load_project_dotenv(override=override)
        if path and path.exists():
            loaded = {k: v for k, v in dotenv_values(path).items() if v is not None}

    if strict and not _read_env_cfg().configured_providers():
        raise EnvError(
            "Missing provider credentials: configure at least one of "
            "FEDEX_CLIENT_ID/FEDEX_CLIENT_SECRET, DELHIVERY_API_TOKEN, "
            "SHIPROCKET_AUTH_TOKEN or SHIPROCKET_API_EMAIL/SHIPROCKET_API_PASSWORD"
        )

    return loaded


def get_app_env(dotenv_path: Path | str | None = ".env", *, strict: bool = False) -> EnvCfg:
    """
    Load provider credentials and return a typed config object.

    - `dotenv_path` may be a Path/str pointing to a specific .env file or None to
      disable file loading (useful for tests).
    - Does not override existing process env (prefers CI/host settings).
    - Unset keys keep the EnvCfg defaults; malformed numeric values raise EnvError.
    """
    load_env(
        Path(dotenv_path) if dotenv_path else None,
        override=False,
        strict=strict,
    )
    return _read_env_cfg()


__all__ = [
    "EnvError",
    "load_project_dotenv",
    "load_env",
    "env",
    "get_app_env",
]
