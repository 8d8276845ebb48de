# src/basitkargo_bridge/config/env.py
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Tuple, Dict

from basitkargo_bridge.models import EnvCfg

try:
    # De facto standard for .env files
    from dotenv import load_dotenv, find_dotenv  # type: ignore
except Exception as e:  # pragma: no cover
    raise RuntimeError(
        "Missing dependency 'python-dotenv'. Install it with:\n"
        "  pip install python-dotenv"
    ) from e


# --- Public contract ---------------------------------------------------------

class ConfigurationError(RuntimeError):
    """Raised when required credentials or settings are missing or invalid."""


# Credentials without which no order can be synced
REQUIRED_KEYS: Tuple[str, ...] = (
    "BASITKARGO_TOKEN",
    "SHOPIFY_STORE",
    "SHOPIFY_TOKEN",
)

_TRUTHY = {"1", "true", "yes", "on"}


def load_project_dotenv(start: Optional[Path] = None, *, override: bool = False) -> Path:
    """
    Load variables from the nearest `.env` file (searching upward from `start` or CWD).
    Does NOT override existing env vars unless `override=True`.
    Returns the resolved Path to the .env file if found; otherwise Path().
    """
    start_path = Path.cwd() if start is None else Path(start)

    dotenv_str = find_dotenv(filename=".env", usecwd=True)
    dotenv_path = Path(dotenv_str) if dotenv_str else Path()

    # python-dotenv searches from CWD; fall back to an upward search from `start`
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


def as_bool(raw: str) -> bool:
    return raw.strip().lower() in _TRUTHY


def as_csv(raw: str) -> Tuple[str, ...]:
    return tuple(p.strip().upper() for p in raw.split(",") if p.strip())


# --- Internal helpers --------------------------------------------------------

def _parse_dotenv_lines(text: str) -> Dict[str, str]:
    """
    Parse .env-style content into a dict. Supports:
    - leading 'export '
    - inline comments after a value ('value # comment')
    - quoted values
    - blank lines and full-line comments
    """
    out: Dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export "):].lstrip()
        if "=" not in line:
            continue
        k, v = line.split("=", 1)
        # Drop inline comments (only when preceded by a space to avoid hashes in secrets)
        if " #" in v:
            v = v.split(" #", 1)[0]
        v = v.strip().strip('"').strip("'")
        out[k.strip()] = v
    return out


def _int_env(name: str, default: int) -> int:
    try:
        return env(name, default=default, cast=int)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer: {os.getenv(name)!r}") from e


# --- Main loader APIs --------------------------------------------------------

def load_env(
    dotenv_path: Optional[Path] = None,
    *,
    override: bool = False,
    required_keys: Tuple[str, ...] = (),
    strict: bool = False,
) -> Dict[str, str]:
    """
    Load env vars from a .env file into the process environment and return a dict
    of key/value pairs found in that file.

    - If `dotenv_path` is provided, load exactly that file.
    - Otherwise, auto-discover the nearest .env via `load_project_dotenv`.
    - If `strict=True` and `required_keys` are provided, ensure they are present
      in `os.environ` after loading; otherwise raise ConfigurationError.
    - `override` controls whether .env values replace existing process env values.
    """
    loaded: Dict[str, str] = {}

    if dotenv_path:
        path = Path(dotenv_path)
        if path.exists():
            load_dotenv(dotenv_path=path, override=override)
            loaded = _parse_dotenv_lines(path.read_text(encoding="utf-8"))
    else:
        path = load_project_dotenv(override=override)
        if path and path.exists():
            loaded = _parse_dotenv_lines(path.read_text(encoding="utf-8"))

    if strict and required_keys:
        missing = [k for k in required_keys if not os.getenv(k)]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variable(s): {', '.join(missing)}")

    return loaded


def get_app_env(dotenv_path: Path | str | None = ".env", *, strict: bool = False) -> EnvCfg:
    """
    Load the bridge settings and return a typed config object.

    - `dotenv_path` may be a Path/str pointing to a specific .env file or None to
      auto-discover the nearest one.
    - Existing process env always wins over the file (override=False).
    - With `strict=True` missing REQUIRED_KEYS raise ConfigurationError. Otherwise
      credentials may be empty; the API clients raise when they are first used.
    """
    load_env(
        Path(dotenv_path) if dotenv_path else None,
        override=False,
        required_keys=REQUIRED_KEYS,
        strict=strict,
    )

    carrier_mode = env("CARRIER_MODE", default="passthrough").strip().lower()
    if carrier_mode not in ("passthrough", "fixed"):
        raise ConfigurationError(
            f"CARRIER_MODE must be 'passthrough' or 'fixed', got {carrier_mode!r}")

    defaults = EnvCfg()
    return EnvCfg(
        BASITKARGO_TOKEN=env("BASITKARGO_TOKEN", default=""),
        BASITKARGO_BASE_URL=env("BASITKARGO_BASE_URL", default=defaults.BASITKARGO_BASE_URL),
        SHOPIFY_STORE=env("SHOPIFY_STORE", default=""),
        SHOPIFY_TOKEN=env("SHOPIFY_TOKEN", default=""),
        SHOPIFY_API_VERSION=env("SHOPIFY_API_VERSION", default=defaults.SHOPIFY_API_VERSION),
        WEBHOOK_KEY=env("WEBHOOK_KEY", default=""),
        REQUIRE_WEBHOOK_KEY=env("REQUIRE_WEBHOOK_KEY", default=False, cast=as_bool),
        ACTIONABLE_STATUSES=env("ACTIONABLE_STATUSES",
                                default=defaults.ACTIONABLE_STATUSES, cast=as_csv),
        CARRIER_MODE=carrier_mode,
        CARRIER_DEFAULT=env("CARRIER_DEFAULT", default=defaults.CARRIER_DEFAULT),
        HTTP_TIMEOUT=_int_env("HTTP_TIMEOUT", defaults.HTTP_TIMEOUT),
        PORT=_int_env("PORT", defaults.PORT),
    )


__all__ = [
    "ConfigurationError",
    "REQUIRED_KEYS",
    "load_project_dotenv",
    "load_env",
    "env",
    "as_bool",
    "as_csv",
    "get_app_env",
]
