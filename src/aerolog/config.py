import os
from typing import Dict, Optional

from dotenv import dotenv_values

from .logging import get_logger

log = get_logger("config")


DEFAULT_BACKEND = "openrouter"
DEFAULT_OPENROUTER_MODEL = "google/gemini-2.5-flash"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_SYNC_DEBOUNCE_SECONDS = 1.0
DEFAULT_HTTP_TIMEOUT_SECONDS = 30


def _find_dotenv(start_dir: str) -> Optional[str]:
    """Nearest .env at or above start_dir, so the CLI also works from subfolders."""
    current = os.path.abspath(start_dir or ".")
    while True:
        candidate = os.path.join(current, ".env")
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(current)
        if parent == current:
            return None
        current = parent


def _read_dotenv(dotenv_dir: str) -> Dict[str, str]:
    """Return the key/value pairs of the nearest .env without touching os.environ."""
    path = _find_dotenv(dotenv_dir)
    if not path:
        log.debug(f"No .env found starting from: {os.path.abspath(dotenv_dir)}")
        return {}
    try:
        raw = dotenv_values(path)
    except (OSError, UnicodeDecodeError) as e:
        log.warning(f"Failed reading .env: {e}")
        return {}
    env = {k: v.strip() for k, v in raw.items() if k and isinstance(v, str)}
    log.debug(f"Loaded {len(env)} key(s) from .env at {path}")
    return env


def _lookup(dotenv_dir: str, *names: str) -> Optional[str]:
    """Environment first, then .env; the first non-empty name wins."""
    for name in names:
        v = os.environ.get(name)
        if v and v.strip():
            return v.strip()
    env = _read_dotenv(dotenv_dir)
    for name in names:
        v = env.get(name)
        if v:
            return v
    return None


def load_backend(dotenv_dir: str) -> str:
    v = (_lookup(dotenv_dir, "AEROLOG_BACKEND") or DEFAULT_BACKEND).lower()
    if v not in {"openrouter", "openai"}:
        log.warning(f"Unknown AEROLOG_BACKEND={v!r}; defaulting to '{DEFAULT_BACKEND}'")
        return DEFAULT_BACKEND
    return v


def load_openrouter(dotenv_dir: str) -> Optional[str]:
    """Return OpenRouter API key from env or .env.

    Accepts OPENROUTER_API_KEY as well as the older OPEN_ROUTER_API_KEY spelling.
    """
    return _lookup(dotenv_dir, "OPENROUTER_API_KEY", "OPEN_ROUTER_API_KEY", "open_router_api_key")


def load_openrouter_model(dotenv_dir: str) -> str:
    return _lookup(dotenv_dir, "OPENROUTER_MODEL") or DEFAULT_OPENROUTER_MODEL


def load_openai(dotenv_dir: str) -> Optional[str]:
    """Return OpenAI API key from env or .env."""
    return _lookup(dotenv_dir, "OPENAI_API_KEY", "openai_api_key")


def load_openai_model(dotenv_dir: str) -> str:
    return _lookup(dotenv_dir, "OPENAI_MODEL") or DEFAULT_OPENAI_MODEL


def load_openai_base_url(dotenv_dir: str) -> Optional[str]:
    return _lookup(dotenv_dir, "OPENAI_BASE_URL")


def load_default_sync_url(dotenv_dir: str) -> Optional[str]:
    """Endpoint to use when the local store has none configured yet."""
    return _lookup(dotenv_dir, "AEROLOG_SYNC_URL")


def _load_float(dotenv_dir: str, name: str, fallback: float) -> float:
    v = _lookup(dotenv_dir, name)
    if v is None:
        return fallback
    try:
        parsed = float(v)
    except ValueError:
        log.warning(f"{name}={v!r} is not a number; using {fallback}")
        return fallback
    if parsed < 0:
        log.warning(f"{name} must not be negative; using {fallback}")
        return fallback
    return parsed


def load_sync_debounce(dotenv_dir: str) -> float:
    return _load_float(dotenv_dir, "AEROLOG_SYNC_DEBOUNCE", DEFAULT_SYNC_DEBOUNCE_SECONDS)


def load_http_timeout(dotenv_dir: str) -> int:
    return int(_load_float(dotenv_dir, "AEROLOG_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT_SECONDS))
