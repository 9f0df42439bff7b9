from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Callable, TypeVar

from dotenv import load_dotenv

SUPPORTED_LOCALES = ("en", "vi")

_VERSION_SUFFIX = re.compile(r"/api/v\d+/?$")
_TRUTHY = {"1", "true", "yes", "on"}

N = TypeVar("N", int, float)


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ClientConfig:
    env_name: str
    api_base_url: str
    api_version: str = "v1"
    connect_timeout_seconds: float = 5.0
    read_timeout_seconds: float = 10.0
    retries: int = 2
    retry_backoff_seconds: float = 0.3
    max_connections: int = 20
    verify_ssl: bool = True
    default_page_size: int = 10
    search_debounce_ms: int = 500
    locale: str = "en"
    log_enabled: bool = False

    @property
    def normalized_env(self) -> str:
        return self.env_name.strip().lower()

    @property
    def api_root_url(self) -> str:
        """Versioned root every resource path is resolved against."""
        return f"{sanitize_base_url(self.api_base_url)}/api/{self.api_version}"


# field, env var, parser, default, lowest accepted value
_TUNING: tuple[tuple[str, str, Callable[[str], int | float], int | float, int | float], ...] = (
    ("retries", "POS_RETRIES", int, 2, 0),
    ("retry_backoff_seconds", "POS_RETRY_BACKOFF_SECONDS", float, 0.3, 0),
    ("max_connections", "POS_MAX_CONNECTIONS", int, 20, 1),
    ("default_page_size", "POS_DEFAULT_PAGE_SIZE", int, 10, 1),
    ("search_debounce_ms", "POS_SEARCH_DEBOUNCE_MS", int, 500, 0),
)


def sanitize_base_url(url: str) -> str:
    # An origin configured with the version already appended would double the prefix.
    stripped = _VERSION_SUFFIX.sub("", url.strip())
    return stripped.rstrip("/")


def _text(name: str) -> str:
    return (os.getenv(name) or "").strip()


def _flag(name: str, default: bool) -> bool:
    raw = _text(name)
    if not raw:
        return default
    return raw.lower() in _TRUTHY


def _number(name: str, parse: Callable[[str], N], default: N, *, minimum: N, exclusive: bool = False) -> N:
    raw = _text(name)
    if raw:
        try:
            value = parse(raw)
        except ValueError as exc:
            kind = "an integer" if parse is int else "a number"
            raise ConfigError(f"Invalid {name}: expected {kind}, got {raw!r}") from exc
    else:
        value = default
    if value < minimum or (exclusive and value == minimum):
        bound = f"> {minimum}" if exclusive else f">= {minimum}"
        raise ConfigError(f"Invalid {name}: expected {bound}, got {value}")
    return value


def _timeouts() -> tuple[float, float]:
    # POS_TIMEOUT_SECONDS is the overall budget; the specific values refine it.
    overall = _number("POS_TIMEOUT_SECONDS", float, 10.0, minimum=0.0, exclusive=True)
    connect = _number("POS_CONNECT_TIMEOUT_SECONDS", float, min(overall, 5.0), minimum=0.0, exclusive=True)
    read = _number("POS_READ_TIMEOUT_SECONDS", float, max(overall, connect), minimum=0.0, exclusive=True)
    return connect, read


def load_config(env_file: str | None = None) -> ClientConfig:
    """Build a ``ClientConfig`` from ``POS_*`` environment variables.

    Values in ``env_file`` (or a discovered ``.env``) never override variables
    already set in the process. ``POS_API_BASE_URL_<ENV>`` takes precedence
    over ``POS_API_BASE_URL`` for the active ``POS_ENV``.
    """
    load_dotenv(env_file)

    env_name = _text("POS_ENV") or "dev"
    api_base_url = _text(f"POS_API_BASE_URL_{env_name.upper()}") or _text("POS_API_BASE_URL")
    if not api_base_url:
        raise ConfigError(
            f"Missing required config value: POS_API_BASE_URL (or POS_API_BASE_URL_{env_name.upper()})"
        )

    locale = (_text("POS_LOCALE") or "en").lower()
    if locale not in SUPPORTED_LOCALES:
        raise ConfigError(f"Invalid POS_LOCALE: expected one of {', '.join(SUPPORTED_LOCALES)}, got {locale!r}")

    connect_timeout, read_timeout = _timeouts()
    tuning = {
        field: _number(env, parse, default, minimum=minimum)
        for field, env, parse, default, minimum in _TUNING
    }

    return ClientConfig(
        env_name=env_name,
        api_base_url=sanitize_base_url(api_base_url),
        api_version=_text("POS_API_VERSION") or "v1",
        connect_timeout_seconds=connect_timeout,
        read_timeout_seconds=read_timeout,
        verify_ssl=_flag("POS_VERIFY_SSL", True),
        locale=locale,
        log_enabled=_flag("POS_LOG_ENABLED", False),
        **tuning,
    )
