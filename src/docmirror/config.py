"""Runtime settings for the GitHub client and synchronizer.

Reads settings from explicit arguments, environment variables, .env
files, and YAML config file fallbacks.

Precedence (highest to lowest):
    Explicit args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    GITHUB_TOKEN: Personal access token (optional, raises rate limits)
    DOCMIRROR_API_URL: GitHub API base URL (default: https://api.github.com)
    DOCMIRROR_TIMEOUT: Per-request read timeout in seconds (default: 30)
    DOCMIRROR_MAX_PARALLEL_REFS: References synced concurrently (default: 4)
    DOCMIRROR_MAX_PARALLEL_PAGES: Pages fetched concurrently per ref (default: 8)
    DOCMIRROR_CACHE_FILE: Branch-sha cache file (default: .docmirror/cache.json)
    DOCMIRROR_DEBUG: Enable debug logging (default: false)
"""

import logging
import os
from dataclasses import dataclass
from urllib.parse import urlparse

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_CACHE_FILE = ".docmirror/cache.json"


@dataclass
class Config:
    api_url: str = DEFAULT_API_URL
    token: str | None = None
    timeout: float = 30.0
    max_parallel_refs: int = 4
    max_parallel_pages: int = 8
    cache_file: str = DEFAULT_CACHE_FILE
    debug: bool = False


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Raises:
        ValueError: If the API URL is malformed or a numeric setting is out
            of range.
    """
    config.api_url = config.api_url.strip()

    if not config.api_url.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid API URL '{config.api_url}': must start with http:// or https://"
        )

    parsed = urlparse(config.api_url)
    if not parsed.hostname:
        raise ValueError(
            f"Invalid API URL '{config.api_url}': URL must include a hostname"
        )

    config.api_url = config.api_url.removesuffix("/")

    if not (0 < config.timeout <= 600):
        raise ValueError(
            f"Invalid timeout {config.timeout}: must be between 0 and 600 seconds"
        )

    if not (1 <= config.max_parallel_refs <= 32):
        raise ValueError(
            f"Invalid max_parallel_refs {config.max_parallel_refs}: must be between 1 and 32"
        )

    if not (1 <= config.max_parallel_pages <= 64):
        raise ValueError(
            f"Invalid max_parallel_pages {config.max_parallel_pages}: must be between 1 and 64"
        )

    if not config.cache_file.strip():
        raise ValueError("Cache file path cannot be empty")

    if config.token is None:
        logger.debug(
            "No GITHUB_TOKEN configured; unauthenticated rate limits apply"
        )


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def _get_number_env(key: str, kind: type, low: float, high: float):
    """Parse a numeric env var, or return None if unset."""
    raw = os.getenv(key)
    if raw is None:
        return None
    try:
        value = kind(raw)
    except ValueError:
        raise ValueError(
            f"Invalid {key} '{raw}': must be a number between {low} and {high}"
        ) from None
    if not (low <= value <= high):
        raise ValueError(
            f"Invalid {key} '{raw}': must be a number between {low} and {high}"
        )
    return value


def load_config(
    api_url: str | None = None,
    token: str | None = None,
    timeout: float | None = None,
    cache_file: str | None = None,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
    use_dotenv: bool = True,
) -> Config:
    """Load runtime settings with unified precedence.

    Resolution order for each field (highest to lowest):
        explicit arg > env var / .env > yaml_fallbacks > built-in default

    Args:
        api_url: Override API base URL.
        token: Override access token.
        timeout: Override per-request timeout in seconds.
        cache_file: Override branch-sha cache file path.
        debug: Enable debug logging.
        yaml_fallbacks: Values from the YAML config ``github``/``sync``
            sections, used when neither an argument nor an env var is set.
        use_dotenv: Load a ``.env`` file from the working directory first.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If any value is invalid.
    """
    if use_dotenv:
        load_dotenv()

    fb = {k: v for k, v in (yaml_fallbacks or {}).items() if v is not None}

    final_api_url = (
        api_url
        or os.getenv("DOCMIRROR_API_URL")
        or fb.get("api_url")
        or DEFAULT_API_URL
    )
    final_token = token or os.getenv("GITHUB_TOKEN") or fb.get("token")
    if final_token is not None:
        final_token = final_token.strip() or None

    if timeout is not None:
        final_timeout = float(timeout)
    else:
        env_timeout = _get_number_env("DOCMIRROR_TIMEOUT", float, 0.1, 600)
        final_timeout = (
            env_timeout
            if env_timeout is not None
            else float(fb.get("timeout", 30.0))
        )

    env_refs = _get_number_env("DOCMIRROR_MAX_PARALLEL_REFS", int, 1, 32)
    final_refs = (
        env_refs
        if env_refs is not None
        else int(fb.get("max_parallel_refs", 4))
    )

    env_pages = _get_number_env("DOCMIRROR_MAX_PARALLEL_PAGES", int, 1, 64)
    final_pages = (
        env_pages
        if env_pages is not None
        else int(fb.get("max_parallel_pages", 8))
    )

    final_cache = (
        cache_file
        or os.getenv("DOCMIRROR_CACHE_FILE")
        or fb.get("cache_file")
        or DEFAULT_CACHE_FILE
    )

    if debug:
        final_debug = True
    else:
        env_debug = _get_bool_env("DOCMIRROR_DEBUG")
        final_debug = env_debug if env_debug is not None else False

    config = Config(
        api_url=final_api_url,
        token=final_token,
        timeout=final_timeout,
        max_parallel_refs=final_refs,
        max_parallel_pages=final_pages,
        cache_file=final_cache,
        debug=final_debug,
    )

    validate_config(config)

    return config
