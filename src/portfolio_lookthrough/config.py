"""Settings for the look-through pipeline, read from the environment.

Values come from ``PORTFOLIO_LOOKTHROUGH_*`` variables, optionally backed by a
dotenv-style profile file (``.env.<profile>``). Shell variables override the
file.
"""
from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Callable, Iterator, Mapping, TypeVar


ENV_PREFIX = "PORTFOLIO_LOOKTHROUGH_"

DEFAULT_YAHOO_BASE_URL = "https://query1.finance.yahoo.com"
DEFAULT_YAHOO_SEARCH_URL = "https://query2.finance.yahoo.com"

PROVIDERS = ("yahoo", "offline")
TRUTHY = {"1", "true", "yes", "on"}

N = TypeVar("N", int, float)


def _search_roots() -> Iterator[Path]:
    seen: set[Path] = set()
    here = Path(__file__).resolve()
    for root in (Path.cwd(), *here.parents):
        root = root.resolve()
        if root not in seen:
            seen.add(root)
            yield root


def _find_profile_file(candidate: str) -> Path | None:
    """Locate ``candidate`` as given, or under the working directory or a package parent."""

    path = Path(candidate)
    if path.is_absolute():
        return path if path.exists() else None
    return next((root / path for root in _search_roots() if (root / path).exists()), None)


def _read_dotenv(path: Path) -> dict[str, str]:
    variables: dict[str, str] = {}
    for raw_line in path.read_text().splitlines():
        line = raw_line.strip()
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        variables[key.strip()] = value.strip().strip('"').strip("'")
    return variables


def _profile_variables(env: Mapping[str, str]) -> dict[str, str]:
    candidate = env.get(f"{ENV_PREFIX}ENV_FILE") or f".env.{env.get(f'{ENV_PREFIX}ENV', 'local')}"
    path = _find_profile_file(candidate)
    return _read_dotenv(path) if path is not None else {}


def _read_positive(env: Mapping[str, str], name: str, default: N, cast: Callable[[str], N]) -> N:
    key = f"{ENV_PREFIX}{name}"
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    kind = "an integer" if cast is int else "a number"
    try:
        value = cast(raw)
    except ValueError as exc:
        raise RuntimeError(f"{key} must be {kind}, got {raw!r}") from exc
    if value <= 0:
        raise RuntimeError(f"{key} must be positive, got {raw!r}")
    return value


def _read_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(f"{ENV_PREFIX}{name}")
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in TRUTHY


@dataclass(frozen=True)
class Settings:
    """Runtime configuration."""

    base_currency: str = "CHF"
    provider: str = "yahoo"
    batch_size: int = 3
    enrichment_timeout: float = 30.0
    request_timeout: float = 10.0
    resolution_ttl: float = 24 * 60 * 60
    quote_ttl: float = 5 * 60
    composition_ttl: float = 24 * 60 * 60
    search_ttl: float = 60 * 60
    yahoo_base_url: str = DEFAULT_YAHOO_BASE_URL
    yahoo_search_url: str = DEFAULT_YAHOO_SEARCH_URL

    @staticmethod
    def load(env: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from ``env`` (defaults to ``os.environ``) and its profile file."""

        base_env = dict(os.environ if env is None else env)
        file_env = _profile_variables(base_env)
        # Shell wins over the profile file.
        merged_env = {**file_env, **base_env}

        base_currency = merged_env.get(f"{ENV_PREFIX}BASE_CURRENCY", "CHF").strip().upper()
        if len(base_currency) != 3 or not base_currency.isalpha():
            raise RuntimeError(
                f"{ENV_PREFIX}BASE_CURRENCY must be a 3-letter currency code, got {base_currency!r}"
            )

        provider = merged_env.get(f"{ENV_PREFIX}PROVIDER", "yahoo").strip().lower()
        if not _read_bool(merged_env, "ENABLE_NETWORK", True):
            provider = "offline"
        if provider not in PROVIDERS:
            raise RuntimeError(
                f"{ENV_PREFIX}PROVIDER must be one of {', '.join(PROVIDERS)}, got {provider!r}"
            )

        return Settings(
            base_currency=base_currency,
            provider=provider,
            batch_size=_read_positive(merged_env, "BATCH_SIZE", 3, int),
            enrichment_timeout=_read_positive(merged_env, "ENRICHMENT_TIMEOUT", 30.0, float),
            request_timeout=_read_positive(merged_env, "REQUEST_TIMEOUT", 10.0, float),
            resolution_ttl=_read_positive(merged_env, "RESOLUTION_TTL", 24 * 60 * 60, float),
            quote_ttl=_read_positive(merged_env, "QUOTE_TTL", 5 * 60, float),
            composition_ttl=_read_positive(merged_env, "COMPOSITION_TTL", 24 * 60 * 60, float),
            search_ttl=_read_positive(merged_env, "SEARCH_TTL", 60 * 60, float),
            yahoo_base_url=merged_env.get(f"{ENV_PREFIX}YAHOO_BASE_URL", DEFAULT_YAHOO_BASE_URL),
            yahoo_search_url=merged_env.get(
                f"{ENV_PREFIX}YAHOO_SEARCH_URL", DEFAULT_YAHOO_SEARCH_URL
            ),
        )


__all__ = ["Settings", "ENV_PREFIX"]
