import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from venuediscovery.errors import ConfigurationError
from venuediscovery.models import SourceFamily, VenueConfig

_DEFAULT_CONFIG_PATH = Path("config.toml")
_DEFAULT_ENV_PATH = Path("secrets")

_TOKEN_VARS = {
    "DISCOVERY_STAGE_TOKEN": "stage_token",
    "DISCOVERY_PRODUCTION_TOKEN": "production_token",
    "DISCOVERY_LOCAL_TOKEN": "local_token",
}

_DEFAULT_BACKENDS = {
    "stage": "https://stage.api.psychichomily.com",
    "production": "https://api.psychichomily.com",
    "local": "http://localhost:8080",
}

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; venuediscovery/0.3)"


@dataclass(frozen=True)
class DiscoverySettings:
    venue_concurrency: int = 5      # venues previewed at once
    detail_concurrency: int = 10    # detail pages fetched at once within a venue
    page_timeout: float = 60.0      # seconds for a page to load
    ready_timeout: float = 30.0     # seconds for widget data to appear after load
    detail_timeout: float = 15.0    # seconds per detail page
    http_timeout: float = 20.0      # seconds per plain HTTP request
    headless: bool = True
    user_agent: str = DEFAULT_USER_AGENT


def load(path: Path = _DEFAULT_CONFIG_PATH, env_path: Path = _DEFAULT_ENV_PATH) -> dict[str, Any]:
    """Load config from TOML, then overlay any secrets from the environment."""
    try:
        with open(path, "rb") as f:
            cfg = tomllib.load(f)
    except FileNotFoundError:
        raise ConfigurationError(f"Config file not found: {path}") from None
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Invalid TOML in {path}: {exc}") from exc
    _load_env(env_path, cfg)
    return cfg


def _load_env(env_path: Path, cfg: dict) -> None:
    """
    Parse a KEY=VALUE secrets file and inject backend tokens into the config dict.

    Supported variable names:
      DISCOVERY_STAGE_TOKEN       -> cfg["secrets"]["stage_token"]
      DISCOVERY_PRODUCTION_TOKEN  -> cfg["secrets"]["production_token"]
      DISCOVERY_LOCAL_TOKEN       -> cfg["secrets"]["local_token"]

    Shell environment variables take precedence over the file.
    """
    _apply_env_vars(cfg)

    if not env_path.exists():
        return

    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key not in os.environ:
                os.environ[key] = value

    _apply_env_vars(cfg)


def _apply_env_vars(cfg: dict) -> None:
    secrets = cfg.setdefault("secrets", {})
    for var, name in _TOKEN_VARS.items():
        if v := os.environ.get(var):
            secrets[name] = v


def get_settings(cfg: dict) -> DiscoverySettings:
    section = cfg.get("discovery", {})
    defaults = DiscoverySettings()
    try:
        return DiscoverySettings(
            venue_concurrency=int(section.get("venue_concurrency", defaults.venue_concurrency)),
            detail_concurrency=int(section.get("detail_concurrency", defaults.detail_concurrency)),
            page_timeout=float(section.get("page_timeout", defaults.page_timeout)),
            ready_timeout=float(section.get("ready_timeout", defaults.ready_timeout)),
            detail_timeout=float(section.get("detail_timeout", defaults.detail_timeout)),
            http_timeout=float(section.get("http_timeout", defaults.http_timeout)),
            headless=bool(section.get("headless", defaults.headless)),
            user_agent=str(section.get("user_agent", defaults.user_agent)),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid [discovery] setting: {exc}") from exc


def get_venues(cfg: dict) -> dict[str, VenueConfig]:
    """Return the enabled venues keyed by slug."""
    venues: dict[str, VenueConfig] = {}
    for slug, v in cfg.get("venues", {}).items():
        if not v.get("enabled", True):
            continue
        source = v.get("source", "")
        try:
            family = SourceFamily(source)
        except ValueError:
            raise ConfigurationError(
                f"Venue '{slug}' has unknown source '{source}' "
                f"(expected one of: {', '.join(f.value for f in SourceFamily)})"
            ) from None
        if not v.get("url"):
            raise ConfigurationError(f"Venue '{slug}' is missing a url")
        venues[slug] = VenueConfig(
            slug=slug,
            name=v.get("name", slug),
            source_family=family,
            url=v["url"],
            city=v.get("city", ""),
            state=v.get("state", ""),
            sitemap_url=v.get("sitemap_url"),
        )
    return venues


def get_backend(cfg: dict, target: Optional[str] = None) -> tuple[str, str]:
    """Return (base_url, token) for the selected import backend."""
    section = cfg.get("backend", {})
    target = target or section.get("target", "stage")
    if target not in _DEFAULT_BACKENDS:
        raise ConfigurationError(f"Unknown backend target '{target}'")
    url = section.get(f"{target}_url", _DEFAULT_BACKENDS[target])
    token = cfg.get("secrets", {}).get(f"{target}_token", "")
    return url.rstrip("/"), token
