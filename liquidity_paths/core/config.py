import json
import os
from pathlib import Path
from typing import Any

from liquidity_paths.core.constants.base import (
    DEFAULT_PRICE_CACHE_TTL,
    DEFAULT_SLIPPAGE_PCT,
)

_CONFIG_ENV_KEYS = ("LIQUIDITY_PATHS_CONFIG_PATH", "LIQUIDITY_PATHS_CONFIG")
_DEFAULT_CONFIG_FILENAME = "config.json"
_DEFAULT_PRICE_API_BASE_URL = "https://api.geckoterminal.com/api/v2"


def _find_project_root(start: Path) -> Path | None:
    cur = start.resolve()
    for parent in [cur, *cur.parents]:
        if (parent / "pyproject.toml").exists():
            return parent
    return None


def _project_root() -> Path | None:
    return _find_project_root(Path.cwd()) or _find_project_root(Path(__file__).parent)


def resolve_config_path(path: str | Path | None = None) -> Path:
    if path is not None:
        return Path(path).expanduser()

    env_path = next(
        (os.getenv(k, "").strip() for k in _CONFIG_ENV_KEYS if os.getenv(k)), ""
    )
    if env_path:
        p = Path(env_path).expanduser()
        if p.is_absolute():
            return p
        root = _project_root()
        return (root / p) if root else p

    root = _project_root()
    return (root / _DEFAULT_CONFIG_FILENAME) if root else Path(_DEFAULT_CONFIG_FILENAME)


def load_config_json(
    path: str | Path | None = None, *, require_exists: bool = False
) -> dict[str, Any]:
    cfg_path = resolve_config_path(path)
    if not cfg_path.exists():
        if require_exists:
            raise FileNotFoundError(f"Config file not found: {cfg_path}")
        return {}
    try:
        return json.loads(cfg_path.read_text())
    except json.JSONDecodeError:
        return {}


CONFIG: dict[str, Any] = load_config_json()


def set_config(config: dict[str, Any]) -> None:
    """Replace the global CONFIG dict in-place.

    This allows code that imported CONFIG at module import time to see updates.
    """
    CONFIG.clear()
    CONFIG.update(config)


def load_config(
    path: str | Path | None = None, *, require_exists: bool = False
) -> None:
    """Load config from disk into the global CONFIG dict."""
    set_config(load_config_json(path, require_exists=require_exists))


def set_rpc_urls(rpc_urls: dict[str, Any]) -> None:
    CONFIG["rpc_urls"] = rpc_urls


def get_rpc_urls() -> dict[str, Any]:
    return CONFIG.get("rpc_urls", {})


def get_price_api_base_url() -> str:
    pricing = CONFIG.get("pricing", {})
    url = pricing.get("api_base_url")
    if url:
        return str(url).strip().rstrip("/")
    return _DEFAULT_PRICE_API_BASE_URL


def get_price_cache_ttl() -> float:
    pricing = CONFIG.get("pricing", {})
    ttl = pricing.get("cache_ttl_seconds")
    if ttl is None:
        return DEFAULT_PRICE_CACHE_TTL
    return float(ttl)


def get_default_slippage_pct() -> float:
    trading = CONFIG.get("trading", {})
    value = trading.get("slippage_pct")
    if value is None:
        return DEFAULT_SLIPPAGE_PCT
    return float(value)
