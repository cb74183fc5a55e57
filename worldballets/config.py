import os
import tomllib
from pathlib import Path
from typing import Any, Optional

from worldballets.fetch import DEFAULT_USER_AGENT
from worldballets.normalize import DEFAULT_PLACEHOLDER_SERVICE

_DEFAULT_CONFIG_PATH = Path("config.toml")
_DEFAULT_ENV_PATH = Path("secrets")

PIPELINE_DEFAULTS: dict[str, Any] = {
    "request_timeout": 15,
    "render_timeout": 45,
    "company_timeout": 120,
    "min_delay": 1.0,
    "max_delay": 3.0,
    "match_tolerance_days": 3,
    "dedupe_tolerance_days": 2,
    "fallback_days": 14,
    "user_agent": DEFAULT_USER_AGENT,
    "placeholder_service": DEFAULT_PLACEHOLDER_SERVICE,
    "fallbacks": "",
}


def load(path: Path = _DEFAULT_CONFIG_PATH, env_path: Path = _DEFAULT_ENV_PATH) -> dict[str, Any]:
    """Load config from TOML, then overlay any overrides from the environment and a secrets file."""
    with open(path, "rb") as f:
        cfg = tomllib.load(f)
    _load_env(env_path, cfg)
    get_pipeline(cfg)
    return cfg


def _load_env(env_path: Path, cfg: dict) -> None:
    """
    Parse a .env-style file and inject values into the config dict.

    Supported variable names:
      WORLDBALLETS_DATABASE    -> cfg["database"]["path"]
      WORLDBALLETS_USER_AGENT  -> cfg["pipeline"]["user_agent"]

    Shell environment variables take precedence over file values.
    """
    # Pick up anything already set in the shell first
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
            # Shell environment takes precedence over the file
            if key not in os.environ:
                os.environ[key] = value

    _apply_env_vars(cfg)


def _apply_env_vars(cfg: dict) -> None:
    if v := os.environ.get("WORLDBALLETS_DATABASE"):
        cfg.setdefault("database", {})["path"] = v
    if v := os.environ.get("WORLDBALLETS_USER_AGENT"):
        cfg.setdefault("pipeline", {})["user_agent"] = v


def get_database_path(cfg: dict) -> Path:
    return Path(cfg.get("database", {}).get("path", "data/worldballets.db"))


_TIMEOUT_KEYS = ("request_timeout", "render_timeout", "company_timeout")


def get_pipeline(cfg: dict) -> dict[str, Any]:
    """
    Pipeline settings with defaults filled in.

    Raises ValueError for a timeout that is not a positive number of seconds.
    """
    settings = {**PIPELINE_DEFAULTS, **cfg.get("pipeline", {})}
    for key in _TIMEOUT_KEYS:
        value = settings[key]
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            raise ValueError(f"[pipeline] {key} must be a positive number of seconds, got {value!r}")
    return settings


def get_companies(cfg: dict) -> dict[str, dict]:
    """Return the companies section, filtering to only enabled companies."""
    companies = cfg.get("companies", {})
    return {key: c for key, c in companies.items() if c.get("enabled", True)}


def get_company(cfg: dict, company_id: str) -> dict:
    """One company's section (enabled or not); empty when it is not configured."""
    return cfg.get("companies", {}).get(company_id, {})


def get_fallbacks_path(cfg: dict) -> Optional[Path]:
    path = get_pipeline(cfg).get("fallbacks")
    return Path(path) if path else None
