"""
Simulator Configuration

Settings come from three layers, later layers winning:
1. Built-in defaults
2. YAML tuning file (config/simulation_config.yaml or SIM_CONFIG_PATH)
3. Environment variables (a .env file is loaded first)

DATABASE_URL has no default: the simulator must not start without a store.
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
import yaml
from dotenv import find_dotenv, load_dotenv

from app.database import normalize_database_url

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "simulation_config.yaml"

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


class ConfigurationError(Exception):
    """Raised when required settings are missing or malformed"""


@dataclass
class Settings:
    """Resolved simulator settings"""
    database_url: str
    tick_interval_seconds: float = 5.0
    fast_forward_ticks: int = 10
    start_running: bool = True
    heartbeat_url: Optional[str] = "http://localhost:5199/heartbeat"
    heartbeat_timeout_seconds: float = 2.0
    admin_token: Optional[str] = None
    auto_create_tables: bool = True
    noise_seed: Optional[int] = None


def _parse_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got '{value}'")


def _parse_number(name: str, value: Any, kind, minimum=None):
    try:
        number = kind(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a {kind.__name__}, got '{value}'")
    if minimum is not None and number < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {number}")
    return number


def _parse_heartbeat_url(value: Any) -> Optional[str]:
    url = str(value or "").strip()
    if not url:
        return None
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as e:
        raise ConfigurationError(f"heartbeat_url is not a valid URL: '{url}' ({e})")
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ConfigurationError(f"heartbeat_url must be an absolute http(s) URL, got '{url}'")
    return url


def load_yaml_config(config_path: Path) -> Dict[str, Any]:
    """Load simulation tuning from YAML; a missing file means no overrides"""
    try:
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.debug(f"No simulation config at {config_path}, using defaults")
        return {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error parsing config file {config_path}: {e}")

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")
    return data.get("simulation", data)


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """
    Resolve settings from defaults, YAML and environment.

    Raises:
        ConfigurationError: if DATABASE_URL is missing or a value is malformed
    """
    load_dotenv(find_dotenv(usecwd=True))

    if config_path is None:
        config_path = Path(os.getenv("SIM_CONFIG_PATH", str(DEFAULT_CONFIG_PATH)))
    raw = dict(load_yaml_config(config_path))

    env_map = {
        "DATABASE_URL": "database_url",
        "SIM_TICK_INTERVAL_SECONDS": "tick_interval_seconds",
        "SIM_FAST_FORWARD_TICKS": "fast_forward_ticks",
        "SIM_START_RUNNING": "start_running",
        "HEARTBEAT_URL": "heartbeat_url",
        "HEARTBEAT_TIMEOUT_SECONDS": "heartbeat_timeout_seconds",
        "SIM_ADMIN_TOKEN": "admin_token",
        "SIM_AUTO_CREATE_TABLES": "auto_create_tables",
        "SIM_NOISE_SEED": "noise_seed",
    }
    for env_name, key in env_map.items():
        value = os.getenv(env_name)
        if value is not None:
            raw[key] = value

    database_url = raw.get("database_url")
    if not database_url or not str(database_url).strip():
        raise ConfigurationError("DATABASE_URL is not set; refusing to start the simulator")

    settings = Settings(database_url=normalize_database_url(str(database_url).strip()))

    if "tick_interval_seconds" in raw:
        settings.tick_interval_seconds = _parse_number(
            "tick_interval_seconds", raw["tick_interval_seconds"], float, minimum=0.1
        )
    if "fast_forward_ticks" in raw:
        settings.fast_forward_ticks = _parse_number(
            "fast_forward_ticks", raw["fast_forward_ticks"], int, minimum=0
        )
    if "start_running" in raw:
        settings.start_running = _parse_bool("start_running", raw["start_running"])
    if "heartbeat_url" in raw:
        # Empty string disables the heartbeat
        settings.heartbeat_url = _parse_heartbeat_url(raw["heartbeat_url"])
    if "heartbeat_timeout_seconds" in raw:
        settings.heartbeat_timeout_seconds = _parse_number(
            "heartbeat_timeout_seconds", raw["heartbeat_timeout_seconds"], float, minimum=0
        )
    if raw.get("admin_token"):
        settings.admin_token = str(raw["admin_token"])
    if "auto_create_tables" in raw:
        settings.auto_create_tables = _parse_bool("auto_create_tables", raw["auto_create_tables"])
    if raw.get("noise_seed") not in (None, ""):
        settings.noise_seed = _parse_number("noise_seed", raw["noise_seed"], int)

    return settings
