"""
Runtime settings for tcswitch.

Settings are resolved in order, later sources winning:

1. built-in defaults
2. YAML config file (``configs/tcswitch.yaml`` if present)
3. environment variables, including a ``.env`` file in the working directory
4. command-line flags (applied by the CLI)
"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional, Union

import yaml
from dotenv import find_dotenv, load_dotenv

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "configs/tcswitch.yaml"

ENV_PROFILES = "TCSWITCH_PROFILES"
ENV_LEDGER = "TCSWITCH_LEDGER"
ENV_INTERFACE = "TCSWITCH_INTERFACE"
ENV_USE_SUDO = "TCSWITCH_USE_SUDO"
ENV_SEED = "TCSWITCH_SEED"


@dataclass
class Settings:
    """
    Experiment settings.

    Attributes:
        profiles_path: Network condition catalogue (text or YAML).
        ledger_path: Append-only experiment log.
        interface: Interface to shape. None means ask the operator.
        use_sudo: Prefix tc with sudo when not running as root.
        seed: Random seed for the trial order. None for a fresh order.
        tc_timeout_sec: Timeout for each tc invocation.
    """

    profiles_path: str = "configs/profiles.txt"
    ledger_path: str = "logs/tc_experiment.log"
    interface: Optional[str] = None
    use_sudo: bool = True
    seed: Optional[int] = None
    tc_timeout_sec: float = 10.0

    @classmethod
    def from_dict(cls, data: dict) -> "Settings":
        """Build settings from a config mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        for key in data:
            if key not in known:
                logger.warning(f"Ignoring unknown config key: {key}")

        settings = cls()
        try:
            if data.get("profiles_path") is not None:
                settings.profiles_path = str(data["profiles_path"])
            if data.get("ledger_path") is not None:
                settings.ledger_path = str(data["ledger_path"])
            if data.get("interface"):
                settings.interface = str(data["interface"])
            if data.get("use_sudo") is not None:
                settings.use_sudo = _parse_bool(data["use_sudo"])
            if data.get("seed") is not None:
                settings.seed = int(data["seed"])
            if data.get("tc_timeout_sec") is not None:
                settings.tc_timeout_sec = float(data["tc_timeout_sec"])
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid configuration value: {e}")
        return settings

    def apply_env(self) -> None:
        """Override settings from TCSWITCH_* environment variables."""
        if os.environ.get(ENV_PROFILES):
            self.profiles_path = os.environ[ENV_PROFILES]
        if os.environ.get(ENV_LEDGER):
            self.ledger_path = os.environ[ENV_LEDGER]
        if os.environ.get(ENV_INTERFACE):
            self.interface = os.environ[ENV_INTERFACE]
        if os.environ.get(ENV_USE_SUDO):
            self.use_sudo = _parse_bool(os.environ[ENV_USE_SUDO])
        seed = _parse_int_env(ENV_SEED)
        if seed is not None:
            self.seed = seed


def _parse_bool(value: Union[str, bool, int]) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _parse_int_env(key: str) -> Optional[int]:
    raw = os.environ.get(key, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}")


def load_settings(config_path: Optional[Union[str, Path]] = None) -> Settings:
    """
    Load settings from the config file and environment.

    Args:
        config_path: YAML config file. If None, ``configs/tcswitch.yaml``
            is used when it exists.

    Returns:
        Resolved Settings.

    Raises:
        ConfigError: If an explicit config file is missing, or any file is invalid.
    """
    # .env in the working directory; existing environment variables win
    load_dotenv(find_dotenv(usecwd=True))

    path = Path(config_path or DEFAULT_CONFIG_PATH)
    data: dict = {}
    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}")
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigError(f"Cannot read config file {path}: {e}")
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        logger.debug(f"Loaded settings from {path}")
    elif config_path is not None:
        raise ConfigError(f"Config file not found: {path}")

    settings = Settings.from_dict(data)
    settings.apply_env()
    return settings
