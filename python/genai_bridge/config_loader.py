"""
Bridge Configuration Loader

Loads configuration from YAML files to eliminate hardcoded values
"""

import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

CONFIG_ENV_VAR = "GENAI_BRIDGE_CONFIG"
ENVIRONMENT_ENV_VAR = "GENAI_BRIDGE_ENV"

DEVICE_PREFERENCES = ("auto", "cpu", "gpu", "npu")
RESOURCE_MODES = ("strict", "loose")


class Config:
    """Bridge configuration loaded from YAML"""

    def __init__(self, config_dict: Dict[str, Any]):
        # Engine
        engine = config_dict.get("engine", {})
        self.default_device = engine.get("default_device", "CPU")
        self.device_preference = str(engine.get("device_preference", "auto")).lower()

        # Generation
        generation = config_dict.get("generation", {})
        self.default_max_new_tokens = generation.get("default_max_new_tokens", 4096)

        # Tokenizer
        tokenizer = config_dict.get("tokenizer", {})
        self.add_special_tokens = tokenizer.get("add_special_tokens", False)

        # Resource preflight (used by InferenceSession.load)
        resources = config_dict.get("resources", {})
        self.resource_preflight = resources.get("preflight", False)
        self.resource_mode = str(resources.get("mode", "strict")).lower()
        self.memory_multiplier = resources.get("memory_multiplier", 1.5)

        # Telemetry
        telemetry = config_dict.get("telemetry", {})
        self.telemetry_enabled = telemetry.get("enabled", True)
        self.telemetry_sampling_rate = telemetry.get("sampling_rate", 1.0)

        # Logging
        log_cfg = config_dict.get("logging", {})
        self.log_level = str(log_cfg.get("level", "INFO")).upper()

        # Development (debug overrides logging.level in configure_logging)
        dev = config_dict.get("development", {})
        self.debug = bool(dev.get("debug", False))

    def validate(self) -> None:
        """
        Validate configuration values

        Raises:
            ValueError: If any configuration value is invalid
        """
        if not isinstance(self.default_device, str) or not self.default_device:
            raise ValueError(f"default_device must be a non-empty string, got {self.default_device!r}")

        if self.device_preference not in DEVICE_PREFERENCES:
            raise ValueError(
                f"device_preference must be one of {DEVICE_PREFERENCES}, got {self.device_preference}"
            )

        if not isinstance(self.default_max_new_tokens, int) or self.default_max_new_tokens < 1:
            raise ValueError(
                f"default_max_new_tokens must be a positive integer, got {self.default_max_new_tokens}"
            )

        if self.resource_mode not in RESOURCE_MODES:
            raise ValueError(f"resources.mode must be one of {RESOURCE_MODES}, got {self.resource_mode}")

        if self.memory_multiplier <= 0:
            raise ValueError(f"memory_multiplier must be > 0, got {self.memory_multiplier}")

        if self.telemetry_sampling_rate < 0 or self.telemetry_sampling_rate > 1.0:
            raise ValueError(
                f"telemetry_sampling_rate must be in range [0, 1], got {self.telemetry_sampling_rate}"
            )

        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"logging.level is not a valid level name, got {self.log_level}")


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two dictionaries"""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def _find_config_file() -> Optional[Path]:
    """Look for config/runtime.yaml walking up from this package"""
    current = Path(__file__).resolve().parent
    for _ in range(5):  # Search up to 5 levels
        candidate = current / "config" / "runtime.yaml"
        if candidate.exists():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent
    return None


def load_config(
    config_path: Optional[str] = None, environment: Optional[str] = None
) -> Config:
    """
    Load configuration from YAML file

    Args:
        config_path: Path to config file (defaults to $GENAI_BRIDGE_CONFIG, then
            the nearest config/runtime.yaml above the package)
        environment: Environment name (production/development/test)

    Returns:
        Config instance

    Raises:
        FileNotFoundError: If an explicitly requested config file is missing
        ValueError: If the config file is invalid
    """
    explicit = config_path or os.getenv(CONFIG_ENV_VAR)

    if explicit:
        path: Optional[Path] = Path(explicit)
    else:
        path = _find_config_file()

    if path is None:
        logging.getLogger("genai_bridge.config").warning(
            "No runtime.yaml found, using built-in defaults"
        )
        base_config: Dict[str, Any] = {}
    else:
        try:
            with open(path, "r") as f:
                base_config = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise FileNotFoundError(f"Configuration file not found: {path}")
        except yaml.YAMLError as exc:
            raise ValueError(f"Failed to parse YAML config file '{path}': {exc}") from exc

    if not isinstance(base_config, dict):
        raise ValueError(f"Configuration root must be a mapping, got {type(base_config).__name__}")

    # Determine environment
    env = environment or os.getenv(ENVIRONMENT_ENV_VAR) or "development"

    # Apply environment-specific overrides
    final_config = base_config
    environments = base_config.get("environments") or {}
    if env in environments:
        final_config = deep_merge(base_config, environments[env])

    final_config.pop("environments", None)

    config = Config(final_config)
    config.validate()
    return config


# Global config instance
_global_config: Optional[Config] = None
_config_lock = threading.Lock()


def initialize_config(
    config_path: Optional[str] = None, environment: Optional[str] = None
) -> Config:
    """Initialize global configuration (thread-safe)"""
    global _global_config
    with _config_lock:
        _global_config = load_config(config_path, environment)
        return _global_config


def get_config() -> Config:
    """
    Get global configuration (lazy initialization)

    Uses double-checked locking so concurrent first callers load the file once.
    """
    global _global_config

    if _global_config is not None:
        return _global_config

    with _config_lock:
        if _global_config is None:
            _global_config = load_config()
        return _global_config


def reset_config() -> None:
    """Drop the cached global configuration (next get_config() reloads)"""
    global _global_config
    with _config_lock:
        _global_config = None
