"""
Configuration Manager
---------------------
API client settings loaded from YAML with environment variable overrides.

Example config.yaml:

    api:
      base_url: https://shop.example.com/api/
      rate_limit_requests: 60
      rate_limit_window: 60
      retry_max_attempts: 3

Any key can be overridden with GROCER_<KEY>, e.g. GROCER_BASE_URL.
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional
import logging
import os

import httpx
import yaml

ENV_PREFIX = "GROCER_"


@dataclass
class ApiConfig:
    """Configuration for the API client."""
    base_url: str = "https://tienda.mercadona.es/api/"
    connect_timeout: float = 30.0
    read_timeout: float = 30.0
    write_timeout: float = 30.0
    rate_limit_requests: int = 60  # Max requests per window
    rate_limit_window: float = 60.0  # Window length in seconds
    retry_max_attempts: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 10.0
    debug_logging: bool = False  # Allows token prefixes and bodies in logs
    user_agent: str = "grocer-gateway/0.1"

    def __post_init__(self):
        if not self.base_url.endswith("/"):
            self.base_url += "/"

    def timeout(self) -> httpx.Timeout:
        """Transport timeouts; the pool wait shares the connect timeout."""
        return httpx.Timeout(
            connect=self.connect_timeout,
            read=self.read_timeout,
            write=self.write_timeout,
            pool=self.connect_timeout,
        )


def _coerce(value: str, target: Any) -> Any:
    """Convert an environment string to the type of the default value."""
    if isinstance(target, bool):
        return value.strip().lower() in ("1", "true", "yes", "on")
    if isinstance(target, int):
        return int(value)
    if isinstance(target, float):
        return float(value)
    return value


class ConfigManager:
    """
    Loads ApiConfig from a YAML file.
    Environment variables override file values.
    """

    def __init__(self, config_path: str = "config.yaml", section: str = "api"):
        self._config_path = Path(config_path)
        self._section = section
        self._config: Dict[str, Any] = {}
        self._logger = logging.getLogger("grocer.infra.config")

        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file."""
        if self._config_path.exists():
            with open(self._config_path, "r") as f:
                self._config = yaml.safe_load(f) or {}
            self._logger.info(f"Loaded config from {self._config_path}")
        else:
            self._config = {}
            self._logger.debug(f"Config file not found: {self._config_path}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a value from the configured section.
        Environment variables take precedence over the file.
        """
        env_value = os.getenv(f"{ENV_PREFIX}{key.upper()}")
        if env_value is not None:
            return _coerce(env_value, default) if default is not None else env_value

        section = self._config.get(self._section) or {}
        if not isinstance(section, dict):
            return default
        return section.get(key, default)

    def api_config(self) -> ApiConfig:
        """Build ApiConfig from defaults, file, and environment."""
        defaults = ApiConfig()
        values = {}
        for f in fields(ApiConfig):
            default = getattr(defaults, f.name)
            value = self.get(f.name, default)
            if value is not None and not isinstance(value, type(default)):
                value = _coerce(str(value), default)
            values[f.name] = value
        return ApiConfig(**values)

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()


def load_config(config_path: Optional[str] = None) -> ApiConfig:
    """Load ApiConfig from config.yaml (or the given file) and the environment."""
    return ConfigManager(config_path or "config.yaml").api_config()
