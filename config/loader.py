"""Configuration loader for the Codex Responses relay

Values are resolved with the following priority:
1. Environment variables (highest priority)
2. .env file
3. Hardcoded defaults (lowest priority)
"""

import logging
import os
from pathlib import Path
from typing import Any, List, Optional
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_TRUTHY = ('true', '1', 'yes', 'on')


class ConfigLoader:
    """Resolves typed settings from the environment and an optional .env file"""

    def __init__(self, env_path: Optional[str] = None):
        """Initialize the config loader

        Args:
            env_path: Optional path to .env file.
                     Defaults to '.env' in the current directory.
        """
        self.env_path = Path(env_path) if env_path else Path(".env")
        self._load_env_file()

    def _load_env_file(self):
        if self.env_path.exists():
            load_dotenv(dotenv_path=self.env_path)
            logger.debug(f"Loaded environment variables from {self.env_path}")
        else:
            logger.debug(f"No .env file at {self.env_path}, using environment and defaults")

    def get(self, env_var: str, default: Any) -> Any:
        """Get a configuration value, coerced to the type of ``default``

        Args:
            env_var: Environment variable name to check
            default: Default value if not found in environment

        Returns:
            The configuration value from environment or default
        """
        env_value = os.getenv(env_var)
        if env_value is None:
            if isinstance(default, str) and default.startswith("~/"):
                return str(Path(default).expanduser())
            return default

        # bool must be checked before int, bool is an int subclass
        if isinstance(default, bool):
            return env_value.strip().lower() in _TRUTHY
        if isinstance(default, int):
            try:
                return int(env_value)
            except ValueError:
                logger.warning(f"Failed to parse {env_var}={env_value} as int, using default: {default}")
                return default
        if isinstance(default, float):
            try:
                return float(env_value)
            except ValueError:
                logger.warning(f"Failed to parse {env_var}={env_value} as float, using default: {default}")
                return default
        if isinstance(default, str) and env_value.startswith("~/"):
            return str(Path(env_value).expanduser())
        return env_value

    def get_list(self, env_var: str, default: Optional[List[str]] = None) -> List[str]:
        """Get a comma-separated configuration value as a list of strings"""
        env_value = os.getenv(env_var)
        if env_value is None:
            return list(default or [])
        return [part.strip() for part in env_value.split(",") if part.strip()]


_config_loader = None


def get_config_loader() -> ConfigLoader:
    """Get or create the global ConfigLoader instance"""
    global _config_loader
    if _config_loader is None:
        _config_loader = ConfigLoader()
    return _config_loader
