"""
Configuration Management
Loads settings from YAML files and environment variables
"""
import yaml
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_CONFIG_DIR = Path(__file__).parent.parent / "config"


class Settings(BaseSettings):
    """Client settings loaded from environment"""

    model_config = SettingsConfigDict(
        env_prefix="LEADSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = "development"

    # REST API
    api_url: str = "http://localhost:5000/api"
    request_timeout: float = 30.0

    # Push channel (socket.io)
    socket_url: Optional[str] = None
    socketio_path: str = "/socket.io/"
    transports: List[str] = ["websocket", "polling"]
    reconnection_delay: float = 1.0
    reconnection_attempts: int = 5

    # Collections
    default_page_limit: int = 10
    activity_page_limit: int = 50
    performance_roles: List[str] = ["Admin", "Manager"]

    @property
    def resolved_socket_url(self) -> str:
        """
        Socket.io connects to the base server URL, not the REST prefix.
        Example: https://host/api -> https://host
        """
        if self.socket_url:
            return self.socket_url
        stripped = re.sub(r"/api/?$", "", self.api_url)
        return stripped or self.api_url


class ConfigManager:
    """Manages loading and merging configuration from multiple sources"""

    def __init__(self, env: str = "development", config_dir: Optional[Path] = None):
        self.env = env
        self.config_dir = Path(config_dir) if config_dir else DEFAULT_CONFIG_DIR
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self) -> None:
        """Load configuration files in order of precedence"""
        default_path = self.config_dir / "default.yaml"
        if default_path.exists():
            self._config = self._load_yaml(default_path)

        env_path = self.config_dir / f"{self.env}.yaml"
        if env_path.exists():
            env_config = self._load_yaml(env_path)
            self._deep_merge(self._config, env_config)

        self._substitute_env_vars(self._config)

    def _load_yaml(self, path: Path) -> Dict:
        """Load YAML file"""
        with open(path, 'r') as f:
            return yaml.safe_load(f) or {}

    def _substitute_env_vars(self, config: Dict) -> None:
        """Replace ${VAR_NAME} with environment variable values"""
        for key, value in config.items():
            if isinstance(value, dict):
                self._substitute_env_vars(value)
            elif isinstance(value, str) and value.startswith("${") and value.endswith("}"):
                env_var = value[2:-1]
                config[key] = os.getenv(env_var, value)

    def _deep_merge(self, base: Dict, override: Dict) -> None:
        """Recursively merge override into base"""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get configuration value using dot notation
        Example: config.get("push.reconnection_attempts") -> 5
        """
        keys = key_path.split('.')
        value = self._config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def as_settings_overrides(self) -> Dict[str, Any]:
        """
        Flatten the sectioned YAML layout into Settings field names.

        YAML sections (api, push, collections) only group keys for
        readability; unset or unresolved values are skipped.
        """
        overrides: Dict[str, Any] = {}
        for section in ("api", "push", "collections"):
            values = self.get(section, {}) or {}
            for key, value in values.items():
                if value is None:
                    continue
                if isinstance(value, str) and value.startswith("${"):
                    continue
                overrides[key] = value
        return overrides


def load_settings(env: Optional[str] = None, config_dir: Optional[Path] = None) -> Settings:
    """
    Build Settings from YAML defaults, overridden by environment variables.

    Environment variables (LEADSYNC_*) always win over YAML values.
    """
    env = env or os.getenv("LEADSYNC_ENVIRONMENT", "development")
    manager = ConfigManager(env=env, config_dir=config_dir)
    overrides = manager.as_settings_overrides()

    env_keys = {
        name for name in Settings.model_fields
        if os.getenv(f"LEADSYNC_{name.upper()}") is not None
    }
    init_kwargs = {k: v for k, v in overrides.items() if k not in env_keys and k in Settings.model_fields}
    init_kwargs["environment"] = env
    return Settings(**init_kwargs)
