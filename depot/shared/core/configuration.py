"""
Configuration Management System for Depot

This module provides a centralized configuration system that supports a 4-tier
precedence hierarchy: environment → project → user → system defaults.
"""

import logging
import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, ConfigDict, ValidationError
from enum import Enum

logger = logging.getLogger(__name__)


class ValidationLevel(Enum):
    """Configuration validation strictness levels"""
    STRICT = "strict"      # Fail fast on validation errors
    LENIENT = "lenient"    # Log warnings, use defaults


class StorageConfig(BaseModel):
    """Local key-value store configuration"""
    model_config = ConfigDict(extra='forbid')

    db_path: str = Field(default="data/db/depot_state.duckdb", description="DuckDB file backing the local store")
    identity_markers: list[str] = Field(
        default_factory=lambda: ["user_id"],
        description="Key substrings marking opaque identity tokens exempt from JSON validation",
    )
    verify_on_start: bool = Field(default=True, description="Sweep all keys for corruption at startup")


class BackendConfig(BaseModel):
    """Hosted backend application record"""
    model_config = ConfigDict(extra='forbid')

    api_key: Optional[str] = Field(default=None, description="Backend web API key")
    auth_domain: Optional[str] = Field(default=None, description="Identity service domain")
    project_id: Optional[str] = Field(default=None, description="Backend project identifier")
    storage_bucket: Optional[str] = Field(default=None, description="Object storage bucket")
    messaging_sender_id: Optional[str] = Field(default=None, description="Messaging sender id")
    app_id: Optional[str] = Field(default=None, description="Backend application id")

    app_name: str = Field(default="[DEFAULT]", description="Name the SDK registers the app under")
    platform: str = Field(default="native", description="Runtime target: 'web' enables the offline cache")
    request_timeout: float = Field(default=30.0, ge=1.0, le=300.0, description="REST request timeout (seconds)")


class GateConfig(BaseModel):
    """Session gate navigation configuration"""
    model_config = ConfigDict(extra='forbid')

    login_group: str = Field(default="login", description="Route group of the login screen")
    login_route: str = Field(default="/login", description="Target for unauthenticated users")
    landing_route: str = Field(default="/portal-selection", description="Post-login landing screen")
    initial_route: str = Field(default="/", description="Route the router starts on")
    navigation_delay: float = Field(default=0.1, ge=0.0, le=5.0, description="Delay before a scheduled navigation fires (seconds)")


class BootstrapConfig(BaseModel):
    """Startup sequence configuration"""
    model_config = ConfigDict(extra='forbid')

    ready_timeout: float = Field(default=3.0, ge=0.1, le=60.0, description="Force readiness after this many seconds")


class SystemConfig(BaseModel):
    """Complete system configuration"""
    model_config = ConfigDict(extra='forbid')

    storage: StorageConfig = Field(default_factory=StorageConfig)
    backend: BackendConfig = Field(default_factory=BackendConfig)
    gate: GateConfig = Field(default_factory=GateConfig)
    bootstrap: BootstrapConfig = Field(default_factory=BootstrapConfig)

    # Metadata
    schema_version: int = Field(default=1, description="Configuration schema version")


# env var -> (section, key, converter)
ENV_OVERRIDES: Dict[str, tuple] = {
    'DEPOT_API_KEY': ('backend', 'api_key', str),
    'DEPOT_AUTH_DOMAIN': ('backend', 'auth_domain', str),
    'DEPOT_PROJECT_ID': ('backend', 'project_id', str),
    'DEPOT_STORAGE_BUCKET': ('backend', 'storage_bucket', str),
    'DEPOT_MESSAGING_SENDER_ID': ('backend', 'messaging_sender_id', str),
    'DEPOT_APP_ID': ('backend', 'app_id', str),
    'DEPOT_PLATFORM': ('backend', 'platform', str),
    'DEPOT_DB_PATH': ('storage', 'db_path', str),
    'DEPOT_NAV_DELAY': ('gate', 'navigation_delay', float),
    'DEPOT_READY_TIMEOUT': ('bootstrap', 'ready_timeout', float),
}


class ConfigManager:
    """Centralized configuration manager with 4-tier precedence hierarchy"""

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = config_dir or Path(__file__).resolve().parent.parent / "config" / "settings"
        self._system_config: Optional[SystemConfig] = None
        self._user_config: Optional[Dict[str, Any]] = None
        self._project_config: Optional[Dict[str, Any]] = None

    def _load_yaml_file(self, file_path: Path) -> Dict[str, Any]:
        """Load YAML configuration file"""
        if not file_path.exists():
            return {}

        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.warning(f"Failed to load {file_path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring {file_path}: top level is not a mapping")
            return {}
        return data

    def _save_yaml_file(self, file_path: Path, data: Dict[str, Any]) -> bool:
        """Save configuration to YAML file"""
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, 'w', encoding='utf-8') as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, indent=2)
            return True
        except OSError as e:
            logger.error(f"Failed to save {file_path}: {e}")
            return False

    def _load_system_defaults(self) -> SystemConfig:
        """Load system default configuration"""
        if self._system_config is None:
            defaults_dict = self._load_yaml_file(self.config_dir / "defaults.yaml")
            try:
                self._system_config = SystemConfig(**defaults_dict)
            except ValidationError as e:
                logger.warning(f"System defaults validation failed: {e}")
                self._system_config = SystemConfig()

        return self._system_config

    def _load_user_config(self) -> Dict[str, Any]:
        if self._user_config is None:
            self._user_config = self._load_yaml_file(self.config_dir / "user.yaml")
        return self._user_config

    def _load_project_config(self) -> Dict[str, Any]:
        if self._project_config is None:
            self._project_config = self._load_yaml_file(self.config_dir / "project.yaml")
        return self._project_config

    def _merge_configs(self) -> Dict[str, Any]:
        """Merge configurations with precedence: env → project → user → system"""
        merged = self._load_system_defaults().model_dump()
        self._deep_merge(merged, self._load_user_config())
        self._deep_merge(merged, self._load_project_config())
        self._deep_merge(merged, self._get_env_overrides())
        return merged

    def _deep_merge(self, base: Dict[str, Any], updates: Dict[str, Any]) -> None:
        """Deep merge configuration dictionaries"""
        for key, value in updates.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def _get_env_overrides(self) -> Dict[str, Any]:
        """Extract configuration overrides from environment variables"""
        overrides: Dict[str, Any] = {}
        for env_key, (section, config_key, convert) in ENV_OVERRIDES.items():
            value = os.getenv(env_key)
            if value is None:
                continue
            try:
                converted = convert(value)
            except ValueError:
                logger.warning(f"Ignoring {env_key}={value!r}: not a valid {convert.__name__}")
                continue
            overrides.setdefault(section, {})[config_key] = converted

        return overrides

    def get_config(self, validation_level: ValidationLevel = ValidationLevel.STRICT) -> SystemConfig:
        """Get merged configuration with validation"""
        merged_config = self._merge_configs()

        try:
            return SystemConfig(**merged_config)
        except ValidationError as e:
            if validation_level == ValidationLevel.STRICT:
                raise ValueError(f"Configuration validation failed: {e}") from e
            logger.warning(f"Configuration validation failed, using defaults: {e}")
            return SystemConfig()

    def save_project_config(self, config_updates: Dict[str, Any]) -> bool:
        """Save project-specific configuration updates"""
        project_path = self.config_dir / "project.yaml"
        existing_config = self._load_yaml_file(project_path)
        self._deep_merge(existing_config, config_updates)

        success = self._save_yaml_file(project_path, existing_config)
        if success:
            # Force reload on next read
            self._project_config = None
        return success

    def reload_config(self) -> None:
        """Clear cached configurations and reload from files"""
        self._system_config = None
        self._user_config = None
        self._project_config = None


def get_config(
    config_dir: Optional[Path] = None,
    validation_level: ValidationLevel = ValidationLevel.STRICT,
) -> SystemConfig:
    """Load the merged system configuration from ``config_dir``."""
    return ConfigManager(config_dir).get_config(validation_level)


def validate_backend_config(config: BackendConfig) -> bool:
    """Check the fields the backend SDK cannot start without."""
    required = [config.api_key, config.project_id]
    return all(value and value.strip() for value in required)
