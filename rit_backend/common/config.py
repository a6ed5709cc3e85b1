"""
Centralized Configuration

This module provides the configuration system for the assessment core.
Values come from defaults, an optional YAML/JSON config file, and
environment variables (highest priority), with type checking and validation
done by pydantic.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Type, TypeVar

import yaml
from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rit_backend.common.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

S = TypeVar('S', bound=BaseSettings)


class AssessmentConfig(BaseSettings):
    """Adaptive assessment configuration"""
    model_config = SettingsConfigDict(env_prefix="RIT_", env_file=".env", extra="ignore")

    default_question_count: int = 10
    default_starting_difficulty: int = 225
    selection_window: int = 10
    session_idle_timeout_minutes: int = 0
    session_conflict_policy: str = "replace"

    @field_validator('default_question_count')
    @classmethod
    def validate_question_count(cls, v):
        """Question count must allow at least one answer"""
        if v < 1:
            raise ValueError(f"Question count must be positive, got {v}")
        return v

    @field_validator('default_starting_difficulty')
    @classmethod
    def validate_starting_difficulty(cls, v):
        """Starting difficulty must be on the RIT scale"""
        if not 100 <= v <= 350:
            raise ValueError(f"Starting difficulty must be between 100 and 350, got {v}")
        return v

    @field_validator('selection_window', 'session_idle_timeout_minutes')
    @classmethod
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError(f"Value must not be negative, got {v}")
        return v

    @field_validator('session_conflict_policy')
    @classmethod
    def validate_conflict_policy(cls, v):
        """Validate duplicate-session policy"""
        valid_policies = ['replace', 'reject']
        if v.lower() not in valid_policies:
            raise ValueError(f"Invalid session conflict policy: {v}. Must be one of {valid_policies}")
        return v.lower()


class LoggingConfig(BaseSettings):
    """Logging configuration"""
    model_config = SettingsConfigDict(env_prefix="LOG_", env_file=".env", extra="ignore")

    level: str = "INFO"
    format: str = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
    json_output: bool = Field(default=False, validation_alias=AliasChoices("LOG_JSON", "json_output"))
    file_path: Optional[str] = Field(default=None, validation_alias=AliasChoices("LOG_FILE", "file_path"))

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        """Validate log level"""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class DatabaseConfig(BaseSettings):
    """Database configuration"""
    model_config = SettingsConfigDict(env_prefix="DB_", env_file=".env", extra="ignore")

    url: str = Field(
        default="sqlite+aiosqlite:///./rit_assessments.db",
        validation_alias=AliasChoices("DATABASE_URL", "DB_URL", "url")
    )
    echo: bool = False
    pool_size: int = 10


class AppConfig(BaseModel):
    """Main application configuration"""
    app_name: str = "rit-assessment-core"
    version: str = "0.1.0"
    assessment: AssessmentConfig = Field(default_factory=AssessmentConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)


def _build_section(section_cls: Type[S], file_values: Optional[Dict[str, Any]]) -> S:
    """
    Build one config section, letting environment variables win over file values.

    Raises:
        ConfigurationError: If the merged values do not validate
    """
    try:
        env_values = section_cls().model_dump(exclude_unset=True)
        merged = dict(file_values or {})
        merged.update(env_values)
        return section_cls(**merged)
    except ValidationError as e:
        raise ConfigurationError(str(e), config_key=section_cls.__name__, original_exception=e) from e


class ConfigLoader:
    """
    Configuration loader for the application.

    Loads configuration from:
    1. Default values
    2. Config file
    3. Environment variables (highest priority)
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the config loader.

        Args:
            config_path: Path to config file (YAML or JSON)
        """
        self.config_path = config_path or os.environ.get("RIT_CONFIG_PATH")
        self._config: Optional[AppConfig] = None

    def load(self) -> AppConfig:
        """
        Load configuration from all sources.

        Returns:
            Loaded configuration

        Raises:
            ConfigurationError: If a value from the file or the environment is invalid
        """
        if self._config is not None:
            return self._config

        file_config: Dict[str, Any] = {}
        if self.config_path:
            file_config = self._load_from_file(self.config_path)

        self._config = AppConfig(
            app_name=file_config.get("app_name", "rit-assessment-core"),
            version=file_config.get("version", "0.1.0"),
            assessment=_build_section(AssessmentConfig, file_config.get("assessment")),
            logging=_build_section(LoggingConfig, file_config.get("logging")),
            database=_build_section(DatabaseConfig, file_config.get("database")),
        )
        return self._config

    def _load_from_file(self, path: str) -> Dict[str, Any]:
        """
        Load configuration from a file.

        Args:
            path: Path to config file

        Returns:
            Loaded configuration dictionary
        """
        path = Path(path)
        if not path.exists():
            logger.warning(f"Config file not found: {path}")
            return {}

        if path.suffix.lower() in ['.yaml', '.yml']:
            with open(path, 'r') as f:
                return yaml.safe_load(f) or {}
        if path.suffix.lower() == '.json':
            with open(path, 'r') as f:
                return json.load(f)

        logger.warning(f"Unsupported config file format: {path.suffix}")
        return {}


config_loader = ConfigLoader()
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """
    Get the loaded configuration, loading it on first use.
    """
    global _config
    if _config is None:
        _config = config_loader.load()
    return _config


def reload_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Reload the configuration.

    Args:
        config_path: Path to config file

    Returns:
        Reloaded configuration
    """
    global config_loader, _config
    config_loader = ConfigLoader(config_path)
    _config = config_loader.load()
    return _config
