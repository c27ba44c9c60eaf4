"""
Centralized Configuration for the Grading Engine

This module provides a unified configuration system. It handles
configuration from environment variables, config files, and defaults, with
type checking and validation through pydantic.

Environment variables use the ``GRADEBOOK_`` prefix and ``__`` for nested
sections, e.g. ``GRADEBOOK_SAMPLER__DEFAULT_QUESTION_POINTS=5``.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from gradebook.common.logger import APP_LOGGER_NAME, configure_logger

# Configure logging
logger = logging.getLogger(__name__)


class SamplerConfig(BaseModel):
    """Question bank and auto-generation defaults"""
    default_question_points: int = Field(default=10, ge=0)
    default_question_count: int = Field(default=10, gt=0)
    default_total_points: int = Field(default=200, gt=0)
    default_easy_percent: float = Field(default=30, ge=0, le=100)
    default_medium_percent: float = Field(default=50, ge=0, le=100)
    default_hard_percent: float = Field(default=20, ge=0, le=100)

    @model_validator(mode='after')
    def validate_difficulty_mix(self):
        """Validate the default difficulty mix sums to 100"""
        total = self.default_easy_percent + self.default_medium_percent + self.default_hard_percent
        if abs(total - 100) > 1e-6:
            raise ValueError(f"Default difficulty mix must sum to 100, got {total}")
        return self


class TimerConfig(BaseModel):
    """Timed test configuration"""
    warning_seconds: int = Field(default=300, ge=0)
    critical_seconds: int = Field(default=60, ge=0)
    tick_seconds: float = Field(default=1.0, gt=0)


class ReportingConfig(BaseModel):
    """Thresholds used by dashboard alerts"""
    low_score_percent: float = Field(default=50, ge=0, le=100)
    low_attendance_percent: float = Field(default=70, ge=0, le=100)


class LoggingConfig(BaseModel):
    """Logging configuration"""
    level: str = "INFO"
    format: str = "%(asctime)s | %(levelname)-8s | %(name)-30s | %(message)s"
    use_json: bool = False
    file_path: Optional[str] = None

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        """Validate log level"""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class EnvironmentConfig(BaseModel):
    """Environment configuration"""
    env: str = "development"
    testing: bool = False

    @field_validator('env')
    @classmethod
    def validate_env(cls, v):
        """Validate environment"""
        valid_envs = ['development', 'testing', 'staging', 'production']
        if v.lower() not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of {valid_envs}")
        return v.lower()


class EngineConfig(BaseSettings):
    """Main engine configuration"""
    model_config = SettingsConfigDict(
        env_prefix="GRADEBOOK_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    app_name: str = "gradebook"
    version: str = "0.1.0"
    sampler: SamplerConfig = Field(default_factory=SamplerConfig)
    timer: TimerConfig = Field(default_factory=TimerConfig)
    reporting: ReportingConfig = Field(default_factory=ReportingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    environment: EnvironmentConfig = Field(default_factory=EnvironmentConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # Environment wins over values loaded from a config file
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    @property
    def is_testing(self) -> bool:
        """Check if environment is testing"""
        return self.environment.env == "testing" or self.environment.testing

    @property
    def is_production(self) -> bool:
        """Check if environment is production"""
        return self.environment.env == "production"


class ConfigLoader:
    """
    Configuration loader for the engine.

    Loads configuration from:
    1. Default values
    2. Config file (YAML or JSON)
    3. Environment variables (highest priority)
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize the config loader.

        Args:
            config_path: Path to config file (YAML or JSON)
        """
        self.config_path = config_path or os.environ.get("GRADEBOOK_CONFIG_PATH")
        self._config: Optional[EngineConfig] = None

    def load(self) -> EngineConfig:
        """
        Load configuration from all sources.

        Returns:
            Loaded configuration
        """
        if self._config is not None:
            return self._config

        file_config: Dict[str, Any] = {}
        if self.config_path:
            file_config = self._load_from_file(self.config_path)

        self._config = EngineConfig(**file_config)
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

        try:
            if path.suffix.lower() in ['.yaml', '.yml']:
                with open(path, 'r') as f:
                    return yaml.safe_load(f) or {}
            elif path.suffix.lower() == '.json':
                with open(path, 'r') as f:
                    return json.load(f)
            else:
                logger.warning(f"Unsupported config file format: {path.suffix}")
                return {}
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            logger.error(f"Error loading config file: {e}")
            return {}


# Global configuration instance
config_loader = ConfigLoader()
_config: Optional[EngineConfig] = None


def get_config() -> EngineConfig:
    """
    Get the loaded configuration.

    Returns:
        Loaded configuration
    """
    global _config
    if _config is None:
        _config = config_loader.load()
    return _config


def reload_config(config_path: Optional[str] = None) -> EngineConfig:
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


def apply_logging_config(config: Optional[EngineConfig] = None) -> logging.Logger:
    """
    Reconfigure the application logger from the logging section.

    Args:
        config: Configuration to apply (defaults to the loaded one)

    Returns:
        The reconfigured application logger
    """
    settings = (config or get_config()).logging
    return configure_logger(
        name=APP_LOGGER_NAME,
        level=settings.level,
        format_string=settings.format,
        use_json=settings.use_json,
        log_file=settings.file_path,
    )
