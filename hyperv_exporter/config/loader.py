"""Configuration loader with YAML parsing and environment variable substitution."""

import yaml
import os
import re
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from ..errors import ConfigurationError
from .models import ExporterConfig


class ConfigLoader:
    """Load and validate exporter configuration."""

    @staticmethod
    def load_from_file(config_path: Optional[str]) -> ExporterConfig:
        """
        Load configuration from YAML file with environment variable substitution.

        Args:
            config_path: Path to YAML configuration file, or None for defaults

        Returns:
            ExporterConfig: Validated configuration object

        Raises:
            FileNotFoundError: If an explicit config file doesn't exist
            ConfigurationError: If YAML parsing or validation fails
        """
        if config_path is None:
            return ExporterConfig()

        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file, 'r') as f:
                raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        return ConfigLoader.load_from_dict(raw_config or {})

    @staticmethod
    def load_from_dict(raw_config: Any) -> ExporterConfig:
        """
        Validate an already parsed configuration mapping.

        Raises:
            ConfigurationError: If the mapping is not a valid configuration
        """
        if not isinstance(raw_config, dict):
            raise ConfigurationError("Configuration root must be a mapping")

        raw_config = ConfigLoader._substitute_env_vars(raw_config)

        try:
            return ExporterConfig(**raw_config)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @staticmethod
    def _substitute_env_vars(obj: Any) -> Any:
        """
        Recursively substitute ${ENV_VAR} placeholders with environment values.

        Args:
            obj: Object to process (str, dict, list, or primitive)

        Returns:
            Object with environment variables substituted
        """
        if isinstance(obj, str):
            pattern = r'\$\{(\w+)\}'
            return re.sub(pattern, lambda m: os.getenv(m.group(1), ''), obj)

        elif isinstance(obj, dict):
            return {k: ConfigLoader._substitute_env_vars(v) for k, v in obj.items()}

        elif isinstance(obj, list):
            return [ConfigLoader._substitute_env_vars(item) for item in obj]

        return obj
