"""Configuration loader: environment variables with an optional YAML overlay."""

import os
import re
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Type, TypeVar

import yaml
from pydantic import ValidationError

from ..utils.errors import ConfigError
from .models import CollectorConfig

ConfigT = TypeVar("ConfigT", bound=CollectorConfig)


class ConfigLoader:
    """Build and validate collector configuration."""

    @staticmethod
    def load(
        model: Type[ConfigT],
        section: str,
        config_path: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None
    ) -> ConfigT:
        """
        Load a collector config from the environment, overlaid by a YAML section.

        Values in the YAML section win over the environment. Keys may use either
        the environment variable name or the model field name.

        Args:
            model: Config model class for the collector
            section: Top-level YAML key holding this collector's settings
            config_path: Optional path to a YAML configuration file
            environ: Environment mapping, os.environ by default

        Returns:
            Validated config instance

        Raises:
            ConfigError: If the file is unreadable or values are missing or invalid
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = dict(environ)

        if config_path:
            aliases = {name: f.alias for name, f in model.model_fields.items() if f.alias}
            overlay = ConfigLoader.load_section(config_path, section, environ)
            values.update({aliases.get(key, key): value for key, value in overlay.items()})

        try:
            config = model.model_validate(values)
        except ValidationError as e:
            messages = "; ".join(err["msg"] for err in e.errors())
            raise ConfigError(f"Invalid {section} configuration: {messages}") from e

        config.validate_required()
        return config

    @staticmethod
    def load_section(
        config_path: str,
        section: str,
        environ: Optional[Mapping[str, str]] = None
    ) -> Dict[str, Any]:
        """
        Read one collector section from a YAML file with ${VAR} substitution.

        Args:
            config_path: Path to YAML configuration file
            section: Top-level key to return
            environ: Environment mapping used for substitution

        Returns:
            Dict of settings, empty if the section is absent

        Raises:
            ConfigError: If the file is missing or is not valid YAML
        """
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file, 'r') as f:
                raw_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse {config_path}: {e}") from e

        if not isinstance(raw_config, dict):
            raise ConfigError(f"Configuration file {config_path} must contain a mapping")

        raw_section = raw_config.get(section) or {}
        if not isinstance(raw_section, dict):
            raise ConfigError(f"Section '{section}' in {config_path} must be a mapping")

        return ConfigLoader._substitute_env_vars(raw_section, os.environ if environ is None else environ)

    @staticmethod
    def _substitute_env_vars(obj: Any, environ: Mapping[str, str]) -> Any:
        """
        Recursively substitute ${ENV_VAR} placeholders with environment values.

        Args:
            obj: Object to process (str, dict, list, or primitive)
            environ: Environment mapping

        Returns:
            Object with environment variables substituted
        """
        if isinstance(obj, str):
            pattern = r'\$\{(\w+)\}'
            return re.sub(pattern, lambda m: environ.get(m.group(1), ''), obj)

        elif isinstance(obj, dict):
            return {k: ConfigLoader._substitute_env_vars(v, environ) for k, v in obj.items()}

        elif isinstance(obj, list):
            return [ConfigLoader._substitute_env_vars(item, environ) for item in obj]

        return obj
