"""
Configuration management system for the ticket lifecycle bot.

This module loads the global bot settings and the channel configuration
(guild, open/closed categories, moderator role) from a JSON file, with
environment variables taking precedence.
"""

import json
import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Any
from pathlib import Path
import logging

from errors.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Environment variable -> (section, key, converter)
ENV_OVERRIDES = {
    'GUILD_ID': ('channels', 'guild_id', int),
    'OPEN_CATEGORY_ID': ('channels', 'open_category_id', int),
    'CLOSED_CATEGORY_ID': ('channels', 'closed_category_id', int),
    'MOD_ROLE_ID': ('channels', 'moderator_role_id', int),
    'PROVISION_TIMEOUT': ('channels', 'provision_timeout', float),
    'DATABASE_URL': ('global', 'database_url', str),
    'LOG_LEVEL': ('global', 'log_level', str),
}

REQUIRED_CHANNEL_KEYS = ['guild_id', 'open_category_id', 'closed_category_id', 'moderator_role_id']


@dataclass(frozen=True)
class ChannelConfig:
    """Identifiers the channel provisioner needs, passed in at construction time."""

    guild_id: int
    open_category_id: int
    closed_category_id: int
    moderator_role_id: int
    provision_timeout: float = 15.0

    def __post_init__(self):
        """Validate configuration after initialization."""
        for name in REQUIRED_CHANNEL_KEYS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"Invalid {name}: {value}")

        if self.open_category_id == self.closed_category_id:
            raise ValueError("open_category_id and closed_category_id must differ")

        if not isinstance(self.provision_timeout, (int, float)) or self.provision_timeout <= 0:
            raise ValueError(f"Invalid provision_timeout: {self.provision_timeout}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert ChannelConfig to dictionary for serialization."""
        return {
            'guild_id': self.guild_id,
            'open_category_id': self.open_category_id,
            'closed_category_id': self.closed_category_id,
            'moderator_role_id': self.moderator_role_id,
            'provision_timeout': self.provision_timeout
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ChannelConfig':
        """Create ChannelConfig from dictionary."""
        return cls(
            guild_id=data['guild_id'],
            open_category_id=data['open_category_id'],
            closed_category_id=data['closed_category_id'],
            moderator_role_id=data['moderator_role_id'],
            provision_timeout=data.get('provision_timeout', 15.0)
        )


class ConfigManager:
    """Manages bot configuration: global settings plus the channel configuration."""

    def __init__(self, config_file: str = "config.json", use_environment: bool = True):
        """
        Initialize ConfigManager.

        Args:
            config_file: Path to the main configuration file
            use_environment: Whether environment variables override file values
        """
        self.config_file = Path(config_file)
        self.use_environment = use_environment
        self.global_config: Dict[str, Any] = {}
        self.channel_settings: Dict[str, Any] = {}
        self._channel_config: Optional[ChannelConfig] = None
        self._load_configuration()

    def _load_configuration(self):
        """Load configuration from file, then apply environment overrides."""
        try:
            if self.config_file.exists():
                with open(self.config_file, 'r', encoding='utf-8') as f:
                    config_data = json.load(f)

                self.global_config = config_data.get('global', {})
                self.channel_settings = config_data.get('channels', {})
                logger.info(f"Configuration loaded successfully from {self.config_file}")
            else:
                logger.info(f"Configuration file {self.config_file} not found, using defaults")
                self._create_default_config()

        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in configuration file: {e}")
            raise ConfigurationError(f"Invalid JSON in configuration file: {e}")
        except OSError as e:
            logger.error(f"Error loading configuration: {e}")
            raise ConfigurationError(f"Error loading configuration: {e}")

        if self.use_environment:
            self._apply_environment()

    def _apply_environment(self):
        """Override file values with environment variables that are set."""
        sections = {'global': self.global_config, 'channels': self.channel_settings}

        for env_name, (section, key, converter) in ENV_OVERRIDES.items():
            raw = os.getenv(env_name)
            if raw is None or raw.strip() == "":
                continue
            try:
                sections[section][key] = converter(raw.strip())
            except ValueError:
                raise ConfigurationError(f"Invalid value for {env_name}: {raw!r}", config_key=env_name)

    def _create_default_config(self):
        """Create default configuration file."""
        default_config = {
            'global': {
                'database_type': 'sqlite',
                'database_url': 'tickets.db',
                'log_level': 'INFO'
            },
            'channels': {}
        }

        try:
            with open(self.config_file, 'w', encoding='utf-8') as f:
                json.dump(default_config, f, indent=2)

            self.global_config = default_config['global']
            self.channel_settings = default_config['channels']
            logger.info(f"Created default configuration file at {self.config_file}")

        except OSError as e:
            logger.error(f"Error creating default configuration: {e}")
            raise ConfigurationError(f"Error creating default configuration: {e}")

    def get_channel_config(self) -> ChannelConfig:
        """
        Build the channel configuration.

        Returns:
            ChannelConfig for the configured guild

        Raises:
            ConfigurationError: If a required identifier is missing or invalid
        """
        if self._channel_config is not None:
            return self._channel_config

        missing = [key for key in REQUIRED_CHANNEL_KEYS if key not in self.channel_settings]
        if missing:
            raise ConfigurationError(
                f"Missing channel configuration: {', '.join(missing)}",
                config_key=missing[0]
            )

        try:
            self._channel_config = ChannelConfig.from_dict(self.channel_settings)
        except (ValueError, TypeError) as e:
            raise ConfigurationError(f"Invalid channel configuration: {e}")

        return self._channel_config

    def get_global_config(self, key: str, default: Any = None) -> Any:
        """
        Get a global configuration value.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        return self.global_config.get(key, default)

    def validate_configuration(self) -> List[str]:
        """
        Validate the current configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        required_global_keys = ['database_type', 'database_url']
        for key in required_global_keys:
            if key not in self.global_config:
                errors.append(f"Missing required global configuration: {key}")

        db_type = self.global_config.get('database_type')
        if db_type and db_type != 'sqlite':
            errors.append(f"Invalid database_type: {db_type}. Only 'sqlite' is supported")

        for key in REQUIRED_CHANNEL_KEYS:
            if key not in self.channel_settings:
                errors.append(f"Missing required channel configuration: {key}")

        if not any(e.startswith("Missing required channel") for e in errors):
            try:
                ChannelConfig.from_dict(self.channel_settings)
            except (ValueError, TypeError) as e:
                errors.append(f"Invalid channel configuration: {e}")

        return errors
