# Configuration package for bot settings and channel configuration

from .config_manager import ConfigManager, ChannelConfig, ConfigurationError

__all__ = ['ConfigManager', 'ChannelConfig', 'ConfigurationError']
