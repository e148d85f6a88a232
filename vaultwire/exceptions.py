from __future__ import annotations


class VaultwireError(RuntimeError):
    """Base error for configuration and wiring failures."""


class ConfigurationError(VaultwireError):
    pass


class ConfigurationFileError(ConfigurationError):
    """A configuration file could not be read or parsed."""


class SectionMissingError(ConfigurationError):
    """A required configuration section does not exist."""


class SectionBindingError(ConfigurationError):
    """A configuration section exists but cannot be bound to the target model."""


class MongoConfigurationError(VaultwireError):
    """Required MongoDB settings are missing after all configuration layers."""
