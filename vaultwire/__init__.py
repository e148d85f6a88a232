from vaultwire.configuration import (
    ChainedSource,
    Configuration,
    ConfigurationSource,
    EnvironmentSource,
    JsonFileSource,
    MemorySource,
)
from vaultwire.layering import (
    ConfigurationLayer,
    build_configuration,
    configure_configuration,
    default_layers,
)
from vaultwire.loader import SecretLoader, VaultConfigurationSource, load_secrets
from vaultwire.mongo import MongoBuilder, add_mongo
from vaultwire.retry import RetryPolicy
from vaultwire.sections import bind_from_configuration, get_required_section
from vaultwire.settings import MongoDbSettings, VaultSettings

__all__ = [
    "ChainedSource",
    "Configuration",
    "ConfigurationLayer",
    "ConfigurationSource",
    "EnvironmentSource",
    "JsonFileSource",
    "MemorySource",
    "MongoBuilder",
    "MongoDbSettings",
    "RetryPolicy",
    "SecretLoader",
    "VaultConfigurationSource",
    "VaultSettings",
    "add_mongo",
    "bind_from_configuration",
    "build_configuration",
    "configure_configuration",
    "default_layers",
    "get_required_section",
    "load_secrets",
]
