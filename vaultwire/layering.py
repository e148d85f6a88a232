from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog

from vaultwire.configuration import (
    ChainedSource,
    Configuration,
    ConfigurationSource,
    EnvironmentSource,
    JsonFileSource,
)
from vaultwire.loader import VaultConfigurationSource
from vaultwire.settings import VaultSettings

BASE_FILE = "appsettings.json"
OVERRIDE_FILE = "appsettings.override.json"
VAULT_SETTINGS_SECTION = "VaultSettings"

BASE_LAYER = "base"
OVERRIDE_LAYER = "override"
VAULT_LAYER = "vault"
FINAL_OVERRIDE_LAYER = "override-final"


@dataclass(frozen=True, slots=True)
class ConfigurationLayer:
    """A named step in configuration assembly.

    `resolve` receives everything merged by the earlier layers and returns the
    source to merge next, or None when the layer does not apply.
    """

    name: str
    resolve: Callable[[Configuration], ConfigurationSource | None]


def default_layers(
    base_sources: Sequence[ConfigurationSource] | None = None,
    override_file: str | Path = OVERRIDE_FILE,
    vault_source_factory: Callable[[VaultSettings], ConfigurationSource] | None = None,
    logger: Any = None,
) -> list[ConfigurationLayer]:
    """Return the layers in precedence order, lowest first.

    The override file appears twice: before Vault, so it can supply the Vault
    address and token, and last, so local values shadow remote secrets.
    """
    if base_sources is None:
        base_sources = [JsonFileSource(path=Path(BASE_FILE)), EnvironmentSource()]
    base = ChainedSource(sources=list(base_sources))
    override = JsonFileSource(path=Path(override_file), optional=True)
    log = logger if logger is not None else structlog.get_logger()
    factory = vault_source_factory or _vault_source

    def _resolve_vault(configuration: Configuration) -> ConfigurationSource | None:
        settings = configuration.get_section(VAULT_SETTINGS_SECTION).bind(VaultSettings)
        if not settings.is_enabled:
            log.info("vault_source_disabled", reason="address or token not configured")
            return None
        return factory(settings)

    return [
        ConfigurationLayer(BASE_LAYER, lambda _: base),
        ConfigurationLayer(OVERRIDE_LAYER, lambda _: override),
        ConfigurationLayer(VAULT_LAYER, _resolve_vault),
        ConfigurationLayer(FINAL_OVERRIDE_LAYER, lambda _: override),
    ]


def build_configuration(layers: Sequence[ConfigurationLayer]) -> Configuration:
    configuration = Configuration()
    for layer in layers:
        source = layer.resolve(configuration)
        if source is None:
            continue
        configuration.merge(source.load(), origin=layer.name)
    return configuration


def configure_configuration(
    base_sources: Sequence[ConfigurationSource] | None = None,
    override_file: str | Path = OVERRIDE_FILE,
    vault_source_factory: Callable[[VaultSettings], ConfigurationSource] | None = None,
) -> Configuration:
    return build_configuration(
        default_layers(
            base_sources=base_sources,
            override_file=override_file,
            vault_source_factory=vault_source_factory,
        )
    )


def _vault_source(settings: VaultSettings) -> ConfigurationSource:
    return VaultConfigurationSource(settings=settings)
