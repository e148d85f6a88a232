from __future__ import annotations

from typing import TypeVar

from dependency_injector import containers, providers
from pydantic import BaseModel
from pydantic.alias_generators import to_snake

from vaultwire.configuration import Configuration
from vaultwire.exceptions import SectionBindingError, SectionMissingError

ModelT = TypeVar("ModelT", bound=BaseModel)


def get_required_section(
    configuration: Configuration,
    model_cls: type[ModelT],
    section_name: str | None = None,
) -> ModelT:
    """Bind a configuration section that must exist.

    The section name defaults to the model's class name, so
    `get_required_section(config, MongoDbSettings)` reads `MongoDbSettings:*`.

    Raises:
        SectionMissingError: No key is at or below the section.
        SectionBindingError: The section exists but does not validate as `model_cls`.
    """
    if section_name is None:
        section_name = model_cls.__name__
    if not section_name:
        raise ValueError("section_name must not be empty.")

    section = configuration.get_section(section_name)
    if not section.exists():
        raise SectionMissingError(f"Configuration section '{section_name}' is missing")

    if not section.children():
        raise SectionBindingError(
            f"Unable to bind configuration section '{section_name}' to type "
            f"'{model_cls.__name__}': the section holds a single value, not fields"
        )
    return section.bind(model_cls)


def bind_from_configuration(
    container: containers.Container,
    configuration: Configuration,
    model_cls: type[ModelT],
    section_name: str | None = None,
) -> containers.Container:
    """Register `model_cls` as a lazily bound singleton named after the class.

    Unlike `get_required_section`, a missing section yields the model defaults.
    """
    provider = providers.Singleton(
        _bind_section, configuration, model_cls, section_name or model_cls.__name__
    )
    container.set_provider(to_snake(model_cls.__name__), provider)
    return container


def _bind_section(
    configuration: Configuration, model_cls: type[ModelT], section_name: str
) -> ModelT:
    return configuration.get_section(section_name).bind(model_cls)
