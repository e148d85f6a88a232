from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from vaultwire.exceptions import ConfigurationFileError, SectionBindingError

KEY_DELIMITER = ":"

ModelT = TypeVar("ModelT", bound=BaseModel)


class Configuration:
    """Flat, case-insensitive store of `Section:Field` keys to string values."""

    def __init__(self, values: Mapping[str, Any] | None = None, origin: str | None = None) -> None:
        self._entries: dict[str, tuple[str, str]] = {}
        self._origins: dict[str, str] = {}
        if values:
            self.merge(values, origin=origin)

    def merge(self, values: Mapping[str, Any], origin: str | None = None) -> None:
        """Write values over the current ones; the last writer wins per key."""
        for key, value in flatten(values).items():
            folded = key.casefold()
            existing = self._entries.get(folded)
            display_key = existing[0] if existing is not None else key
            self._entries[folded] = (display_key, value)
            if origin is not None:
                self._origins[folded] = origin

    def get(self, key: str, default: str | None = None) -> str | None:
        entry = self._entries.get(key.casefold())
        return entry[1] if entry is not None else default

    def origin_of(self, key: str) -> str | None:
        return self._origins.get(key.casefold())

    def get_section(self, name: str) -> ConfigurationSection:
        return ConfigurationSection(self, name)

    def items(self) -> list[tuple[str, str]]:
        return list(self._entries.values())

    def __getitem__(self, key: str) -> str:
        entry = self._entries.get(key.casefold())
        if entry is None:
            raise KeyError(key)
        return entry[1]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.casefold() in self._entries

    def __iter__(self) -> Iterator[str]:
        return (display_key for display_key, _ in self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"Configuration(keys={len(self)})"


class ConfigurationSection:
    def __init__(self, configuration: Configuration, path: str) -> None:
        self._configuration = configuration
        self.path = path

    @property
    def value(self) -> str | None:
        return self._configuration.get(self.path)

    def children(self) -> dict[str, str]:
        """Child keys relative to this section, with their values."""
        prefix = f"{self.path}{KEY_DELIMITER}".casefold()
        return {
            key[len(prefix) :]: value
            for key, value in self._configuration.items()
            if key.casefold().startswith(prefix)
        }

    def exists(self) -> bool:
        return self.value is not None or bool(self.children())

    def to_tree(self) -> dict[str, Any]:
        tree: dict[str, Any] = {}
        for relative_key, value in self.children().items():
            node = tree
            *parents, leaf = relative_key.split(KEY_DELIMITER)
            for part in parents:
                child = _find_case_insensitive(node, part)
                if not isinstance(node.get(child), dict):
                    node[child] = {}
                node = node[child]
            leaf_key = _find_case_insensitive(node, leaf)
            if not isinstance(node.get(leaf_key), dict):
                node[leaf_key] = value
        return _lists_from_indexes(tree)

    def bind(self, model_cls: type[ModelT]) -> ModelT:
        """Bind this section to `model_cls`, falling back to model defaults when absent."""
        return bind_model(model_cls, self.to_tree(), section_name=self.path)


class ConfigurationSource(BaseModel, ABC):
    """Base model for a source of flat configuration values."""

    model_config = ConfigDict(extra="forbid")

    @abstractmethod
    def load(self) -> Mapping[str, str]:
        """Return flat `Section:Field` key/value pairs from this source."""


class MemorySource(ConfigurationSource):
    data: dict[str, Any]

    def load(self) -> dict[str, str]:
        return flatten(self.data)


class ChainedSource(ConfigurationSource):
    """Several sources merged in order, later ones winning."""

    sources: list[ConfigurationSource]

    def load(self) -> dict[str, str]:
        values: dict[str, str] = {}
        for source in self.sources:
            values.update(source.load())
        return values


class JsonFileSource(ConfigurationSource):
    """JSON file flattened into configuration keys; re-read on every load."""

    path: Path
    optional: bool = True

    def load(self) -> dict[str, str]:
        if not self.path.is_file():
            if self.optional:
                return {}
            raise ConfigurationFileError(f"Configuration file '{self.path}' was not found.")

        try:
            contents = self.path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as exc:
            raise ConfigurationFileError(
                f"Configuration file '{self.path}' could not be read: {exc}"
            ) from exc

        try:
            payload = json.loads(contents)
        except json.JSONDecodeError as exc:
            raise ConfigurationFileError(
                f"Configuration file '{self.path}' is not valid JSON: {exc}"
            ) from exc

        if not isinstance(payload, dict):
            raise ConfigurationFileError(
                f"Configuration file '{self.path}' must contain a JSON object at the top level."
            )
        return flatten(payload)


class EnvironmentSource(ConfigurationSource):
    """Environment variables, with `__` standing in for the `:` key delimiter."""

    prefix: str = ""

    def load(self) -> dict[str, str]:
        values: dict[str, str] = {}
        folded_prefix = self.prefix.casefold()
        for name, value in os.environ.items():
            if folded_prefix:
                if not name.casefold().startswith(folded_prefix):
                    continue
                name = name[len(self.prefix) :]
            if name:
                values[name.replace("__", KEY_DELIMITER)] = value
        return values


def flatten(values: Mapping[str, Any], parent: str = "") -> dict[str, str]:
    flat: dict[str, str] = {}
    for key, value in values.items():
        full_key = f"{parent}{KEY_DELIMITER}{key}" if parent else str(key)
        _flatten_value(flat, full_key, value)
    return flat


def to_config_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "True" if value else "False"
    return str(value)


def bind_model(model_cls: type[ModelT], tree: Mapping[str, Any], section_name: str) -> ModelT:
    try:
        return model_cls.model_validate(match_field_keys(model_cls, tree))
    except ValidationError as exc:
        raise SectionBindingError(
            f"Unable to bind configuration section '{section_name}' to type "
            f"'{model_cls.__name__}': {exc}"
        ) from exc


def _flatten_value(flat: dict[str, str], key: str, value: Any) -> None:
    if isinstance(value, Mapping):
        for child_key, child_value in value.items():
            _flatten_value(flat, f"{key}{KEY_DELIMITER}{child_key}", child_value)
    elif isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            _flatten_value(flat, f"{key}{KEY_DELIMITER}{index}", item)
    else:
        flat[key] = to_config_string(value)


def _find_case_insensitive(node: Mapping[str, Any], key: str) -> str:
    folded = key.casefold()
    for existing in node:
        if existing.casefold() == folded:
            return existing
    return key


def _lists_from_indexes(node: Any) -> Any:
    if not isinstance(node, dict):
        return node
    converted = {key: _lists_from_indexes(value) for key, value in node.items()}
    if converted and all(key.isdigit() for key in converted):
        return [converted[key] for key in sorted(converted, key=int)]
    return converted


def match_field_keys(model_cls: type[BaseModel], tree: Mapping[str, Any]) -> dict[str, Any]:
    """Rename keys to the model's field aliases/names, ignoring case."""
    lookup: dict[str, tuple[str, Any]] = {}
    for field_name, field in model_cls.model_fields.items():
        target = field.alias or field_name
        lookup[field_name.casefold()] = (target, field.annotation)
        lookup[target.casefold()] = (target, field.annotation)

    matched: dict[str, Any] = {}
    for key, value in tree.items():
        target, annotation = lookup.get(key.casefold(), (key, None))
        if (
            isinstance(value, Mapping)
            and isinstance(annotation, type)
            and issubclass(annotation, BaseModel)
        ):
            value = match_field_keys(annotation, value)
        matched[target] = value
    return matched
