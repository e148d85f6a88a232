from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from pydantic import BaseModel

from vaultwire.configuration import (
    ChainedSource,
    Configuration,
    EnvironmentSource,
    JsonFileSource,
    MemorySource,
    flatten,
)
from vaultwire.exceptions import ConfigurationFileError, SectionBindingError
from vaultwire.settings import VaultSettings


def test_flatten_joins_nested_keys_and_indexes_lists() -> None:
    values = flatten(
        {
            "MongoDbSettings": {"ConnectionString": "mongodb://db", "Port": 27017},
            "Hosts": ["a", {"Name": "b"}],
            "Enabled": True,
            "Empty": None,
        }
    )

    assert values == {
        "MongoDbSettings:ConnectionString": "mongodb://db",
        "MongoDbSettings:Port": "27017",
        "Hosts:0": "a",
        "Hosts:1:Name": "b",
        "Enabled": "True",
        "Empty": "",
    }


def test_keys_are_case_insensitive_and_last_writer_wins() -> None:
    configuration = Configuration({"Foo:Bar": "first"}, origin="base")
    configuration.merge({"foo:bar": "second"}, origin="override")

    assert configuration["FOO:BAR"] == "second"
    assert "fOo:bAr" in configuration
    assert list(configuration) == ["Foo:Bar"]
    assert configuration.origin_of("foo:BAR") == "override"
    assert configuration.get("Missing") is None
    with pytest.raises(KeyError):
        configuration["Missing"]


def test_section_exists_for_values_and_children() -> None:
    configuration = Configuration({"Scalar": "", "Parent:Child": "x"})

    assert configuration.get_section("Scalar").exists()
    assert configuration.get_section("parent").exists()
    assert not configuration.get_section("Parent:Other").exists()
    assert not configuration.get_section("Absent").exists()


def test_section_tree_builds_lists_from_indexes() -> None:
    configuration = Configuration(
        {"Cluster:Hosts:1": "b", "Cluster:Hosts:0": "a", "Cluster:Name": "main"}
    )

    assert configuration.get_section("Cluster").to_tree() == {
        "Hosts": ["a", "b"],
        "Name": "main",
    }


def test_section_bind_matches_aliases_case_insensitively() -> None:
    configuration = Configuration(
        {
            "vaultsettings:address": "http://vault:8200",
            "VaultSettings:TOKEN": "s.token",
            "VaultSettings:secret_path": "app",
        }
    )

    settings = configuration.get_section("VaultSettings").bind(VaultSettings)

    assert settings.address == "http://vault:8200"
    assert settings.token == "s.token"
    assert settings.secret_path == "app"
    assert settings.mount_path == "kv"


def test_section_bind_binds_nested_models() -> None:
    class Credentials(BaseModel):
        user: str

    class Database(BaseModel):
        name: str
        credentials: Credentials

    configuration = Configuration({"Database:NAME": "main", "Database:Credentials:USER": "app"})

    bound = configuration.get_section("Database").bind(Database)

    assert bound.credentials.user == "app"


def test_section_bind_of_missing_section_uses_defaults() -> None:
    settings = Configuration().get_section("VaultSettings").bind(VaultSettings)

    assert settings == VaultSettings()
    assert not settings.is_enabled


def test_section_bind_raises_for_invalid_values() -> None:
    configuration = Configuration({"VaultSettings:Timeout": "soon"})

    with pytest.raises(SectionBindingError, match="VaultSettings"):
        configuration.get_section("VaultSettings").bind(VaultSettings)


def test_json_file_source_flattens_file(tmp_path: Path) -> None:
    path = tmp_path / "appsettings.json"
    path.write_text(
        '{"MongoDbSettings": {"DatabaseName": "app"}, "Hosts": ["a"]}', encoding="utf-8"
    )

    assert JsonFileSource(path=path).load() == {
        "MongoDbSettings:DatabaseName": "app",
        "Hosts:0": "a",
    }


def test_json_file_source_rereads_on_each_load(tmp_path: Path) -> None:
    path = tmp_path / "appsettings.json"
    source = JsonFileSource(path=path)
    path.write_text('{"Foo": "one"}', encoding="utf-8")
    assert source.load() == {"Foo": "one"}

    path.write_text('{"Foo": "two"}', encoding="utf-8")
    assert source.load() == {"Foo": "two"}


def test_json_file_source_missing_optional_file_is_empty(tmp_path: Path) -> None:
    assert JsonFileSource(path=tmp_path / "missing.json").load() == {}


@pytest.mark.parametrize(
    ("contents", "match"),
    [
        (None, "was not found"),
        ("{not-json", "is not valid JSON"),
        ('["a", "b"]', "must contain a JSON object"),
    ],
)
def test_json_file_source_errors(tmp_path: Path, contents: str | None, match: str) -> None:
    path = tmp_path / "appsettings.json"
    if contents is not None:
        path.write_text(contents, encoding="utf-8")

    with pytest.raises(ConfigurationFileError, match=match):
        JsonFileSource(path=path, optional=False).load()


def test_environment_source_maps_double_underscore(monkeypatch: Any) -> None:
    monkeypatch.setenv("APP_MongoDbSettings__ConnectionString", "mongodb://env")
    monkeypatch.setenv("OTHER_VALUE", "ignored")

    values = EnvironmentSource(prefix="APP_").load()

    assert values == {"MongoDbSettings:ConnectionString": "mongodb://env"}


def test_chained_source_later_sources_win() -> None:
    source = ChainedSource(
        sources=[
            MemorySource(data={"Foo": "first", "Bar": "kept"}),
            MemorySource(data={"Foo": "second"}),
        ]
    )

    assert source.load() == {"Foo": "second", "Bar": "kept"}


def test_json_file_source_accepts_byte_order_mark(tmp_path: Path) -> None:
    path = tmp_path / "appsettings.override.json"
    path.write_bytes(b"\xef\xbb\xbf" + b'{"Foo": "bar"}')

    assert JsonFileSource(path=path).load() == {"Foo": "bar"}


def test_json_file_source_wraps_undecodable_file(tmp_path: Path) -> None:
    path = tmp_path / "appsettings.override.json"
    path.write_bytes(b'{"Foo": "\xff"}')

    with pytest.raises(ConfigurationFileError, match="could not be read") as exc_info:
        JsonFileSource(path=path).load()

    assert isinstance(exc_info.value.__cause__, UnicodeDecodeError)


def test_json_file_source_wraps_os_errors(tmp_path: Path, monkeypatch: Any) -> None:
    path = tmp_path / "appsettings.json"
    path.write_text("{}", encoding="utf-8")

    def _denied(self: Path, *args: Any, **kwargs: Any) -> str:
        raise PermissionError("permission denied")

    monkeypatch.setattr(Path, "read_text", _denied)

    with pytest.raises(ConfigurationFileError, match="permission denied"):
        JsonFileSource(path=path).load()
