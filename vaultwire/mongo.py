from __future__ import annotations

from collections.abc import Callable
from typing import Any

from dependency_injector import containers, providers
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from vaultwire.configuration import Configuration
from vaultwire.exceptions import MongoConfigurationError
from vaultwire.sections import get_required_section
from vaultwire.settings import MongoDbSettings

MONGO_CLIENT = "mongo_client"
MONGO_DATABASE = "mongo_database"


class MongoBuilder:
    """Registers MongoDB providers on a dependency-injector container."""

    def __init__(self, container: containers.Container, configuration: Configuration) -> None:
        self.container = container
        self.configuration = configuration

    def configure_mongo(self) -> MongoBuilder:
        settings = get_required_section(self.configuration, MongoDbSettings)

        self.container.set_provider(MONGO_CLIENT, providers.Singleton(_create_client, settings))
        self.container.set_provider(
            MONGO_DATABASE,
            providers.Singleton(_get_database, getattr(self.container, MONGO_CLIENT), settings),
        )
        return self

    def register_collection(self, name: str, collection_name: str) -> MongoBuilder:
        """Register a transient provider `name` returning `collection_name`."""
        container = self.container

        def _database() -> Database[Any]:
            database = getattr(container, MONGO_DATABASE, None)
            if database is None:
                raise MongoConfigurationError(
                    f"Collection provider '{name}' needs a MongoDB database; "
                    "call configure_mongo() before resolving collections."
                )
            return database()

        self.container.set_provider(
            name, providers.Factory(_get_collection, _database, collection_name)
        )
        return self


def add_mongo(container: containers.Container, configuration: Configuration) -> MongoBuilder:
    return MongoBuilder(container, configuration)


def _create_client(settings: MongoDbSettings) -> MongoClient[Any]:
    if not settings.connection_string:
        raise MongoConfigurationError(
            "MongoDB connection string not found. Configure it in "
            "MongoDbSettings:ConnectionString or store it in Vault as 'ConnectionString'."
        )
    return MongoClient(settings.connection_string)


def _get_database(client: MongoClient[Any], settings: MongoDbSettings) -> Database[Any]:
    if not settings.database_name:
        raise MongoConfigurationError(
            "MongoDB database name not found. Configure it in "
            "MongoDbSettings:DatabaseName or store it in Vault as 'DatabaseName'."
        )
    return client.get_database(settings.database_name)


def _get_collection(
    resolve_database: Callable[[], Database[Any]], collection_name: str
) -> Collection[Any]:
    return resolve_database().get_collection(collection_name)
