from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_pascal


class VaultSettings(BaseModel):
    """Connection settings for the HashiCorp Vault configuration source.

    Bound from the `VaultSettings` configuration section, so the keys are
    `VaultSettings:Address`, `VaultSettings:Token`, `VaultSettings:MountPath`
    and `VaultSettings:SecretPath`. An empty `secret_path` loads every secret
    under the mount.
    """

    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True, frozen=True)

    address: str = ""
    token: str = ""
    mount_path: str = "kv"
    secret_path: str = ""
    timeout: float = 30

    @property
    def is_enabled(self) -> bool:
        return bool(self.address) and bool(self.token)


class MongoDbSettings(BaseModel):
    model_config = ConfigDict(alias_generator=to_pascal, populate_by_name=True)

    connection_string: str = ""
    database_name: str = ""
