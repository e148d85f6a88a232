from vaultwire.vaults.base import SecretStore
from vaultwire.vaults.hashicorp import HvacSecretStore

__all__ = ["HvacSecretStore", "SecretStore"]
