from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

import hvac
from hvac.exceptions import InvalidPath

from vaultwire.settings import VaultSettings
from vaultwire.vaults.base import SecretStore


class HvacSecretStore(SecretStore):
    """KV v2 secret store backed by a token-authenticated `hvac.Client`."""

    def __init__(self, settings: VaultSettings, client: hvac.Client | None = None) -> None:
        self.settings = settings
        self._client = client

    @property
    def client(self) -> hvac.Client:
        if self._client is None:
            self._client = hvac.Client(
                url=self.settings.address,
                token=self.settings.token,
                timeout=self.settings.timeout,
            )
        return self._client

    async def read_secret(self, path: str, mount_point: str) -> Mapping[str, Any] | None:
        try:
            response = await asyncio.to_thread(
                self.client.secrets.kv.v2.read_secret_version,
                path=path,
                mount_point=mount_point,
                raise_on_deleted_version=True,
            )
        except InvalidPath:
            return None

        data = (response or {}).get("data") or {}
        return data.get("data")

    async def list_secret_paths(self, mount_point: str) -> list[str]:
        try:
            response = await asyncio.to_thread(
                self.client.secrets.kv.v2.list_secrets,
                path="",
                mount_point=mount_point,
            )
        except InvalidPath:
            return []

        data = (response or {}).get("data") or {}
        return list(data.get("keys") or [])
