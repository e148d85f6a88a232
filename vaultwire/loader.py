from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import structlog
from pydantic import ConfigDict

from vaultwire.configuration import ConfigurationSource, flatten
from vaultwire.retry import RetryPolicy
from vaultwire.settings import VaultSettings
from vaultwire.vaults.base import SecretStore
from vaultwire.vaults.hashicorp import HvacSecretStore

DIRECTORY_SUFFIX = "/"
DEFAULT_INTER_REQUEST_DELAY = 0.05


class SecretLoader:
    """Loads Vault secrets into flat configuration keys.

    Secrets are read one path at a time. With a `secret_path` only that path is
    read; otherwise every non-directory path under the mount is read in listing
    order, waiting `inter_request_delay` seconds after each load. Keys from the
    secret payload are used verbatim, so secrets should be stored with keys like
    `MongoDbSettings:ConnectionString`. Nested values are flattened beneath
    their key.
    """

    def __init__(
        self,
        settings: VaultSettings,
        store: SecretStore | None = None,
        retry_policy: RetryPolicy | None = None,
        inter_request_delay: float = DEFAULT_INTER_REQUEST_DELAY,
        logger: Any = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.settings = settings
        self.inter_request_delay = inter_request_delay
        self._store = store
        self._logger = logger if logger is not None else structlog.get_logger()
        self._retry_policy = retry_policy or RetryPolicy(logger=self._logger)
        self._sleep = sleep

    @property
    def store(self) -> SecretStore:
        if self._store is None:
            self._store = HvacSecretStore(self.settings)
        return self._store

    async def load(self) -> dict[str, str]:
        values: dict[str, str] = {}
        if self.settings.secret_path:
            await self.load_path(self.settings.secret_path, values)
        else:
            await self.load_all(values)
        return values

    async def load_path(self, path: str, values: dict[str, str]) -> None:
        async def _read() -> Mapping[str, Any] | None:
            return await self.store.read_secret(path, self.settings.mount_path)

        payload = await self._retry_policy.execute(_read)
        if payload is None:
            return

        for key, value in payload.items():
            values.update(flatten({key: value}))

    async def load_all(self, values: dict[str, str]) -> None:
        paths = await self.store.list_secret_paths(self.settings.mount_path)

        for path in paths:
            if path.endswith(DIRECTORY_SUFFIX):
                self._logger.debug("vault_secret_path_skipped", path=path)
                continue

            try:
                await self.load_path(path, values)
                await self._sleep(self.inter_request_delay)
            except Exception as exc:
                self._logger.warning(
                    "vault_secret_path_failed",
                    path=path,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )


async def load_secrets(
    settings: VaultSettings,
    store: SecretStore | None = None,
    retry_policy: RetryPolicy | None = None,
    inter_request_delay: float = DEFAULT_INTER_REQUEST_DELAY,
    logger: Any = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> dict[str, str]:
    """Load secrets, returning an empty mapping when the secret store is unusable."""
    log = logger if logger is not None else structlog.get_logger()
    loader = SecretLoader(
        settings,
        store=store,
        retry_policy=retry_policy,
        inter_request_delay=inter_request_delay,
        logger=log,
        sleep=sleep,
    )
    try:
        values = await loader.load()
    except Exception as exc:
        log.error(
            "vault_secrets_load_failed",
            address=settings.address,
            mount_path=settings.mount_path,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        return {}

    log.info("vault_secrets_loaded", mount_path=settings.mount_path, keys=len(values))
    return values


class VaultConfigurationSource(ConfigurationSource):
    """Configuration source that blocks until all Vault secrets are loaded."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    settings: VaultSettings
    store: SecretStore | None = None
    retry_policy: RetryPolicy | None = None
    inter_request_delay: float = DEFAULT_INTER_REQUEST_DELAY

    def load(self) -> dict[str, str]:
        return asyncio.run(
            load_secrets(
                self.settings,
                store=self.store,
                retry_policy=self.retry_policy,
                inter_request_delay=self.inter_request_delay,
            )
        )
