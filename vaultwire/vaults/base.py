from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any


class SecretStore(ABC):
    """Read-only view of a key/value secret engine."""

    @abstractmethod
    async def read_secret(self, path: str, mount_point: str) -> Mapping[str, Any] | None:
        """Return the secret payload at `path`, or None when it is missing or empty."""

    @abstractmethod
    async def list_secret_paths(self, mount_point: str) -> list[str]:
        """Return the paths directly under the mount; sub-directories end with `/`."""
