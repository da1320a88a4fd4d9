"""
Application configuration: store credentials, settings and the client registry.

The registry is the composition root for store clients. Clients are built
lazily, one per credential set, and there is no module-level client.
"""

from __future__ import annotations

import hashlib
import logging
import os
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

from image_vault.adapters.memory_store import InMemoryMediaStore
from image_vault.components.images.ports import MediaStorePort
from image_vault.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

CREDENTIAL_ENV = (
    "CLOUDINARY_CLOUD_NAME",
    "CLOUDINARY_API_KEY",
    "CLOUDINARY_API_SECRET",
)
BACKEND_ENV = "IMAGE_VAULT_STORE_BACKEND"
DEFAULT_BACKEND = "memory"


@dataclass(frozen=True)
class StoreCredentials:
    cloud_name: str
    api_key: str
    api_secret: str

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> StoreCredentials:
        """
        Read credentials from the environment.

        Raises:
            ConfigurationError: Naming every missing or blank variable.
        """
        source = os.environ if env is None else env
        values = {name: (source.get(name) or "").strip() for name in CREDENTIAL_ENV}
        missing = [name for name, value in values.items() if not value]
        if missing:
            raise ConfigurationError(
                f"Missing image store credentials: {', '.join(missing)}",
                {"missing": missing},
            )
        return cls(
            cloud_name=values["CLOUDINARY_CLOUD_NAME"],
            api_key=values["CLOUDINARY_API_KEY"],
            api_secret=values["CLOUDINARY_API_SECRET"],
        )

    @property
    def fingerprint(self) -> str:
        """SHA-256 of the credential triple; never log the secret itself."""
        joined = "\x00".join((self.cloud_name, self.api_key, self.api_secret))
        return hashlib.sha256(joined.encode("utf-8")).hexdigest()


# --- Settings ---
class Settings:
    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        source = os.environ if env is None else env
        self.base_dir = Path(os.getcwd())
        self.rules_path = Path(source.get("IMAGE_VAULT_RULES", str(self.base_dir / "rules.yaml")))
        self.store_backend = (source.get(BACKEND_ENV) or DEFAULT_BACKEND).strip().lower()
        self.upload_dir = source.get("IMAGE_VAULT_UPLOAD_DIR") or None


# --- Client registry ---

ClientFactory = Callable[[StoreCredentials], MediaStorePort]


def _memory_factory(credentials: StoreCredentials) -> MediaStorePort:
    return InMemoryMediaStore(cloud_name=credentials.cloud_name)


class ClientRegistry:
    """Caches one store client per credential fingerprint."""

    def __init__(self, backend: str = DEFAULT_BACKEND) -> None:
        self.backend = backend
        self._factories: dict[str, ClientFactory] = {"memory": _memory_factory}
        self._clients: dict[str, MediaStorePort] = {}
        self._lock = threading.Lock()

    def register(self, backend: str, factory: ClientFactory) -> None:
        self._factories[backend] = factory

    def get(self, credentials: StoreCredentials) -> MediaStorePort:
        """
        Return the client bound to ``credentials``, building it on first use.

        Raises:
            ConfigurationError: If the selected backend is not registered.
        """
        key = credentials.fingerprint
        # Held across the build so concurrent first calls share one client.
        with self._lock:
            client = self._clients.get(key)
            if client is not None:
                return client

            factory = self._factories.get(self.backend)
            if factory is None:
                raise ConfigurationError(
                    f"Unknown image store backend: {self.backend}",
                    {"backend": self.backend, "available": sorted(self._factories)},
                )

            client = factory(credentials)
            self._clients[key] = client
        logger.info("Created %s store client for cloud %s", self.backend, credentials.cloud_name)
        return client

    def clear(self) -> None:
        with self._lock:
            self._clients.clear()
