import pytest

from image_vault.adapters.memory_store import InMemoryMediaStore
from image_vault.components.images import ImageService


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def png_bytes() -> bytes:
    """Minimal PNG header + padding."""
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def store() -> InMemoryMediaStore:
    return InMemoryMediaStore()


@pytest.fixture
def service(store: InMemoryMediaStore) -> ImageService:
    return ImageService(store)
