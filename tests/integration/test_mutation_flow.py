"""
End-to-end flows over the in-memory store: create, mutate, list, delete.

These exercise the mutation state machine and the listing filters against a
store that behaves like the hosted one (flat keys, 404/409 failures).
"""

from __future__ import annotations

import pytest

from image_vault.adapters.memory_store import InMemoryMediaStore
from image_vault.components.images import (
    BufferSource,
    ChangePrefixInput,
    CreateImageInput,
    ImageService,
    ListImagesInput,
    MutationState,
    PrefixMode,
    RelocateImageInput,
    RenameImageInput,
)
from image_vault.components.images.ports import RemoteStoreError
from image_vault.core.errors import NotFoundError, RenameError
from tests.helpers import stored_record

pytestmark = pytest.mark.anyio


async def create(service: ImageService, png_bytes: bytes, **overrides: object) -> str:
    fields = {"source": BufferSource(png_bytes), "name": "shoe", "folder": "products"}
    fields.update(overrides)
    created = await service.create(CreateImageInput(**fields))  # type: ignore[arg-type]
    return created.public_id


async def test_rename_then_rename_stale_key(service: ImageService, png_bytes: bytes) -> None:
    key = await create(service, png_bytes)

    renamed = await service.rename(RenameImageInput(public_id=key, new_name="boot"))
    assert renamed.public_id == "products/boot"

    with pytest.raises(NotFoundError):
        await service.rename(RenameImageInput(public_id=key, new_name="sandal"))


async def test_identity_survives_every_mutation(
    service: ImageService, store: InMemoryMediaStore, png_bytes: bytes
) -> None:
    key = await create(service, png_bytes, prefix="sale", metadata={"color": "red"})
    assert key == "products/sale--shoe"

    view = await service.relocate(RelocateImageInput(public_id=key, target_folder="archive/2024"))
    view = await service.change_prefix(
        ChangePrefixInput(public_id=view.public_id, mode=PrefixMode.APPEND, prefix="old")
    )
    view = await service.rename(RenameImageInput(public_id=view.public_id, new_name="boot"))

    assert view.public_id == "archive/2024/sale--old--boot"
    assert view.metadata == {
        "color": "red",
        "name": "boot",
        "folder": "archive/2024",
        "prefix": "sale--old",
    }
    assert store.keys() == ["archive/2024/sale--old--boot"]


async def test_prepend_existing_prefix_is_noop(
    service: ImageService, store: InMemoryMediaStore
) -> None:
    key = "products/a--b--shoe"
    store.put(
        stored_record(key, metadata={"name": "shoe", "folder": "products", "prefix": "a--b"})
    )

    view = await service.change_prefix(
        ChangePrefixInput(public_id=key, mode="prepend", prefix="a")
    )

    assert view.public_id == key
    assert [op for op, _ in store.calls] == ["fetch_one"]


async def test_clear_prefix_with_replace(service: ImageService, png_bytes: bytes) -> None:
    key = await create(service, png_bytes, prefix="sale")

    view = await service.change_prefix(ChangePrefixInput(public_id=key, mode="replace"))

    assert view.public_id == "products/shoe"
    assert "prefix" not in view.metadata


async def test_resync_failure_is_raised_without_rollback(
    store: InMemoryMediaStore, png_bytes: bytes
) -> None:
    states: list[MutationState] = []
    service = ImageService(store, on_transition=lambda state, _op: states.append(state))
    key = await create(service, png_bytes)
    store.fail_next("update", RemoteStoreError("metadata down", http_code=500))

    with pytest.raises(RenameError) as exc_info:
        await service.rename(RenameImageInput(public_id=key, new_name="boot"))

    assert exc_info.value.collision is False
    assert exc_info.value.target_key == "products/boot"
    assert store.keys() == ["products/boot"]
    assert states == [
        MutationState.FETCHING_CURRENT,
        MutationState.COMPUTING_TARGET,
        MutationState.REMOTE_RENAMING,
        MutationState.SYNCING_METADATA,
        MutationState.FAILED,
    ]


async def test_rename_collision_leaves_both_images(
    service: ImageService, store: InMemoryMediaStore, png_bytes: bytes
) -> None:
    await create(service, png_bytes, name="boot")
    key = await create(service, png_bytes)

    with pytest.raises(RenameError) as exc_info:
        await service.rename(RenameImageInput(public_id=key, new_name="boot"))

    assert exc_info.value.collision is True
    assert sorted(store.keys()) == ["products/boot", "products/shoe"]


async def test_list_truncates_and_keeps_cursor(
    service: ImageService, store: InMemoryMediaStore
) -> None:
    for i in range(5):
        store.put(stored_record(f"gallery/img-{i}"))

    page = await service.list(ListImagesInput(folder="gallery", limit=3))

    assert len(page.items) == 3
    assert page.next_cursor == "3"

    rest = await service.list(ListImagesInput(folder="gallery", limit=3, cursor=page.next_cursor))
    assert [item.public_id for item in rest.items] == ["gallery/img-3", "gallery/img-4"]
    assert rest.next_cursor is None


async def test_list_drops_incomplete_and_nested_entries(
    service: ImageService, store: InMemoryMediaStore
) -> None:
    store.put(stored_record("gallery/good"))
    store.put(stored_record("gallery/no-size", width=None))
    store.put(stored_record("gallery/no-url", url=None, secure_url=None))
    store.put(stored_record("gallery/sub/nested"))

    flat = await service.list(ListImagesInput(folder="gallery"))
    deep = await service.list(ListImagesInput(folder="gallery", recursive=True))

    assert [item.public_id for item in flat.items] == ["gallery/good"]
    assert [item.public_id for item in deep.items] == ["gallery/good", "gallery/sub/nested"]


async def test_list_missing_folder_is_empty(service: ImageService) -> None:
    page = await service.list(ListImagesInput(folder="nothing-here"))
    assert page.items == []
    assert page.next_cursor is None
