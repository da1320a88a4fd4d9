"""
Tests for the in-memory store adapter.
"""

from __future__ import annotations

import base64

import pytest

from image_vault.adapters.memory_store import InMemoryMediaStore
from image_vault.components.images.ports import RemoteStoreError
from tests.helpers import stored_record

pytestmark = pytest.mark.anyio


def data_uri(data: bytes) -> str:
    return "data:application/octet-stream;base64," + base64.b64encode(data).decode("ascii")


async def test_upload_composes_key(store: InMemoryMediaStore, png_bytes: bytes) -> None:
    raw = await store.upload(
        data_uri(png_bytes),
        {"folder": "a", "public_id": "shoe", "overwrite": False, "context": {"name": "shoe"}},
    )

    assert raw["public_id"] == "a/shoe"
    assert raw["format"] == "png"
    assert raw["bytes"] == len(png_bytes)
    assert raw["existing"] is False
    assert raw["context"] == {"custom": {"name": "shoe"}}
    assert raw["secure_url"].endswith("/a/shoe.png")


async def test_upload_without_overwrite_reports_existing(store: InMemoryMediaStore) -> None:
    params = {"folder": "a", "public_id": "shoe", "overwrite": False}
    first = await store.upload("https://example.com/shoe.jpg", params)
    second = await store.upload("https://example.com/other.png", params)

    assert second["existing"] is True
    assert second["format"] == "jpg"
    assert second["version"] == first["version"]


async def test_upload_with_overwrite_replaces(store: InMemoryMediaStore) -> None:
    await store.upload("https://example.com/shoe.jpg", {"public_id": "a/shoe"})
    raw = await store.upload(
        "https://example.com/shoe.png", {"public_id": "a/shoe", "overwrite": True}
    )

    assert raw["existing"] is True
    assert raw["format"] == "png"


async def test_rename_collision_and_missing(store: InMemoryMediaStore) -> None:
    store.put(stored_record("a/x"))
    store.put(stored_record("a/y"))

    with pytest.raises(RemoteStoreError) as exc_info:
        await store.rename("a/x", "a/y", resource_type="image")
    assert exc_info.value.http_code == 409

    with pytest.raises(RemoteStoreError) as exc_info:
        await store.rename("a/missing", "a/z", resource_type="image")
    assert exc_info.value.http_code == 404


async def test_rename_moves_resource(store: InMemoryMediaStore) -> None:
    store.put(stored_record("a/x", metadata={"name": "x"}))

    await store.rename("a/x", "b/x", resource_type="image")

    assert store.keys() == ["b/x"]
    moved = await store.fetch_one("b/x", resource_type="image")
    assert moved["context"] == {"custom": {"name": "x"}}
    assert moved["secure_url"].endswith("/b/x.jpg")


async def test_fetch_without_context(store: InMemoryMediaStore) -> None:
    store.put(stored_record("a/x", metadata={"name": "x"}))
    assert "context" not in await store.fetch_one("a/x", resource_type="image", context=False)


async def test_update_replaces_context(store: InMemoryMediaStore) -> None:
    store.put(stored_record("a/x", metadata={"name": "x", "color": "red"}))

    await store.update("a/x", resource_type="image", context={"name": "y"})
    assert (await store.fetch_one("a/x", resource_type="image"))["context"] == {
        "custom": {"name": "y"}
    }

    await store.update("a/x", resource_type="image", context=None)
    assert "context" not in await store.fetch_one("a/x", resource_type="image")


async def test_destroy(store: InMemoryMediaStore) -> None:
    store.put(stored_record("a/x"))

    assert await store.destroy("a/x", resource_type="image") == {"result": "ok"}
    assert await store.destroy("a/x", resource_type="image") == {"result": "not found"}


async def test_list_pagination(store: InMemoryMediaStore) -> None:
    for i in range(5):
        store.put(stored_record(f"a/img-{i}"))
    store.put(stored_record("b/other"))
    store.put(stored_record("a/clip", resource_type="video"))

    first = await store.list_resources(prefix="a/", max_results=3, resource_type="image")
    second = await store.list_resources(
        prefix="a/", max_results=3, resource_type="image", next_cursor=first["next_cursor"]
    )

    assert [r["public_id"] for r in first["resources"]] == ["a/img-0", "a/img-1", "a/img-2"]
    assert [r["public_id"] for r in second["resources"]] == ["a/img-3", "a/img-4"]
    assert "next_cursor" not in second


async def test_fail_next_is_consumed(store: InMemoryMediaStore) -> None:
    store.put(stored_record("a/x"))
    store.fail_next("fetch_one", RemoteStoreError("boom", http_code=500))

    with pytest.raises(RemoteStoreError):
        await store.fetch_one("a/x", resource_type="image")
    assert (await store.fetch_one("a/x", resource_type="image"))["public_id"] == "a/x"
    assert store.calls == [("fetch_one", "a/x"), ("fetch_one", "a/x")]
