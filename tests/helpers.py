"""Shared builders for raw store payloads."""

from __future__ import annotations

from typing import Any


def stored_record(
    public_id: str,
    *,
    metadata: dict[str, Any] | None = None,
    resource_type: str = "image",
    **overrides: Any,
) -> dict[str, Any]:
    """Raw resource record as the remote store returns it."""
    record: dict[str, Any] = {
        "public_id": public_id,
        "resource_type": resource_type,
        "type": "upload",
        "format": "jpg",
        "version": 1,
        "width": 800,
        "height": 600,
        "bytes": 2048,
        "url": f"http://res.cloudinary.com/demo/image/upload/v1/{public_id}.jpg",
        "secure_url": f"https://res.cloudinary.com/demo/image/upload/v1/{public_id}.jpg",
    }
    if metadata is not None:
        record["context"] = {"custom": dict(metadata)}
    record.update(overrides)
    return record
