"""
Response normalization.

Maps raw, untrusted store payloads onto the stable shapes in
image_vault.core.entities. Every function is guarded by field-presence
checks; nothing here casts a payload blindly.

Invariants:
- Returned metadata is a fresh dict, never an alias into ``raw``
- Metadata defaults to {} when the payload carries none or a non-mapping
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from image_vault.core.entities import CreatedAsset, NormalizedAssetView, ReplacedAsset
from image_vault.core.errors import FetchError, FetchFailure, NotFoundError

IMAGE_RESOURCE_TYPE = "image"


def _custom_context(raw: Mapping[str, Any]) -> Mapping[str, Any] | None:
    context = raw.get("context")
    if not isinstance(context, Mapping):
        return None
    custom = context.get("custom")
    return custom if isinstance(custom, Mapping) else None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _number_or_zero(value: Any) -> int:
    return int(value) if _is_number(value) else 0


def normalize_created(
    raw: Mapping[str, Any],
    fallback_metadata: Mapping[str, Any] | None = None,
) -> CreatedAsset:
    """
    Normalize an upload response.

    Prefers the secure URL, defaults missing numbers to 0 and prefers the
    metadata echoed by the store over ``fallback_metadata``.
    """
    record = raw if isinstance(raw, Mapping) else {}
    echoed = _custom_context(record)
    metadata = echoed if echoed is not None else (fallback_metadata or {})

    return CreatedAsset(
        public_id=str(record.get("public_id") or ""),
        url=str(record.get("secure_url") or record.get("url") or ""),
        width=_number_or_zero(record.get("width")),
        height=_number_or_zero(record.get("height")),
        format=str(record.get("format") or ""),
        size=_number_or_zero(record.get("bytes")),
        metadata=dict(metadata),
        raw=dict(record),
    )


def normalize_replaced(raw: Mapping[str, Any], metadata: Mapping[str, Any]) -> ReplacedAsset:
    """Normalize the upload response of a byte replacement."""
    record = raw if isinstance(raw, Mapping) else {}
    return ReplacedAsset(
        public_id=str(record.get("public_id") or ""),
        secure_url=str(record.get("secure_url") or record.get("url") or ""),
        metadata=dict(metadata),
        raw=dict(record),
    )


def normalize_fetched(
    raw: Any, key: str, resource_type: str = IMAGE_RESOURCE_TYPE
) -> NormalizedAssetView:
    """
    Normalize a single-resource fetch.

    Raises:
        NotFoundError: If the payload reports "not found".
        FetchError: If the payload lacks a public id, is not an image, or
            has null URL/dimension fields.
    """
    if isinstance(raw, Mapping) and raw.get("result") == "not found":
        raise NotFoundError(key)

    if not isinstance(raw, Mapping) or not raw.get("public_id"):
        raise FetchError(
            "Invalid response from the image store.",
            {"public_id": key},
            failure=FetchFailure.PAYLOAD,
        )

    kind = raw.get("resource_type")
    if kind and kind != resource_type:
        raise FetchError(
            "The resource is not an image.",
            {"public_id": key, "resource_type": kind},
            failure=FetchFailure.PAYLOAD,
        )

    if raw.get("secure_url") is None or raw.get("width") is None or raw.get("height") is None:
        raise FetchError(
            "Incomplete response from the image store.",
            {"public_id": key},
            failure=FetchFailure.PAYLOAD,
        )

    custom = _custom_context(raw)
    return NormalizedAssetView(
        public_id=str(raw["public_id"]),
        url=str(raw.get("url") or ""),
        secure_url=str(raw.get("secure_url") or raw.get("url") or ""),
        width=_number_or_zero(raw.get("width")),
        height=_number_or_zero(raw.get("height")),
        format=str(raw.get("format") or ""),
        bytes=_number_or_zero(raw.get("bytes")),
        metadata=dict(custom) if custom is not None else {},
        raw=dict(raw),
    )


def normalize_listed(
    raw: Any, resource_type: str = IMAGE_RESOURCE_TYPE
) -> NormalizedAssetView | None:
    """
    Normalize one listing entry, or return None when it is incomplete.

    A malformed entry must never abort a whole listing, so this never raises.
    """
    if not isinstance(raw, Mapping):
        return None
    if not raw.get("public_id"):
        return None
    kind = raw.get("resource_type")
    if kind and kind != resource_type:
        return None
    if not raw.get("secure_url") and not raw.get("url"):
        return None
    if not _is_number(raw.get("width")) or not _is_number(raw.get("height")):
        return None

    custom = _custom_context(raw)
    return NormalizedAssetView(
        public_id=str(raw["public_id"]),
        url=str(raw.get("url") or raw.get("secure_url")),
        secure_url=str(raw.get("secure_url") or raw.get("url")),
        width=int(raw["width"]),
        height=int(raw["height"]),
        format=str(raw.get("format") or ""),
        bytes=_number_or_zero(raw.get("bytes")),
        metadata=dict(custom) if custom is not None else {},
        raw=dict(raw),
    )
