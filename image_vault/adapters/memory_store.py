"""
In-memory remote store adapter.

Implements MediaStorePort for development and tests. It mirrors the
behavior of the hosted store that image_vault relies on: flat keys,
``existing`` on uploads with overwrite disabled, 404/409 failures raised as
RemoteStoreError, ``{"result": "not found"}`` from destroy, and
cursor-paginated prefix listings.

Not suitable for multi-process deployments; state lives in the instance.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Mapping
from itertools import count
from typing import Any

from image_vault.components.images.ports import RemoteStoreError
from image_vault.domain.sniff import detect_image_format

logger = logging.getLogger(__name__)

_DATA_URI_PREFIX = "data:"


def _format_of(source: str) -> tuple[str, int]:
    """Format tag and byte size of an upload source string."""
    if source.startswith(_DATA_URI_PREFIX):
        _, _, encoded = source.partition(",")
        data = base64.b64decode(encoded)
        return detect_image_format(data) or "jpg", len(data)

    tail = source.rsplit("/", 1)[-1].split("?", 1)[0]
    _, dot, extension = tail.rpartition(".")
    return (extension.lower() if dot and extension else "jpg"), 0


class InMemoryMediaStore:
    """In-memory media store - suitable for single-process dev and test runs."""

    def __init__(
        self,
        *,
        cloud_name: str = "demo",
        width: int = 640,
        height: int = 480,
    ) -> None:
        self.cloud_name = cloud_name
        self.width = width
        self.height = height
        self.calls: list[tuple[str, str]] = []
        self._resources: dict[str, dict[str, Any]] = {}
        self._failures: dict[str, BaseException] = {}
        self._versions = count(1_700_000_000)

    # --- Test helpers ---

    def fail_next(self, operation: str, error: BaseException) -> None:
        """Make the next call of ``operation`` raise ``error``."""
        self._failures[operation] = error

    def put(self, record: Mapping[str, Any]) -> None:
        """Store a raw resource record as-is, keyed by its public_id."""
        self._resources[str(record["public_id"])] = dict(record)

    def keys(self) -> list[str]:
        return list(self._resources)

    def clear(self) -> None:
        self._resources.clear()
        self._failures.clear()
        self.calls.clear()

    # --- Internals ---

    def _enter(self, operation: str, key: str) -> None:
        self.calls.append((operation, key))
        error = self._failures.pop(operation, None)
        if error is not None:
            raise error

    def _require(self, key: str, resource_type: str) -> dict[str, Any]:
        record = self._resources.get(key)
        if record is None or record.get("resource_type") != resource_type:
            raise RemoteStoreError(f"Resource not found - {key}", http_code=404)
        return record

    def _urls(self, record: dict[str, Any]) -> None:
        path = (
            f"res.cloudinary.com/{self.cloud_name}/{record['resource_type']}/upload/"
            f"v{record['version']}/{record['public_id']}.{record['format']}"
        )
        record["url"] = f"http://{path}"
        record["secure_url"] = f"https://{path}"

    @staticmethod
    def _view(record: dict[str, Any], context: bool) -> dict[str, Any]:
        view = dict(record)
        stored = record.get("context")
        custom = stored.get("custom") if isinstance(stored, Mapping) else None
        if context and isinstance(custom, Mapping):
            view["context"] = {"custom": dict(custom)}
        else:
            view.pop("context", None)
        return view

    # --- MediaStorePort ---

    async def upload(self, source: str, params: Mapping[str, Any]) -> dict[str, Any]:
        folder = params.get("folder")
        public_id = str(params.get("public_id") or "")
        key = f"{folder}/{public_id}" if folder else public_id
        self._enter("upload", key)

        if not key:
            raise RemoteStoreError("Missing public_id", http_code=400)

        resource_type = str(params.get("resource_type") or "image")
        existing = self._resources.get(key)
        if existing is not None and not params.get("overwrite"):
            return {**self._view(existing, True), "existing": True}

        file_format, size = _format_of(source)
        record: dict[str, Any] = {
            "public_id": key,
            "version": next(self._versions),
            "resource_type": resource_type,
            "type": "upload",
            "format": file_format,
            "width": self.width,
            "height": self.height,
            "bytes": size,
        }
        context = params.get("context")
        if context:
            record["context"] = {"custom": dict(context)}
        self._urls(record)
        self._resources[key] = record

        logger.debug("memory store: stored %s", key)
        return {**self._view(record, True), "existing": existing is not None}

    async def destroy(self, key: str, *, resource_type: str) -> dict[str, Any]:
        self._enter("destroy", key)
        record = self._resources.get(key)
        if record is None or record.get("resource_type") != resource_type:
            return {"result": "not found"}
        del self._resources[key]
        return {"result": "ok"}

    async def rename(
        self,
        old_key: str,
        new_key: str,
        *,
        resource_type: str,
        overwrite: bool = False,
    ) -> dict[str, Any]:
        self._enter("rename", old_key)
        record = self._require(old_key, resource_type)

        if new_key in self._resources and not overwrite:
            raise RemoteStoreError(f"Resource already exists - {new_key}", http_code=409)

        del self._resources[old_key]
        moved = {**record, "public_id": new_key, "version": next(self._versions)}
        self._urls(moved)
        self._resources[new_key] = moved
        return self._view(moved, False)

    async def fetch_one(
        self, key: str, *, resource_type: str, context: bool = True
    ) -> dict[str, Any]:
        self._enter("fetch_one", key)
        return self._view(self._require(key, resource_type), context)

    async def update(
        self, key: str, *, resource_type: str, context: Mapping[str, str] | None
    ) -> dict[str, Any]:
        self._enter("update", key)
        record = self._require(key, resource_type)
        if context:
            record["context"] = {"custom": dict(context)}
        else:
            record.pop("context", None)
        return self._view(record, True)

    async def list_resources(
        self,
        *,
        prefix: str,
        max_results: int,
        resource_type: str,
        next_cursor: str | None = None,
        delivery_type: str = "upload",
        context: bool = True,
    ) -> dict[str, Any]:
        self._enter("list_resources", prefix)

        matching = [
            record
            for key, record in self._resources.items()
            if key.startswith(prefix)
            and record.get("resource_type") == resource_type
            and record.get("type", "upload") == delivery_type
        ]

        try:
            start = int(next_cursor) if next_cursor else 0
        except ValueError as err:
            raise RemoteStoreError("Invalid next_cursor", http_code=400) from err

        end = start + max_results
        body: dict[str, Any] = {
            "resources": [self._view(record, context) for record in matching[start:end]]
        }
        if end < len(matching):
            body["next_cursor"] = str(end)
        return body
