"""
Images component port definitions.

The remote store client is an external collaborator. Implementations must
raise RemoteStoreError (or any exception exposing ``http_code``/``code``)
for failed calls; image_vault classifies them into its own taxonomy.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


class RemoteStoreError(Exception):
    """Failure reported by a remote store client."""

    def __init__(
        self,
        message: str,
        *,
        http_code: int | None = None,
        code: str | None = None,
    ) -> None:
        self.http_code = http_code
        self.code = code
        super().__init__(message)


class MediaStorePort(Protocol):
    """Remote media store client."""

    async def upload(self, source: str, params: Mapping[str, Any]) -> dict[str, Any]:
        """
        Upload from a URL, local path or data URI.

        ``params`` carries folder, public_id, overwrite, resource_type and
        context (flat string mapping).
        """
        ...

    async def destroy(self, key: str, *, resource_type: str) -> dict[str, Any]:
        """Delete a resource. Returns {"result": "ok" | "not found" | "error"}."""
        ...

    async def rename(
        self,
        old_key: str,
        new_key: str,
        *,
        resource_type: str,
        overwrite: bool = False,
    ) -> dict[str, Any]:
        """Atomically move a resource to a new key."""
        ...

    async def fetch_one(
        self, key: str, *, resource_type: str, context: bool = True
    ) -> dict[str, Any]:
        """Fetch one resource, including its sidecar context."""
        ...

    async def update(
        self, key: str, *, resource_type: str, context: Mapping[str, str] | None
    ) -> dict[str, Any]:
        """Replace the sidecar context of a resource. No byte movement."""
        ...

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
        """List resources under a key prefix: {"resources": [...], "next_cursor"?}."""
        ...


class LocalSourcePort(Protocol):
    """Local file access used to validate file sources before upload."""

    def exists(self, path: str) -> bool:
        """Check if a readable file exists at path."""
        ...
