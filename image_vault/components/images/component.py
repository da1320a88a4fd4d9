"""
Images component - upload, replace, delete, rename, relocate and list images
on the remote store.

Every entry point validates its input before touching the store, so a
ValidationError always means no remote call was made. Foreign errors from
the store client are classified; image_vault errors propagate unchanged.

Invariants:
- Identity metadata (name, folder, prefix) is written on every upload and
  rewritten on every identity change
- Metadata values are scalars and are sent to the store as strings
- Listing never fails because of a single malformed entry
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Mapping
from typing import Any

from image_vault.core.entities import (
    CreatedAsset,
    DeleteResult,
    ImagePage,
    NormalizedAssetView,
    ReplacedAsset,
    UrlIdentity,
)
from image_vault.core.errors import (
    DeleteError,
    ImageVaultError,
    NotFoundError,
    ReplaceError,
    UploadError,
    ValidationError,
)
from image_vault.domain.classify import (
    classify_fetch_error,
    classify_operation_error,
    http_status_of,
)
from image_vault.domain.identity import (
    build_key,
    decode_stored_identity,
    to_context_metadata,
    validate_flat_key,
    validate_folder_path,
    with_identity,
)
from image_vault.domain.normalize import (
    normalize_created,
    normalize_listed,
    normalize_replaced,
)
from image_vault.domain.sniff import is_image_buffer
from image_vault.domain.urls import parse_public_id_from_url
from image_vault.rules.models import ImageRules

from ._orchestrator import MutationOrchestrator, TransitionHook, fetch_current
from .models import (
    BufferSource,
    ChangePrefixInput,
    CreateImageInput,
    FileSource,
    ImageSource,
    ListImagesInput,
    RelocateImageInput,
    RenameImageInput,
    ReplaceImageInput,
    UrlSource,
)
from .ports import LocalSourcePort, MediaStorePort

logger = logging.getLogger(__name__)

_SCALAR_TYPES = (str, int, float, bool)


# --- Validation Functions ---


def validate_source(source: Any, local_source: LocalSourcePort | None = None) -> None:
    """
    Validate an image source before upload.

    Raises:
        ValidationError: If the source is missing, of an unknown kind, a
            blank URL or path, a missing file, or a buffer that is not an
            image.
    """
    if source is None:
        raise ValidationError("The image source is required.")

    if isinstance(source, UrlSource):
        if not isinstance(source.url, str) or not source.url.strip():
            raise ValidationError("The image URL is not valid.")
        return

    if isinstance(source, FileSource):
        if not isinstance(source.path, str) or not source.path.strip():
            raise ValidationError("The file path is not valid.")
        if local_source is None or not local_source.exists(source.path):
            raise ValidationError(f"File not found: {source.path}", {"path": source.path})
        return

    if isinstance(source, BufferSource):
        if not isinstance(source.data, (bytes, bytearray, memoryview)):
            raise ValidationError("The image buffer is not valid.")
        if not is_image_buffer(source.data):
            raise ValidationError("The buffer is not a supported image format.")
        return

    raise ValidationError("Unsupported image source type.", {"source": type(source).__name__})


def validate_metadata(metadata: Any) -> None:
    """Metadata must be a plain mapping of string keys to scalar values."""
    if not isinstance(metadata, Mapping):
        raise ValidationError("Metadata must be a plain mapping.")

    for key, value in metadata.items():
        if not isinstance(key, str) or not isinstance(value, _SCALAR_TYPES):
            raise ValidationError(
                "Metadata contains non-serializable values.", {"key": str(key)}
            )


def source_reference(source: ImageSource) -> str:
    """String the store upload call accepts for ``source``."""
    if isinstance(source, UrlSource):
        return source.url.strip()
    if isinstance(source, FileSource):
        return source.path
    encoded = base64.b64encode(bytes(source.data)).decode("ascii")
    return f"data:application/octet-stream;base64,{encoded}"


def _describe(source: ImageSource) -> dict[str, Any]:
    if isinstance(source, UrlSource):
        return {"source": "url", "url": source.url}
    if isinstance(source, FileSource):
        return {"source": "file", "path": source.path}
    return {"source": "buffer", "size": len(source.data)}


# --- Component Entry Points ---


async def run_create(
    inp: CreateImageInput,
    *,
    store: MediaStorePort,
    local_source: LocalSourcePort | None = None,
    rules: ImageRules | None = None,
) -> CreatedAsset:
    """
    Upload a new image under a key built from folder, name and prefix.

    Args:
        inp: Source, identity fields, overwrite flag and caller metadata.
        store: Remote store client.
        local_source: File access, required for file sources.
        rules: Image rules (defaults when None).

    Returns:
        CreatedAsset with the stored metadata and the raw response.

    Raises:
        ValidationError: On malformed input.
        UploadError: If the upload fails, or the key already exists while
            overwrite is False.
    """
    rules = rules or ImageRules()

    validate_source(inp.source, local_source)
    if not isinstance(inp.name, str) or not inp.name.strip():
        raise ValidationError("The image name is required.")
    if not isinstance(inp.folder, str) or not inp.folder.strip():
        raise ValidationError("The destination folder is required.")
    if inp.metadata is not None:
        validate_metadata(inp.metadata)

    built = build_key(inp.folder, inp.name, inp.prefix)
    stored = with_identity(inp.metadata, built.identity)
    params = {
        "folder": built.folder,
        "public_id": built.public_id,
        "overwrite": inp.overwrite,
        "resource_type": rules.resource_type,
        "context": to_context_metadata(stored),
    }
    context = {"folder": built.folder, "public_id": built.public_id, **_describe(inp.source)}

    try:
        raw = await store.upload(source_reference(inp.source), params)
    except ImageVaultError:
        raise
    except Exception as err:
        raise classify_operation_error(
            err, UploadError, "Error uploading the image.", context
        ) from err

    if not inp.overwrite and isinstance(raw, Mapping) and raw.get("existing") is True:
        raise UploadError("The resource already exists and overwrite is false.", context)

    created = normalize_created(raw, stored)
    logger.info("Uploaded image %s", created.public_id)
    return created


async def run_delete(
    public_id: str,
    *,
    store: MediaStorePort,
    rules: ImageRules | None = None,
) -> DeleteResult:
    """
    Delete an image by public id.

    Raises:
        ValidationError: If the public id is malformed.
        NotFoundError: If the image does not exist.
        DeleteError: If the store fails to delete it.
    """
    rules = rules or ImageRules()
    validate_flat_key(public_id)

    try:
        result = await store.destroy(public_id, resource_type=rules.resource_type)
    except ImageVaultError:
        raise
    except Exception as err:
        if http_status_of(err) == 404:
            raise NotFoundError(public_id, err) from err
        raise classify_operation_error(
            err, DeleteError, "Error deleting the image.", {"public_id": public_id}
        ) from err

    outcome = result.get("result") if isinstance(result, Mapping) else None
    if outcome == "not found":
        raise NotFoundError(public_id)
    if outcome == "error":
        raise DeleteError("The image store failed to delete the image.", {"public_id": public_id})

    logger.info("Deleted image %s", public_id)
    return DeleteResult(deleted=True)


def _merge_metadata(
    existing: Mapping[str, Any], requested: Mapping[str, Any] | None
) -> dict[str, Any]:
    if requested is None:
        return dict(existing)
    if not requested:
        return {}
    return {**existing, **requested}


async def run_replace(
    inp: ReplaceImageInput,
    *,
    store: MediaStorePort,
    local_source: LocalSourcePort | None = None,
    rules: ImageRules | None = None,
) -> ReplacedAsset:
    """
    Replace the bytes of an existing image without changing its public id.

    The stored identity is re-applied on top of the merged metadata.

    Raises:
        ValidationError: On malformed input, overwrite=False, or malformed
            stored identity metadata.
        NotFoundError: If the image does not exist.
        FetchError: If the current image cannot be read.
        ReplaceError: If the upload fails.
    """
    rules = rules or ImageRules()

    validate_flat_key(inp.public_id)
    validate_source(inp.source, local_source)
    if inp.overwrite is False:
        raise ValidationError("Replacing an image requires overwrite=true.")
    if inp.metadata is not None:
        validate_metadata(inp.metadata)

    current = await fetch_current(store, inp.public_id, rules.resource_type)
    identity = decode_stored_identity(current.metadata, inp.public_id)
    metadata = with_identity(_merge_metadata(current.metadata, inp.metadata), identity)

    params = {
        "public_id": inp.public_id,
        "overwrite": True,
        "invalidate": True,
        "resource_type": rules.resource_type,
        "context": to_context_metadata(metadata),
    }

    try:
        raw = await store.upload(source_reference(inp.source), params)
    except ImageVaultError:
        raise
    except Exception as err:
        raise classify_operation_error(
            err,
            ReplaceError,
            "Error replacing the image.",
            {"public_id": inp.public_id, **_describe(inp.source)},
        ) from err

    logger.info("Replaced image bytes of %s", inp.public_id)
    return normalize_replaced(raw, metadata)


async def run_get(
    public_id: str,
    *,
    store: MediaStorePort,
    rules: ImageRules | None = None,
) -> NormalizedAssetView:
    """Fetch one image. See ``fetch_current`` for the raised errors."""
    rules = rules or ImageRules()
    return await fetch_current(store, public_id, rules.resource_type)


async def run_rename(
    inp: RenameImageInput,
    *,
    store: MediaStorePort,
    rules: ImageRules | None = None,
    on_transition: TransitionHook | None = None,
) -> NormalizedAssetView:
    """Rename an image. Returns the re-fetched view at the new key."""
    rules = rules or ImageRules()
    orchestrator = MutationOrchestrator(
        store, resource_type=rules.resource_type, on_transition=on_transition
    )
    return await orchestrator.rename(inp.public_id, inp.new_name)


async def run_relocate(
    inp: RelocateImageInput,
    *,
    store: MediaStorePort,
    rules: ImageRules | None = None,
    on_transition: TransitionHook | None = None,
) -> NormalizedAssetView:
    """Move an image to another folder. Returns the re-fetched view."""
    rules = rules or ImageRules()
    orchestrator = MutationOrchestrator(
        store, resource_type=rules.resource_type, on_transition=on_transition
    )
    return await orchestrator.relocate(inp.public_id, inp.target_folder)


async def run_change_prefix(
    inp: ChangePrefixInput,
    *,
    store: MediaStorePort,
    rules: ImageRules | None = None,
    on_transition: TransitionHook | None = None,
) -> NormalizedAssetView:
    """Change the prefix of an image. No-op changes return the current view."""
    rules = rules or ImageRules()
    orchestrator = MutationOrchestrator(
        store, resource_type=rules.resource_type, on_transition=on_transition
    )
    return await orchestrator.change_prefix(inp.public_id, inp.prefix, inp.mode)


async def run_list(
    inp: ListImagesInput,
    *,
    store: MediaStorePort,
    rules: ImageRules | None = None,
) -> ImagePage:
    """
    List the images of a folder, one page at a time.

    Args:
        inp: Folder, recursive flag, page size and opaque cursor.
        store: Remote store client.
        rules: Image rules (defaults when None).

    Returns:
        ImagePage in store order, at most ``limit`` items, with the store's
        cursor passed through unchanged.

    Raises:
        ValidationError: If the folder or limit is invalid.
        FetchError: If the listing call fails (404 yields an empty page).
    """
    rules = rules or ImageRules()
    listing = rules.listing

    validate_folder_path(inp.folder)
    limit = listing.default_limit if inp.limit is None else inp.limit
    if not isinstance(limit, int) or isinstance(limit, bool) or not 1 <= limit <= listing.max_limit:
        raise ValidationError(
            f"The limit must be between 1 and {listing.max_limit}.", {"limit": limit}
        )

    prefix = f"{inp.folder}/"
    try:
        response = await store.list_resources(
            prefix=prefix,
            max_results=limit,
            resource_type=rules.resource_type,
            next_cursor=inp.cursor or None,
            delivery_type="upload",
            context=True,
        )
    except ImageVaultError:
        raise
    except Exception as err:
        if http_status_of(err) == 404:
            return ImagePage(items=[], next_cursor=None)
        raise classify_fetch_error(err, {"folder": inp.folder}) from err

    body = response if isinstance(response, Mapping) else {}
    resources = body.get("resources")
    if not isinstance(resources, list):
        resources = []

    items: list[NormalizedAssetView] = []
    for raw in resources:
        if not isinstance(raw, Mapping) or raw.get("resource_type") != rules.resource_type:
            continue

        if not inp.recursive:
            public_id = raw.get("public_id")
            if not isinstance(public_id, str) or not public_id:
                continue
            if "/" in public_id[len(prefix) :]:
                continue

        normalized = normalize_listed(raw, rules.resource_type)
        if normalized is not None:
            items.append(normalized)

    cursor = body.get("next_cursor")
    return ImagePage(items=items[:limit], next_cursor=str(cursor) if cursor else None)


def run_parse_url(url: str, *, rules: ImageRules | None = None) -> UrlIdentity:
    """Recover the identity of an image from its delivery URL."""
    rules = rules or ImageRules()
    return parse_public_id_from_url(url, rules.urls)


def run_is_image_buffer(data: Any) -> bool:
    """True if ``data`` looks like a supported image. Never raises."""
    return is_image_buffer(data)


# --- Service ---


class ImageService:
    """
    Image operations bound to one store client.

    Wraps the functional component API in a class-based interface.
    """

    def __init__(
        self,
        store: MediaStorePort,
        *,
        rules: ImageRules | None = None,
        local_source: LocalSourcePort | None = None,
        on_transition: TransitionHook | None = None,
    ) -> None:
        self._store = store
        self._rules = rules or ImageRules()
        self._local_source = local_source
        self._on_transition = on_transition

    @property
    def rules(self) -> ImageRules:
        return self._rules

    async def create(self, inp: CreateImageInput) -> CreatedAsset:
        return await run_create(
            inp, store=self._store, local_source=self._local_source, rules=self._rules
        )

    async def delete(self, public_id: str) -> DeleteResult:
        return await run_delete(public_id, store=self._store, rules=self._rules)

    async def replace(self, inp: ReplaceImageInput) -> ReplacedAsset:
        return await run_replace(
            inp, store=self._store, local_source=self._local_source, rules=self._rules
        )

    async def get(self, public_id: str) -> NormalizedAssetView:
        return await run_get(public_id, store=self._store, rules=self._rules)

    async def rename(self, inp: RenameImageInput) -> NormalizedAssetView:
        return await run_rename(
            inp, store=self._store, rules=self._rules, on_transition=self._on_transition
        )

    async def relocate(self, inp: RelocateImageInput) -> NormalizedAssetView:
        return await run_relocate(
            inp, store=self._store, rules=self._rules, on_transition=self._on_transition
        )

    async def change_prefix(self, inp: ChangePrefixInput) -> NormalizedAssetView:
        return await run_change_prefix(
            inp, store=self._store, rules=self._rules, on_transition=self._on_transition
        )

    async def list(self, inp: ListImagesInput) -> ImagePage:
        return await run_list(inp, store=self._store, rules=self._rules)

    def parse_url(self, url: str) -> UrlIdentity:
        return run_parse_url(url, rules=self._rules)

    def is_image_buffer(self, data: Any) -> bool:
        return run_is_image_buffer(data)


def create_image_service(
    store: MediaStorePort,
    rules: ImageRules | None = None,
    local_source: LocalSourcePort | None = None,
) -> ImageService:
    """
    Factory function to create an image service.

    File sources are checked on the local filesystem unless another
    ``local_source`` is given.
    """
    if local_source is None:
        from image_vault.adapters.fs.source import FileSystemSource

        local_source = FileSystemSource()
    return ImageService(store, rules=rules, local_source=local_source)
