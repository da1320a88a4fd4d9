"""
Identity codec - build, decode and validate flat image keys.

A flat key is composed as ``folder/prefix--name`` (or ``folder/name``). The
composition is one-way: a dash inside a user-supplied name cannot be told
apart from the prefix separator, so the decomposition is always read back
from sidecar metadata (``decode_stored_identity``) and never by splitting
the key.

Invariants:
- Normalized segments match [a-z0-9_-]+ and contain no '/'
- build_key_from_identity(decode_stored_identity(identity_metadata(i))) == key of i
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from image_vault.core.entities import (
    PREFIX_SEPARATOR,
    BuiltKey,
    LogicalIdentity,
    MetadataValue,
)
from image_vault.core.errors import ValidationError

_WHITESPACE = re.compile(r"\s+")
_DISALLOWED = re.compile(r"[^a-z0-9_-]")
_DASH_RUN = re.compile(r"-+")
_EDGE_MARKS = re.compile(r"^[-_]+|[-_]+$")
_SLASH_RUN = re.compile(r"/+")

_SEGMENT_PATTERN = re.compile(r"[a-z0-9_-]+")
_PATH_PATTERN = re.compile(r"[a-z0-9/_-]+")


# --- Normalization ---


def normalize_segment(value: str) -> str:
    """
    Normalize one key segment.

    Lowercases, turns whitespace runs into '-', drops anything outside
    [a-z0-9_-], collapses repeated '-' and trims '-'/'_' from both ends.
    Never raises; may return an empty string.
    """
    text = _WHITESPACE.sub("-", value.strip().lower())
    text = _DISALLOWED.sub("", text)
    text = _DASH_RUN.sub("-", text)
    return _EDGE_MARKS.sub("", text)


def normalize_folder_path(path: str) -> str:
    """Normalize each '/'-separated segment of a folder and drop empty ones."""
    collapsed = _SLASH_RUN.sub("/", path.strip("/"))
    parts = (normalize_segment(part) for part in collapsed.split("/"))
    return "/".join(part for part in parts if part)


# --- Composition ---


def build_key(folder: str, name: str, prefix: str | None = None) -> BuiltKey:
    """
    Build a normalized key from raw user input.

    Args:
        folder: Destination folder, may contain '/'.
        name: Image name.
        prefix: Optional name prefix.

    Returns:
        BuiltKey with normalized folder, name, prefix and the public id
        (without folder, as the upload API expects it).

    Raises:
        ValidationError: If an input is not a string, or folder or name is
            empty after normalization.
    """
    for label, value in (("folder", folder), ("name", name)):
        if not isinstance(value, str):
            raise ValidationError(f"The {label} must be a string.", {label: value})
    if prefix is not None and not isinstance(prefix, str):
        raise ValidationError("The prefix must be a string.", {"prefix": prefix})

    normalized_folder = normalize_folder_path(folder)
    normalized_name = normalize_segment(name)
    normalized_prefix = normalize_segment(prefix) if prefix else ""
    public_id = (
        f"{normalized_prefix}{PREFIX_SEPARATOR}{normalized_name}"
        if normalized_prefix
        else normalized_name
    )

    if not normalized_folder or not normalized_name:
        raise ValidationError(
            "Folder or name is empty after normalization.",
            {"folder": folder, "name": name, "prefix": prefix},
        )

    return BuiltKey(
        folder=normalized_folder,
        public_id=public_id,
        name=normalized_name,
        prefix=normalized_prefix or None,
    )


def build_key_from_identity(identity: LogicalIdentity) -> str:
    """Compose the flat key of a trusted identity."""
    base_name = identity.base_name
    return f"{identity.folder}/{base_name}" if identity.folder else base_name


# --- Strict validation ---


def _check_path(value: Any, what: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"The {what} is required.", {what.replace(" ", "_"): value})

    invalid = (
        not _PATH_PATTERN.fullmatch(value)
        or "//" in value
        or value.startswith("/")
        or value.endswith("/")
        or ".." in value
    )
    if invalid:
        raise ValidationError(
            f"The {what} has an invalid format.", {what.replace(" ", "_"): value}
        )


def validate_flat_key(key: Any) -> None:
    """
    Validate an already-composed public id.

    Raises:
        ValidationError: If empty, outside [a-z0-9/_-], contains '//' or
            '..', or starts/ends with '/'.
    """
    _check_path(key, "public id")


def validate_folder_path(path: Any) -> None:
    """Validate a folder without normalizing it. Same rules as flat keys."""
    _check_path(path, "folder")


def validate_name_segment(value: Any, label: str = "name") -> None:
    """
    Validate a single segment (name or prefix).

    Raises:
        ValidationError: If blank, contains '/', or is outside [a-z0-9_-].
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"The {label} is required.", {label: value})

    if "/" in value:
        raise ValidationError(f"The {label} cannot contain '/'.", {label: value})

    if not _SEGMENT_PATTERN.fullmatch(value) or ".." in value:
        raise ValidationError(f"The {label} has an invalid format.", {label: value})


# --- Stored identity ---


def decode_stored_identity(metadata: Mapping[str, Any] | None, key: str) -> LogicalIdentity:
    """
    Read the logical identity back from sidecar metadata.

    Args:
        metadata: Sidecar metadata of the resource.
        key: Public id of the resource, used for error context only.

    Returns:
        LogicalIdentity with folder '' when the image sits at the root.

    Raises:
        ValidationError: If ``name`` is missing or blank, ``folder`` is not a
            string, or any segment fails strict validation.
    """
    stored = metadata if isinstance(metadata, Mapping) else {}
    name = stored.get("name")
    folder = stored.get("folder")
    prefix = stored.get("prefix")

    if not isinstance(name, str) or not name.strip():
        raise ValidationError(
            f"Incomplete metadata: missing name for {key}.", {"public_id": key}
        )
    validate_name_segment(name, "name")

    if folder is not None and not isinstance(folder, str):
        raise ValidationError(
            f"Incomplete metadata: invalid folder for {key}.", {"public_id": key}
        )
    if folder:
        validate_folder_path(folder)

    if prefix is not None:
        if not isinstance(prefix, str) or not prefix.strip():
            raise ValidationError(
                f"Incomplete metadata: invalid prefix for {key}.", {"public_id": key}
            )
        validate_name_segment(prefix, "prefix")

    return LogicalIdentity(folder=folder or "", name=name, prefix=prefix or None)


def identity_metadata(identity: LogicalIdentity) -> dict[str, str]:
    """Sidecar metadata entries that persist an identity."""
    stored = {"name": identity.name, "folder": identity.folder}
    if identity.prefix:
        stored["prefix"] = identity.prefix
    return stored


def with_identity(
    metadata: Mapping[str, Any] | None, identity: LogicalIdentity
) -> dict[str, Any]:
    """Copy of ``metadata`` with the identity keys rewritten for ``identity``."""
    merged = dict(metadata or {})
    merged.pop("prefix", None)
    merged.update(identity_metadata(identity))
    return merged


def _context_value(value: MetadataValue) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def to_context_metadata(metadata: Mapping[str, MetadataValue] | None) -> dict[str, str] | None:
    """Flatten metadata into the string-valued context the store accepts."""
    if not metadata:
        return None
    return {key: _context_value(value) for key, value in metadata.items()}
