"""
Images component input models.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

# --- Image Sources ---


@dataclass(frozen=True)
class UrlSource:
    """Remote URL the store fetches by itself."""

    url: str


@dataclass(frozen=True)
class FileSource:
    """Path of a local file."""

    path: str


@dataclass(frozen=True)
class BufferSource:
    """Raw image bytes, sent as a data URI."""

    data: bytes


ImageSource = Union[UrlSource, FileSource, BufferSource]


class PrefixMode(str, Enum):
    """How a new prefix is combined with the existing one."""

    REPLACE = "replace"
    APPEND = "append"
    PREPEND = "prepend"


# --- Input Models ---


@dataclass(frozen=True)
class CreateImageInput:
    """Input for uploading a new image."""

    source: ImageSource
    name: str
    folder: str
    prefix: str | None = None
    overwrite: bool = False
    metadata: dict[str, Any] | None = None


@dataclass(frozen=True)
class ReplaceImageInput:
    """
    Input for replacing the bytes of an existing image.

    ``metadata`` None keeps the stored metadata, {} clears caller keys and
    any other mapping is merged over the stored values.
    """

    public_id: str
    source: ImageSource
    metadata: dict[str, Any] | None = None
    overwrite: bool | None = None


@dataclass(frozen=True)
class RenameImageInput:
    public_id: str
    new_name: str


@dataclass(frozen=True)
class RelocateImageInput:
    public_id: str
    target_folder: str


@dataclass(frozen=True)
class ChangePrefixInput:
    """Input for changing the prefix. ``prefix`` is required unless mode is replace."""

    public_id: str
    mode: PrefixMode | str
    prefix: str | None = None


@dataclass(frozen=True)
class ListImagesInput:
    """Input for listing a folder. ``limit`` None uses the configured default."""

    folder: str
    recursive: bool = False
    limit: int | None = None
    cursor: str | None = None
