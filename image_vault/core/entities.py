"""
Value types shared across image_vault.

The remote store addresses an image by a single flat key (the public id).
LogicalIdentity is the (folder, name, prefix) decomposition layered on top of
it and persisted as sidecar metadata under the keys name, folder and prefix.

Invariants:
- Every identity segment matches [a-z0-9_-]+ and contains no '/'
- NormalizedAssetView.metadata is never None
- ``raw`` always holds the untransformed remote payload
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

MetadataValue = Union[str, int, float, bool]

PREFIX_SEPARATOR = "--"


@dataclass(frozen=True)
class LogicalIdentity:
    """Three-part identity of an image."""

    folder: str
    name: str
    prefix: str | None = None

    @property
    def base_name(self) -> str:
        """Last segment of the flat key (prefix joined with name)."""
        if self.prefix:
            return f"{self.prefix}{PREFIX_SEPARATOR}{self.name}"
        return self.name


@dataclass(frozen=True)
class BuiltKey:
    """Result of composing a key from raw user input."""

    folder: str
    public_id: str
    name: str
    prefix: str | None = None

    @property
    def identity(self) -> LogicalIdentity:
        return LogicalIdentity(folder=self.folder, name=self.name, prefix=self.prefix)


@dataclass(frozen=True)
class NormalizedAssetView:
    """Canonical view of a remote image, produced from a fetch or listing."""

    public_id: str
    url: str
    secure_url: str
    width: int
    height: int
    format: str
    bytes: int
    metadata: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class CreatedAsset:
    """Normalized upload response."""

    public_id: str
    url: str
    width: int
    height: int
    format: str
    size: int
    metadata: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class ReplacedAsset:
    """Normalized response of a byte replacement."""

    public_id: str
    secure_url: str
    metadata: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict, repr=False)


@dataclass(frozen=True)
class DeleteResult:
    deleted: bool


@dataclass(frozen=True)
class ImagePage:
    """One page of a folder listing. ``next_cursor`` is opaque."""

    items: list[NormalizedAssetView]
    next_cursor: str | None = None


@dataclass(frozen=True)
class UrlIdentity:
    """Identity recovered from a public delivery URL."""

    public_id: str
    folder: str
    file_name: str
    format: str
