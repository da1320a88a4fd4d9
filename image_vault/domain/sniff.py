"""
Image format sniffing by magic bytes.

Classifies a buffer without decoding it. Used as a fail-fast gate before an
upload so that obviously invalid payloads never cost a network round trip,
which is why every entry point here is total: any input, including None or
a non-bytes value, yields False/None instead of raising.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class FormatSignature:
    """Expected bytes at a fixed offset."""

    format: str
    offset: int
    magic: bytes
    # Alternatives for the byte right after ``magic`` (empty: no constraint)
    variants: tuple[bytes, ...] = ()

    @property
    def min_length(self) -> int:
        extra = len(self.variants[0]) if self.variants else 0
        return self.offset + len(self.magic) + extra

    def matches(self, head: bytes) -> bool:
        if len(head) < self.min_length:
            return False
        end = self.offset + len(self.magic)
        if head[self.offset : end] != self.magic:
            return False
        if not self.variants:
            return True
        return any(head[end : end + len(v)] == v for v in self.variants)


# Checked in order.
SIGNATURES: tuple[FormatSignature, ...] = (
    FormatSignature("png", 0, b"\x89PNG\r\n\x1a\n"),
    FormatSignature("jpeg", 0, b"\xff\xd8\xff"),
    FormatSignature("gif", 0, b"GIF8", (b"7a", b"9a")),
    FormatSignature("bmp", 0, b"BM"),
    FormatSignature("ico", 0, b"\x00\x00\x01\x00"),
    FormatSignature("tiff", 0, b"II*\x00"),
    FormatSignature("tiff", 0, b"MM\x00*"),
)

_RIFF = b"RIFF"
_WEBP = b"WEBP"

# Markup heuristic only looks at the start of the buffer.
_TEXT_HEAD_BYTES = 1024
_XML_DECLARATION = re.compile(r"^<\?xml[^>]*\?>", re.IGNORECASE)
_SVG_OPEN_TAG = re.compile(r"^<svg[\s>/]", re.IGNORECASE)


def _head(data: Any, size: int) -> bytes | None:
    if not isinstance(data, (bytes, bytearray, memoryview)):
        return None
    return bytes(data[:size])


def _is_webp(head: bytes) -> bool:
    if len(head) < len(_RIFF) or head[:4] != _RIFF:
        return False
    # Short RIFF headers are accepted; the form type is checked once present.
    if len(head) >= 12:
        return head[8:12] == _WEBP
    return True


def _is_svg(head: bytes) -> bool:
    text = head.decode("utf-8", errors="ignore").lstrip("\ufeff").lstrip()
    declaration = _XML_DECLARATION.match(text)
    if declaration:
        text = text[declaration.end() :].lstrip()
    return bool(_SVG_OPEN_TAG.match(text))


def detect_image_format(data: Any) -> str | None:
    """
    Return the image format tag of ``data`` or None.

    Tags: png, jpeg, gif, bmp, ico, tiff, webp, svg.
    """
    head = _head(data, _TEXT_HEAD_BYTES)
    if not head:
        return None

    for signature in SIGNATURES:
        if signature.matches(head):
            return signature.format

    if _is_webp(head):
        return "webp"

    if _is_svg(head):
        return "svg"

    return None


def is_image_buffer(data: Any) -> bool:
    """True if ``data`` starts like a supported image format."""
    return detect_image_format(data) is not None
