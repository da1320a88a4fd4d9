"""
Tests for local file access used by file upload sources.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from image_vault.adapters.fs.source import FileSystemSource


@pytest.fixture
def base(tmp_path: Path) -> Path:
    root = tmp_path / "uploads"
    (root / "products").mkdir(parents=True)
    (root / "products" / "shoe.png").write_bytes(b"\x89PNG\r\n\x1a\n")
    (tmp_path / "outside.png").write_bytes(b"\x89PNG\r\n\x1a\n")
    (tmp_path / "uploads-old").mkdir()
    (tmp_path / "uploads-old" / "shoe.png").write_bytes(b"\x89PNG\r\n\x1a\n")
    return root


class TestUnconfined:
    def test_existing_file(self, base: Path) -> None:
        assert FileSystemSource().exists(str(base / "products" / "shoe.png")) is True

    def test_missing_file(self, base: Path) -> None:
        assert FileSystemSource().exists(str(base / "products" / "absent.png")) is False

    def test_directory_is_not_a_file(self, base: Path) -> None:
        assert FileSystemSource().exists(str(base / "products")) is False


class TestConfinedToBasePath:
    def test_relative_path_inside_base(self, base: Path) -> None:
        assert FileSystemSource(str(base)).exists("products/shoe.png") is True

    def test_missing_file_inside_base(self, base: Path) -> None:
        assert FileSystemSource(str(base)).exists("products/absent.png") is False

    def test_parent_traversal_rejected(self, base: Path) -> None:
        source = FileSystemSource(str(base))
        assert (base.parent / "outside.png").is_file()
        assert source.exists("../outside.png") is False

    def test_sibling_sharing_name_prefix_rejected(self, base: Path) -> None:
        source = FileSystemSource(str(base))
        assert source.exists("../uploads-old/shoe.png") is False

    def test_absolute_path_outside_base_rejected(self, base: Path) -> None:
        source = FileSystemSource(str(base))
        assert source.exists(str(base.parent / "outside.png")) is False
