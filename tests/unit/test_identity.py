"""
Tests for the identity codec: key composition, strict validation and the
sidecar metadata round trip.
"""

from __future__ import annotations

import pytest

from image_vault.core.entities import LogicalIdentity
from image_vault.core.errors import ValidationError
from image_vault.domain.identity import (
    build_key,
    build_key_from_identity,
    decode_stored_identity,
    identity_metadata,
    normalize_folder_path,
    normalize_segment,
    to_context_metadata,
    validate_flat_key,
    validate_folder_path,
    validate_name_segment,
    with_identity,
)


class TestNormalizeSegment:
    def test_lowercases_and_dashes_whitespace(self) -> None:
        assert normalize_segment("  My Photo  ") == "my-photo"

    def test_drops_disallowed_characters(self) -> None:
        assert normalize_segment("Café!@#.jpg") == "cafjpg"

    def test_collapses_dash_runs_and_trims_edges(self) -> None:
        assert normalize_segment("--a---b__") == "a-b"

    def test_may_return_empty(self) -> None:
        assert normalize_segment("!!!") == ""


class TestNormalizeFolderPath:
    def test_normalizes_each_segment(self) -> None:
        assert normalize_folder_path("/Products//Summer Sale/") == "products/summer-sale"

    def test_drops_empty_segments(self) -> None:
        assert normalize_folder_path("a/!!!/b") == "a/b"


class TestBuildKey:
    def test_without_prefix(self) -> None:
        built = build_key("Products", "Red Shoe")

        assert built.folder == "products"
        assert built.public_id == "red-shoe"
        assert built.name == "red-shoe"
        assert built.prefix is None

    def test_with_prefix(self) -> None:
        built = build_key("products/shoes", "Red Shoe", "Sale")

        assert built.public_id == "sale--red-shoe"
        assert built.prefix == "sale"
        assert built.identity == LogicalIdentity("products/shoes", "red-shoe", "sale")

    def test_blank_prefix_is_no_prefix(self) -> None:
        assert build_key("a", "b", "!!!").public_id == "b"

    def test_empty_folder_rejected(self) -> None:
        with pytest.raises(ValidationError):
            build_key("///", "name")

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValidationError):
            build_key("folder", "???")

    def test_empty_name_rejected_even_with_prefix(self) -> None:
        with pytest.raises(ValidationError, match="empty after normalization"):
            build_key("products", "!!!", "Sale")

    def test_spaced_folder_name_and_prefix(self) -> None:
        built = build_key("My Folder/Design Tests", "My Image", "Company Logo")

        assert built.folder == "my-folder/design-tests"
        assert built.public_id == "company-logo--my-image"
        assert built.name == "my-image"
        assert built.prefix == "company-logo"

    @pytest.mark.parametrize(
        ("folder", "name", "prefix"),
        [(None, "b", None), ("a", 7, None), ("a", "b", 5), ("a", "b", ["x"])],
    )
    def test_non_string_input_rejected(self, folder: object, name: object, prefix: object) -> None:
        with pytest.raises(ValidationError, match="must be a string"):
            build_key(folder, name, prefix)  # type: ignore[arg-type]


class TestBuildKeyFromIdentity:
    def test_composes_folder_prefix_name(self) -> None:
        identity = LogicalIdentity(folder="products", name="shoe", prefix="v2")
        assert build_key_from_identity(identity) == "products/v2--shoe"

    def test_root_identity(self) -> None:
        assert build_key_from_identity(LogicalIdentity(folder="", name="shoe")) == "shoe"


class TestStrictValidation:
    @pytest.mark.parametrize("key", ["products/shoe", "a/b/c--d", "x_y-z"])
    def test_valid_keys(self, key: str) -> None:
        validate_flat_key(key)

    @pytest.mark.parametrize(
        "key",
        ["", "   ", "/leading", "trailing/", "a//b", "a/../b", "Upper", "sp ace", None, 42],
    )
    def test_invalid_keys(self, key: object) -> None:
        with pytest.raises(ValidationError):
            validate_flat_key(key)

    def test_folder_uses_same_rules(self) -> None:
        validate_folder_path("products/shoes")
        with pytest.raises(ValidationError):
            validate_folder_path("products/")

    def test_segment_rejects_slash(self) -> None:
        with pytest.raises(ValidationError, match="cannot contain"):
            validate_name_segment("a/b", "new name")

    def test_segment_rejects_uppercase(self) -> None:
        with pytest.raises(ValidationError):
            validate_name_segment("Shoe")


class TestDecodeStoredIdentity:
    def test_reads_identity_from_metadata(self) -> None:
        identity = decode_stored_identity(
            {"name": "shoe", "folder": "products", "prefix": "sale", "color": "red"},
            "products/sale--shoe",
        )
        assert identity == LogicalIdentity("products", "shoe", "sale")

    def test_does_not_split_the_key(self) -> None:
        # A dash-laden name must survive; only the metadata is trusted.
        identity = decode_stored_identity(
            {"name": "summer--sale", "folder": "products"}, "products/summer--sale"
        )
        assert identity.name == "summer--sale"
        assert identity.prefix is None

    def test_missing_folder_is_root(self) -> None:
        assert decode_stored_identity({"name": "shoe"}, "shoe").folder == ""

    def test_missing_name_rejected(self) -> None:
        with pytest.raises(ValidationError, match="missing name"):
            decode_stored_identity({"folder": "products"}, "products/shoe")

    def test_none_metadata_rejected(self) -> None:
        with pytest.raises(ValidationError):
            decode_stored_identity(None, "products/shoe")

    def test_non_string_folder_rejected(self) -> None:
        with pytest.raises(ValidationError, match="invalid folder"):
            decode_stored_identity({"name": "shoe", "folder": 3}, "products/shoe")

    def test_blank_prefix_rejected(self) -> None:
        with pytest.raises(ValidationError, match="invalid prefix"):
            decode_stored_identity({"name": "shoe", "prefix": " "}, "shoe")

    def test_round_trip_through_metadata(self) -> None:
        identity = LogicalIdentity("products/shoes", "shoe", "sale")
        decoded = decode_stored_identity(identity_metadata(identity), "ignored")
        assert build_key_from_identity(decoded) == "products/shoes/sale--shoe"

    @pytest.mark.parametrize(
        ("folder", "name", "prefix"),
        [
            ("Products", "Red Shoe", None),
            ("My Folder/Design Tests", "My Image", "Company Logo"),
            ("/a//B c/", "x__y", "  V2  "),
            ("summer--sale", "hero--banner", "!!!"),
        ],
    )
    def test_built_key_survives_metadata_round_trip(
        self, folder: str, name: str, prefix: str | None
    ) -> None:
        built = build_key(folder, name, prefix)
        key = f"{built.folder}/{built.public_id}"

        decoded = decode_stored_identity(identity_metadata(built.identity), key)

        assert decoded == built.identity
        assert (decoded.folder, decoded.name, decoded.prefix) == (
            built.folder,
            built.name,
            built.prefix,
        )
        assert build_key_from_identity(decoded) == key


class TestMetadataHelpers:
    def test_with_identity_drops_stale_prefix(self) -> None:
        merged = with_identity(
            {"prefix": "old", "color": "red"}, LogicalIdentity("products", "shoe")
        )
        assert merged == {"color": "red", "name": "shoe", "folder": "products"}

    def test_with_identity_copies_input(self) -> None:
        original = {"color": "red"}
        with_identity(original, LogicalIdentity("p", "s"))
        assert original == {"color": "red"}

    def test_context_stringifies_values(self) -> None:
        assert to_context_metadata({"a": True, "b": False, "c": 3, "d": 1.5, "e": "x"}) == {
            "a": "true",
            "b": "false",
            "c": "3",
            "d": "1.5",
            "e": "x",
        }

    def test_empty_context_is_none(self) -> None:
        assert to_context_metadata({}) is None
        assert to_context_metadata(None) is None
