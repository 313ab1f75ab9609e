"""Tests for write-time normalization + id validation."""

import pytest

from wallhub.errors import InvalidArgument
from wallhub.models import MediaRef
from wallhub.normalize import (
    build_draft,
    build_patch,
    like_pattern,
    like_prefix,
    normalize_category,
    normalize_tags,
    slugify,
    validate_id,
)

REF = {"url": "https://cdn.test/x/upload/v1/a.jpg", "storage_id": "wall/a"}


class TestValidateId:
    def test_accepts_uuid(self):
        value = "0b7c6f0e-3f0e-4a5e-9a53-0d2f1b8c1a11"
        assert validate_id(value) == value

    def test_canonicalizes_case(self):
        assert validate_id("0B7C6F0E-3F0E-4A5E-9A53-0D2F1B8C1A11") == "0b7c6f0e-3f0e-4a5e-9a53-0d2f1b8c1a11"

    @pytest.mark.parametrize("bad", ["", "abc", "123", None, "64b7f0c2e4b0a1b2c3d4e5f6"])
    def test_rejects_malformed(self, bad):
        with pytest.raises(InvalidArgument):
            validate_id(bad)


class TestNormalize:
    def test_category_is_trimmed_and_lowercased(self):
        assert normalize_category("  Nature, Scenic ") == "nature, scenic"

    def test_tags_from_comma_string(self):
        assert normalize_tags(" Sunset, BEACH ,, ") == ("sunset", "beach")

    def test_tags_from_list_dedupes_keeping_order(self):
        assert normalize_tags(["Sea", "sky", "SEA", " "]) == ("sea", "sky")

    def test_none_tags(self):
        assert normalize_tags(None) == ()


class TestSlugify:
    def test_basic(self):
        assert slugify("Mountain View") == "mountain-view"

    def test_strips_punctuation_and_collapses_dashes(self):
        assert slugify("  Hello -- World!!  ") == "hello-world"

    def test_accents_are_folded(self):
        assert slugify("Café Crème") == "cafe-creme"

    def test_empty_falls_back(self):
        assert slugify("!!!") == "wallpaper"


class TestBuildDraft:
    def test_normalizes_fields(self):
        draft = build_draft(
            title="  Dunes ",
            category=" Desert ",
            tags="Sand, Dune",
            media_refs=[REF],
            description="  warm  ",
        )
        assert draft.title == "Dunes"
        assert draft.category == "desert"
        assert draft.tags == ("sand", "dune")
        assert draft.description == "warm"
        assert draft.media_refs == (MediaRef(url=REF["url"], storage_id="wall/a"),)
        assert draft.media_kind == "image"

    @pytest.mark.parametrize("title,category", [("", "nature"), ("Sunset", ""), (None, None)])
    def test_title_and_category_required(self, title, category):
        with pytest.raises(InvalidArgument):
            build_draft(title=title, category=category, media_refs=[REF])

    def test_media_required(self):
        with pytest.raises(InvalidArgument):
            build_draft(title="Sunset", category="nature", media_refs=[])

    def test_media_ref_needs_storage_id(self):
        with pytest.raises(InvalidArgument):
            build_draft(title="Sunset", category="nature", media_refs=[{"url": "u", "storage_id": ""}])

    def test_unknown_media_kind(self):
        with pytest.raises(InvalidArgument):
            build_draft(title="Sunset", category="nature", media_refs=[REF], media_kind="gif")

    def test_negative_size(self):
        with pytest.raises(InvalidArgument):
            build_draft(title="Sunset", category="nature", media_refs=[REF], byte_size=-1)

    @pytest.mark.parametrize("bad", ["https://c/upload/a", ("u", "s", "extra"), ("u",), 42, {"url": 1, "storage_id": "s"}])
    def test_malformed_media_ref(self, bad):
        with pytest.raises(InvalidArgument):
            build_draft(title="Sunset", category="nature", media_refs=[bad])

    def test_non_numeric_size(self):
        with pytest.raises(InvalidArgument):
            build_draft(title="Sunset", category="nature", media_refs=[REF], byte_size="big")


def test_patch_blank_values_mean_unchanged():
    patch = build_patch(title="  ", category=None, tags="")
    assert patch.title is None
    assert patch.category is None
    assert patch.tags is None


def test_patch_normalizes():
    patch = build_patch(title=" New ", category=" City ", tags=["Night", "NEON"])
    assert patch.title == "New"
    assert patch.category == "city"
    assert patch.tags == ("night", "neon")


def test_like_patterns_escape_wildcards():
    assert like_pattern(" 100%_Off ") == "%100\\%\\_off%"
    assert like_prefix("Nature") == "nature%"
