"""Tests for compact hierarchical asset identifiers."""

import pytest

from Strata.app import Dataset, File
from Strata.utils.assetid import AssetId


class TestParse:
    """Test parsing tokens."""

    def test_file_token(self):
        """Test a file token maps positionally onto its fields."""
        aid = AssetId.from_token("f/s1/d1/f1")
        assert aid.valid()
        assert aid.type == "file"
        assert aid.get("space_id") == "s1"
        assert aid.get("dataset_id") == "d1"
        assert aid.item_id == "f1"

    def test_round_trip(self):
        """Test to_string reproduces the parsed token."""
        for token in ("s/s1", "d/s1/d1", "a/s1/d1/f1/a1", "y/s1/d1/f1/x", "z/s1/d1/x", "b/s1/b1", "o/s1/d1/o1"):
            assert AssetId.from_token(token).to_string() == token

    def test_wrong_arity_is_invalid(self):
        """Test a segment count that does not fit the tag."""
        aid = AssetId.from_token("f/s1/d1")
        assert not aid.valid()
        assert aid.to_string() == "invalid"
        assert aid.type is None
        assert aid.parts() == ()

    def test_unknown_tag_is_invalid(self):
        """Test an unknown type tag."""
        assert not AssetId.from_token("q/s1").valid()

    def test_non_string_is_invalid(self):
        """Test garbage input never raises."""
        assert not AssetId.from_token(None).valid()
        assert not AssetId.from_token("").valid()


class TestFromFields:
    """Test building ids from field bags and entities."""

    def test_fields(self):
        """Test a type plus matching fields selects the tag."""
        aid = AssetId.from_fields({"type": "dataset", "space_id": "s1", "item_id": "d1"})
        assert aid.to_string() == "d/s1/d1"

    def test_private_and_none_fields_ignored(self):
        """Test underscore keys and None values do not count as fields."""
        aid = AssetId.from_fields(
            {"type": "space", "item_id": "s1", "_parent": object(), "dataset_id": None}
        )
        assert aid.to_string() == "s/s1"

    def test_missing_type(self):
        """Test a bag without a type is invalid."""
        assert not AssetId.from_fields({"space_id": "s1", "item_id": "d1"}).valid()

    def test_activity_tags(self):
        """Test activity resolves to the tag matching its depth."""
        deep = AssetId.from_fields(
            {"type": "activity", "space_id": "s", "dataset_id": "d", "file_id": "f", "item_id": "y"}
        )
        shallow = AssetId.from_fields({"type": "activity", "space_id": "s", "dataset_id": "d", "item_id": "y"})
        assert deep.tag == "y"
        assert shallow.tag == "z"

    def test_from_entity(self):
        """Test the entity kind supplies the type."""
        file = File(id={"space_id": "s1", "dataset_id": "d1", "item_id": "f1"})
        assert file.asset_id().to_string() == "f/s1/d1/f1"
        assert file.id_token() == "f/s1/d1/f1"

    def test_as_fields(self):
        """Test as_fields includes the type."""
        fields = AssetId.dataset("s1", "d1").as_fields()
        assert fields == {"space_id": "s1", "item_id": "d1", "type": "dataset"}
        assert Dataset(id=fields).asset_id() == AssetId.dataset("s1", "d1")

    def test_create_wrong_arity(self):
        """Test create refuses a part count no tag accepts."""
        assert not AssetId.create("file", ["s1"]).valid()
        assert AssetId.activity("s1", "d1", "y1").tag == "z"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
