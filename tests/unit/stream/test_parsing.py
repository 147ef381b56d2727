"""
Unit tests for stream.parsing module.

Tests:
- FieldSpec overlap detection
- parse_fields type filtering for every field type
"""

import pytest

from feedbrotr.stream import FieldSpec, parse_fields


class TestFieldSpec:
    def test_overlap_rejected(self):
        with pytest.raises(ValueError, match="declared twice"):
            FieldSpec(id_fields=frozenset({"id"}), str_fields=frozenset({"id"}))

    def test_empty_spec(self):
        assert parse_fields({"a": 1}, FieldSpec()) == {}


class TestParseFields:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(42, 42), ("42", 42), (0, 0)],
    )
    def test_id_accepted(self, value, expected):
        spec = FieldSpec(id_fields=frozenset({"id"}))
        assert parse_fields({"id": value}, spec) == {"id": expected}

    @pytest.mark.parametrize("value", [-1, "-1", "4x2", "", True, 1.5, "４２"])
    def test_id_rejected(self, value):
        spec = FieldSpec(id_fields=frozenset({"id"}))
        assert parse_fields({"id": value}, spec) == {}

    def test_bool(self):
        spec = FieldSpec(bool_fields=frozenset({"protected"}))
        assert parse_fields({"protected": "yes"}, spec) == {}
        assert parse_fields({"protected": False}, spec) == {"protected": False}

    def test_str_strips_null_bytes(self):
        spec = FieldSpec(str_fields=frozenset({"text"}))
        assert parse_fields({"text": "a\x00b"}, spec) == {"text": "ab"}

    def test_str_list_drops_non_strings(self):
        spec = FieldSpec(str_list_fields=frozenset({"countries"}))
        assert parse_fields({"countries": ["DE", 1, None, "F\x00R"]}, spec) == {
            "countries": ["DE", "FR"]
        }

    def test_object(self):
        spec = FieldSpec(object_fields=frozenset({"user"}))
        assert parse_fields({"user": {"id": 1}}, spec) == {"user": {"id": 1}}
        assert parse_fields({"user": [1]}, spec) == {}

    def test_none_and_undeclared_dropped(self):
        spec = FieldSpec(str_fields=frozenset({"text"}))
        assert parse_fields({"text": None, "other": "x"}, spec) == {}
