"""Tests for pair list flattening and body encoding."""

import json

import pytest

from reqr.core import (
    BodyFormat,
    MalformedPairList,
    body_format_from_flags,
    encode_body,
    pairs_from_flat,
)

# ── pairs_from_flat ──────────────────────────────────────────────────────


class TestPairsFromFlat:
    def test_pairs_in_order(self):
        assert pairs_from_flat(["a", "1", "b", "2"]) == [("a", "1"), ("b", "2")]

    def test_half_as_many_pairs(self):
        values = [str(i) for i in range(10)]
        assert len(pairs_from_flat(values)) == 5

    def test_duplicates_kept(self):
        assert pairs_from_flat(["a", "1", "a", "2"]) == [("a", "1"), ("a", "2")]

    def test_empty(self):
        assert pairs_from_flat([]) == []

    def test_none(self):
        assert pairs_from_flat(None) == []

    def test_accepts_tuple(self):
        assert pairs_from_flat(("k", "v")) == [("k", "v")]

    @pytest.mark.parametrize("values", [["a"], ["a", "1", "b"]])
    def test_odd_length_fails(self, values):
        with pytest.raises(MalformedPairList):
            pairs_from_flat(values)

    def test_error_names_dangling_value(self):
        with pytest.raises(MalformedPairList, match="'b'"):
            pairs_from_flat(["a", "1", "b"])


# ── encode_body ──────────────────────────────────────────────────────────


class TestEncodeJson:
    def test_compact_object(self):
        body = encode_body([("name", "test"), ("email", "a@b.com")], BodyFormat.JSON)
        assert body == b'{"name":"test","email":"a@b.com"}'

    def test_last_value_wins(self):
        body = encode_body([("a", "1"), ("a", "2")], BodyFormat.JSON)
        assert body == b'{"a":"2"}'

    def test_one_entry_per_unique_key(self):
        pairs = [("a", "1"), ("b", "2"), ("a", "3"), ("c", "4"), ("b", "5")]
        decoded = json.loads(encode_body(pairs, BodyFormat.JSON))
        assert decoded == {"a": "3", "b": "5", "c": "4"}

    def test_values_stay_strings(self):
        decoded = json.loads(encode_body([("n", "123"), ("t", "true")], BodyFormat.JSON))
        assert decoded == {"n": "123", "t": "true"}

    def test_unicode_value(self):
        decoded = json.loads(encode_body([("name", "Zoë")], BodyFormat.JSON))
        assert decoded["name"] == "Zoë"

    def test_unicode_sent_as_utf8(self):
        body = encode_body([("name", "Zoë")], BodyFormat.JSON)
        assert body == '{"name":"Zoë"}'.encode()


class TestEncodeForm:
    def test_pairs_joined(self):
        body = encode_body([("name", "test"), ("page", "1")], BodyFormat.FORM)
        assert body == b"name=test&page=1"

    def test_duplicates_not_collapsed(self):
        body = encode_body([("a", "1"), ("a", "2")], BodyFormat.FORM)
        assert body == b"a=1&a=2"

    def test_percent_encoding(self):
        body = encode_body([("q", "a b&c=d")], BodyFormat.FORM)
        assert body == b"q=a+b%26c%3Dd"


class TestBodyFormatFromFlags:
    def test_json(self):
        assert body_format_from_flags(True, False) is BodyFormat.JSON

    def test_form(self):
        assert body_format_from_flags(False, True) is BodyFormat.FORM

    def test_json_wins_over_form(self):
        assert body_format_from_flags(True, True) is BodyFormat.JSON

    def test_neither(self):
        assert body_format_from_flags(False, False) is None
