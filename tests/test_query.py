"""
Unit tests for query encoding and parameter merging.

Covers the compact wire format of query expressions and the precedence
rules used when combining the query with extra parameters.
"""

import json

import pytest

from puppetdb_client.application.query import encode, merge_params, query_param
from puppetdb_client.domain.errors import EncodeError
from puppetdb_client.domain.values import JsonValue


class TestEncode:
    """Test query expression serialization."""

    def test_simple_query(self):
        """Test a flat comparison encodes without whitespace."""
        assert encode(["=", "certname", "node123"]) == '["=","certname","node123"]'

    def test_nested_query(self):
        """Test nested sequences recurse with the same compact form."""
        query = ["or", ["=", "certname", "node123"], ["=", "certname", "node321"]]
        assert encode(query) == '["or",["=","certname","node123"],["=","certname","node321"]]'

    def test_tuples_encode_like_lists(self):
        """Test tuples are accepted as sequences and keep their order."""
        assert encode(("and", ("=", "name", "os"), ("not", ("=", "value", "x")))) == (
            '["and",["=","name","os"],["not",["=","value","x"]]]'
        )

    @pytest.mark.parametrize(
        "expr,expected",
        [("web", '"web"'), (3, "3"), (2.5, "2.5"), (True, "true"), (None, "null")],
    )
    def test_top_level_scalars(self, expr, expected):
        """Test a bare scalar encodes as a bare JSON scalar."""
        assert encode(expr) == expected

    def test_numbers_and_booleans_inside_query(self):
        """Test non-string operands keep their JSON types."""
        assert encode([">", "uptime_seconds", 3600]) == '[">","uptime_seconds",3600]'
        assert encode(["=", "deactivated", None]) == '["=","deactivated",null]'
        assert encode(["=", "latest_report_noop", False]) == '["=","latest_report_noop",false]'

    def test_string_escaping_is_standard_json(self):
        """Test quotes and backslashes use plain JSON escaping."""
        query = ["~", "certname", 'we"b\\01']
        encoded = encode(query)
        assert encoded == '["~","certname","we\\"b\\\\01"]'
        assert json.loads(encoded) == query

    def test_non_ascii_is_not_escaped(self):
        """Test non-ASCII text stays as UTF-8 characters."""
        assert encode(["=", "name", "café"]) == '["=","name","café"]'

    def test_cyclic_structure_raises(self):
        """Test a self-referencing list raises EncodeError."""
        query = ["and"]
        query.append(query)
        with pytest.raises(EncodeError):
            encode(query)

    @pytest.mark.parametrize("bad", [{"a", "b"}, object(), b"bytes", float("nan"), float("inf")])
    def test_unsupported_values_raise(self, bad):
        """Test unsupported scalar types and non-finite floats raise EncodeError."""
        with pytest.raises(EncodeError) as info:
            encode(["=", "name", bad])
        assert info.value.__cause__ is not None

    def test_encode_error_is_value_error(self):
        """Test EncodeError can be caught as ValueError."""
        with pytest.raises(ValueError):
            encode({1, 2})

    @pytest.mark.parametrize(
        "expr",
        [
            ["=", "certname", "node123"],
            ["and", ["=", "name", "osfamily"], ["or", ["=", "value", "Debian"], ["=", "value", "RedHat"]]],
            ["extract", ["certname", ["function", "count"]], ["~", "certname", ".*"], ["group_by", "certname"]],
            [">=", "line", 10.5],
            "bare",
        ],
    )
    def test_round_trip_through_json_value(self, expr):
        """Test decode(parse(encode(e))) reconstructs e with order preserved."""
        assert JsonValue.decode(json.loads(encode(expr))).to_python() == expr


class TestQueryParam:
    """Test normalization of the query argument accepted by client operations."""

    def test_none_is_empty(self):
        assert query_param(None) == ""

    def test_string_passes_through_unchanged(self):
        """Test a pre-encoded query is not re-encoded."""
        assert query_param('["=", "certname", "a"]') == '["=", "certname", "a"]'

    def test_expression_is_encoded(self):
        assert query_param(["=", "certname", "a"]) == '["=","certname","a"]'


class TestMergeParams:
    """Test parameter merge precedence and exclusion rules."""

    def test_empty_primary_value_is_dropped(self):
        """Test an empty query yields only the extras."""
        assert merge_params("query", "", {"summarize-by": "certname"}) == {"summarize-by": "certname"}

    def test_extra_overwrites_primary_on_collision(self):
        """Test extra parameters win over the primary parameter."""
        assert merge_params("query", "Q", {"query": "R"}) == {"query": "R"}

    def test_empty_value_without_extra_is_empty(self):
        """Test no filter at all yields an empty parameter set."""
        assert merge_params("query", "", None) == {}
        assert merge_params("query", "", {}) == {}

    def test_primary_and_extra_are_combined(self):
        result = merge_params("query", '["=","certname","a"]', {"limit": "10", "offset": "20"})
        assert result == {"query": '["=","certname","a"]', "limit": "10", "offset": "20"}

    def test_extra_is_not_mutated(self):
        """Test the caller's mapping is left untouched and a fresh dict is returned."""
        extra = {"limit": "10"}
        result = merge_params("query", "Q", extra)
        assert extra == {"limit": "10"}
        assert result is not extra
        result["offset"] = "5"
        assert "offset" not in extra

    def test_chained_merge_lets_extra_override_second_name(self):
        """Test the event-counts chain: an extra summarize-by beats the positional one."""
        params = merge_params("query", "Q", {"summarize-by": "resource"})
        params = merge_params("summarize-by", "certname", params)
        assert params == {"summarize-by": "resource", "query": "Q"}
