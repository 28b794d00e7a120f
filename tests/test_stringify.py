"""
Tests for value rendering and message templates.

Run with: pytest tests/test_stringify.py -v
"""

import pytest

from konform import parse_message, stringify, type_name


class TestTypeName:
    """Test short type descriptions."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, "None"),
            (1, "int"),
            (1.5, "float"),
            (float("nan"), "NaN"),
            (float("inf"), "inf"),
            (float("-inf"), "-inf"),
            ("x", "str"),
            ([], "list"),
        ],
    )
    def test_type_name(self, value, expected):
        assert type_name(value) == expected


class TestStringify:
    """Test rendering of values for error messages."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, "None"),
            (True, "bool True"),
            (3, "int 3"),
            (1.5, "float 1.5"),
            (float("nan"), "NaN"),
            ("abc", 'str(3) "abc"'),
            (b"ab", "bytes(2)"),
            ([], "list(0)"),
            ([1, 2], "list(2)<int>"),
            ([1, "a"], "list(2)<mixed>"),
            ({"a": 1}, "dict(1)<str, int>"),
            (object(), "<object>"),
        ],
    )
    def test_stringify(self, value, expected):
        assert stringify(value) == expected

    def test_control_characters_made_visible(self):
        assert stringify("a\nb") == 'str(3) "a␊b"'

    def test_long_strings_truncated(self):
        assert stringify("x" * 40) == 'str(40) "' + "x" * 31 + '…"'


class TestParseMessage:
    """Test placeholder substitution."""

    def test_infos(self):
        replacers = {"value": "x"}
        assert parse_message("{value}", replacers) == "x"
        assert parse_message("{value.raw}", replacers) == "x"
        assert parse_message("{value.type}", replacers) == "str"
        assert parse_message("{value.debug}", replacers) == 'str(1) "x"'
        assert parse_message("{value.repr}", replacers) == "'x'"

    def test_unknown_placeholders_kept(self):
        assert parse_message("{missing} {value.foo}", {"value": 1}) == "{missing} {value.foo}"

    def test_several_placeholders(self):
        message = parse_message("{a.debug} and {b}", {"a": 1, "b": "two"})
        assert message == "int 1 and two"
