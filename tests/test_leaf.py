"""
Tests for the leaf parsers and decorators.

Run with: pytest tests/test_leaf.py -v
"""

import json
from collections import namedtuple

import pytest

from konform import (
    AssertEquals,
    AssertSame,
    AssertType,
    Callback,
    Check,
    EachItem,
    EachKey,
    Fields,
    OneOf,
    ParseJSON,
    ParserConfigurationError,
    ParsingError,
    callback,
    check,
)

# =============================================================================
# Callback & Check Tests
# =============================================================================


class TestCallback:
    """Test value-replacing functions."""

    def test_replaces_value(self):
        assert Callback(str.strip, "strip").run("  a  ").value == "a"

    def test_exception_becomes_error(self):
        result = Callback(int).run("x", throw_on_error=False)
        error = result.errors[0]
        assert isinstance(error.source_exception, ValueError)
        assert error.message == str(error.source_exception)

    def test_exception_is_cause_when_throwing(self):
        with pytest.raises(ParsingError) as exc_info:
            Callback(int).run("x")
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_custom_error_message(self):
        parser = Callback.new(int).set_error_message("Not a number: {subject.repr}")
        result = parser.run("x", throw_on_error=False)
        assert result.errors[0].message == "Not a number: 'x'"

    def test_decorator(self):
        @callback
        def lower(value):
            return value.lower()

        assert isinstance(lower, Callback)
        assert lower.run("ABC").value == "abc"
        assert repr(lower) == "Callback(lower)"


class TestCheck:
    """Test conditions that keep the value."""

    def test_passes_value_through(self):
        assert Check(lambda x: x > 0, "positive").run(3).value == 3

    def test_default_message(self):
        result = Check(lambda x: x > 0, "positive").run(-1, throw_on_error=False)
        assert result.errors[0].message == "Check failed: positive"

    def test_template_message(self):
        positive = Check(lambda x: x > 0, "positive", error="{subject} is not positive")
        result = positive.run(-1, throw_on_error=False)
        assert result.errors[0].message == "-1 is not positive"

    def test_callable_message(self):
        positive = Check(lambda x: x > 0, "positive", error=lambda x: f"{x} <= 0")
        assert positive.get_error(-2) == "-2 <= 0"

    def test_decorator_without_arguments(self):
        @check
        def non_empty(value):
            return len(value) > 0

        assert non_empty.run([1]).value == [1]
        with pytest.raises(ParsingError, match="Check failed: non_empty"):
            non_empty.run([])

    def test_decorator_with_error(self):
        @check(error="{subject.debug} is not positive")
        def positive(value):
            return value > 0

        with pytest.raises(ParsingError, match="int -1 is not positive"):
            positive.run(-1)


# =============================================================================
# Assertion Tests
# =============================================================================


class TestAssertType:
    """Test type assertions."""

    def test_accepts_instances(self):
        assert AssertType.of(int, float).run(1.5).value == 1.5

    def test_message(self):
        result = AssertType.of(int).run("x", throw_on_error=False)
        assert result.errors[0].message == 'Provided value str(1) "x" is not of type int'

    def test_bool_is_not_int(self):
        assert not AssertType.of(int).run(True, throw_on_error=False)
        assert AssertType.of(int, bool).run(True).value is True

    def test_custom_message(self):
        parser = AssertType.of(str).set_type_error_message("{subject.type} given")
        assert parser.run(None, throw_on_error=False).errors[0].message == "None given"

    @pytest.mark.parametrize("types", [(), ("int",)])
    def test_configuration(self, types):
        with pytest.raises(ParserConfigurationError):
            AssertType.of(*types)


class TestAssertValue:
    """Test same and equals assertions."""

    def test_same(self):
        assert AssertSame.value(1).run(1).value == 1
        assert not AssertSame.value(1).run(1.0, throw_on_error=False)

    def test_equals(self):
        assert AssertEquals.value(1).run(1.0).value == 1.0
        result = AssertEquals.value(1).run(2, throw_on_error=False)
        assert result.errors[0].message == (
            "The value is not equal to the expected value int 1"
        )


# =============================================================================
# Parsing & Structure Tests
# =============================================================================


class TestParseJSON:
    """Test JSON decoding."""

    def test_decodes(self):
        assert ParseJSON.new().run('{"a": [1, null]}').value == {"a": [1, None]}

    def test_rejects_non_strings(self):
        result = ParseJSON.new().run(1, throw_on_error=False)
        assert result.errors[0].message == "Provided value int 1 is not a string"

    def test_invalid_json(self):
        result = ParseJSON.new().run("{", throw_on_error=False)
        error = result.errors[0]
        assert error.message.startswith("Provided string is not valid JSON: ")
        assert isinstance(error.source_exception, json.JSONDecodeError)


class TestEachItem:
    """Test parsing of list elements."""

    def test_parses_every_item(self):
        assert EachItem.of(Callback(str.upper)).run(["a", "b"]).value == ["A", "B"]

    def test_keeps_tuple_type(self):
        assert EachItem.of(Callback(str.upper)).run(("a",)).value == ("A",)

    def test_collects_errors_with_paths(self):
        result = EachItem.of(AssertType.of(int)).run([1, "a", 2, "b"], throw_on_error=False)
        assert [e.get_path_as_string() for e in result.errors] == ["list[1]", "list[3]"]

    def test_throws_at_first_bad_item(self):
        with pytest.raises(ParsingError) as exc_info:
            EachItem.of(AssertType.of(int)).run([1, "a", "b"])
        assert exc_info.value.get_path_as_string() == "list[1]"

    def test_rejects_non_lists(self):
        result = EachItem.of(AssertType.of(int)).run("ab", throw_on_error=False)
        assert result.errors[0].message == 'Provided value str(2) "ab" is not a list'

    def test_keeps_named_tuple_type(self):
        Point = namedtuple("Point", "x y")
        assert EachItem.of(AssertType.of(int)).run(Point(1, 2)).value == Point(1, 2)

        doubled = EachItem.of(Callback(lambda n: n * 2)).run(Point(1, 2)).value
        assert type(doubled) is Point
        assert doubled == Point(2, 4)

    def test_length(self):
        parser = EachItem.of(AssertType.of(int)).with_length(AssertEquals.value(2))
        assert parser.run([1, 2]).value == [1, 2]

        result = parser.run([1, "x", 3], throw_on_error=False)
        assert [e.get_path_as_string() for e in result.errors] == ["list length", "list[1]"]


class TestEachKey:
    """Test parsing of mapping keys."""

    def test_parses_every_key(self):
        assert EachKey.of(Callback(str.lower)).run({"A": 1, "b": 2}).value == {
            "a": 1,
            "b": 2,
        }

    def test_error_path_names_the_key(self):
        result = EachKey.of(AssertType.of(str)).run({1: "a", "b": 2}, throw_on_error=False)
        assert [e.get_path_as_string() for e in result.errors] == ["dict key 1"]

    def test_throws_at_first_bad_key(self):
        with pytest.raises(ParsingError) as exc_info:
            EachKey.of(AssertType.of(str)).run({"a": 1, 2: 2})
        assert exc_info.value.get_path_as_string() == "dict key 2"

    def test_rejects_non_mappings(self):
        result = EachKey.of(AssertType.of(str)).run([], throw_on_error=False)
        assert result.errors[0].message == "Provided value list(0) is not a mapping"


class TestFields:
    """Test parsing of mapping entries."""

    @pytest.fixture
    def person(self):
        return (
            Fields.new()
            .field("name", AssertType.of(str))
            .optional_field("age", OneOf.null_or(AssertType.of(int)), default=None)
        )

    def test_parses_fields(self, person):
        assert person.run({"name": "Ada", "age": 36}).value == {"name": "Ada", "age": 36}

    def test_optional_default(self, person):
        assert person.run({"name": "Ada"}).value == {"name": "Ada", "age": None}

    def test_optional_without_default_stays_missing(self):
        parser = Fields.new().optional_field("age", AssertType.of(int))
        assert parser.run({}).value == {}

    def test_unknown_keys_kept(self, person):
        assert person.run({"name": "Ada", "x": 1}).value == {
            "name": "Ada",
            "x": 1,
            "age": None,
        }

    def test_missing_key(self, person):
        result = person.run({}, throw_on_error=False)
        assert result.errors[0].message == "Missing key 'name'"
        assert result.errors[0].get_path_as_string() == "dict"

    def test_nested_path(self):
        parser = Fields.new().field("user", Fields.new().field("name", AssertType.of(str)))
        result = parser.run({"user": {"name": 1}}, throw_on_error=False)
        assert result.errors[0].get_path_as_string() == "dict.user.name"

    def test_rejects_non_mappings(self, person):
        assert not person.run([], throw_on_error=False)

    def test_children(self, person):
        assert [name for name, _ in person.children] == ["name", "age"]

    def test_each_name(self, person):
        known = Check(
            lambda name: name in ("name", "age"), "known", error="Unknown key {subject.repr}"
        )
        parser = person.each_name(known)

        result = parser.run({"name": "Ada", "x": 1, "y": 2}, throw_on_error=False)
        assert [e.message for e in result.errors] == [
            "Unknown key 'x'",
            "Unknown key 'y'",
        ]
        assert result.errors[0].get_path_as_string() == "dict property name 'x'"
        assert parser.run({"name": "Ada"}).value == {"name": "Ada", "age": None}


# =============================================================================
# Extraction Tests
# =============================================================================


class TestExtraction:
    """Test collecting parsed values into caller-owned containers."""

    def test_then_assign_to(self):
        target = {}
        AssertType.of(int).then_assign_to(target, "n").run(3)
        assert target == {"n": 3}

    def test_then_append_to(self):
        target = []
        EachItem.of(Callback(str.upper).then_append_to(target)).run(["a", "b"])
        assert target == ["A", "B"]

    def test_nothing_extracted_after_failure(self):
        target = {}
        AssertType.of(int).then_assign_to(target, "n").run("x", throw_on_error=False)
        assert target == {}
