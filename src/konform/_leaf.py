"""Leaf parsers and decorator factories built on the core."""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping, MutableMapping
from typing import Any, overload

from konform._builder import ResultBuilder
from konform._core import Parser, ParserLike, _ensure_parser, is_equal, is_same
from konform._errors import Error, ParserConfigurationError, Result
from konform._stringify import parse_message
from konform._subject import Subject
from konform._types import UNSET

# =============================================================================
# Callback & Check
# =============================================================================


class Callback(Parser):
    """
    A parser that replaces the value with the return value of a function.

    An exception raised by the function becomes an error carrying the
    exception as source_exception.

    Example:
        strip = Callback(str.strip, "strip")
        strip.run("  a  ").value  # "a"

    The error message can be overwritten with set_error_message(); it is
    processed using parse_message() and receives:
    - subject: The value handed to the function
    - exception: The exception raised by the function
    """

    def __init__(self, fn: Callable[[Any], Any], name: str | None = None):
        self.fn = fn
        self.name = name or getattr(fn, "__name__", "callback")
        self._error_message: str | None = None

    @classmethod
    def new(cls, fn: Callable[[Any], Any], name: str | None = None) -> Callback:
        return cls(fn, name)

    def set_error_message(self, message: str) -> Callback:
        self._error_message = message
        return self

    def _execute(self, builder: ResultBuilder) -> Result:
        try:
            value = self.fn(builder.value)
        except Exception as e:
            if self._error_message is None:
                builder.log_error(Error(builder.subject, str(e) or type(e).__name__, e))
            else:
                builder.log_error_using_template(self._error_message, {"exception": e}, e)
            return builder.create_result_unchanged()

        return builder.create_result(value)

    def _default_description(self, subject: Subject) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"Callback({self.name})"


class Check(Parser):
    """
    A parser that checks a condition without modifying the value.

    Example:
        positive = Check(lambda x: x > 0, "positive", error="{subject} is not positive")
        positive.run(-1, throw_on_error=False).errors[0].message  # "-1 is not positive"
    """

    def __init__(
        self,
        fn: Callable[[Any], bool],
        name: str | None = None,
        error: str | Callable[[Any], str] | None = None,
    ):
        self.fn = fn
        self.name = name or getattr(fn, "__name__", "check")
        self._error = error

    def get_error(self, value: Any) -> str:
        """Get the error message for a value failing this check."""
        if self._error is None:
            return f"Check failed: {self.name}"
        if callable(self._error):
            return self._error(value)
        return parse_message(self._error, {"subject": value})

    def _execute(self, builder: ResultBuilder) -> Result:
        if not self.fn(builder.value):
            builder.log_error(Error(builder.subject, self.get_error(builder.value)))
        return builder.create_result_unchanged()

    def _default_description(self, subject: Subject) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"Check({self.name})"


def callback(fn: Callable[[Any], Any]) -> Callback:
    """
    Decorator to create a parser from a transforming function.

    Example:
        @callback
        def lower(value: str) -> str:
            return value.lower()

        lower.run("ABC").value  # "abc"
    """
    return Callback(fn, fn.__name__)


@overload
def check(
    fn: Callable[[Any], bool], *, error: str | Callable[[Any], str] | None = None
) -> Check: ...


@overload
def check(
    fn: None = None, *, error: str | Callable[[Any], str] | None = None
) -> Callable[[Callable[[Any], bool]], Check]: ...


def check(
    fn: Callable[[Any], bool] | None = None,
    *,
    error: str | Callable[[Any], str] | None = None,
) -> Check | Callable[[Callable[[Any], bool]], Check]:
    """
    Decorator to create a checking parser with an error message.

    Example:
        @check(error="{subject.debug} is not positive")
        def positive(value):
            return value > 0

        @check
        def non_empty(value):
            return len(value) > 0
    """

    def decorator(f: Callable[[Any], bool]) -> Check:
        return Check(f, f.__name__, error)

    if fn is not None:
        return decorator(fn)
    return decorator


# =============================================================================
# Assertions
# =============================================================================


class AssertType(Parser):
    """
    Asserts the value is an instance of one of the given types.

    bool is not accepted as int or float unless listed explicitly.

    The type error message is processed using parse_message() and receives:
    - subject: The value currently being parsed
    - expected: The names of the accepted types
    """

    DEFAULT_MESSAGE = "Provided value {subject.debug} is not of type {expected}"

    def __init__(self, *types: type):
        if not types or not all(isinstance(t, type) for t in types):
            raise ParserConfigurationError("AssertType requires at least one type")
        self.types = types
        self._type_error_message = self.DEFAULT_MESSAGE

    @classmethod
    def of(cls, *types: type) -> AssertType:
        return cls(*types)

    def set_type_error_message(self, message: str) -> AssertType:
        self._type_error_message = message
        return self

    def _accepts(self, value: Any) -> bool:
        if isinstance(value, bool) and bool not in self.types:
            return False
        return isinstance(value, self.types)

    def _execute(self, builder: ResultBuilder) -> Result:
        if not self._accepts(builder.value):
            builder.log_error_using_template(
                self._type_error_message,
                {"expected": " | ".join(t.__name__ for t in self.types)},
            )
        return builder.create_result_unchanged()

    def _default_description(self, subject: Subject) -> str:
        return "assert " + " | ".join(t.__name__ for t in self.types)

    def __repr__(self) -> str:
        return f"AssertType({', '.join(t.__name__ for t in self.types)})"


class AssertSame(Parser):
    """Asserts the value is the same as an expected value (see is_same())."""

    DEFAULT_MESSAGE = "The value is not the same as the expected value {expected.debug}"

    def __init__(self, expected: Any, message: str | None = None):
        self.expected = expected
        self.message = message or self.DEFAULT_MESSAGE

    @classmethod
    def value(cls, expected: Any, message: str | None = None) -> AssertSame:
        return cls(expected, message)

    def _matches(self, value: Any) -> bool:
        return is_same(value, self.expected)

    def _execute(self, builder: ResultBuilder) -> Result:
        if not self._matches(builder.value):
            builder.log_error_using_template(self.message, {"expected": self.expected})
        return builder.create_result_unchanged()

    def _default_description(self, subject: Subject) -> str:
        return "assert same"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.expected!r})"


class AssertEquals(AssertSame):
    """Asserts the value is == an expected value."""

    DEFAULT_MESSAGE = "The value is not equal to the expected value {expected.debug}"

    def _matches(self, value: Any) -> bool:
        return is_equal(value, self.expected)

    def _default_description(self, subject: Subject) -> str:
        return "assert equals"


# =============================================================================
# Parsing & Structure
# =============================================================================


class ParseJSON(Parser):
    """
    Decodes a JSON string.

    A decode failure is logged with the JSONDecodeError as source_exception.
    """

    TYPE_MESSAGE = "Provided value {subject.debug} is not a string"
    DECODE_MESSAGE = "Provided string is not valid JSON: {error}"

    @classmethod
    def new(cls) -> ParseJSON:
        return cls()

    def _execute(self, builder: ResultBuilder) -> Result:
        value = builder.value
        if not isinstance(value, (str, bytes, bytearray)):
            builder.log_error_using_template(self.TYPE_MESSAGE)
            return builder.create_result_unchanged()

        try:
            decoded = json.loads(value)
        except ValueError as e:
            builder.log_error_using_template(self.DECODE_MESSAGE, {"error": e}, e)
            return builder.create_result_unchanged()

        return builder.create_result(decoded)

    def _default_description(self, subject: Subject) -> str:
        return "parse JSON"

    def __repr__(self) -> str:
        return "ParseJSON()"


class EachItem(Parser):
    """
    Parses every element of a list or tuple with the same parser.

    Elements are handed over as ArrayValue subjects, so errors point at
    `[index]`. The result is a new sequence of the parsed elements: a list
    for lists, a tuple for tuples, and an instance of the same class for
    named tuples.

    Example:
        EachItem.of(AssertType.of(int)).run([1, "x"], throw_on_error=False)
        # error at "list[1]"
    """

    TYPE_MESSAGE = "Provided value {subject.debug} is not a list"

    def __init__(self, parser: ParserLike):
        self._parser = _ensure_parser(parser, "EachItem")
        self._length: ParserLike | None = None

    @classmethod
    def of(cls, parser: ParserLike) -> EachItem:
        return cls(parser)

    @property
    def inner(self) -> ParserLike:
        return self._parser

    @property
    def length_parser(self) -> ParserLike | None:
        return self._length

    def with_length(self, parser: ParserLike) -> EachItem:
        """Hand the number of elements to parser before parsing the elements."""
        self._length = _ensure_parser(parser, "EachItem")
        return self

    def _execute(self, builder: ResultBuilder) -> Result:
        value = builder.value
        if not isinstance(value, (list, tuple)):
            builder.log_error_using_template(self.TYPE_MESSAGE)
            return builder.create_result_unchanged()

        if self._length is not None:
            builder.incorporate_result(
                self._length.parse(builder.subject_meta("length", len(value)))
            )

        items = [
            builder.incorporate_result(
                self._parser.parse(builder.subject_array_value(index, item)), item
            )
            for index, item in enumerate(value)
        ]
        return builder.create_result(_rebuild_sequence(value, items))

    def _default_description(self, subject: Subject) -> str:
        return "each item"

    def __repr__(self) -> str:
        return "EachItem()"


def _rebuild_sequence(original: list[Any] | tuple[Any, ...], items: list[Any]) -> Any:
    make = getattr(type(original), "_make", None)
    if make is not None:
        return make(items)
    if isinstance(original, list):
        return items
    return tuple(items)


class EachKey(Parser):
    """
    Parses every key of a mapping with the same parser.

    Keys are handed over as ArrayKey subjects, so errors point at
    `key 'name'`. The result is a new dict with the parsed keys and the
    values left unchanged. Keys parsed to the same value keep the value of
    the last of them.

    Example:
        EachKey.of(AssertType.of(str)).run({1: "a"}, throw_on_error=False)
        # error at "dict key 1"
    """

    TYPE_MESSAGE = "Provided value {subject.debug} is not a mapping"

    def __init__(self, parser: ParserLike):
        self._parser = _ensure_parser(parser, "EachKey")

    @classmethod
    def of(cls, parser: ParserLike) -> EachKey:
        return cls(parser)

    @property
    def inner(self) -> ParserLike:
        return self._parser

    def _execute(self, builder: ResultBuilder) -> Result:
        value = builder.value
        if not isinstance(value, Mapping):
            builder.log_error_using_template(self.TYPE_MESSAGE)
            return builder.create_result_unchanged()

        parsed = {
            builder.incorporate_result(
                self._parser.parse(builder.subject_array_key(key)), key
            ): item
            for key, item in value.items()
        }
        return builder.create_result(parsed)

    def _default_description(self, subject: Subject) -> str:
        return "each key"

    def __repr__(self) -> str:
        return "EachKey()"


class Fields(Parser):
    """
    Parses named entries of a mapping.

    Each configured key is handed over as a PropertyValue subject. Keys that
    are not configured are kept unchanged. With each_name() every key is
    also checked as a PropertyName subject, e.g. to reject unknown names.

    Example:
        parser = (
            Fields.new()
            .field("name", AssertType.of(str))
            .optional_field("age", AssertType.of(int), default=None)
        )
    """

    TYPE_MESSAGE = "Provided value {subject.debug} is not a mapping"
    MISSING_MESSAGE = "Missing key {key.repr}"

    def __init__(self) -> None:
        self._fields: list[tuple[str, ParserLike, bool, Any]] = []
        self._names: ParserLike | None = None

    @classmethod
    def new(cls) -> Fields:
        return cls()

    @property
    def children(self) -> tuple[tuple[str, ParserLike], ...]:
        return tuple((name, parser) for name, parser, _, _ in self._fields)

    def describe_fields(self) -> list[tuple[str, ParserLike, bool]]:
        """Return (name, parser, required) for every configured key."""
        return [(name, parser, required) for name, parser, required, _ in self._fields]

    def field(self, name: str, parser: ParserLike) -> Fields:
        """Require key name and parse its value with parser."""
        self._fields.append((name, _ensure_parser(parser, "Fields"), True, UNSET))
        return self

    def optional_field(self, name: str, parser: ParserLike, default: Any = UNSET) -> Fields:
        """Parse key name if present; otherwise use default, if given."""
        self._fields.append((name, _ensure_parser(parser, "Fields"), False, default))
        return self

    @property
    def names_parser(self) -> ParserLike | None:
        return self._names

    def each_name(self, parser: ParserLike) -> Fields:
        """Hand every key of the mapping to parser as a property name."""
        self._names = _ensure_parser(parser, "Fields")
        return self

    def _execute(self, builder: ResultBuilder) -> Result:
        value = builder.value
        if not isinstance(value, Mapping):
            builder.log_error_using_template(self.TYPE_MESSAGE)
            return builder.create_result_unchanged()

        if self._names is not None:
            for key in value:
                builder.incorporate_result(
                    self._names.parse(builder.subject_property_name(key))
                )

        parsed = dict(value)
        for name, parser, required, default in self._fields:
            if name not in value:
                if required:
                    builder.log_error_using_template(self.MISSING_MESSAGE, {"key": name})
                elif default is not UNSET:
                    parsed[name] = default
                continue
            parsed[name] = builder.incorporate_result(
                parser.parse(builder.subject_property_value(name, value[name])),
                value[name],
            )

        return builder.create_result(parsed)

    def _default_description(self, subject: Subject) -> str:
        return "fields"

    def __repr__(self) -> str:
        return f"Fields({', '.join(name for name, *_ in self._fields)})"


# =============================================================================
# Extraction
# =============================================================================


class Assign(Parser):
    """Stores the value in target[key] and forwards it unchanged."""

    def __init__(self, target: MutableMapping[Any, Any], key: Any):
        self.target = target
        self.key = key

    @classmethod
    def to(cls, target: MutableMapping[Any, Any], key: Any) -> Assign:
        return cls(target, key)

    def _execute(self, builder: ResultBuilder) -> Result:
        self.target[self.key] = builder.value
        return builder.create_result_unchanged()

    def _default_description(self, subject: Subject) -> str:
        return "extract: assign"

    def __repr__(self) -> str:
        return f"Assign({self.key!r})"


class Append(Parser):
    """Appends the value to a list and forwards it unchanged."""

    def __init__(self, target: list[Any]):
        self.target = target

    @classmethod
    def to(cls, target: list[Any]) -> Append:
        return cls(target)

    def _execute(self, builder: ResultBuilder) -> Result:
        self.target.append(builder.value)
        return builder.create_result_unchanged()

    def _default_description(self, subject: Subject) -> str:
        return "extract: appended"

    def __repr__(self) -> str:
        return "Append()"
