"""Combinators: parsers defined purely by how they invoke other parsers."""

from __future__ import annotations

import enum
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any, Literal, Self

from konform._builder import ResultBuilder
from konform._core import Parser, ParserLike, _ensure_parser, is_equal, is_same
from konform._errors import (
    Error,
    ParsingError,
    Result,
    RuntimeParserConfigurationError,
)
from konform._stringify import stringify
from konform._subject import Subject
from konform._types import UNSET


# =============================================================================
# Chain
# =============================================================================


class Chain(Parser):
    """
    Runs parsers one after the other, each on the result of the previous one.

    Stops at the first failing parser; the parsers after it are never run.

    Example:
        parser = Chain.parsers(ParseJSON.new(), AssertType.of(dict))
        parser = ParseJSON.new() & AssertType.of(dict)  # the same
    """

    def __init__(self, *parsers: ParserLike):
        self._parsers: list[ParserLike] = [_ensure_parser(p, "Chain") for p in parsers]

    @classmethod
    def parsers(cls, *parsers: ParserLike) -> Chain:
        return cls(*parsers)

    @property
    def children(self) -> tuple[ParserLike, ...]:
        return tuple(self._parsers)

    def then(self, parser: ParserLike) -> Chain:
        """Append a parser to this chain."""
        self._parsers.append(_ensure_parser(parser, "Chain"))
        return self

    def __and__(self, other: ParserLike) -> Chain:
        return Chain(*self._parsers, other)

    def _execute(self, builder: ResultBuilder) -> Result:
        subject: Subject = builder.subject
        result: Result | None = None
        for index, parser in enumerate(self._parsers):
            if result is not None:
                subject = result.forward(f"chain #{index}", builder.throw_on_error)
            result = parser.parse(subject)
            if not result.is_success:
                break

        if result is None:
            return builder.create_result_unchanged()
        return builder.create_result_from_result(result)

    def _default_description(self, subject: Subject) -> str:
        return "chain"

    def __repr__(self) -> str:
        return f"Chain({len(self._parsers)})"


# =============================================================================
# Fork
# =============================================================================


class Fork(Parser):
    """
    Hands the same value to every parser and collects all their errors.

    The value of the fork is always its input value, whatever the forked
    parsers turn it into. When errors are raised on error, the first
    failing parser stops the fork.

    Example:
        parser = Fork.to(
            Unique.comparing_equals(Append.to(names)),
            AssertType.of(str),
        )
    """

    def __init__(self, *parsers: ParserLike):
        self._parsers: list[ParserLike] = [_ensure_parser(p, "Fork") for p in parsers]

    @classmethod
    def to(cls, *parsers: ParserLike) -> Fork:
        return cls(*parsers)

    @property
    def children(self) -> tuple[ParserLike, ...]:
        return tuple(self._parsers)

    def add(self, parser: ParserLike) -> Self:
        """Add a parser to fork the value to."""
        self._parsers.append(_ensure_parser(parser, "Fork"))
        return self

    def _execute(self, builder: ResultBuilder) -> Result:
        for index, parser in enumerate(self._parsers):
            builder.incorporate_result(
                parser.parse(builder.subject_forwarded(f"fork #{index}"))
            )

        return builder.create_result_unchanged()

    def _default_description(self, subject: Subject) -> str:
        return "fork to multiple parsers"

    def __repr__(self) -> str:
        return f"Fork({len(self._parsers)})"


# =============================================================================
# Alternation: OneOf / Conditional / Map
# =============================================================================


class EntryKind(enum.Enum):
    SAME = "same"
    SAME_LIST = "same list"
    EQUALS = "equals"
    EQUALS_LIST = "equals list"
    PARSER = "parser"
    PARSER_PIPE = "parser pipe"


_LITERAL_KINDS = frozenset(
    {EntryKind.SAME, EntryKind.SAME_LIST, EntryKind.EQUALS, EntryKind.EQUALS_LIST}
)


@dataclass(frozen=True)
class Entry:
    """
    One option of an alternation.

    Attributes:
        kind: How the option is matched
        match: The value, list of values or probe parser to match with
        target: Parser the value is handed to on a match. None forwards the
            (possibly piped) value unchanged.
    """

    kind: EntryKind
    match: Any
    target: ParserLike | None = None

    def matches(self, value: Any) -> bool:
        if self.kind is EntryKind.SAME:
            return is_same(value, self.match)
        if self.kind is EntryKind.SAME_LIST:
            return any(is_same(value, option) for option in self.match)
        if self.kind is EntryKind.EQUALS:
            return is_equal(value, self.match)
        if self.kind is EntryKind.EQUALS_LIST:
            return any(is_equal(value, option) for option in self.match)
        raise RuntimeParserConfigurationError(
            f"Entry of kind {self.kind.value} is not matched by value"
        )

    def mismatch_message(self) -> str:
        if self.kind is EntryKind.SAME:
            return f"Value is not same as {stringify(self.match)}"
        if self.kind is EntryKind.SAME_LIST:
            return "Value is not same as any of " + _list_text(self.match)
        if self.kind is EntryKind.EQUALS:
            return f"Value is not equal to {stringify(self.match)}"
        if self.kind is EntryKind.EQUALS_LIST:
            return "Value is not equal to any of " + _list_text(self.match)
        return "Value did not match parser"


def _list_text(values: Iterable[Any]) -> str:
    return ", ".join(stringify(v) for v in values) or "(no values)"


class _Alternation(Parser):
    """
    Shared engine of OneOf, Conditional and Map.

    Entries are tried in the order they were added. The first entry that
    matches hands the value to its target and that result becomes the
    result of the alternation. Probe parsers run in a test context, so a
    failing probe never raises; its errors are kept as the reason that
    entry did not match.

    Without a match, a configured default value is returned. Otherwise one
    error is logged whose source errors hold one error per entry.
    """

    DEFAULT_MESSAGE = "Provided value does not match any of the expected formats or values"

    def __init__(self) -> None:
        self._entries: list[Entry] = []
        self._default: Any = UNSET
        self._none_of_message = self.DEFAULT_MESSAGE

    @property
    def entries(self) -> tuple[Entry, ...]:
        return tuple(self._entries)

    @property
    def default_result(self) -> Any:
        """The value used when no entry matches, UNSET if there is none."""
        return self._default

    def _add(self, kind: EntryKind, match: Any, target: ParserLike | None) -> Self:
        owner = type(self).__name__
        if kind in (EntryKind.PARSER, EntryKind.PARSER_PIPE):
            _ensure_parser(match, owner)
        if kind in (EntryKind.SAME_LIST, EntryKind.EQUALS_LIST):
            match = tuple(match)
        if target is not None:
            _ensure_parser(target, owner)
        self._entries.append(Entry(kind, match, target))
        return self

    def set_default_result(self, value: Any) -> Self:
        """Result value to use when no entry matches."""
        self._default = value
        return self

    def set_none_of_error_message(self, message: str) -> Self:
        """
        Message of the error logged when no entry matches.

        The message is processed using parse_message() and receives:
        - subject: The value currently being parsed
        """
        self._none_of_message = message
        return self

    def _execute(self, builder: ResultBuilder) -> Result:
        value = builder.value
        errors: list[Error] = []

        for entry in self._entries:
            if entry.kind in _LITERAL_KINDS:
                if entry.matches(value):
                    return self._dispatch(builder, entry, None)
                errors.append(Error(builder.subject, entry.mismatch_message()))
                continue

            probe_subject = builder.subject_test(f"check {entry.kind.value}")
            try:
                probe = entry.match.parse(probe_subject)
                child_errors = probe.errors
            except ParsingError as exception:
                probe = None
                child_errors = (exception.error,)

            if not child_errors and probe is not None:
                return self._dispatch(builder, entry, probe)
            errors.append(
                Error(probe_subject, entry.mismatch_message(), source_errors=child_errors)
            )

        if self._default is not UNSET:
            return builder.create_result(self._default)

        builder.log_error_using_template(self._none_of_message, source_errors=errors)
        return builder.create_result_unchanged()

    def _dispatch(
        self, builder: ResultBuilder, entry: Entry, probe: Result | None
    ) -> Result:
        piped = entry.kind is EntryKind.PARSER_PIPE and probe is not None
        if entry.target is None:
            if piped:
                return builder.create_result(probe.value)
            return builder.create_result_unchanged()

        if piped:
            subject = probe.forward("piped", builder.throw_on_error)
        else:
            subject = builder.subject_forwarded(f"{entry.kind.value} matched")
        return builder.create_result_from_result(entry.target.parse(subject))


class OneOf(_Alternation):
    """
    Succeeds with the first option matching the value.

    Parser options are tried in a test context; the result of the first
    one that succeeds is the result of OneOf.

    Example:
        parser = OneOf.new().same_as(None).parser(AssertType.of(int))
        parser = OneOf.null_or(AssertType.of(int))  # the same
        parser = AssertType.of(int) | AssertType.of(str)
    """

    def __init__(self, *parsers: ParserLike):
        super().__init__()
        if parsers:
            self.parser(*parsers)

    @classmethod
    def new(cls) -> OneOf:
        return cls()

    @classmethod
    def null_or(cls, parser: ParserLike) -> OneOf:
        """Shortcut for a value that is either None or valid for parser."""
        return cls.new().same_as(None).parser(parser)

    def parser(self, *parsers: ParserLike) -> Self:
        """Add options that match when the parser succeeds."""
        for parser in parsers:
            self._add(EntryKind.PARSER_PIPE, parser, None)
        return self

    def same_as(self, *values: Any) -> Self:
        """Add an option matching values that are the same as one of values."""
        return self._add(EntryKind.SAME_LIST, values, None)

    def equal_to(self, *values: Any) -> Self:
        """Add an option matching values that are == one of values."""
        return self._add(EntryKind.EQUALS_LIST, values, None)

    def __or__(self, other: ParserLike) -> OneOf:
        combined = OneOf.new()
        combined._entries = [*self._entries]
        combined._default = self._default
        combined._none_of_message = self._none_of_message
        return combined.parser(other)

    def _default_description(self, subject: Subject) -> str:
        return "one of"

    def __repr__(self) -> str:
        return f"OneOf({len(self._entries)})"


class Conditional(_Alternation):
    """
    Dispatches the value to a parser chosen by what the value is.

    Example:
        parser = (
            Conditional.new()
            .if_same_as("count", Fixed.result_in(0))
            .if_parser(AssertType.of(int), AssertEquals.value(1))
            .set_default_result(None)
        )
    """

    @classmethod
    def new(cls) -> Conditional:
        return cls()

    def if_same_as(self, match: Any, to: ParserLike) -> Self:
        """If the value is the same as match, it is parsed by to."""
        return self._add(EntryKind.SAME, match, to)

    def if_same_as_list_element(self, matches: Iterable[Any], to: ParserLike) -> Self:
        """If the value is the same as one of matches, it is parsed by to."""
        return self._add(EntryKind.SAME_LIST, matches, to)

    def if_equal_to(self, match: Any, to: ParserLike) -> Self:
        """If the value is == match, it is parsed by to."""
        return self._add(EntryKind.EQUALS, match, to)

    def if_equal_to_list_element(self, matches: Iterable[Any], to: ParserLike) -> Self:
        """If the value is == one of matches, it is parsed by to."""
        return self._add(EntryKind.EQUALS_LIST, matches, to)

    def if_parser(self, parser: ParserLike, to: ParserLike) -> Self:
        """If parser succeeds on the value, the unchanged value is parsed by to."""
        return self._add(EntryKind.PARSER, parser, to)

    def if_parser_piped(self, parser: ParserLike, to: ParserLike) -> Self:
        """If parser succeeds on the value, the result of parser is parsed by to."""
        return self._add(EntryKind.PARSER_PIPE, parser, to)

    def _default_description(self, subject: Subject) -> str:
        return "conditional"

    def __repr__(self) -> str:
        return f"Conditional({len(self._entries)})"


class Map(_Alternation):
    """
    Maps values to the parser handling them.

    Same engine as Conditional, with the builder vocabulary of a lookup table.

    Example:
        parser = (
            Map.new()
            .add_equals("yes", Fixed.result_in(True))
            .add_equals("no", Fixed.result_in(False))
        )
    """

    @classmethod
    def new(cls) -> Map:
        return cls()

    def add_same(self, match: Any, to: ParserLike) -> Self:
        return self._add(EntryKind.SAME, match, to)

    def add_same_list(self, matches: Iterable[Any], to: ParserLike) -> Self:
        return self._add(EntryKind.SAME_LIST, matches, to)

    def add_equals(self, match: Any, to: ParserLike) -> Self:
        return self._add(EntryKind.EQUALS, match, to)

    def add_equals_list(self, matches: Iterable[Any], to: ParserLike) -> Self:
        return self._add(EntryKind.EQUALS_LIST, matches, to)

    def add_parser(self, parser: ParserLike, to: ParserLike, pipe: bool = False) -> Self:
        """
        Hand the value to `to` if parser succeeds on it.

        With pipe=True, `to` receives the result of parser instead of the
        unchanged value.
        """
        kind = EntryKind.PARSER_PIPE if pipe else EntryKind.PARSER
        return self._add(kind, parser, to)

    def _default_description(self, subject: Subject) -> str:
        return "map"

    def __repr__(self) -> str:
        return f"Map({len(self._entries)})"


# =============================================================================
# Stateful gates
# =============================================================================

Comparison = Literal["same", "equals"] | Callable[[Any, Any], bool]


def _compare(comparison: Comparison, a: Any, b: Any, owner: str) -> bool:
    if comparison == "same":
        return is_same(a, b)
    if comparison == "equals":
        return is_equal(a, b)
    try:
        return bool(comparison(a, b))
    except Exception as e:
        raise RuntimeParserConfigurationError(
            f"Comparison callable of {owner} raised an exception"
        ) from e


class Unique(Parser):
    """
    Runs the wrapped parser only for values not seen before in this run.

    The values seen are remembered per root subject: as soon as a parse
    happens under a different root, the list of seen values starts over.
    Repeated values succeed without running the wrapped parser. Either way
    the value is returned unchanged: the wrapped parser only contributes
    its errors.

    Not safe to share between threads parsing at the same time.

    Example:
        names: list[str] = []
        parser = EachItem.of(Unique.comparing_equals(Append.to(names)))
        parser.run(["a", "b", "a"])  # names == ["a", "b"]
    """

    def __init__(self, parser: ParserLike, comparison: Comparison):
        self._parser = _ensure_parser(parser, "Unique")
        self._comparison = comparison
        self._root: Subject | None = None
        self._seen: list[Any] = []

    @classmethod
    def comparing_same(cls, parser: ParserLike) -> Unique:
        return cls(parser, "same")

    @classmethod
    def comparing_equals(cls, parser: ParserLike) -> Unique:
        return cls(parser, "equals")

    @classmethod
    def comparing_by(cls, comparison: Callable[[Any, Any], bool], parser: ParserLike) -> Unique:
        """Compare with comparison(seen_value, value); an exception is a configuration error."""
        return cls(parser, comparison)

    @property
    def comparison(self) -> Comparison:
        return self._comparison

    @property
    def inner(self) -> ParserLike:
        return self._parser

    def _execute(self, builder: ResultBuilder) -> Result:
        root = builder.subject.root
        if root is not self._root:
            self._root = root
            self._seen = []

        value = builder.value
        for seen in self._seen:
            if _compare(self._comparison, seen, value, "Unique"):
                return builder.create_result_unchanged()

        self._seen.append(value)
        builder.incorporate_result(
            self._parser.parse(builder.subject_forwarded("first occurrence"))
        )
        return builder.create_result_unchanged()

    def _default_description(self, subject: Subject) -> str:
        return "unique"

    def __repr__(self) -> str:
        name = self._comparison if isinstance(self._comparison, str) else "custom"
        return f"Unique({name})"


class Consistent(Parser):
    """
    Requires every value in a run to match the first value seen.

    The first value is stored in the memory of the root subject, so a
    new run starts over without any reset.

    Example:
        parser = EachItem.of(Consistent.comparing_equals())
        parser.run([1, 1, 2])  # raises: 2 differs from 1
    """

    DEFAULT_MESSAGE = "Value {subject.debug} differs from the first value {first.debug}"

    def __init__(self, comparison: Comparison, message: str | None = None):
        self._comparison = comparison
        self._message = message or self.DEFAULT_MESSAGE

    @classmethod
    def comparing_same(cls, message: str | None = None) -> Consistent:
        return cls("same", message)

    @classmethod
    def comparing_equals(cls, message: str | None = None) -> Consistent:
        return cls("equals", message)

    @property
    def comparison(self) -> Comparison:
        return self._comparison

    def _execute(self, builder: ResultBuilder) -> Result:
        value = builder.value
        if not builder.has_memory(self):
            builder.set_memory(self, value)
            return builder.create_result_unchanged()

        first = builder.get_memory(self)
        if not _compare(self._comparison, first, value, "Consistent"):
            builder.log_error_using_template(self._message, {"first": first})

        return builder.create_result_unchanged()

    def _default_description(self, subject: Subject) -> str:
        return "consistent"

    def __repr__(self) -> str:
        name = self._comparison if isinstance(self._comparison, str) else "custom"
        return f"Consistent({name})"


# =============================================================================
# Utility Parsers
# =============================================================================


class AnyValue(Parser):
    """A parser that accepts any value unchanged."""

    @classmethod
    def new(cls) -> AnyValue:
        return cls()

    def _execute(self, builder: ResultBuilder) -> Result:
        return builder.create_result_unchanged()

    def _default_description(self, subject: Subject) -> str:
        return "accepting any value"

    def __repr__(self) -> str:
        return "AnyValue()"


class Fail(Parser):
    """
    A parser that always fails.

    The message is processed using parse_message() and receives:
    - subject: The value currently being parsed
    """

    def __init__(self, message: str = "This value can never match"):
        self.message = message

    @classmethod
    def with_message(cls, message: str = "This value can never match") -> Fail:
        return cls(message)

    def _execute(self, builder: ResultBuilder) -> Result:
        builder.log_error_using_template(self.message)
        return builder.create_result_unchanged()

    def _default_description(self, subject: Subject) -> str:
        return "fail"

    def __repr__(self) -> str:
        return f"Fail({self.message!r})"


class Fixed(Parser):
    """A parser ignoring its input and resulting in a fixed value."""

    def __init__(self, value: Any):
        self.value = value

    @classmethod
    def result_in(cls, value: Any) -> Fixed:
        return cls(value)

    def _execute(self, builder: ResultBuilder) -> Result:
        return builder.create_result(self.value)

    def _default_description(self, subject: Subject) -> str:
        return "replace with fixed value"

    def __repr__(self) -> str:
        return f"Fixed({self.value!r})"


class Preserve(Parser):
    """
    Runs a parser for its errors only and keeps the input value.

    Example:
        # validate but keep the raw string
        parser = Preserve.around(ParseJSON.new())
    """

    def __init__(self, parser: ParserLike):
        self._parser = _ensure_parser(parser, "Preserve")

    @classmethod
    def around(cls, parser: ParserLike) -> Preserve:
        return cls(parser)

    @property
    def inner(self) -> ParserLike:
        return self._parser

    def _execute(self, builder: ResultBuilder) -> Result:
        builder.incorporate_result(
            self._parser.parse(builder.subject_forwarded("preserved around"))
        )
        return builder.create_result_unchanged()

    def _default_description(self, subject: Subject) -> str:
        return "preserved"

    def __repr__(self) -> str:
        return "Preserve()"


class OverwriteErrors(Parser):
    """
    Replaces the errors of a parser with a single error of its own.

    The replaced errors stay available as source errors of the new error.

    Example:
        parser = OverwriteErrors.with_message(
            "Expected a positive number", AssertType.of(int) & positive
        )
    """

    def __init__(self, message: str, parser: ParserLike):
        self.message = message
        self._parser = _ensure_parser(parser, "OverwriteErrors")

    @classmethod
    def with_message(cls, message: str, around: ParserLike) -> OverwriteErrors:
        return cls(message, around)

    @property
    def inner(self) -> ParserLike:
        return self._parser

    def _execute(self, builder: ResultBuilder) -> Result:
        try:
            result = self._parser.parse(builder.subject_test("overwrite errors"))
            errors = result.errors
        except ParsingError as exception:
            result = None
            errors = (exception.error,)

        if not errors and result is not None:
            return builder.create_result(result.value)

        builder.log_error_using_template(self.message, source_errors=errors)
        return builder.create_result_unchanged()

    def _default_description(self, subject: Subject) -> str:
        return "overwrite errors"

    def __repr__(self) -> str:
        return f"OverwriteErrors({self.message!r})"
