"""Parser base class and the protocol every parser satisfies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import MutableMapping
from typing import TYPE_CHECKING, Any, Protocol, Self, runtime_checkable

from konform._builder import ResultBuilder
from konform._errors import ParserConfigurationError, Result
from konform._stringify import stringify
from konform._subject import Root, Subject
from konform._types import _trace_hook

if TYPE_CHECKING:
    from konform._logic import Chain, OneOf


@runtime_checkable
class ParserLike(Protocol):
    """
    Anything that can parse a subject.

    Combinators only ever call parse(), so any object implementing it can
    be composed, not only subclasses of Parser.
    """

    def parse(self, subject: Subject) -> Result: ...


_SCALARS = (type(None), bool, int, float, complex, str, bytes)


def is_same(a: Any, b: Any) -> bool:
    """
    Strict comparison used by the "same" variants.

    Objects match only when identical. Scalars and tuples of scalars match
    when they are of the exact same type and equal, so `1` is not the same
    as `1.0` or `True`.
    """
    if a is b:
        return True
    if type(a) is not type(b):
        return False
    if isinstance(a, tuple):
        return len(a) == len(b) and all(is_same(x, y) for x, y in zip(a, b))
    if isinstance(a, _SCALARS):
        return bool(a == b)
    return False


def is_equal(a: Any, b: Any) -> bool:
    """Loose comparison used by the "equal" variants (Python ==)."""
    return bool(a == b)


def _ensure_parser(candidate: Any, owner: str) -> ParserLike:
    if not isinstance(candidate, ParserLike):
        raise ParserConfigurationError(
            f"{owner} expects parsers, got {stringify(candidate)}"
        )
    return candidate


# =============================================================================
# Core Parser Base
# =============================================================================


class Parser(ABC):
    """
    Base class for all parsers.

    A parser takes a subject and returns a Result. Subclasses implement
    _execute(), working on a ResultBuilder created for every invocation.

    Parsers can be composed using operators:
        &  = chain (run the right parser on the result of the left one,
             stops at the first failure)
        |  = one of (first parser that succeeds wins)

    Running:
        parser.run(value)                          # raise on first error
        parser.run(value, throw_on_error=False)    # collect all errors

    Tracing:
        Use `with use_tracing(hook):` to trace every parse() within scope.
    """

    _parser_description: str | None = None

    def parse(self, subject: Subject) -> Result:
        """
        Parse the subject and return the result.

        If tracing is enabled via use_tracing(), the call is reported to
        the active hook.
        """
        hook = _trace_hook.get()
        if hook is not None:
            from konform._tracing import _traced_parse

            return _traced_parse(self, subject, hook)

        return self._execute(self._create_builder(subject))

    def _create_builder(self, subject: Subject) -> ResultBuilder:
        description = self._parser_description
        if description is None:
            description = self._default_description(subject)
        return ResultBuilder(subject, description)

    @abstractmethod
    def _execute(self, builder: ResultBuilder) -> Result:
        """Internal execution - subclasses implement this."""
        ...

    def _default_description(self, subject: Subject) -> str:
        return type(self).__name__

    def set_parser_description(self, description: str) -> Self:
        """Override the label this parser adds to the subject chain."""
        self._parser_description = description
        return self

    def run(
        self,
        value: Any,
        *,
        throw_on_error: bool = True,
        description: str | None = None,
    ) -> Result:
        """
        Parse a raw value, starting a new validation run.

        Args:
            value: The value to validate
            throw_on_error: Raise ParsingError on the first error (True) or
                collect every error into the returned Result (False)
            description: Label of the root in error paths, defaults to the
                type of the value

        Raises:
            ParsingError: if throw_on_error is set and the value is invalid
        """
        return self.parse(Root(value, description, throw_on_error))

    def __call__(self, value: Any, *, throw_on_error: bool = True) -> Result:
        """Shorthand for run()."""
        return self.run(value, throw_on_error=throw_on_error)

    def then(self, parser: ParserLike) -> Chain:
        """Return a chain running parser on the result of this parser."""
        from konform._logic import Chain

        return Chain.parsers(self, parser)

    def then_assign_to(self, target: MutableMapping[Any, Any], key: Any) -> Chain:
        """Return a new chain storing the parsed value in target[key]."""
        from konform._leaf import Assign
        from konform._logic import Chain

        return Chain.parsers(self, Assign.to(target, key))

    def then_append_to(self, target: list[Any]) -> Chain:
        """Return a new chain appending the parsed value to target."""
        from konform._leaf import Append
        from konform._logic import Chain

        return Chain.parsers(self, Append.to(target))

    def __and__(self, other: ParserLike) -> Chain:
        """a & b = run b on the result of a, only if a succeeds."""
        return self.then(other)

    def __or__(self, other: ParserLike) -> OneOf:
        """a | b = the result of the first of a, b that succeeds."""
        from konform._logic import OneOf

        return OneOf.new().parser(self, other)
