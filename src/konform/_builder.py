"""The per-invocation workspace parsers build their result with."""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Mapping
from typing import Any

from konform._errors import Error, Result, RuntimeParserConfigurationError
from konform._subject import (
    ArrayKey,
    ArrayValue,
    Forwarded,
    MetaInformation,
    ParserBegin,
    PropertyName,
    PropertyValue,
    Subject,
    Test,
)
from konform._types import UNSET


class ResultBuilder:
    """
    Collects the errors and value changes of one parser execution.

    The builder starts from a ParserBegin subject labelled with the parser
    description. Each set_value() moves the current subject forward, so the
    path of a later error shows every rewrite that happened before it.

    Whether a logged error is raised right away or collected into the final
    result is decided by the throw policy of the subject, never by the
    parser itself.

    A builder produces exactly one result; using it afterwards raises
    RuntimeParserConfigurationError.
    """

    def __init__(self, subject: Subject, parser_description: str):
        self._subject: Subject = ParserBegin(subject, parser_description)
        self._current: Subject = self._subject
        self._errors: list[Error] = []
        self._done = False

    # -------------------------------------------------
    # Current state
    # -------------------------------------------------

    @property
    def value(self) -> Any:
        """The current, possibly rewritten, value."""
        return self._current.value

    @property
    def subject(self) -> Subject:
        """The current subject. Changes with every set_value()."""
        return self._current

    @property
    def throw_on_error(self) -> bool:
        return self._subject.throw_on_error

    @property
    def has_errors(self) -> bool:
        return bool(self._errors)

    @property
    def errors(self) -> tuple[Error, ...]:
        return tuple(self._errors)

    def set_value(self, description: str, value: Any) -> ResultBuilder:
        """Replace the current value, recording the step in the subject chain."""
        self._ensure_active()
        self._current = self._current.chain(description, value)
        return self

    # -------------------------------------------------
    # Subjects for child parsers
    # -------------------------------------------------

    def subject_forwarded(self, description: str) -> Subject:
        return Forwarded(self._current, description)

    def subject_test(self, description: str) -> Subject:
        return Test(self._current, description)

    def subject_array_value(self, key: int | str, value: Any) -> Subject:
        return ArrayValue(self._current, key, value)

    def subject_property_value(self, name: str, value: Any) -> Subject:
        return PropertyValue(self._current, name, value)

    def subject_array_key(self, key: Hashable) -> Subject:
        return ArrayKey(self._current, key)

    def subject_property_name(self, name: Hashable) -> Subject:
        return PropertyName(self._current, name)

    def subject_meta(self, description: str, value: Any) -> Subject:
        return MetaInformation(self._current, description, value)

    # -------------------------------------------------
    # Errors
    # -------------------------------------------------

    def log_error(self, error: Error) -> ResultBuilder:
        """
        Add an error to the result of this builder.

        Raises:
            ParsingError: if the subject is configured to throw on error
        """
        self._ensure_active()
        if self._subject.throw_on_error:
            error.throw()
        self._errors.append(error)
        return self

    def log_error_using_template(
        self,
        message: str,
        replacers: Mapping[str, Any] | None = None,
        source_exception: BaseException | None = None,
        source_errors: Iterable[Error] = (),
    ) -> ResultBuilder:
        """Render message with parse_message() and log it against the current subject."""
        return self.log_error(
            Error.create_using_template(
                self._current, message, replacers, source_exception, source_errors
            )
        )

    def unwrap_result(self, result: Result, value_if_error: Any = UNSET) -> Any:
        """
        Adopt the value of a child result.

        On success the value of the result becomes the current value and is
        returned. On failure the errors of the result are logged (the first
        one is raised if the subject throws on error) and value_if_error,
        or the unchanged current value, is returned.
        """
        if result.is_success:
            value = result.value
            self.set_value(result.subject.description or "unwrapped", value)
            return value
        self._take_errors(result)
        return self.value if value_if_error is UNSET else value_if_error

    def incorporate_result(self, result: Result, value_if_error: Any = UNSET) -> Any:
        """
        Take over the errors of a child result without adopting its value.

        Returns the value of a successful result, value_if_error (or the
        current value) otherwise.
        """
        if result.is_success:
            return result.value
        self._take_errors(result)
        return self.value if value_if_error is UNSET else value_if_error

    def _take_errors(self, result: Result) -> None:
        self._ensure_active()
        if self._subject.throw_on_error:
            result.errors[0].throw()
        self._errors.extend(result.errors)

    # -------------------------------------------------
    # Results
    # -------------------------------------------------

    def create_result(self, value: Any) -> Result:
        """Create the result with the given value, or with the collected errors."""
        return self._finish(self._current, value)

    def create_result_unchanged(self) -> Result:
        """Create the result with the value the parser started with."""
        return self._finish(self._current, self._subject.value)

    def create_result_with_current_value(self) -> Result:
        """Create the result with the value last set by set_value()."""
        return self._finish(self._current, self._current.value)

    def create_result_from_result(self, result: Result) -> Result:
        """
        Create the result from a child result.

        Errors collected by this builder come first, followed by the errors
        of the child result.
        """
        self._ensure_active()
        if result.has_errors and self._subject.throw_on_error:
            result.errors[0].throw()
        self._done = True
        errors = [*self._errors, *result.errors]
        if errors:
            return Result(result.subject, errors=errors)
        return Result(result.subject, result.value)

    def _finish(self, subject: Subject, value: Any) -> Result:
        self._ensure_active()
        self._done = True
        if self._errors:
            return Result(subject, errors=self._errors)
        return Result(subject, value)

    def _ensure_active(self) -> None:
        if self._done:
            raise RuntimeParserConfigurationError(
                "ResultBuilder has already created its result and cannot be used again"
            )

    # -------------------------------------------------
    # Memory
    # -------------------------------------------------

    def has_memory(self, key: Hashable) -> bool:
        return self._subject.has_memory(key)

    def get_memory(self, key: Hashable, default: Any = None) -> Any:
        return self._subject.get_memory(key, default)

    def set_memory(self, key: Hashable, value: Any) -> None:
        self._subject.set_memory(key, value)

    def __repr__(self) -> str:
        state = "done" if self._done else "active"
        return f"ResultBuilder({self._current!r}, errors={len(self._errors)}, {state})"
