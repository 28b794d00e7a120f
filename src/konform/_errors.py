"""Failure model: Error, Result and the exceptions of the library."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, NoReturn

from konform._stringify import parse_message, stringify
from konform._subject import Forwarded, Subject
from konform._types import UNSET


# =============================================================================
# Exceptions
# =============================================================================


class ParserConfigurationError(Exception):
    """
    Raised when a parser or one of the core objects is set up wrongly.

    This is a programmer error and is raised whatever the throw policy of
    the subject; it never ends up in the errors of a Result.
    """


class RuntimeParserConfigurationError(ParserConfigurationError):
    """A configuration error that only shows while a parser is executing."""


class ParsingError(Exception):
    """
    Raised for a validation failure when the root subject asks to throw on error.

    Attributes:
        error: The Error that caused this exception
    """

    def __init__(self, error: Error):
        super().__init__(error.message)
        self.error = error

    @property
    def subject(self) -> Subject:
        """The subject the error was found on."""
        return self.error.subject

    def get_path_as_string(self, include_utility: bool = False) -> str:
        return self.error.subject.get_path_as_string(include_utility)


# =============================================================================
# Error
# =============================================================================


class Error:
    """
    An immutable description of one validation failure.

    Attributes:
        subject: The subject active when the failure was detected
        message: The rendered error message
        source_exception: Exception that caused the failure (if any)
        source_errors: Errors that caused this error (if any)

    Example:
        error = Error(subject, "Value must be positive")
        error.throw()  # raises ParsingError
    """

    __slots__ = ("_subject", "_message", "_source_exception", "_source_errors")

    def __init__(
        self,
        subject: Subject,
        message: str,
        source_exception: BaseException | None = None,
        source_errors: Iterable[Error] = (),
    ):
        source_errors = tuple(source_errors)
        for source_error in source_errors:
            if not isinstance(source_error, Error):
                raise ParserConfigurationError(
                    "Error has been created with a non-Error instance as source error: "
                    + stringify(source_error)
                )
        self._subject = subject
        self._message = message
        self._source_exception = source_exception
        self._source_errors = source_errors

    @classmethod
    def create_using_template(
        cls,
        subject: Subject,
        message: str,
        replacers: Mapping[str, Any] | None = None,
        source_exception: BaseException | None = None,
        source_errors: Iterable[Error] = (),
    ) -> Error:
        """
        Create an error, rendering the message with parse_message().

        The value of the subject is always available as `{subject}`.
        """
        return cls(
            subject,
            parse_message(message, {**(replacers or {}), "subject": subject.value}),
            source_exception,
            source_errors,
        )

    @property
    def subject(self) -> Subject:
        return self._subject

    @property
    def message(self) -> str:
        return self._message

    @property
    def source_exception(self) -> BaseException | None:
        return self._source_exception

    @property
    def source_errors(self) -> tuple[Error, ...]:
        return self._source_errors

    @property
    def has_source_errors(self) -> bool:
        return bool(self._source_errors)

    @property
    def has_source_exception(self) -> bool:
        return self._source_exception is not None

    def get_path_as_string(self, include_utility: bool = False) -> str:
        return self._subject.get_path_as_string(include_utility)

    def throw(self) -> NoReturn:
        """Raise this error as a ParsingError."""
        raise ParsingError(self) from self._source_exception

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Error):
            return NotImplemented
        return (
            self._subject is other._subject
            and self._message == other._message
            and self._source_exception is other._source_exception
            and self._source_errors == other._source_errors
        )

    def __hash__(self) -> int:
        return hash((id(self._subject), self._message))

    def __repr__(self) -> str:
        return f"Error({self._message!r} at {self.get_path_as_string()!r})"


# =============================================================================
# Result
# =============================================================================


class Result:
    """
    Outcome of one parser invocation.

    A result either carries a value (success) or at least one error
    (failure), never both.

    Example:
        result = parser.run(data, throw_on_error=False)
        if result:
            use(result.value)
        else:
            for error in result.errors:
                print(error.get_path_as_string(), error.message)
    """

    __slots__ = ("_subject", "_value", "_errors")

    def __init__(
        self,
        subject: Subject,
        value: Any = UNSET,
        errors: Iterable[Error] = (),
    ):
        errors = tuple(errors)
        for error in errors:
            if not isinstance(error, Error):
                raise ParserConfigurationError(
                    "Result has been created with a non-Error instance as error: "
                    + stringify(error)
                )
        if errors and value is not UNSET:
            raise ParserConfigurationError(
                "Result cannot carry a value and errors at the same time"
            )
        if not errors and value is UNSET:
            raise ParserConfigurationError(
                "Result must either carry a value or at least one error"
            )
        self._subject = subject
        self._value = value
        self._errors = errors

    @classmethod
    def success(cls, subject: Subject, value: Any) -> Result:
        return cls(subject, value)

    @classmethod
    def failure(cls, subject: Subject, errors: Iterable[Error]) -> Result:
        return cls(subject, errors=errors)

    @property
    def subject(self) -> Subject:
        return self._subject

    @property
    def is_success(self) -> bool:
        return not self._errors

    @property
    def has_errors(self) -> bool:
        return bool(self._errors)

    @property
    def errors(self) -> tuple[Error, ...]:
        return self._errors

    @property
    def value(self) -> Any:
        """The result value. Asking a failed result for its value is a programmer error."""
        if self._errors:
            raise RuntimeParserConfigurationError(
                "Trying to get the value of a failed result at "
                + self._subject.get_path_as_string(True)
            )
        return self._value

    def forward(self, description: str, throw_on_error: bool | None = None) -> Subject:
        """Return a subject handing the value of this result on to another parser."""
        return Forwarded(self._subject, description, self.value, throw_on_error)

    def raise_if_invalid(self) -> None:
        """Raise the first error of a failed result as ParsingError."""
        if self._errors:
            self._errors[0].throw()

    def __bool__(self) -> bool:
        return not self._errors

    def __repr__(self) -> str:
        if self._errors:
            return f"Result(errors={list(self._errors)!r})"
        return f"Result(value={self._value!r})"
