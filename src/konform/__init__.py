"""
Konform - Composable Value Validation & Parsing

A Python library for validating and converting untrusted values by composing
small parsers. Every value is parsed in a subject: a chain of context that
records where in the input the value came from, so each error can name the
exact path it was found at.

Operators:
    &  = "and then" (chain, stops at the first failure)
    |  = "or else" (one of, first success wins)

Error handling:
    parser.run(value)                        # raise ParsingError on first error
    parser.run(value, throw_on_error=False)  # collect all errors in the Result

Example:
    from konform import AssertType, EachItem, Fields, OneOf, ParseJSON

    document = ParseJSON.new() & (
        Fields.new()
        .field("name", AssertType.of(str))
        .field("tags", EachItem.of(AssertType.of(str)))
        .optional_field("age", OneOf.null_or(AssertType.of(int)), default=None)
    )

    result = document.run('{"name": "x", "tags": [1]}', throw_on_error=False)
    for error in result.errors:
        print(error.get_path_as_string(), error.message)
    # str.tags[0] Provided value int 1 is not of type str
"""

from __future__ import annotations

__version__ = "0.1.0"
__all__ = [
    # Subjects
    "Subject",
    "Root",
    "ParserBegin",
    "Internal",
    "Forwarded",
    "Test",
    "ArrayValue",
    "PropertyValue",
    "ArrayKey",
    "PropertyName",
    "MetaInformation",
    "Memory",
    "UNSET",
    # Errors & results
    "Error",
    "Result",
    "ParsingError",
    "ParserConfigurationError",
    "RuntimeParserConfigurationError",
    "ResultBuilder",
    # Core
    "Parser",
    "ParserLike",
    "is_same",
    "is_equal",
    # Combinators
    "Chain",
    "Fork",
    "OneOf",
    "Conditional",
    "Map",
    "Entry",
    "EntryKind",
    "Unique",
    "Consistent",
    "Preserve",
    "OverwriteErrors",
    "AnyValue",
    "Fail",
    "Fixed",
    # Leaf parsers
    "Callback",
    "Check",
    "AssertType",
    "AssertSame",
    "AssertEquals",
    "ParseJSON",
    "EachItem",
    "EachKey",
    "Fields",
    "Assign",
    "Append",
    # Decorators
    "callback",
    "check",
    # Messages
    "parse_message",
    "stringify",
    "type_name",
    # Tracing
    "TraceHook",
    "TraceConfig",
    "use_tracing",
    "run_traced",
    "PrintHook",
    "LoggingHook",
    "OpenTelemetryHook",
    # Explanation
    "explain",
]

from konform._builder import ResultBuilder
from konform._core import Parser, ParserLike, is_equal, is_same
from konform._errors import (
    Error,
    ParserConfigurationError,
    ParsingError,
    Result,
    RuntimeParserConfigurationError,
)
from konform._explain import explain
from konform._leaf import (
    Append,
    AssertEquals,
    AssertSame,
    AssertType,
    Assign,
    Callback,
    Check,
    EachItem,
    EachKey,
    Fields,
    ParseJSON,
    callback,
    check,
)
from konform._logic import (
    AnyValue,
    Chain,
    Conditional,
    Consistent,
    Entry,
    EntryKind,
    Fail,
    Fixed,
    Fork,
    Map,
    OneOf,
    OverwriteErrors,
    Preserve,
    Unique,
)
from konform._stringify import parse_message, stringify, type_name
from konform._subject import (
    ArrayKey,
    ArrayValue,
    Forwarded,
    Internal,
    Memory,
    MetaInformation,
    ParserBegin,
    PropertyName,
    PropertyValue,
    Root,
    Subject,
    Test,
)
from konform._tracing import (
    LoggingHook,
    OpenTelemetryHook,
    PrintHook,
    TraceConfig,
    TraceHook,
    run_traced,
    use_tracing,
)
from konform._types import UNSET
