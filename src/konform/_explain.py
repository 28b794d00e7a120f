"""Plain English explanations of parser trees."""

from __future__ import annotations

from typing import Any

from konform._core import ParserLike
from konform._leaf import (
    AssertEquals,
    AssertSame,
    AssertType,
    Callback,
    Check,
    EachItem,
    EachKey,
    Fields,
)
from konform._logic import (
    Chain,
    Conditional,
    Consistent,
    Entry,
    EntryKind,
    Fork,
    Map,
    OneOf,
    OverwriteErrors,
    Preserve,
    Unique,
    _Alternation,
    _list_text,
)
from konform._stringify import stringify
from konform._types import UNSET


class _Nested:
    """Marks a parser rendered one level below the label preceding it."""

    def __init__(self, parser: ParserLike):
        self.parser = parser


def explain(parser: ParserLike) -> str:
    """
    Generate a plain English explanation of what a parser does.

    Args:
        parser: The parser to explain

    Returns:
        Human-readable explanation string

    Example:
        parser = ParseJSON.new() & Fields.new().field("id", AssertType.of(int))
        print(explain(parser))

        # Output:
        # In sequence, stopping at the first failure:
        #   • ParseJSON
        #   • Fields:
        #     • 'id' (required):
        #       • Assert type int
    """
    output_lines: list[str] = []

    # Stack: (node, depth). Children are pushed in reverse so they are
    # rendered in declared order.
    stack: list[tuple[Any, int]] = [(parser, 0)]

    while stack:
        node, depth = stack.pop()

        if isinstance(node, _Nested):
            stack.append((node.parser, depth + 1))
            continue

        indent = "  " * depth
        bullet = "• " if depth > 0 else ""
        children: list[Any] = []

        if isinstance(node, str):
            header = node

        elif isinstance(node, Chain):
            header = "In sequence, stopping at the first failure:"
            children = list(node.children)

        elif isinstance(node, Fork):
            header = "All of, on the same value (collect errors):"
            children = list(node.children)

        elif isinstance(node, _Alternation):
            header = _alternation_header(node)
            for entry in node.entries:
                children.extend(_entry_lines(entry))

        elif isinstance(node, Unique):
            header = f"Only the first occurrence of each value ({_comparison_name(node)}):"
            children = [node.inner]

        elif isinstance(node, Preserve):
            header = "Keep the value, validating with:"
            children = [node.inner]

        elif isinstance(node, OverwriteErrors):
            header = f"Report {node.message!r} on failure of:"
            children = [node.inner]

        elif isinstance(node, EachItem):
            header = "Each item:"
            if node.length_parser is not None:
                children = ["length:", _Nested(node.length_parser), "items:"]
            children.append(_Nested(node.inner) if children else node.inner)

        elif isinstance(node, EachKey):
            header = "Each key:"
            children = [node.inner]

        elif isinstance(node, Fields):
            header = "Fields:"
            if node.names_parser is not None:
                children.extend(["every name:", _Nested(node.names_parser)])
            for name, field_parser, required in node.describe_fields():
                children.append(f"{name!r} ({'required' if required else 'optional'}):")
                children.append(_Nested(field_parser))

        elif isinstance(node, Consistent):
            header = f"Consistent with the first value ({_comparison_name(node)})"

        elif isinstance(node, AssertType):
            header = "Assert type " + " | ".join(t.__name__ for t in node.types)

        elif isinstance(node, AssertEquals):
            header = f"Assert equal to {stringify(node.expected)}"

        elif isinstance(node, AssertSame):
            header = f"Assert same as {stringify(node.expected)}"

        elif isinstance(node, Check):
            header = f"Check: {node.name}"

        elif isinstance(node, Callback):
            header = f"Transform: {node.name}"

        else:
            header = _leaf_text(node)

        output_lines.append(f"{indent}{bullet}{header}")
        for child in reversed(children):
            stack.append((child, depth + 1))

    return "\n".join(output_lines)


def _comparison_name(parser: Unique | Consistent) -> str:
    comparison = parser.comparison
    return comparison if isinstance(comparison, str) else "custom"


def _alternation_header(node: _Alternation) -> str:
    if isinstance(node, OneOf):
        header = "One of, first match wins"
    elif isinstance(node, Map):
        header = "Map by value"
    elif isinstance(node, Conditional):
        header = "Depending on the value"
    else:
        header = "One of"
    if node.default_result is not UNSET:
        header += f", otherwise {stringify(node.default_result)}"
    return header + ":"


def _entry_lines(entry: Entry) -> list[Any]:
    if entry.kind is EntryKind.SAME:
        lines: list[Any] = [f"same as {stringify(entry.match)}"]
    elif entry.kind is EntryKind.SAME_LIST:
        lines = ["same as any of " + _list_text(entry.match)]
    elif entry.kind is EntryKind.EQUALS:
        lines = [f"equal to {stringify(entry.match)}"]
    elif entry.kind is EntryKind.EQUALS_LIST:
        lines = ["equal to any of " + _list_text(entry.match)]
    elif entry.kind is EntryKind.PARSER_PIPE:
        lines = ["if parsed by:", _Nested(entry.match)]
    else:
        lines = ["if accepted by:", _Nested(entry.match)]

    if entry.target is not None:
        if isinstance(lines[-1], str):
            lines[-1] += ", then:"
        else:
            lines.append("then:")
        lines.append(_Nested(entry.target))
    return lines


def _leaf_text(parser: ParserLike) -> str:
    name, _, rest = repr(parser).partition("(")
    if rest in ("", ")"):
        return name
    return f"{name}: {rest[:-1]}"
