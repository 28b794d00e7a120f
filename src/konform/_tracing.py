"""Tracing hooks reporting parser executions to print, logging or OpenTelemetry."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from konform._types import _trace_config, _trace_depth, _trace_hook

if TYPE_CHECKING:
    from konform._core import Parser
    from konform._errors import Result
    from konform._subject import Subject

# Optional OpenTelemetry imports - only needed if using OpenTelemetryHook
try:
    from opentelemetry.trace import (
        Link as _Link,
    )
    from opentelemetry.trace import (
        Status as _Status,
    )
    from opentelemetry.trace import (
        StatusCode as _StatusCode,
    )
    from opentelemetry.trace import (
        set_span_in_context as _set_span_in_context,
    )

    _HAS_OPENTELEMETRY = True
except ImportError:
    _HAS_OPENTELEMETRY = False
    _Link = None
    _Status = None
    _StatusCode = None
    _set_span_in_context = None


# =============================================================================
# Tracing & Hooks
# =============================================================================


@runtime_checkable
class TraceHook(Protocol):
    """
    Protocol for trace hooks.

    Implement this to integrate with logging, OpenTelemetry, or other
    tracing systems.

    Example:
        class MyHook:
            def on_enter(self, name, subject, depth):
                print(f"{'  ' * depth}-> {name} at {subject.get_path_as_string()}")
                return None  # span token

            def on_exit(self, span, name, ok, duration_ms, depth):
                print(f"{'  ' * depth}<- {name} {'ok' if ok else 'failed'}")

            def on_error(self, span, name, error, duration_ms, depth):
                print(f"{'  ' * depth}<- {name} raised {error}")
    """

    def on_enter(self, name: str, subject: Subject, depth: int) -> Any:
        """
        Called before a parser runs.

        Args:
            name: Name of the parser
            subject: The subject being parsed
            depth: Nesting depth (0 = the parser run() was called on)

        Returns:
            Span token to pass to on_exit (can be None)
        """
        ...

    def on_exit(
        self, span: Any, name: str, ok: bool, duration_ms: float, depth: int
    ) -> None:
        """
        Called after a parser returned its result.

        Args:
            span: Token returned from on_enter
            name: Name of the parser
            ok: Whether the result is a success
            duration_ms: Execution time in milliseconds
            depth: Nesting depth
        """
        ...

    def on_error(
        self, span: Any, name: str, error: Exception, duration_ms: float, depth: int
    ) -> None:
        """
        Called if a parser raised, e.g. a ParsingError when throwing on error.

        Args:
            span: Token returned from on_enter
            name: Name of the parser
            error: The exception that was raised
            duration_ms: Execution time in milliseconds
            depth: Nesting depth
        """
        ...


@dataclass
class TraceConfig:
    """
    Configuration for tracing behavior.

    Attributes:
        nested: If True, trace the parsers run by other parsers
        max_depth: Maximum depth to trace (None = unlimited)
        include_leaf_only: If True, only trace parsers that do not run other parsers
    """

    nested: bool = True
    max_depth: int | None = None
    include_leaf_only: bool = False


@contextmanager
def use_tracing(hook: TraceHook, config: TraceConfig | None = None) -> Iterator[None]:
    """
    Context manager to enable tracing for all parser executions in scope.

    Args:
        hook: TraceHook implementation to receive trace events
        config: Optional TraceConfig to customize tracing behavior

    Example:
        with use_tracing(LoggingHook()):
            parser.run(document)  # This will be traced

        with use_tracing(PrintHook(), TraceConfig(max_depth=2)):
            parser.run(document)
    """
    hook_token = _trace_hook.set(hook)
    config_token = _trace_config.set(config or TraceConfig())
    depth_token = _trace_depth.set(0)

    try:
        yield
    finally:
        _trace_depth.reset(depth_token)
        _trace_config.reset(config_token)
        _trace_hook.reset(hook_token)


def run_traced(
    parser: Parser,
    value: Any,
    hook: TraceHook,
    config: TraceConfig | None = None,
    *,
    throw_on_error: bool = True,
) -> Result:
    """
    Run a parser on a value with explicit tracing.

    Example:
        result = run_traced(parser, document, PrintHook(), throw_on_error=False)
    """
    with use_tracing(hook, config):
        return parser.run(value, throw_on_error=throw_on_error)


def _is_composite(parser: Parser) -> bool:
    """Check if a parser runs other parsers."""
    from konform._leaf import EachItem, EachKey, Fields
    from konform._logic import (
        Chain,
        Fork,
        OverwriteErrors,
        Preserve,
        Unique,
        _Alternation,
    )

    return isinstance(
        parser,
        (
            Chain,
            Fork,
            _Alternation,
            Unique,
            Preserve,
            OverwriteErrors,
            EachItem,
            EachKey,
            Fields,
        ),
    )


def _traced_parse(parser: Parser, subject: Subject, hook: TraceHook) -> Result:
    """Execute a parser, reporting it to the hook unless the config skips it."""
    config = _trace_config.get() or TraceConfig()
    depth = _trace_depth.get()
    composite = _is_composite(parser)

    skip = (
        (config.max_depth is not None and depth > config.max_depth)
        or (not config.nested and depth > 0)
        or (config.include_leaf_only and composite)
    )

    depth_token = _trace_depth.set(depth + 1)
    try:
        if skip:
            return parser._execute(parser._create_builder(subject))

        name = repr(parser)
        span = hook.on_enter(name, subject, depth)
        start = time.perf_counter()
        try:
            result = parser._execute(parser._create_builder(subject))
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            hook.on_error(span, name, e, duration_ms, depth)
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        hook.on_exit(span, name, result.is_success, duration_ms, depth)
        return result
    finally:
        _trace_depth.reset(depth_token)


# =============================================================================
# Built-in Trace Hooks
# =============================================================================


class PrintHook:
    """
    Simple trace hook that prints to stdout.

    Errors raised out of a parser are printed with the path of the subject
    the parser was working on.

    Example:
        with use_tracing(PrintHook()):
            parser.run([1, "x"], throw_on_error=False)

        # Output:
        # -> EachItem()
        #   -> AssertType(int)
        #   <- AssertType(int) ✔ (0.01ms)
        #   -> AssertType(int)
        #   <- AssertType(int) ✗ (0.02ms)
        # <- EachItem() ✗ (0.10ms)
    """

    def __init__(self, indent: str = "  ", show_subject: bool = False):
        self.indent = indent
        self.show_subject = show_subject

    def on_enter(self, name: str, subject: Subject, depth: int) -> str:
        prefix = self.indent * depth
        path = subject.get_path_as_string()
        if self.show_subject:
            print(f"{prefix}-> {name} | at={path} value={subject.value!r}")
        else:
            print(f"{prefix}-> {name}")
        return path

    def on_exit(
        self, span: str, name: str, ok: bool, duration_ms: float, depth: int
    ) -> None:
        prefix = self.indent * depth
        status = "✔" if ok else "✗"
        at = f" | at={span}" if self.show_subject else ""
        print(f"{prefix}<- {name} {status} ({duration_ms:.2f}ms){at}")

    def on_error(
        self, span: str, name: str, error: Exception, duration_ms: float, depth: int
    ) -> None:
        prefix = self.indent * depth
        print(f"{prefix}<- {name} ERROR: {error} ({duration_ms:.2f}ms) | at={span}")


class LoggingHook:
    """
    Trace hook that logs to a Python logger.

    Every record names the path of the subject, so the log of a failed run
    shows where in the input each parser was working.

    Example:
        import logging
        logging.basicConfig(level=logging.DEBUG)

        with use_tracing(LoggingHook()):
            parser.run(document)
    """

    def __init__(self, logger: logging.Logger | None = None, level: int = logging.DEBUG):
        self.logger = logger or logging.getLogger("konform")
        self.level = level

    def on_enter(self, name: str, subject: Subject, depth: int) -> dict:
        span = {"name": name, "depth": depth, "path": subject.get_path_as_string()}
        self.logger.log(self.level, f"[ENTER] {name} at {span['path']} (depth={depth})")
        return span

    def on_exit(
        self, span: dict, name: str, ok: bool, duration_ms: float, depth: int
    ) -> None:
        status = "OK" if ok else "FAIL"
        self.logger.log(
            self.level,
            f"[EXIT] {name} at {span['path']} -> {status} ({duration_ms:.2f}ms)",
        )

    def on_error(
        self, span: dict, name: str, error: Exception, duration_ms: float, depth: int
    ) -> None:
        self.logger.error(
            f"[ERROR] {name} at {span['path']} -> {error} ({duration_ms:.2f}ms)"
        )


class OpenTelemetryHook:
    """
    OpenTelemetry trace hook creating one span per parser execution.

    - Correct parent/child span hierarchy
    - Depth-based span suppression
    - Optional linking of sibling spans (e.g. the elements of one list)
    - Path of the parsed value as span attribute

    Requires: pip install opentelemetry-api
    """

    def __init__(
        self,
        tracer,
        *,
        max_span_depth: int | None = None,
        link_sibling_spans: bool = False,
    ):
        if not _HAS_OPENTELEMETRY:
            raise ImportError(
                "OpenTelemetry is not installed. "
                "Install it with: pip install opentelemetry-api"
            )
        self.tracer = tracer
        self.max_span_depth = max_span_depth
        self.link_sibling_spans = link_sibling_spans

        self._span_stack: list[Any] = []
        self._last_span_at_depth: dict[int, Any] = {}

    # -------------------------------------------------
    # Span lifecycle
    # -------------------------------------------------

    def on_enter(self, name: str, subject: Subject, depth: int) -> Any:
        # These are guaranteed non-None because __init__ checks _HAS_OPENTELEMETRY
        assert _set_span_in_context is not None
        assert _Link is not None

        if self.max_span_depth is not None and depth > self.max_span_depth:
            return None

        parent = self._span_stack[-1] if self._span_stack else None
        parent_ctx = _set_span_in_context(parent) if parent else None

        links = []
        if self.link_sibling_spans and depth in self._last_span_at_depth:
            links.append(_Link(self._last_span_at_depth[depth].get_span_context()))

        span = self.tracer.start_span(name, context=parent_ctx, links=links or None)
        span.set_attribute("konform.name", name)
        span.set_attribute("konform.depth", depth)
        span.set_attribute("konform.path", subject.get_path_as_string())

        self._span_stack.append(span)
        self._last_span_at_depth[depth] = span
        return span

    def on_exit(
        self,
        span: Any,
        name: str,
        ok: bool,
        duration_ms: float,
        depth: int,
    ) -> None:
        if span is None:
            return

        # These are guaranteed non-None because __init__ checks _HAS_OPENTELEMETRY
        assert _Status is not None
        assert _StatusCode is not None

        span.set_attribute("konform.success", ok)
        span.set_attribute("konform.duration_ms", duration_ms)

        if not ok:
            span.set_status(_Status(_StatusCode.ERROR))

        span.end()
        self._span_stack.pop()

    def on_error(
        self,
        span: Any,
        name: str,
        error: Exception,
        duration_ms: float,
        depth: int,
    ) -> None:
        if span is None:
            return

        # These are guaranteed non-None because __init__ checks _HAS_OPENTELEMETRY
        assert _Status is not None
        assert _StatusCode is not None

        span.set_attribute("konform.success", False)
        span.set_attribute("konform.duration_ms", duration_ms)
        span.record_exception(error)
        span.set_status(_Status(_StatusCode.ERROR, str(error)))

        span.end()
        self._span_stack.pop()
