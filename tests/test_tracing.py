"""
Tests for tracing hooks and explain().

Run with: pytest tests/test_tracing.py -v
"""

import logging

import pytest

import konform._tracing as tracing_module
from konform import (
    AssertEquals,
    AssertType,
    EachItem,
    EachKey,
    Fields,
    Fixed,
    LoggingHook,
    Map,
    OneOf,
    OpenTelemetryHook,
    ParseJSON,
    ParsingError,
    PrintHook,
    TraceConfig,
    TraceHook,
    Unique,
    explain,
    run_traced,
    use_tracing,
)

# =============================================================================
# Test Fixtures
# =============================================================================


class RecordingHook:
    """Hook recording every event."""

    def __init__(self):
        self.events = []

    def on_enter(self, name, subject, depth):
        self.events.append(("enter", name, depth))
        return name

    def on_exit(self, span, name, ok, duration_ms, depth):
        self.events.append(("exit", name, ok))

    def on_error(self, span, name, error, duration_ms, depth):
        self.events.append(("error", name, type(error).__name__))

    def entered(self):
        return [event[1] for event in self.events if event[0] == "enter"]


@pytest.fixture
def int_list():
    return EachItem.of(AssertType.of(int))


# =============================================================================
# Tracing Tests
# =============================================================================


class TestTracing:
    """Test tracing of parser executions."""

    def test_hook_protocol(self):
        assert isinstance(RecordingHook(), TraceHook)
        assert isinstance(PrintHook(), TraceHook)
        assert isinstance(LoggingHook(), TraceHook)

    def test_nested_events(self, int_list):
        hook = RecordingHook()
        run_traced(int_list, [1, 2], hook)
        assert hook.events == [
            ("enter", "EachItem()", 0),
            ("enter", "AssertType(int)", 1),
            ("exit", "AssertType(int)", True),
            ("enter", "AssertType(int)", 1),
            ("exit", "AssertType(int)", True),
            ("exit", "EachItem()", True),
        ]

    def test_failure_reported_on_exit(self, int_list):
        hook = RecordingHook()
        run_traced(int_list, ["x"], hook, throw_on_error=False)
        assert ("exit", "AssertType(int)", False) in hook.events
        assert hook.events[-1] == ("exit", "EachItem()", False)

    def test_raised_error_reported(self, int_list):
        hook = RecordingHook()
        with pytest.raises(ParsingError):
            run_traced(int_list, ["x"], hook)
        assert hook.events[-2:] == [
            ("error", "AssertType(int)", "ParsingError"),
            ("error", "EachItem()", "ParsingError"),
        ]

    def test_not_nested(self, int_list):
        hook = RecordingHook()
        run_traced(int_list, [1, 2], hook, TraceConfig(nested=False))
        assert hook.entered() == ["EachItem()"]

    def test_max_depth(self, int_list):
        hook = RecordingHook()
        run_traced(EachItem.of(int_list), [[1]], hook, TraceConfig(max_depth=1))
        assert hook.entered() == ["EachItem()", "EachItem()"]

    def test_leaf_only(self, int_list):
        hook = RecordingHook()
        run_traced(int_list, [1, 2], hook, TraceConfig(include_leaf_only=True))
        assert hook.entered() == ["AssertType(int)", "AssertType(int)"]

    def test_tracing_scoped_to_context(self, int_list):
        hook = RecordingHook()
        with use_tracing(hook):
            int_list.run([1])
        int_list.run([1])
        assert hook.entered() == ["EachItem()", "AssertType(int)"]

    def test_probes_are_traced(self):
        hook = RecordingHook()
        run_traced(OneOf.null_or(AssertType.of(int)), 1, hook)
        assert hook.entered() == ["OneOf(2)", "AssertType(int)"]


class TestPrintHook:
    """Test tracing to stdout."""

    def test_output(self, capsys, int_list):
        run_traced(int_list, [1, "x"], PrintHook(), throw_on_error=False)
        lines = capsys.readouterr().out.splitlines()

        assert lines[0] == "-> EachItem()"
        assert lines[1] == "  -> AssertType(int)"
        assert lines[2].startswith("  <- AssertType(int) ✔")
        assert lines[4].startswith("  <- AssertType(int) ✗")
        assert lines[5].startswith("<- EachItem() ✗")

    def test_show_subject(self, capsys, int_list):
        run_traced(int_list, [1], PrintHook(show_subject=True))
        out = capsys.readouterr().out
        assert "-> AssertType(int) | at=list[0] value=1" in out
        assert "<- AssertType(int) ✔ " in out
        assert out.splitlines()[2].endswith("| at=list[0]")

    def test_error_output(self, capsys):
        with pytest.raises(ParsingError):
            run_traced(AssertType.of(int), "x", PrintHook())
        out = capsys.readouterr().out
        assert "<- AssertType(int) ERROR: " in out
        assert out.rstrip().endswith("| at=str")


class TestLoggingHook:
    """Test tracing to a logger."""

    def test_logs_to_konform_logger(self, caplog, int_list):
        caplog.set_level(logging.DEBUG, logger="konform")
        run_traced(int_list, [1], LoggingHook())

        assert "[ENTER] EachItem() at list (depth=0)" in caplog.text
        assert "[ENTER] AssertType(int) at list[0] (depth=1)" in caplog.text
        assert "[EXIT] AssertType(int) at list[0] -> OK" in caplog.text
        assert "[EXIT] EachItem() at list -> OK" in caplog.text

    def test_errors_logged_at_error_level(self, caplog):
        caplog.set_level(logging.DEBUG, logger="konform")
        with pytest.raises(ParsingError):
            run_traced(AssertType.of(int), "x", LoggingHook())

        errors = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert len(errors) == 1
        assert errors[0].getMessage().startswith("[ERROR] AssertType(int) at str -> ")

    def test_custom_logger_and_level(self, caplog):
        logger = logging.getLogger("custom")
        caplog.set_level(logging.INFO, logger="custom")
        run_traced(AssertType.of(int), 1, LoggingHook(logger, logging.INFO))
        assert all(r.name == "custom" for r in caplog.records)
        assert len(caplog.records) == 2


class TestOpenTelemetryHook:
    """Test span creation with the OpenTelemetry SDK."""

    @pytest.fixture
    def otel(self):
        pytest.importorskip("opentelemetry.sdk")
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import SimpleSpanProcessor
        from opentelemetry.sdk.trace.export.in_memory_span_exporter import (
            InMemorySpanExporter,
        )

        exporter = InMemorySpanExporter()
        provider = TracerProvider()
        provider.add_span_processor(SimpleSpanProcessor(exporter))
        return provider.get_tracer("konform-tests"), exporter

    def test_span_hierarchy(self, otel, int_list):
        tracer, exporter = otel
        run_traced(int_list, [1, 2], OpenTelemetryHook(tracer))
        spans = exporter.get_finished_spans()

        assert [span.name for span in spans] == [
            "AssertType(int)",
            "AssertType(int)",
            "EachItem()",
        ]
        parent = spans[-1]
        assert all(s.parent.span_id == parent.context.span_id for s in spans[:2])
        assert [s.attributes["konform.path"] for s in spans[:2]] == ["list[0]", "list[1]"]
        assert parent.attributes["konform.success"] is True

    def test_failure_status(self, otel):
        tracer, exporter = otel
        from opentelemetry.trace import StatusCode

        run_traced(
            AssertType.of(int), "x", OpenTelemetryHook(tracer), throw_on_error=False
        )
        (span,) = exporter.get_finished_spans()
        assert span.status.status_code == StatusCode.ERROR
        assert span.attributes["konform.success"] is False

    def test_exception_recorded(self, otel):
        tracer, exporter = otel
        with pytest.raises(ParsingError):
            run_traced(AssertType.of(int), "x", OpenTelemetryHook(tracer))
        (span,) = exporter.get_finished_spans()
        assert span.events[0].name == "exception"

    def test_max_span_depth(self, otel, int_list):
        tracer, exporter = otel
        run_traced(int_list, [1, 2], OpenTelemetryHook(tracer, max_span_depth=0))
        assert [s.name for s in exporter.get_finished_spans()] == ["EachItem()"]

    def test_sibling_links(self, otel, int_list):
        tracer, exporter = otel
        hook = OpenTelemetryHook(tracer, link_sibling_spans=True)
        run_traced(int_list, [1, 2], hook)
        first, second, _ = exporter.get_finished_spans()
        assert second.links[0].context.span_id == first.context.span_id

    def test_requires_opentelemetry(self, monkeypatch):
        monkeypatch.setattr(tracing_module, "_HAS_OPENTELEMETRY", False)
        with pytest.raises(ImportError):
            OpenTelemetryHook(tracer=None)


# =============================================================================
# Explain Tests
# =============================================================================


class TestExplain:
    """Test plain English explanations."""

    def test_leaf(self):
        assert explain(AssertType.of(int, str)) == "Assert type int | str"

    def test_chain_with_fields(self):
        parser = ParseJSON.new() & Fields.new().field("id", AssertType.of(int))
        assert explain(parser) == "\n".join(
            [
                "In sequence, stopping at the first failure:",
                "  • ParseJSON",
                "  • Fields:",
                "    • 'id' (required):",
                "      • Assert type int",
            ]
        )

    def test_one_of(self):
        assert explain(OneOf.null_or(AssertType.of(int))) == "\n".join(
            [
                "One of, first match wins:",
                "  • same as any of None",
                "  • if parsed by:",
                "    • Assert type int",
            ]
        )

    def test_map_with_default(self):
        parser = Map.new().add_equals("yes", Fixed.result_in(True)).set_default_result(False)
        assert explain(parser) == "\n".join(
            [
                "Map by value, otherwise bool False:",
                '  • equal to str(3) "yes", then:',
                "    • Fixed: True",
            ]
        )

    def test_unique(self):
        parser = EachItem.of(Unique.comparing_equals(AssertType.of(str)))
        assert explain(parser) == "\n".join(
            [
                "Each item:",
                "  • Only the first occurrence of each value (equals):",
                "    • Assert type str",
            ]
        )

    def test_keys_and_length(self):
        parser = EachKey.of(AssertType.of(str)) & EachItem.of(
            AssertType.of(int)
        ).with_length(AssertEquals.value(2))
        assert explain(parser) == "\n".join(
            [
                "In sequence, stopping at the first failure:",
                "  • Each key:",
                "    • Assert type str",
                "  • Each item:",
                "    • length:",
                "      • Assert equal to int 2",
                "    • items:",
                "      • Assert type int",
            ]
        )
