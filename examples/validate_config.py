"""
Example: Validating a service configuration with Konform

This example parses a JSON configuration document and shows the two error
modes (fail-fast and collect-all), path-aware error messages, alternation
with defaults, duplicate detection and tracing.
"""

import logging

from konform import (
    AssertType,
    EachItem,
    Fields,
    Fork,
    LoggingHook,
    Map,
    OneOf,
    ParseJSON,
    ParsingError,
    PrintHook,
    TraceConfig,
    Unique,
    check,
    explain,
    run_traced,
)

# =============================================================================
# Building blocks
# =============================================================================


@check(error="Port {subject} is outside 1-65535")
def valid_port(port: int) -> bool:
    return 0 < port < 65536


port = AssertType.of(int) & valid_port

log_level = (
    Map.new()
    .add_equals_list(["debug", "DEBUG"], AssertType.of(str))
    .add_equals_list(["info", "INFO"], AssertType.of(str))
    .add_equals_list(["warning", "WARNING"], AssertType.of(str))
    .set_default_result("info")
)

# Hosts must be strings; a repeated host is only collected once
hosts: list[str] = []
host = Fork.to(
    AssertType.of(str),
    Unique.comparing_equals(AssertType.of(str).then_append_to(hosts)),
)

config = ParseJSON.new() & (
    Fields.new()
    .field("name", AssertType.of(str))
    .field("port", port)
    .field("hosts", EachItem.of(host))
    .optional_field("log_level", log_level, default="info")
    .optional_field("timeout", OneOf.null_or(AssertType.of(int, float)), default=None)
)


# =============================================================================
# Running
# =============================================================================

GOOD = '{"name": "api", "port": 8080, "hosts": ["a", "b", "a"], "timeout": 2.5}'
BAD = '{"name": 1, "port": 70000, "hosts": ["a", 2], "timeout": "soon"}'


if __name__ == "__main__":
    print("=== 1. Explain ===\n")
    print(explain(config))

    print("\n=== 2. A valid document ===\n")
    result = config.run(GOOD)
    print(f"  value={result.value}")
    print(f"  unique hosts={hosts}")

    print("\n=== 3. Fail-fast ===\n")
    try:
        config.run(BAD)
    except ParsingError as e:
        print(f"  {e.get_path_as_string()}: {e.error.message}")

    print("\n=== 4. Collect all errors ===\n")
    result = config.run(BAD, throw_on_error=False)
    for error in result.errors:
        print(f"  {error.get_path_as_string()}: {error.message}")
        for source in error.source_errors:
            print(f"      {source.message}")

    print("\n=== 5. Tracing ===\n")
    run_traced(port, 70000, PrintHook(), throw_on_error=False)

    logging.basicConfig(level=logging.DEBUG, format="  %(name)s %(message)s")
    run_traced(config, GOOD, LoggingHook(), TraceConfig(max_depth=1))
