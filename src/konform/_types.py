"""Shared sentinel and context variables."""

from __future__ import annotations

from contextvars import ContextVar
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from konform._tracing import TraceConfig, TraceHook

# Context variables for global tracing
_trace_hook: ContextVar[TraceHook | None] = ContextVar("trace_hook", default=None)
_trace_config: ContextVar[TraceConfig | None] = ContextVar(
    "trace_config", default=None
)
_trace_depth: ContextVar[int] = ContextVar("trace_depth", default=0)


class _Unset:
    """Marker for "argument not provided" where None is a legal value."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()
