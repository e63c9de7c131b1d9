"""Timing spans for service calls: ``@traced`` and ``trace_span``.

Disabled by default: each call costs one ContextVar read. When enabled
(``--verbose``), a ``@traced`` method opens a root span, nested
``trace_span`` blocks hang child spans off it, and the finished tree is
merged into ``ServiceResult.meta["telemetry"]``.
"""

from __future__ import annotations

import functools
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

import structlog

from acctgraph.services.result import ServiceResult

_enabled: ContextVar[bool] = ContextVar("_telemetry_enabled", default=False)
_active: ContextVar[Span | None] = ContextVar("_active_span", default=None)

_log = structlog.get_logger("acctgraph.telemetry")


@dataclass
class Span:
    """A named, timed region with nested children."""

    name: str
    children: list[Span] = field(default_factory=list)
    annotations: dict[str, Any] = field(default_factory=dict)
    started: float = field(default_factory=time.perf_counter)
    finished: float | None = None

    @property
    def duration_ms(self) -> float:
        if self.finished is None:
            return 0.0
        return (self.finished - self.started) * 1000

    def close(self) -> None:
        self.finished = time.perf_counter()

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "duration_ms": round(self.duration_ms, 2)}
        if self.annotations:
            out["annotations"] = dict(self.annotations)
        if self.children:
            out["children"] = [c.to_dict() for c in self.children]
        return out


@contextmanager
def trace_span(name: str) -> Iterator[Span | None]:
    """Open a child span under the active one. Yields None when disabled."""
    parent = _active.get() if _enabled.get() else None
    if parent is None:
        yield None
        return

    span = Span(name=name)
    parent.children.append(span)
    token = _active.set(span)
    try:
        yield span
    finally:
        span.close()
        _active.reset(token)


def traced[**P, R](func: Callable[P, R]) -> Callable[P, R]:
    """Time a service method and attach the span tree to its result."""

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        if not _enabled.get():
            return func(*args, **kwargs)

        span = Span(name=func.__qualname__)
        token = _active.set(span)
        ok = False
        try:
            result = func(*args, **kwargs)
            ok = getattr(result, "ok", True)
        finally:
            span.close()
            _active.reset(token)
            _log.debug(
                "span.complete",
                span_name=span.name,
                duration_ms=round(span.duration_ms, 2),
                ok=ok,
                children=len(span.children),
            )

        if isinstance(result, ServiceResult):
            meta = {**(result.meta or {}), "telemetry": span.to_dict()}
            return result.model_copy(update={"meta": meta})  # type: ignore[return-value]
        return result

    return wrapper


def enable_telemetry() -> None:
    """Turn span collection on for the current context (``--verbose``)."""
    _enabled.set(True)


def disable_telemetry() -> None:
    _enabled.set(False)


def current_span() -> Span | None:
    """The active span for manual annotation, or None when disabled."""
    return _active.get() if _enabled.get() else None
