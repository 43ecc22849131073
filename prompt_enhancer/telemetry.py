"""Tracing spans for pipeline runs and their stages.

Span Hierarchy:
    pipeline_span (one enhance() call)
    └── stage_span (parse, context, structure, optimize, validate)
        └── agent/llm spans (created by Strands during optimize)

Only the OpenTelemetry API is used; without a configured SDK the spans are
no-ops.
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import StatusCode

logger = logging.getLogger(__name__)

_tracer: trace.Tracer | None = None


def get_tracer() -> trace.Tracer:
    """Get the tracer for pipeline spans."""
    global _tracer
    if _tracer is None:
        _tracer = trace.get_tracer("prompt_enhancer")
        logger.debug("OpenTelemetry tracer initialized")
    return _tracer


@contextmanager
def _traced(name: str, attributes: dict[str, Any]) -> Generator[trace.Span, None, None]:
    with get_tracer().start_as_current_span(
        name=name, attributes=attributes, record_exception=False, set_status_on_exception=False
    ) as span:
        try:
            yield span
            span.set_status(StatusCode.OK)
        except Exception as e:
            span.record_exception(e)
            span.set_status(StatusCode.ERROR, str(e))
            raise


@contextmanager
def pipeline_span(
    operation: str, raw_text: str = "", **attributes: Any
) -> Generator[trace.Span, None, None]:
    """Root span for one pipeline operation.

    Args:
        operation: Operation name (e.g. "enhance")
        raw_text: Raw prompt text; only a truncated preview is recorded
        **attributes: Additional span attributes
    """
    span_attributes: dict[str, Any] = {
        "pipeline.operation": operation,
        "pipeline.input_length": len(raw_text),
    }
    if raw_text:
        span_attributes["pipeline.input_preview"] = raw_text[:200]
    span_attributes.update(attributes)

    with _traced(f"pipeline:{operation}", span_attributes) as span:
        yield span


@contextmanager
def stage_span(stage: str, **attributes: Any) -> Generator[trace.Span, None, None]:
    """Span for one pipeline stage, nested under the current pipeline span."""
    span_attributes: dict[str, Any] = {"stage.name": stage}
    span_attributes.update(attributes)

    with _traced(f"stage:{stage}", span_attributes) as span:
        yield span
