"""Optional OpenTelemetry instrumentation for tributary.

Call ``tributary.instrumentation.instrument()`` once at startup to wrap
every finalization in a span.  Requires ``opentelemetry-api`` to be
installed; the engine works identically without it.
"""

import importlib.util
import logging
from contextlib import contextmanager

logger = logging.getLogger(__name__)

_tracer = None


def instrument(*, tracer_name: str = "tributary") -> None:
    """Start emitting a ``finalize_message`` span per finalized session.

    Configure a TracerProvider first; spans go to whatever provider
    ``opentelemetry.trace`` returns.  Needs the ``otel`` extra
    (``pip install tributary[otel]``) and raises ``ImportError`` without it.
    """
    global _tracer
    if importlib.util.find_spec("opentelemetry.trace") is None:
        raise ImportError(
            "Tracing merge sessions needs opentelemetry-api: "
            "pip install tributary[otel]"
        )
    from opentelemetry import trace
    _tracer = trace.get_tracer(tracer_name)
    if isinstance(_tracer, trace.NoOpTracer):
        logger.info("Tracing enabled without a TracerProvider; spans are dropped")
    else:
        logger.info(f"Tracing merge sessions with tracer {tracer_name!r}")


def uninstrument() -> None:
    """Stop emitting spans for sessions finalized from now on."""
    global _tracer
    _tracer = None


@contextmanager
def finalize_span(session_id: str, events_seen: int = 0):
    """Wrap a session's finalization in a ``finalize_message`` span."""
    if _tracer is None:
        yield None
        return
    with _tracer.start_as_current_span(
        "finalize_message",
        attributes={
            "tributary.session.id": session_id,
            "tributary.session.events": events_seen,
        },
    ) as span:
        yield span


def record_message(span, message) -> None:
    """Set status, tool-call and token-usage attributes on a span."""
    if span is None or message is None:
        return
    span.set_attribute("tributary.message.status", message.status.value)
    span.set_attribute(
        "tributary.message.tool_calls", len(message.tool_calls)
    )
    span.set_attribute(
        "tributary.message.invalid_tool_calls",
        len(message.invalid_tool_calls),
    )
    record_usage(span, message.usage)


def record_usage(span, usage) -> None:
    """Set token-usage attributes on a span."""
    if span is None or usage is None:
        return
    if usage.input is not None:
        span.set_attribute("gen_ai.usage.input_tokens", usage.input)
    if usage.output is not None:
        span.set_attribute("gen_ai.usage.output_tokens", usage.output)


def record_error(span, exception: BaseException) -> None:
    """Mark a finalize span failed with the merge error that ended it."""
    if span is None:
        return
    from opentelemetry.trace import StatusCode

    span.record_exception(exception)
    span.set_status(StatusCode.ERROR, str(exception))
    span.set_attribute("error.type", type(exception).__qualname__)
