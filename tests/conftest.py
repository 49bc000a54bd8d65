import json

import pytest

from tributary.config import MergeConfig
from tributary.content import ContentPart
from tributary.session import open_session
from tributary.streaming import DeltaEvent, FinishReason
from tributary.usage import TokenUsage


# ---------------------------------------------------------------------------
# Delta builders (what a provider adapter would emit)
# ---------------------------------------------------------------------------

def text_delta(slot: int, payload: str, **kwargs) -> DeltaEvent:
    return DeltaEvent.content_delta(slot, ContentPart.text(payload), **kwargs)


def thinking_delta(slot: int, payload: str, **kwargs) -> DeltaEvent:
    return DeltaEvent.content_delta(
        slot, ContentPart.thinking(payload), **kwargs,
    )


def tool_delta(
    slot: int,
    arguments: str = "",
    call_id: str | None = None,
    name: str | None = None,
) -> DeltaEvent:
    return DeltaEvent.tool_call_delta(
        slot, arguments, call_id=call_id, name=name,
    )


def stop(
    reason: FinishReason = FinishReason.STOP,
    usage: TokenUsage | None = None,
) -> DeltaEvent:
    return DeltaEvent.terminal(reason, usage=usage)


def chunked(payload: str, size: int) -> list[str]:
    """Split *payload* into pieces of at most *size* characters."""
    return [payload[i:i + size] for i in range(0, len(payload), size)]


def tool_call_stream(
    slot: int, call_id: str, name: str, args: dict, size: int = 5,
) -> list[DeltaEvent]:
    """Fake a provider streaming one tool call in small argument pieces.

    The first delta carries the id and name, the rest only arguments.
    """
    pieces = chunked(json.dumps(args), size)
    events = [tool_delta(slot, pieces[0], call_id=call_id, name=name)]
    events.extend(tool_delta(slot, piece) for piece in pieces[1:])
    return events


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def session():
    return open_session()


@pytest.fixture
def make_session():
    """Factory fixture for sessions with a custom ``MergeConfig``."""
    def _make(**config):
        return open_session(MergeConfig(**config))
    return _make
