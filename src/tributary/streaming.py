"""Streaming primitives consumed by the merge engine.

Provider adapters normalise their wire chunks into :class:`DeltaEvent`
objects.  Content arrives as :class:`~tributary.content.ContentPart`
pieces keyed by slot; tool calls arrive as :class:`ToolCallFragment`
pieces whose arguments may be split anywhere, even inside a JSON token.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from tributary.content import ContentPart
from tributary.message import MessageRole
from tributary.usage import TokenUsage

logger = logging.getLogger(__name__)


class FinishReason(Enum):
    STOP = "stop"
    LENGTH = "length"
    TOOL_CALLS = "tool_calls"
    CANCELLED = "cancelled"
    ERROR = "error"

    @classmethod
    def from_provider(cls, value: str | None) -> FinishReason | None:
        """Map a provider's finish/stop reason onto the canonical set.

        Returns ``None`` for a missing or unrecognised reason.
        """
        if value is None:
            return None
        reason = _PROVIDER_REASONS.get(value.lower())
        if reason is None:
            logger.warning(f"Unsupported finish reason: {value!r}")
        return reason


_PROVIDER_REASONS = {
    "stop": FinishReason.STOP,
    "end_turn": FinishReason.STOP,
    "stop_sequence": FinishReason.STOP,
    "eos": FinishReason.STOP,
    "length": FinishReason.LENGTH,
    "max_tokens": FinishReason.LENGTH,
    "tool_calls": FinishReason.TOOL_CALLS,
    "tool_use": FinishReason.TOOL_CALLS,
    "function_call": FinishReason.TOOL_CALLS,
    "cancelled": FinishReason.CANCELLED,
    "canceled": FinishReason.CANCELLED,
    "content_filter": FinishReason.ERROR,
    "error": FinishReason.ERROR,
}


@dataclass
class ToolCallFragment:
    """A piece of a tool call.

    The same shape is used for incoming pieces and for the per-slot
    buffer the accumulator grows from them.
    """

    slot_index: int
    call_id: str | None = None
    name: str | None = None
    arguments_buffer: str = ""


@dataclass
class DeltaEvent:
    """One normalised delta from a provider stream.

    ``slot_index`` selects the content lane for ``content``; tool-call
    pieces carry their own ``slot_index``.  ``usage`` may ride along with
    any event, usually the terminal one.
    """

    slot_index: int = 0
    role: MessageRole | None = None
    content: ContentPart | None = None
    tool_call: ToolCallFragment | None = None
    terminal_reason: FinishReason | None = None
    usage: TokenUsage | None = None
    choice_index: int | None = None

    @classmethod
    def content_delta(
        cls, slot_index: int, part: ContentPart, **kwargs
    ) -> DeltaEvent:
        return cls(slot_index=slot_index, content=part, **kwargs)

    @classmethod
    def tool_call_delta(
        cls,
        slot_index: int,
        arguments: str = "",
        call_id: str | None = None,
        name: str | None = None,
        **kwargs,
    ) -> DeltaEvent:
        fragment = ToolCallFragment(
            slot_index=slot_index, call_id=call_id, name=name,
            arguments_buffer=arguments,
        )
        return cls(slot_index=slot_index, tool_call=fragment, **kwargs)

    @classmethod
    def terminal(
        cls, reason: FinishReason, usage: TokenUsage | None = None
    ) -> DeltaEvent:
        return cls(terminal_reason=reason, usage=usage)
