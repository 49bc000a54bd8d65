"""The delta merge state machine.

A :class:`MergeState` is open until a delta carries a finish reason, then
closed for good.  :class:`MergeEngine` only holds configuration, so one
engine can drive any number of independent states.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from tributary.accumulator import FragmentAccumulator
from tributary.config import MergeConfig
from tributary.content import ContentPart
from tributary.errors import StreamProtocolError
from tributary.message import MessageRole, Status
from tributary.streaming import DeltaEvent, FinishReason, ToolCallFragment
from tributary.usage import TokenUsage

logger = logging.getLogger(__name__)


_STATUS_BY_REASON = {
    FinishReason.STOP: Status.COMPLETE,
    FinishReason.LENGTH: Status.LENGTH,
    FinishReason.TOOL_CALLS: Status.COMPLETE,
    FinishReason.CANCELLED: Status.CANCELLED,
    FinishReason.ERROR: Status.ERROR,
}


def status_for(reason: FinishReason | None) -> Status:
    """Map a finish reason to the message status it produces."""
    if reason is None:
        return Status.INCOMPLETE
    return _STATUS_BY_REASON[reason]


@dataclass
class MergeState:
    """Everything accumulated for one streamed response.

    Owned by a single session and never shared or reused.
    """

    accumulator: FragmentAccumulator
    role: MessageRole | None = None
    status: Status = Status.INCOMPLETE
    finish_reason: FinishReason | None = None
    usage: TokenUsage | None = None
    choice_index: int | None = None
    events_seen: int = field(default=0)

    @property
    def content_slots(self) -> dict[int, ContentPart]:
        return self.accumulator.content.slots

    @property
    def tool_call_slots(self) -> dict[int, ToolCallFragment]:
        return self.accumulator.tool_calls.slots

    @property
    def is_closed(self) -> bool:
        return self.status.is_terminal


class MergeEngine:
    """Applies delta events to a merge state, one at a time."""

    def __init__(self, config: MergeConfig | None = None):
        self.config = config or MergeConfig()

    def new_state(self) -> MergeState:
        return MergeState(accumulator=FragmentAccumulator(self.config))

    def apply(self, state: MergeState, event: DeltaEvent) -> MergeState:
        if state.is_closed:
            raise StreamProtocolError(
                f"Received a delta after the stream closed with status "
                f"{state.status.value}",
                slot_index=event.slot_index,
                call_id=event.tool_call.call_id if event.tool_call else None,
            )

        state.events_seen += 1
        if event.role is not None and state.role is None:
            state.role = event.role
        if event.choice_index is not None:
            state.choice_index = event.choice_index

        if event.content is not None:
            logger.debug(
                f"Content delta for slot {event.slot_index} "
                f"({event.content.kind.value})"
            )
            state.accumulator.upsert(event.slot_index, event.content)
        if event.tool_call is not None:
            logger.debug(
                f"Tool call delta for slot {event.tool_call.slot_index}"
            )
            state.accumulator.upsert(
                event.tool_call.slot_index, event.tool_call,
            )

        if event.usage is not None:
            state.usage = event.usage

        if event.terminal_reason is not None:
            self.close(state, event.terminal_reason)
        return state

    def close(self, state: MergeState, reason: FinishReason) -> MergeState:
        """Close an open state with ``reason``."""
        if state.is_closed:
            raise StreamProtocolError(
                f"Stream already closed with status {state.status.value}"
            )
        state.finish_reason = reason
        state.status = status_for(reason)
        logger.debug(
            f"Stream closed: {reason.value} -> {state.status.value}"
        )
        return state
