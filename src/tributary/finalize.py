import json
import logging

from tributary.config import MergeConfig, ToolErrorPolicy
from tributary.engine import MergeState
from tributary.errors import IncompleteToolCall
from tributary.message import (
    InvalidToolCall,
    Message,
    MessageRole,
    Status,
    ToolCall,
)
from tributary.streaming import ToolCallFragment

logger = logging.getLogger(__name__)


def parse_arguments(raw: str, require_object: bool = True) -> dict:
    """Parse an accumulated arguments buffer.

    Tools that take no parameters often stream nothing at all, so a blank
    buffer is an empty argument map.  Raises ``ValueError`` when the buffer
    is not valid JSON, or not an object when ``require_object`` is set.
    """
    if not raw.strip():
        return {}
    parsed = json.loads(raw)
    if not isinstance(parsed, dict):
        if require_object:
            raise ValueError(
                f"a JSON object is expected, got {type(parsed).__name__}"
            )
        return {"value": parsed}
    return parsed


def build_tool_call(
    fragment: ToolCallFragment,
    config: MergeConfig,
    cancelled: bool = False,
) -> ToolCall | InvalidToolCall:
    """Complete one accumulated fragment.

    A nameless call is a protocol error on a stream the provider finished,
    but on a cancelled stream the name may simply not have arrived yet; it
    is then kept as an ``InvalidToolCall`` regardless of the error policy.
    """
    call_id = fragment.call_id or f"call_{fragment.slot_index}"
    if not fragment.name:
        if not cancelled:
            raise IncompleteToolCall(
                f"Tool call in slot {fragment.slot_index} has no name",
                slot_index=fragment.slot_index,
                call_id=fragment.call_id,
            )
        logger.warning(
            f"Tool call {call_id} was cut off before its name arrived"
        )
        return InvalidToolCall(
            index=fragment.slot_index,
            call_id=call_id,
            raw_arguments=fragment.arguments_buffer,
            error="missing name",
        )
    try:
        arguments = parse_arguments(
            fragment.arguments_buffer, config.require_object_arguments,
        )
    except ValueError as e:
        # json.JSONDecodeError is a ValueError
        logger.warning(
            f"Invalid arguments for {fragment.name} ({call_id}): {e}"
        )
        invalid = InvalidToolCall(
            index=fragment.slot_index,
            call_id=call_id,
            name=fragment.name,
            raw_arguments=fragment.arguments_buffer,
            error=str(e),
        )
        if config.tool_error_policy is ToolErrorPolicy.FAIL_WHOLE:
            raise invalid.to_error() from e
        return invalid
    return ToolCall(
        index=fragment.slot_index,
        call_id=call_id,
        name=fragment.name,
        arguments=arguments,
    )


def finalize_state(
    state: MergeState, config: MergeConfig | None = None
) -> Message:
    """Turn accumulated state into an immutable message.

    A state that never saw a finish reason (caller closed early, connection
    dropped) becomes a cancelled message holding whatever arrived.
    """
    config = config or MergeConfig()
    status = state.status
    if status is Status.INCOMPLETE:
        logger.info("Finalizing an unfinished stream as cancelled")
        status = Status.CANCELLED

    content = state.accumulator.content.ordered()
    tool_calls = [
        build_tool_call(fragment, config, status is Status.CANCELLED)
        for fragment in state.accumulator.tool_calls.finalize()
    ]

    if status is Status.COMPLETE and not content and not tool_calls:
        logger.warning(
            "Received empty assistant message with no content and no "
            "tool calls"
        )

    return Message(
        role=state.role or MessageRole.ASSISTANT,
        content=content,
        tool_calls=tool_calls,
        status=status,
        index=state.choice_index,
        usage=state.usage,
    )
