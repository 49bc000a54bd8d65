from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from tributary.content import ContentKind


class ToolErrorPolicy(Enum):
    """What finalization does with a tool call whose arguments are invalid.

    ``PER_CALL`` keeps the message and reports an ``InvalidToolCall`` in
    that call's place.  ``FAIL_WHOLE`` raises ``ToolArgumentParseError``.
    """

    PER_CALL = "per_call"
    FAIL_WHOLE = "fail_whole"


class MergeConfig(BaseModel):
    """Settings for one merge session.

    Args:
        shift_reserved_lanes: Move text that lands on a lane held by a
            reserved kind to the next free slot instead of failing.
        reserved_kinds: Kinds that may hold a lane which text then shifts
            past.  Providers that pin thinking to index 0 need
            ``THINKING`` here.
        skip_empty_text: Ignore text fragments with no payload and no
            options.
        tool_error_policy: See :class:`ToolErrorPolicy`.
        require_object_arguments: Treat tool arguments that parse to
            anything other than a JSON object as invalid.
    """

    model_config = ConfigDict(frozen=True)

    shift_reserved_lanes: bool = True
    reserved_kinds: frozenset[ContentKind] = Field(
        default_factory=lambda: frozenset({ContentKind.THINKING})
    )
    skip_empty_text: bool = True
    tool_error_policy: ToolErrorPolicy = ToolErrorPolicy.PER_CALL
    require_object_arguments: bool = True
