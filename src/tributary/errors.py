"""Errors raised while merging a streamed response.

Every error carries the slot index and tool-call id it concerns (either
may be ``None``) so callers can log or retry with context.  None of them
affect sessions other than the one that raised them.
"""


class MergeError(Exception):
    """Base class for all merge and finalization errors.

    Args:
        message: Human readable description.
        slot_index: The content or tool-call slot involved, if any.
        call_id: The tool-call id involved, if any.
    """

    def __init__(
        self,
        message: str,
        slot_index: int | None = None,
        call_id: str | None = None,
    ):
        super().__init__(message)
        self.slot_index = slot_index
        self.call_id = call_id


class InvalidMergeKind(MergeError):
    """A fragment's kind conflicts with its slot, or the kind cannot grow."""


class StreamProtocolError(MergeError):
    """An event arrived after closure, or slot indexing is malformed."""


class AlreadyFinalized(MergeError):
    """``finalize`` was called on a session that was already finalized."""


class IncompleteToolCall(MergeError):
    """A tool call is missing a required field at finalization."""


class ToolArgumentParseError(MergeError):
    """A tool call's accumulated arguments are not a valid JSON object.

    Only raised when the caller escalates per-call failures; otherwise the
    failure is reported as an ``InvalidToolCall`` on the message.
    """

    def __init__(
        self,
        message: str,
        slot_index: int | None = None,
        call_id: str | None = None,
        raw_arguments: str = "",
    ):
        super().__init__(message, slot_index=slot_index, call_id=call_id)
        self.raw_arguments = raw_arguments
