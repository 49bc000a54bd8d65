from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from tributary.content import ContentKind, ContentPart, parts_to_string
from tributary.errors import ToolArgumentParseError
from tributary.usage import TokenUsage


class MessageRole(Enum):
    SYSTEM = "system"
    ASSISTANT = "assistant"
    USER = "user"
    TOOL = "tool"


class Status(Enum):
    INCOMPLETE = "incomplete"
    COMPLETE = "complete"
    LENGTH = "length"
    CANCELLED = "cancelled"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self is not Status.INCOMPLETE


class ToolCall(BaseModel):
    """A fully assembled tool call with parsed arguments."""

    model_config = ConfigDict(frozen=True)

    type: Literal["tool_call"] = "tool_call"
    index: int
    call_id: str
    name: str
    arguments: dict = Field(default_factory=dict)


class InvalidToolCall(BaseModel):
    """A tool call that could not be completed.

    Either its arguments never became a valid JSON object, or the stream
    was cut off before its name arrived (``name`` is then empty).  Sits in
    the message in place of the ``ToolCall`` it would have been, keeping
    the raw buffer so the caller can log it or ask the model to retry.
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["invalid_tool_call"] = "invalid_tool_call"
    index: int
    call_id: str
    name: str = ""
    raw_arguments: str
    error: str

    def to_error(self) -> ToolArgumentParseError:
        return ToolArgumentParseError(
            f"Invalid arguments for tool call '{self.name}' "
            f"({self.call_id}): {self.error}",
            slot_index=self.index,
            call_id=self.call_id,
            raw_arguments=self.raw_arguments,
        )


AnyToolCall = Annotated[
    ToolCall | InvalidToolCall, Field(discriminator="type")
]


class Message(BaseModel):
    """A finalized assistant message reconstructed from a stream."""

    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: list[ContentPart] = Field(default_factory=list)
    tool_calls: list[AnyToolCall] = Field(default_factory=list)
    status: Status
    index: int | None = None
    usage: TokenUsage | None = None

    @field_serializer("role")
    def serialize_role(self, role: MessageRole, _info) -> str:
        return role.value

    @field_serializer("status")
    def serialize_status(self, status: Status, _info) -> str:
        return status.value

    @property
    def valid_tool_calls(self) -> list[ToolCall]:
        return [t for t in self.tool_calls if isinstance(t, ToolCall)]

    @property
    def invalid_tool_calls(self) -> list[InvalidToolCall]:
        return [t for t in self.tool_calls if isinstance(t, InvalidToolCall)]

    @property
    def has_invalid_tool_calls(self) -> bool:
        return bool(self.invalid_tool_calls)

    def raise_for_tool_errors(self) -> None:
        """Raise ``ToolArgumentParseError`` for the first invalid tool call.

        For callers that decide a single bad tool call invalidates the
        whole response.
        """
        for call in self.invalid_tool_calls:
            raise call.to_error()

    def content_to_string(
        self, kind: ContentKind = ContentKind.TEXT
    ) -> str | None:
        return parts_to_string(self.content, kind)

    @property
    def text(self) -> str | None:
        return self.content_to_string(ContentKind.TEXT)

    @property
    def thinking(self) -> str | None:
        return self.content_to_string(ContentKind.THINKING)
