import pytest

from tributary.content import ContentPart
from tributary.errors import ToolArgumentParseError
from tributary.message import (
    InvalidToolCall,
    Message,
    MessageRole,
    Status,
    ToolCall,
)
from tributary.usage import TokenUsage


def _message(**kwargs) -> Message:
    defaults = dict(role=MessageRole.ASSISTANT, status=Status.COMPLETE)
    defaults.update(kwargs)
    return Message(**defaults)


def _invalid(index=1, call_id="c2", name="bad") -> InvalidToolCall:
    return InvalidToolCall(
        index=index, call_id=call_id, name=name,
        raw_arguments='{"a":', error="Expecting value",
    )


def test_message_serializes_enums_and_tool_call_types():
    msg = _message(
        content=[ContentPart.text("hi")],
        tool_calls=[
            ToolCall(index=0, call_id="c1", name="greet",
                     arguments={"name": "world"}),
        ],
        usage=TokenUsage(input=3, output=4),
    )
    dumped = msg.model_dump()

    assert dumped["role"] == "assistant"
    assert dumped["status"] == "complete"
    assert dumped["content"] == [
        {"kind": "text", "payload": "hi", "options": {}}
    ]
    assert dumped["tool_calls"] == [
        {
            "type": "tool_call",
            "index": 0,
            "call_id": "c1",
            "name": "greet",
            "arguments": {"name": "world"},
        }
    ]


def test_tool_call_union_round_trips():
    """The ``type`` field picks ToolCall or InvalidToolCall on validate."""
    msg = _message(tool_calls=[
        ToolCall(index=0, call_id="c1", name="ok", arguments={}),
        _invalid(),
    ])

    restored = Message.model_validate(msg.model_dump())

    assert restored.role == MessageRole.ASSISTANT
    assert isinstance(restored.tool_calls[0], ToolCall)
    assert isinstance(restored.tool_calls[1], InvalidToolCall)


def test_valid_and_invalid_views():
    good = ToolCall(index=0, call_id="c1", name="ok")
    bad = _invalid()
    msg = _message(tool_calls=[good, bad])

    assert msg.valid_tool_calls == [good]
    assert msg.invalid_tool_calls == [bad]
    assert msg.has_invalid_tool_calls


def test_raise_for_tool_errors():
    msg = _message(tool_calls=[_invalid(index=3, call_id="c9")])

    with pytest.raises(ToolArgumentParseError) as exc_info:
        msg.raise_for_tool_errors()

    assert exc_info.value.slot_index == 3
    assert exc_info.value.call_id == "c9"
    assert exc_info.value.raw_arguments == '{"a":'


def test_raise_for_tool_errors_noop_when_all_valid():
    msg = _message(tool_calls=[ToolCall(index=0, call_id="c1", name="ok")])
    msg.raise_for_tool_errors()


def test_text_and_thinking_views():
    msg = _message(content=[
        ContentPart.thinking("Let me think"),
        ContentPart.text("42"),
    ])
    assert msg.thinking == "Let me think"
    assert msg.text == "42"


def test_status_terminality():
    assert not Status.INCOMPLETE.is_terminal
    for status in (Status.COMPLETE, Status.LENGTH,
                   Status.CANCELLED, Status.ERROR):
        assert status.is_terminal
