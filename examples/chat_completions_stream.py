"""Merge a recorded chat-completions stream into a single message.

Shows the adapter side of the boundary: each provider chunk (already
decoded from SSE into a dict) is normalised into ``DeltaEvent`` objects
and fed to a session.  Reasoning text arrives in ``reasoning_content`` and
shares choice index 0 with the answer, so it is given lane 0 and the
answer lane 1.
"""

import asyncio
import logging

from tributary.content import ContentPart
from tributary.message import MessageRole
from tributary.session import amerge_deltas
from tributary.streaming import DeltaEvent, FinishReason
from tributary.usage import TokenUsage

logging.basicConfig(level=logging.INFO)

RECORDED_CHUNKS = [
    {"choices": [{"index": 0, "delta": {"role": "assistant", "reasoning_content": "The user wants "}}]},
    {"choices": [{"index": 0, "delta": {"reasoning_content": "the weather."}}]},
    {"choices": [{"index": 0, "delta": {"content": "Let me check."}}]},
    {"choices": [{"index": 0, "delta": {"tool_calls": [
        {"index": 0, "id": "call_1", "function": {"name": "get_weather", "arguments": ""}},
    ]}}]},
    {"choices": [{"index": 0, "delta": {"tool_calls": [
        {"index": 0, "function": {"arguments": "{\"city\": \"Aus"}},
    ]}}]},
    {"choices": [{"index": 0, "delta": {"tool_calls": [
        {"index": 0, "function": {"arguments": "tin\"}"}},
    ]}}]},
    {"choices": [{"index": 0, "delta": {}, "finish_reason": "tool_calls"}]},
    {"choices": [], "usage": {"prompt_tokens": 41, "completion_tokens": 17}},
]


def normalize(chunk: dict) -> list[DeltaEvent]:
    events = []
    usage = chunk.get("usage")
    if usage:
        events.append(DeltaEvent(usage=TokenUsage(
            input=usage.get("prompt_tokens"),
            output=usage.get("completion_tokens"),
            raw=usage,
        )))
    for choice in chunk.get("choices", []):
        delta = choice.get("delta", {})
        role = MessageRole(delta["role"]) if "role" in delta else None
        if delta.get("reasoning_content"):
            events.append(DeltaEvent.content_delta(
                0, ContentPart.thinking(delta["reasoning_content"]), role=role,
            ))
            role = None
        if delta.get("content"):
            events.append(DeltaEvent.content_delta(
                1, ContentPart.text(delta["content"]), role=role,
            ))
        for call in delta.get("tool_calls") or []:
            function = call.get("function", {})
            events.append(DeltaEvent.tool_call_delta(
                call["index"],
                function.get("arguments", ""),
                call_id=call.get("id"),
                name=function.get("name"),
            ))
        reason = FinishReason.from_provider(choice.get("finish_reason"))
        if reason is not None:
            events.append(DeltaEvent.terminal(reason))
    return events


async def normalized_stream(chunks):
    # This provider reports usage in a chunk after the finish reason, so the
    # terminal delta is held back until the stream ends.
    terminal = None
    for chunk in chunks:
        await asyncio.sleep(0)
        for event in normalize(chunk):
            if event.terminal_reason is not None:
                terminal = event
            elif terminal is not None and event.usage is not None:
                terminal.usage = event.usage
            else:
                yield event
    if terminal is not None:
        yield terminal


async def main():
    message = await amerge_deltas(normalized_stream(RECORDED_CHUNKS))
    print("thinking:", message.thinking)
    print("text:", message.text)
    for call in message.valid_tool_calls:
        print(f"tool call {call.call_id}: {call.name}({call.arguments})")
    print("usage:", message.usage.total if message.usage else None)


if __name__ == "__main__":
    asyncio.run(main())
