"""Session boundary for merging one streamed response.

A session is opened per provider call, fed delta events in arrival order
and finalized once::

    session = open_session()
    for event in adapter_events:
        feed(session, event)
    message = finalize(session)

The module-level functions are thin wrappers around :class:`MergeSession`
so the engine can sit behind either a push callback or a pull loop
(:func:`merge_deltas`, :func:`amerge_deltas`).
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterable, Iterable

from tributary.config import MergeConfig
from tributary.content import ContentKind, parts_to_string
from tributary.engine import MergeEngine
from tributary.errors import AlreadyFinalized, MergeError, StreamProtocolError
from tributary.finalize import finalize_state
from tributary.instrumentation import finalize_span, record_error, record_message
from tributary.message import Message
from tributary.streaming import DeltaEvent, FinishReason

logger = logging.getLogger(__name__)


class MergeSession:
    """Exclusively owns the merge state of one streamed response.

    Structural errors raised while the stream is open (kind conflicts,
    malformed slot indices) leave the content untrustworthy, so the session
    refuses every later ``feed`` and ``finalize`` with a
    ``StreamProtocolError`` chained to the original fault.  A late delta
    after a clean close is rejected without harming the closed state.

    Args:
        config: Merge settings; defaults to ``MergeConfig()``.
    """

    def __init__(self, config: MergeConfig | None = None):
        self.config = config or MergeConfig()
        self.engine = MergeEngine(self.config)
        self.state = self.engine.new_state()
        self.session_id = uuid.uuid4().hex
        self.fault: MergeError | None = None
        self._finalized = False
        logger.debug(f"Opened merge session {self.session_id}")

    @property
    def is_closed(self) -> bool:
        return self._finalized or self.state.is_closed

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    def _raise_if_faulted(self) -> None:
        if self.fault is not None:
            raise StreamProtocolError(
                f"Session {self.session_id} is faulted: {self.fault}",
                slot_index=self.fault.slot_index,
                call_id=self.fault.call_id,
            ) from self.fault

    def feed(self, event: DeltaEvent) -> None:
        self._raise_if_faulted()
        if self.is_closed:
            raise StreamProtocolError(
                f"Session {self.session_id} received a delta after "
                f"closing with status {self.state.status.value}",
                slot_index=event.slot_index,
            )
        try:
            self.engine.apply(self.state, event)
        except MergeError as e:
            logger.warning(
                f"Session {self.session_id} rejected a delta: {e}"
            )
            self.fault = e
            raise

    def cancel(self) -> None:
        """Close the stream as cancelled.  No-op once closed."""
        if self.is_closed:
            return
        logger.info(f"Session {self.session_id} cancelled")
        self.engine.close(self.state, FinishReason.CANCELLED)

    def finalize(self) -> Message:
        if self._finalized:
            raise AlreadyFinalized(
                f"Session {self.session_id} was already finalized"
            )
        self._raise_if_faulted()
        with finalize_span(self.session_id, self.state.events_seen) as span:
            try:
                message = finalize_state(self.state, self.config)
            except MergeError as e:
                record_error(span, e)
                raise
            record_message(span, message)
        self._finalized = True
        logger.info(
            f"Session {self.session_id} finalized: "
            f"status={message.status.value} "
            f"content_parts={len(message.content)} "
            f"tool_calls={len(message.tool_calls)}"
        )
        return message

    # ------------------------------------------------------------------
    # Progress views while streaming
    # ------------------------------------------------------------------

    def content_to_string(
        self, kind: ContentKind = ContentKind.TEXT
    ) -> str | None:
        """The content of ``kind`` received so far."""
        return parts_to_string(self.state.accumulator.content.ordered(), kind)

    def streaming_tool_calls(self) -> list[dict]:
        """Name, id and raw arguments of every tool call seen so far."""
        return [
            {
                "index": tc.slot_index,
                "call_id": tc.call_id,
                "name": tc.name,
                "arguments": tc.arguments_buffer,
            }
            for tc in self.state.accumulator.tool_calls.finalize()
        ]


SessionHandle = MergeSession


def open_session(config: MergeConfig | None = None) -> SessionHandle:
    return MergeSession(config)


def feed(handle: SessionHandle, event: DeltaEvent) -> None:
    handle.feed(event)


def finalize(handle: SessionHandle) -> Message:
    return handle.finalize()


def is_closed(handle: SessionHandle) -> bool:
    return handle.is_closed


def cancel(handle: SessionHandle) -> None:
    handle.cancel()


def merge_deltas(
    events: Iterable[DeltaEvent],
    config: MergeConfig | None = None,
) -> Message:
    """Merge a complete sequence of deltas into a message."""
    session = open_session(config)
    for event in events:
        session.feed(event)
    return session.finalize()


async def amerge_deltas(
    events: AsyncIterable[DeltaEvent],
    config: MergeConfig | None = None,
    session: SessionHandle | None = None,
) -> Message:
    """Merge deltas pulled from an async iterator into a message.

    If the consuming task is cancelled the session is closed as cancelled
    before the cancellation propagates.  Pass your own ``session`` to
    finalize the partial message afterwards.
    """
    session = session or open_session(config)
    try:
        async for event in events:
            session.feed(event)
    except asyncio.CancelledError:
        session.cancel()
        raise
    return session.finalize()
