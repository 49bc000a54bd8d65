"""Per-slot buffers that coalesce streamed fragments.

:class:`ContentAccumulator` grows text and thinking parts slot by slot and
:class:`ToolCallAccumulator` reassembles tool calls whose arguments arrive
in pieces.  :class:`FragmentAccumulator` routes a fragment to whichever of
the two owns it.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Set

from tributary.config import MergeConfig
from tributary.content import ContentKind, ContentPart
from tributary.errors import InvalidMergeKind, StreamProtocolError
from tributary.streaming import ToolCallFragment

logger = logging.getLogger(__name__)


def shift_index(
    occupied: Mapping[int, ContentKind],
    index: int,
    kind: ContentKind,
    reserved_kinds: frozenset[ContentKind],
    moved: Set[int] = frozenset(),
) -> int:
    """Return the slot a newly seen ``(index, kind)`` lane should use.

    Text landing on a slot held by a reserved kind (thinking, for providers
    that pin it to index 0) moves past every occupied slot.  So does any
    lane whose index is already taken by a lane moved there earlier
    (``moved``), since that slot no longer belongs to the raw index.  Every
    other case keeps ``index``; a genuine kind conflict is reported by the
    caller.
    """
    if index in moved:
        return max([*occupied, *moved]) + 1
    holder = occupied.get(index)
    if holder is None or holder == kind:
        return index
    if kind == ContentKind.TEXT and holder in reserved_kinds:
        return max(occupied) + 1
    return index


def _check_index(slot_index: int) -> None:
    if (
        not isinstance(slot_index, int)
        or isinstance(slot_index, bool)
        or slot_index < 0
    ):
        raise StreamProtocolError(
            f"Malformed slot index: {slot_index!r}",
            slot_index=slot_index if type(slot_index) is int else None,
        )


class ContentAccumulator:
    """Grows one content part per slot."""

    def __init__(self, config: MergeConfig | None = None) -> None:
        self.config = config or MergeConfig()
        self.slots: dict[int, ContentPart] = {}
        # (raw index, kind) -> slot, fixed at the lane's first appearance
        self._lanes: dict[tuple[int, ContentKind], int] = {}
        # slots taken by lanes that did not land on their raw index
        self._moved: set[int] = set()

    def resolve(self, slot_index: int, kind: ContentKind) -> int:
        key = (slot_index, kind)
        if key not in self._lanes:
            slot = slot_index
            if self.config.shift_reserved_lanes:
                occupied = {i: p.kind for i, p in self.slots.items()}
                slot = shift_index(
                    occupied, slot_index, kind, self.config.reserved_kinds,
                    self._moved,
                )
                if slot != slot_index:
                    self._moved.add(slot)
                    logger.debug(
                        f"Shifted {kind.value} lane from slot "
                        f"{slot_index} to {slot}"
                    )
            self._lanes[key] = slot
        return self._lanes[key]

    def upsert(self, slot_index: int, part: ContentPart) -> None:
        _check_index(slot_index)
        if (
            self.config.skip_empty_text
            and part.kind == ContentKind.TEXT
            and not part.payload
            and not part.options
        ):
            return

        slot = self.resolve(slot_index, part.kind)
        existing = self.slots.get(slot)
        if existing is None:
            self.slots[slot] = part
            return
        if existing.kind != part.kind:
            raise InvalidMergeKind(
                f"Slot {slot} holds {existing.kind.value} content, got a "
                f"{part.kind.value} fragment",
                slot_index=slot,
            )
        if not existing.appendable:
            raise InvalidMergeKind(
                f"Slot {slot} holds a complete {existing.kind.value} part "
                f"that cannot be extended",
                slot_index=slot,
            )
        self.slots[slot] = existing.merge(part)

    def ordered(self) -> list[ContentPart]:
        return [self.slots[i] for i in sorted(self.slots)]


class ToolCallAccumulator:
    """Assembles tool calls from streaming fragments.

    Arguments are concatenated verbatim; nothing here looks at JSON.
    """

    def __init__(self) -> None:
        self._pending: dict[int, ToolCallFragment] = {}

    @property
    def slots(self) -> dict[int, ToolCallFragment]:
        return self._pending

    def feed(self, fragment: ToolCallFragment) -> None:
        _check_index(fragment.slot_index)
        if fragment.slot_index not in self._pending:
            self._pending[fragment.slot_index] = ToolCallFragment(
                slot_index=fragment.slot_index,
            )
        tc = self._pending[fragment.slot_index]
        if fragment.call_id is not None:
            if tc.call_id is None:
                tc.call_id = fragment.call_id
            elif fragment.call_id != tc.call_id:
                logger.warning(
                    f"Ignoring call id {fragment.call_id!r} for tool slot "
                    f"{tc.slot_index}, already {tc.call_id!r}"
                )
        if fragment.name is not None:
            if tc.name is None:
                tc.name = fragment.name
            elif fragment.name != tc.name:
                logger.warning(
                    f"Ignoring name {fragment.name!r} for tool slot "
                    f"{tc.slot_index}, already {tc.name!r}"
                )
        if fragment.arguments_buffer:
            tc.arguments_buffer += fragment.arguments_buffer

    def finalize(self) -> list[ToolCallFragment]:
        """Return the buffered tool calls in index order."""
        return [self._pending[i] for i in sorted(self._pending)]


class FragmentAccumulator:
    """Routes content and tool-call fragments to their slot buffers."""

    def __init__(self, config: MergeConfig | None = None) -> None:
        self.content = ContentAccumulator(config)
        self.tool_calls = ToolCallAccumulator()

    def upsert(
        self, slot_index: int, partial: ContentPart | ToolCallFragment
    ) -> None:
        if isinstance(partial, ToolCallFragment):
            if partial.slot_index != slot_index:
                partial = ToolCallFragment(
                    slot_index=slot_index,
                    call_id=partial.call_id,
                    name=partial.name,
                    arguments_buffer=partial.arguments_buffer,
                )
            self.tool_calls.feed(partial)
        elif isinstance(partial, ContentPart):
            self.content.upsert(slot_index, partial)
        else:
            raise StreamProtocolError(
                f"Unsupported fragment type: {type(partial).__name__}",
                slot_index=slot_index,
            )
