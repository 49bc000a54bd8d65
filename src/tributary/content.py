from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from tributary.errors import InvalidMergeKind


class ContentKind(Enum):
    TEXT = "text"
    THINKING = "thinking"
    IMAGE = "image"
    IMAGE_URL = "image_url"
    FILE = "file"
    FILE_URL = "file_url"


APPENDABLE_KINDS = frozenset({ContentKind.TEXT, ContentKind.THINKING})


def _merge_options(
    current: dict[str, str], incoming: dict[str, str] | None
) -> dict[str, str]:
    # String values under the same key are streamed in pieces (e.g. a
    # thinking signature), so they concatenate.  Anything else is replaced.
    if not incoming:
        return current
    merged = dict(current)
    for key, value in incoming.items():
        previous = merged.get(key)
        if isinstance(previous, str) and isinstance(value, str):
            merged[key] = previous + value
        else:
            merged[key] = value
    return merged


class ContentPart(BaseModel):
    """One unit of message content.

    Parts are immutable.  ``append`` returns a new part with the extra
    payload, and is only defined for text and thinking parts; media parts
    arrive whole.
    """

    model_config = ConfigDict(frozen=True)

    kind: ContentKind
    payload: str = ""
    options: dict[str, str] = Field(default_factory=dict)

    @field_serializer("kind")
    def serialize_kind(self, kind: ContentKind, _info) -> str:
        return kind.value

    @property
    def appendable(self) -> bool:
        return self.kind in APPENDABLE_KINDS

    def append(
        self, more_payload: str, options: dict[str, str] | None = None
    ) -> "ContentPart":
        if not self.appendable:
            raise InvalidMergeKind(
                f"Cannot append to a {self.kind.value} part"
            )
        return ContentPart(
            kind=self.kind,
            payload=self.payload + more_payload,
            options=_merge_options(self.options, options),
        )

    def merge(self, other: "ContentPart") -> "ContentPart":
        """Append ``other`` to this part.  Both must share a kind."""
        if other.kind != self.kind:
            raise InvalidMergeKind(
                f"Cannot merge a {other.kind.value} part into a "
                f"{self.kind.value} part"
            )
        return self.append(other.payload, other.options)

    @classmethod
    def text(cls, payload: str, **options: str) -> "ContentPart":
        return cls(kind=ContentKind.TEXT, payload=payload, options=options)

    @classmethod
    def thinking(cls, payload: str, **options: str) -> "ContentPart":
        return cls(kind=ContentKind.THINKING, payload=payload, options=options)

    @classmethod
    def image(cls, payload: str, **options: str) -> "ContentPart":
        """Base64 image data.  Pass ``media="image/png"`` etc. as an option."""
        return cls(kind=ContentKind.IMAGE, payload=payload, options=options)

    @classmethod
    def image_url(cls, url: str, **options: str) -> "ContentPart":
        return cls(kind=ContentKind.IMAGE_URL, payload=url, options=options)

    @classmethod
    def file(cls, payload: str, **options: str) -> "ContentPart":
        return cls(kind=ContentKind.FILE, payload=payload, options=options)

    @classmethod
    def file_url(cls, url: str, **options: str) -> "ContentPart":
        return cls(kind=ContentKind.FILE_URL, payload=url, options=options)


def parts_to_string(
    parts: list[ContentPart], kind: ContentKind = ContentKind.TEXT
) -> str | None:
    """Join the payloads of every part of ``kind`` with blank lines.

    Returns ``None`` when no part of that kind has any payload.
    """
    joined = "\n\n".join(p.payload for p in parts if p.kind == kind)
    return joined or None
