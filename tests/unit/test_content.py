import pytest
from pydantic import ValidationError

from tributary.content import ContentKind, ContentPart, parts_to_string
from tributary.errors import InvalidMergeKind


class TestAppend:
    def test_text_append_returns_new_part(self):
        part = ContentPart.text("Hello")
        grown = part.append(" world")

        assert grown.payload == "Hello world"
        assert grown.kind == ContentKind.TEXT
        assert part.payload == "Hello"

    def test_thinking_append(self):
        part = ContentPart.thinking("Let me ").append("think")
        assert part == ContentPart.thinking("Let me think")

    @pytest.mark.parametrize("factory", [
        ContentPart.image,
        ContentPart.image_url,
        ContentPart.file,
        ContentPart.file_url,
    ])
    def test_media_parts_cannot_append(self, factory):
        part = factory("data")
        assert not part.appendable
        with pytest.raises(InvalidMergeKind):
            part.append("more")

    def test_string_options_concatenate(self):
        """Signatures stream in pieces alongside thinking text."""
        part = ContentPart.thinking("a", signature="abc")
        grown = part.append("b", {"signature": "def"})

        assert grown.options == {"signature": "abcdef"}

    def test_new_option_keys_are_added(self):
        part = ContentPart.text("a", lang="en")
        grown = part.append("b", {"cache": "true"})

        assert grown.options == {"lang": "en", "cache": "true"}

    def test_append_associative(self):
        pieces = ["The ", "quick ", "", "brown ", "fox"]
        one_by_one = ContentPart.text("")
        for piece in pieces:
            one_by_one = one_by_one.append(piece)

        assert one_by_one.payload == "".join(pieces)


class TestMerge:
    def test_merge_same_kind(self):
        merged = ContentPart.text("a").merge(ContentPart.text("b"))
        assert merged.payload == "ab"

    def test_merge_different_kind_fails(self):
        with pytest.raises(InvalidMergeKind):
            ContentPart.text("a").merge(ContentPart.thinking("b"))


def test_parts_are_immutable():
    part = ContentPart.text("fixed")
    with pytest.raises(ValidationError):
        part.payload = "changed"


def test_kind_serializes_to_value():
    dumped = ContentPart.image_url("https://example.com/a.png").model_dump()
    assert dumped == {
        "kind": "image_url",
        "payload": "https://example.com/a.png",
        "options": {},
    }


class TestPartsToString:
    def test_joins_text_parts(self):
        parts = [
            ContentPart.text("Hello"),
            ContentPart.image("base64data"),
            ContentPart.text("world"),
        ]
        assert parts_to_string(parts) == "Hello\n\nworld"

    def test_selects_kind(self):
        parts = [ContentPart.thinking("hmm"), ContentPart.text("answer")]
        assert parts_to_string(parts, ContentKind.THINKING) == "hmm"

    def test_empty_returns_none(self):
        assert parts_to_string([]) is None
        assert parts_to_string([ContentPart.thinking("x")]) is None
