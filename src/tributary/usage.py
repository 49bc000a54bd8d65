from pydantic import BaseModel, ConfigDict, Field


class TokenUsage(BaseModel):
    """Token usage reported by a provider.

    ``input`` is the prompt side, ``output`` the generated side.  Anything
    provider specific (cache hits, reasoning tokens, ...) lives in ``raw``.
    Either count may be missing; some providers only report output tokens
    while streaming.
    """

    model_config = ConfigDict(frozen=True)

    input: int | None = Field(default=None, ge=0)
    output: int | None = Field(default=None, ge=0)
    raw: dict = Field(default_factory=dict)

    @property
    def total(self) -> int:
        return (self.input or 0) + (self.output or 0)

    @classmethod
    def add(
        cls, first: "TokenUsage | None", second: "TokenUsage | None"
    ) -> "TokenUsage | None":
        """Sum two usage reports, e.g. across the turns of a conversation.

        Numeric ``raw`` values under the same key are summed, other values
        take the second report's value.
        """
        if first is None:
            return second
        if second is None:
            return first
        raw = dict(first.raw)
        for key, value in second.raw.items():
            previous = raw.get(key)
            if _is_number(previous) and _is_number(value):
                raw[key] = previous + value
            else:
                raw[key] = value
        return cls(
            input=(first.input or 0) + (second.input or 0),
            output=(first.output or 0) + (second.output or 0),
            raw=raw,
        )


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
