from __future__ import annotations


class InvalidIndexError(IndexError):
    """A giver or receiver index outside the registry bounds."""


class IncompleteMatchingError(RuntimeError):
    """The permitted edges admit no perfect matching."""

    def __init__(self, matched: int, total: int, message: str | None = None) -> None:
        self.matched = matched
        self.total = total
        super().__init__(
            message
            or f"Only {matched} of {total} participants could be matched with the current exclusions."
        )
