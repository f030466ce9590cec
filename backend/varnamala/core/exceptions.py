"""Typed failures raised by the scheduling core.

The HTTP layer maps these onto status codes; nothing below the API layer
turns them into silent no-ops.
"""

from __future__ import annotations


class SRSError(Exception):
    """Base class for all scheduling errors."""


class UnknownItem(SRSError):
    def __init__(self, item_id: str) -> None:
        super().__init__(f"Unknown item: {item_id!r}")
        self.item_id = item_id


class InvalidRating(SRSError):
    def __init__(self, value: object) -> None:
        super().__init__(f"Invalid rating: {value!r} (expected forgot, hard, good or easy)")
        self.value = value


class CorruptPersistedState(SRSError):
    """A stored card violates the card invariants."""

    def __init__(self, item_id: str, reason: str) -> None:
        super().__init__(f"Corrupt stored card {item_id!r}: {reason}")
        self.item_id = item_id
        self.reason = reason


class ImportValidationFailure(SRSError):
    def __init__(self, problems: list[str]) -> None:
        summary = "; ".join(problems[:5])
        if len(problems) > 5:
            summary += f" (+{len(problems) - 5} more)"
        super().__init__(f"Import rejected: {summary}")
        self.problems = problems


class CatalogLoadError(SRSError):
    pass
