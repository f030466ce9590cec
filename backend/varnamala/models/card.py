"""Per-item scheduling state and the enums that drive it."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum, StrEnum
from typing import Any

from sqlalchemy import Column, DateTime
from sqlalchemy.types import TypeDecorator
from sqlmodel import Field, SQLModel

from ..core.clock import to_naive_utc
from ..core.exceptions import InvalidRating


class Category(StrEnum):
    VOWEL = "vowel"
    CONSONANT = "consonant"
    MATRA = "matra"
    CONJUNCT = "conjunct"


CATEGORY_ORDER = {category: index for index, category in enumerate(Category)}


class Rating(IntEnum):
    """Ordered four-value review scale: FORGOT < HARD < GOOD < EASY."""

    FORGOT = 0
    HARD = 1
    GOOD = 2
    EASY = 3

    @classmethod
    def parse(cls, value: Any) -> Rating:
        if isinstance(value, cls):
            return value
        # bool is an int subclass; True/False are not ratings
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                raise InvalidRating(value) from None
        if isinstance(value, str):
            key = value.strip().upper()
            if key in cls.__members__:
                return cls[key]
            if key.isdigit():
                return cls.parse(int(key))
        raise InvalidRating(value)


class SortCriterion(StrEnum):
    DUE = "due"
    CATEGORY = "category"
    EASE = "ease"
    LAPSES = "lapses"


class UTCDateTime(TypeDecorator):
    """Naive UTC on both sides of the database; aware values are converted on write."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return to_naive_utc(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return to_naive_utc(value)


class Card(SQLModel, table=True):
    item_id: str = Field(primary_key=True)
    category: Category = Field(index=True)

    repetitions: int = Field(default=0)
    interval_days: int = Field(default=0)
    ease_factor: float = Field(default=2.5)
    due_at: datetime = Field(sa_column=Column(UTCDateTime(), index=True, nullable=False))
    lapses: int = Field(default=0)
    last_reviewed_at: datetime | None = Field(default=None, sa_column=Column(UTCDateTime(), nullable=True))

    @property
    def is_new(self) -> bool:
        return self.last_reviewed_at is None

    def is_due(self, now: datetime) -> bool:
        return self.due_at <= now

    def with_changes(self, **changes: Any) -> Card:
        """Return a detached copy with ``changes`` applied; ``self`` is left untouched."""
        return Card(**{**self.model_dump(), **changes})


class CardRead(SQLModel):
    item_id: str
    category: Category
    repetitions: int
    interval_days: int
    ease_factor: float
    due_at: datetime
    lapses: int
    last_reviewed_at: datetime | None = None


class CategoryStats(SQLModel):
    total: int = 0
    due: int = 0


class SRSStats(SQLModel):
    due_cards: int = 0
    total_cards: int = 0
    completion_rate: int = 0
    reviewed_cards: int = 0
    new_cards: int = 0
    by_category: dict[str, CategoryStats] = {}


@dataclass(frozen=True)
class Uninitialized:
    """No stored card yet; resolves to the new-card default at the store boundary."""

    item_id: str


@dataclass(frozen=True)
class Tracked:
    card: Card


CardState = Uninitialized | Tracked
