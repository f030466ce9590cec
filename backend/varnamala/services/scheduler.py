"""Spaced-repetition scheduling: rating arithmetic, due queue and statistics."""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime, timedelta

from ..core.config import SRSConfig
from ..models.card import CATEGORY_ORDER, Card, Category, CategoryStats, Rating, SortCriterion, SRSStats


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class SRSScheduler:
    """SM-2 style scheduler with a four-value rating scale.

    All methods are pure: they never read a clock and never touch storage.
    ``now`` is always passed in by the caller.
    """

    def __init__(self, policy: SRSConfig | None = None) -> None:
        self.policy = policy or SRSConfig()

    def new_card(self, item_id: str, category: Category, now: datetime) -> Card:
        return Card(
            item_id=item_id,
            category=category,
            repetitions=0,
            interval_days=0,
            ease_factor=self.policy.initial_ease,
            due_at=now,
            lapses=0,
            last_reviewed_at=None,
        )

    def apply_rating(self, card: Card, rating: Rating | int | str, now: datetime) -> Card:
        """
        Compute the state that follows one review.

        rating:
            FORGOT = lapse, the card comes back tomorrow
            HARD   = recalled with effort, slow growth and an ease penalty
            GOOD   = recalled, interval grows by the ease factor
            EASY   = recalled instantly, faster growth and an ease bonus

        The interval is computed from the ease factor the card had *before*
        this review.
        """
        rating = Rating.parse(rating)
        policy = self.policy
        ease = card.ease_factor
        interval = card.interval_days
        repetitions = card.repetitions
        lapses = card.lapses

        if rating == Rating.FORGOT:
            repetitions = 0
            lapses += 1
            new_ease = ease - policy.forgot_ease_penalty
            new_interval = policy.lapse_interval_days
        elif rating == Rating.HARD:
            repetitions += 1
            new_ease = ease - policy.hard_ease_penalty
            if interval > 0:
                new_interval = round_half_up(interval * policy.hard_interval_multiplier)
            else:
                new_interval = policy.first_interval_days
        elif rating == Rating.GOOD:
            repetitions += 1
            new_ease = ease
            if interval > 0:
                new_interval = round_half_up(interval * ease)
            else:
                new_interval = policy.first_interval_days
        else:
            repetitions += 1
            new_ease = ease + policy.easy_ease_bonus
            if interval > 0:
                new_interval = round_half_up(interval * ease * policy.easy_interval_multiplier)
            else:
                new_interval = policy.easy_first_interval_days

        # 0 days is reserved for never-reviewed cards
        new_interval = max(1, new_interval)
        new_ease = max(policy.min_ease, round(new_ease, policy.ease_precision))

        return card.with_changes(
            repetitions=repetitions,
            interval_days=new_interval,
            ease_factor=new_ease,
            lapses=lapses,
            last_reviewed_at=now,
            due_at=now + timedelta(days=new_interval),
        )

    def force_due(self, card: Card, now: datetime) -> Card:
        return card.with_changes(due_at=now)

    def check_invariants(self, card: Card) -> str | None:
        """Return a description of the first violated invariant, or None."""
        if card.repetitions is None or card.repetitions < 0:
            return f"repetitions={card.repetitions}"
        if card.interval_days is None or card.interval_days < 0:
            return f"interval_days={card.interval_days}"
        if card.lapses is None or card.lapses < 0:
            return f"lapses={card.lapses}"
        if card.ease_factor is None or not math.isfinite(card.ease_factor):
            return f"ease_factor={card.ease_factor}"
        if card.ease_factor < self.policy.min_ease:
            return f"ease_factor={card.ease_factor} below {self.policy.min_ease}"
        if card.due_at is None:
            return "due_at missing"
        if card.last_reviewed_at is None:
            if card.interval_days != 0 or card.repetitions != 0:
                return "never reviewed but has progress"
        else:
            if card.interval_days < 1:
                return "reviewed card with zero interval"
        return None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def due_cards(cards: Iterable[Card], now: datetime) -> list[Card]:
        """Most overdue first; ties broken by item id."""
        due = [c for c in cards if c.is_due(now)]
        return sorted(due, key=lambda c: (c.due_at, c.item_id))

    @staticmethod
    def due_count(cards: Iterable[Card], now: datetime) -> int:
        return sum(1 for c in cards if c.is_due(now))

    @staticmethod
    def sort_cards(cards: list[Card], criterion: SortCriterion | str) -> list[Card]:
        criterion = SortCriterion(criterion)
        # sorted() is stable, so equal keys keep the incoming (catalog) order
        if criterion == SortCriterion.DUE:
            return sorted(cards, key=lambda c: c.due_at)
        if criterion == SortCriterion.CATEGORY:
            return sorted(cards, key=lambda c: CATEGORY_ORDER[Category(c.category)])
        if criterion == SortCriterion.EASE:
            return sorted(cards, key=lambda c: c.ease_factor)
        return sorted(cards, key=lambda c: -c.lapses)

    @staticmethod
    def stats(cards: list[Card], now: datetime) -> SRSStats:
        total = len(cards)
        reviewed = sum(1 for c in cards if c.repetitions >= 1)
        due = 0
        by_category = {category.value: CategoryStats() for category in Category}
        for card in cards:
            bucket = by_category[Category(card.category).value]
            bucket.total += 1
            if card.is_due(now):
                bucket.due += 1
                due += 1

        completion = round_half_up(reviewed * 100 / total) if total else 0
        return SRSStats(
            due_cards=due,
            total_cards=total,
            completion_rate=completion,
            reviewed_cards=reviewed,
            new_cards=sum(1 for c in cards if c.is_new),
            by_category=by_category,
        )
