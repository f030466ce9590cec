from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import ExitStack, contextmanager
from datetime import datetime
from typing import Any

from ..core.clock import Clock, to_naive_utc
from ..core.exceptions import CorruptPersistedState, ImportValidationFailure, UnknownItem
from ..models.card import Card, Rating, SortCriterion, SRSStats
from .card_store import CardStore
from .progress_export import ProgressExporter
from .scheduler import SRSScheduler

logger = logging.getLogger(__name__)


class SRSSession:
    """Public surface of the scheduler used by the learn, practice and quiz views.

    Each card update is a read-modify-write under a per-item lock, so two
    overlapping ratings of the same item see each other's result. Different
    items never wait on each other. Bulk operations take every item lock in
    id order.
    """

    def __init__(self, store: CardStore, scheduler: SRSScheduler | None = None, clock: Clock | None = None) -> None:
        self.store = store
        self.catalog = store.catalog
        self.scheduler = scheduler or store.scheduler
        self.clock = clock or store.clock
        self.anomalies: list[CorruptPersistedState] = []
        self._guard = threading.Lock()
        self._item_locks: dict[str, threading.Lock] = {}

    # ------------------------------------------------------------------
    # Locking and loading
    # ------------------------------------------------------------------

    def _lock_for(self, item_id: str) -> threading.Lock:
        # Locks exist only for catalog items, so the map never outgrows the catalog
        if item_id not in self.catalog:
            raise UnknownItem(item_id)
        with self._guard:
            lock = self._item_locks.get(item_id)
            if lock is None:
                lock = self._item_locks[item_id] = threading.Lock()
            return lock

    @contextmanager
    def _lock_all(self) -> Iterator[None]:
        with ExitStack() as stack:
            for item_id in sorted(self.catalog.ids):
                stack.enter_context(self._lock_for(item_id))
            yield

    def _now(self, now: datetime | None) -> datetime:
        return to_naive_utc(now) if now is not None else self.clock.now()

    def _recover(self, exc: CorruptPersistedState, now: datetime) -> Card:
        logger.warning("%s; restoring new-card default", exc)
        with self._guard:
            self.anomalies.append(exc)
        entry = self.catalog.entry(exc.item_id)
        return self.store.put(self.scheduler.new_card(entry.item_id, entry.category, now))

    def _load(self, item_id: str, now: datetime) -> Card:
        try:
            return self.store.get(item_id, now)
        except CorruptPersistedState as exc:
            return self._recover(exc, now)

    def _all_cards(self, now: datetime) -> list[Card]:
        # Each pass repairs one corrupt row, so this ends after at most len(catalog) retries
        for _ in range(len(self.catalog) + 1):
            try:
                return self.store.all_cards(now)
            except CorruptPersistedState as exc:
                self._recover(exc, now)
        return self.store.all_cards(now)

    def pop_anomalies(self) -> list[CorruptPersistedState]:
        """Corrupt cards replaced since the last call, for the caller to report."""
        with self._guard:
            anomalies, self.anomalies = self.anomalies, []
        return anomalies

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_card(self, item_id: str, now: datetime | None = None) -> Card:
        now = self._now(now)
        with self._lock_for(item_id):
            return self._load(item_id, now)

    def get_due_cards(self, now: datetime | None = None, limit: int | None = None) -> list[Card]:
        now = self._now(now)
        due = self.scheduler.due_cards(self._all_cards(now), now)
        return due[:limit] if limit is not None else due

    def get_due_count(self, now: datetime | None = None) -> int:
        now = self._now(now)
        return self.scheduler.due_count(self._all_cards(now), now)

    def get_all_cards_sorted(
        self, criterion: SortCriterion | str = SortCriterion.DUE, now: datetime | None = None
    ) -> list[Card]:
        criterion = SortCriterion(criterion)
        return self.scheduler.sort_cards(self._all_cards(self._now(now)), criterion)

    def get_srs_stats(self, now: datetime | None = None) -> SRSStats:
        now = self._now(now)
        return self.scheduler.stats(self._all_cards(now), now)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def rate_card(self, item_id: str, rating: Rating | int | str, now: datetime | None = None) -> Card:
        rating = Rating.parse(rating)
        now = self._now(now)
        with self._lock_for(item_id):
            card = self._load(item_id, now)
            updated = self.store.put(self.scheduler.apply_rating(card, rating, now))
        logger.info(
            "Rated %s %s: interval %d -> %d days, ease %.2f -> %.2f",
            item_id,
            rating.name.lower(),
            card.interval_days,
            updated.interval_days,
            card.ease_factor,
            updated.ease_factor,
        )
        return updated

    def reset_card(self, item_id: str, now: datetime | None = None) -> Card:
        now = self._now(now)
        with self._lock_for(item_id):
            entry = self.catalog.entry(item_id)
            card = self.store.put(self.scheduler.new_card(entry.item_id, entry.category, now))
        logger.info("Reset card %s", item_id)
        return card

    def reset_all(self, now: datetime | None = None) -> int:
        now = self._now(now)
        with self._lock_all():
            count = self.store.put_many(
                self.scheduler.new_card(entry.item_id, entry.category, now) for entry in self.catalog
            )
        logger.info("Reset all progress (%d cards)", count)
        return count

    def force_review_all(self, now: datetime | None = None) -> int:
        now = self._now(now)
        with self._lock_all():
            cards = self._all_cards(now)
            count = self.store.put_many(self.scheduler.force_due(card, now) for card in cards)
        logger.info("Scheduled all %d cards for review at %s", count, now.isoformat())
        return count

    # ------------------------------------------------------------------
    # Backup and restore
    # ------------------------------------------------------------------

    def export_progress(self, now: datetime | None = None) -> str:
        now = self._now(now)
        return ProgressExporter.export_json(self._all_cards(now), exported_at=now)

    def import_progress(self, raw: str | bytes | dict[str, Any]) -> int:
        try:
            cards = ProgressExporter.parse(raw, self.catalog, self.scheduler)
        except ImportValidationFailure as exc:
            logger.warning("%s", exc)
            raise
        with self._lock_all():
            count = self.store.put_many(cards)
        logger.info("Imported progress for %d cards", count)
        return count
