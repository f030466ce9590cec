from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from ..core.clock import Clock, SystemClock
from ..core.exceptions import CorruptPersistedState, UnknownItem
from ..models.card import Card, CardState, Tracked, Uninitialized
from ..models.catalog import Catalog
from .scheduler import SRSScheduler

logger = logging.getLogger(__name__)


class CardStore:
    """Maps catalog item ids to their persisted card.

    Cards are created lazily: an item with no stored row is ``Uninitialized``
    and is written as a new-card default the first time it is read.
    """

    def __init__(
        self,
        engine: Engine,
        catalog: Catalog,
        scheduler: SRSScheduler | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.engine = engine
        self.catalog = catalog
        self.scheduler = scheduler or SRSScheduler()
        self.clock = clock or SystemClock()

    def _session(self) -> Session:
        # Returned cards are used after the session closes
        return Session(self.engine, expire_on_commit=False)

    def _require(self, item_id: str) -> None:
        if item_id not in self.catalog:
            raise UnknownItem(item_id)

    def _validated(self, row: Card) -> Card:
        problem = self.scheduler.check_invariants(row)
        if problem:
            raise CorruptPersistedState(row.item_id, problem)
        return row

    def _default(self, item_id: str, now: datetime) -> Card:
        entry = self.catalog.entry(item_id)
        return self.scheduler.new_card(entry.item_id, entry.category, now)

    def state(self, item_id: str) -> CardState:
        self._require(item_id)
        with self._session() as session:
            row = session.get(Card, item_id)
        if row is None:
            return Uninitialized(item_id)
        return Tracked(self._validated(row))

    def get(self, item_id: str, now: datetime | None = None) -> Card:
        state = self.state(item_id)
        if isinstance(state, Tracked):
            return state.card

        card = self._default(state.item_id, now or self.clock.now())
        try:
            with self._session() as session:
                # add, not merge: a row written meanwhile must not be overwritten
                session.add(card)
                session.commit()
        except IntegrityError:
            logger.debug("Card %s created concurrently; reloading", item_id)
            state = self.state(item_id)
            if isinstance(state, Tracked):
                return state.card
            raise
        logger.debug("Materialized new card %s", item_id)
        return card

    def put(self, card: Card) -> Card:
        self._require(card.item_id)
        return self._write([card])[0]

    def put_many(self, cards: Iterable[Card]) -> int:
        """Write all cards in one transaction; nothing is written if any write fails."""
        cards = list(cards)
        for card in cards:
            self._require(card.item_id)
        return len(self._write(cards))

    def _write(self, cards: list[Card]) -> list[Card]:
        # merge inserts rows it has not seen; an id inserted concurrently is retried as an update
        for _ in range(len(cards)):
            try:
                return self._merge(cards)
            except IntegrityError:
                logger.debug("Card created concurrently; retrying write")
        return self._merge(cards)

    def _merge(self, cards: list[Card]) -> list[Card]:
        with self._session() as session:
            stored = [session.merge(card) for card in cards]
            session.commit()
        return stored

    def all_ids(self) -> set[str]:
        return set(self.catalog.ids)

    def all_cards(self, now: datetime | None = None) -> list[Card]:
        """Every catalog card in catalog order, materializing missing ones.

        Readers may race each other or ``get`` to create the same row. The
        losing transaction is rolled back and the read starts over; every
        conflict means one more stored row, so the retries are bounded.
        """
        now = now or self.clock.now()
        for _ in range(len(self.catalog)):
            try:
                return self._read_all(now)
            except IntegrityError:
                logger.debug("Card created concurrently; reloading all cards")
        return self._read_all(now)

    def _read_all(self, now: datetime) -> list[Card]:
        with self._session() as session:
            rows = {row.item_id: row for row in session.exec(select(Card)).all()}
            cards: list[Card] = []
            created = 0
            for item_id in self.catalog.ids:
                row = rows.get(item_id)
                if row is None:
                    row = self._default(item_id, now)
                    session.add(row)
                    created += 1
                else:
                    self._validated(row)
                cards.append(row)
            if created:
                session.commit()
                logger.debug("Materialized %d new cards", created)
        return cards
