"""Progress backup and restore as a portable JSON document."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ValidationError

from ..core.clock import to_naive_utc
from ..core.exceptions import ImportValidationFailure
from ..models.card import Card, Category
from ..models.catalog import Catalog
from .scheduler import SRSScheduler

EXPORT_FORMAT = "varnamala-progress"
EXPORT_VERSION = 1
EXPORT_FILENAME = "hindi-alphabet-progress.json"


class CardRecord(BaseModel):
    item_id: str
    category: Category
    repetitions: int
    interval_days: int
    ease_factor: float
    due_at: datetime
    lapses: int
    last_reviewed_at: datetime | None

    model_config = {"extra": "forbid"}


class ProgressDocument(BaseModel):
    format: str
    version: int
    exported_at: datetime | None = None
    cards: list[CardRecord]


class ProgressExporter:
    """Serialize cards to JSON and validate JSON back into cards."""

    @staticmethod
    def export_json(cards: list[Card], exported_at: datetime) -> str:
        document = {
            "format": EXPORT_FORMAT,
            "version": EXPORT_VERSION,
            "exported_at": exported_at.isoformat(),
            "cards": [_card_to_dict(card) for card in cards],
        }
        # json writes floats with repr(), which round-trips exactly
        return json.dumps(document, ensure_ascii=False, indent=2)

    @staticmethod
    def parse(raw: str | bytes | dict[str, Any], catalog: Catalog, scheduler: SRSScheduler) -> list[Card]:
        """Validate the whole document; every problem found is reported in one ImportValidationFailure."""
        if isinstance(raw, (str, bytes)):
            try:
                raw = json.loads(raw)
            except (json.JSONDecodeError, UnicodeDecodeError) as exc:
                raise ImportValidationFailure([f"not valid JSON: {exc}"]) from exc
        if not isinstance(raw, dict):
            raise ImportValidationFailure(["document must be a JSON object"])

        try:
            document = ProgressDocument.model_validate(raw)
        except ValidationError as exc:
            raise ImportValidationFailure(
                [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
            ) from exc

        problems: list[str] = []
        if document.format != EXPORT_FORMAT:
            problems.append(f"format: expected {EXPORT_FORMAT!r}, got {document.format!r}")
        if document.version != EXPORT_VERSION:
            problems.append(f"version: unsupported version {document.version}")

        cards: list[Card] = []
        seen: set[str] = set()
        for index, record in enumerate(document.cards):
            where = f"cards.{index} ({record.item_id})"
            if record.item_id in seen:
                problems.append(f"{where}: duplicate item id")
                continue
            seen.add(record.item_id)
            if record.item_id not in catalog:
                problems.append(f"{where}: not in catalog")
                continue
            expected = catalog.entry(record.item_id).category
            if record.category != expected:
                problems.append(f"{where}: category {record.category.value} does not match catalog {expected.value}")
                continue

            card = Card(
                item_id=record.item_id,
                category=record.category,
                repetitions=record.repetitions,
                interval_days=record.interval_days,
                ease_factor=record.ease_factor,
                due_at=to_naive_utc(record.due_at),
                lapses=record.lapses,
                last_reviewed_at=to_naive_utc(record.last_reviewed_at) if record.last_reviewed_at else None,
            )
            problem = scheduler.check_invariants(card)
            if problem:
                problems.append(f"{where}: {problem}")
                continue
            cards.append(card)

        if problems:
            raise ImportValidationFailure(problems)
        return cards


def _card_to_dict(card: Card) -> dict[str, Any]:
    return {
        "item_id": card.item_id,
        "category": Category(card.category).value,
        "repetitions": card.repetitions,
        "interval_days": card.interval_days,
        "ease_factor": card.ease_factor,
        "due_at": card.due_at.isoformat(),
        "lapses": card.lapses,
        "last_reviewed_at": card.last_reviewed_at.isoformat() if card.last_reviewed_at else None,
    }
