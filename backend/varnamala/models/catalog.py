"""Learnable items of the alphabet. The catalog decides which cards exist."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from pathlib import Path

from pydantic import BaseModel, ValidationError

from ..core.exceptions import CatalogLoadError, UnknownItem
from .card import Category

logger = logging.getLogger(__name__)

CATALOG_FILES = ("letters.core.json", "letters.matras.json", "letters.conjuncts.json")


class CatalogEntry(BaseModel):
    item_id: str
    category: Category
    glyph: str = ""
    transliteration: str = ""


class Catalog:
    def __init__(self, entries: Iterable[CatalogEntry]) -> None:
        self._entries: list[CatalogEntry] = []
        self._index: dict[str, int] = {}
        for entry in entries:
            if entry.item_id in self._index:
                raise CatalogLoadError(f"Duplicate catalog id: {entry.item_id!r}")
            self._index[entry.item_id] = len(self._entries)
            self._entries.append(entry)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[CatalogEntry]:
        return iter(self._entries)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._index

    @property
    def ids(self) -> list[str]:
        return [entry.item_id for entry in self._entries]

    def entry(self, item_id: str) -> CatalogEntry:
        try:
            return self._entries[self._index[item_id]]
        except KeyError:
            raise UnknownItem(item_id) from None

    def filter(self, category: Category | None = None) -> list[CatalogEntry]:
        if category is None:
            return list(self._entries)
        return [entry for entry in self._entries if entry.category == category]


def _read_entries(path: Path) -> list[CatalogEntry]:
    if not path.exists():
        raise CatalogLoadError(f"Catalog file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as file:
            raw = json.load(file)
    except json.JSONDecodeError as exc:
        raise CatalogLoadError(f"{path.name} is not valid JSON: {exc}") from exc
    if not isinstance(raw, list):
        raise CatalogLoadError(f"{path.name} must contain a JSON list")
    try:
        return [CatalogEntry.model_validate(item) for item in raw]
    except ValidationError as exc:
        raise CatalogLoadError(f"{path.name}: {exc}") from exc


def load_catalog(data_dir: str | Path) -> Catalog:
    base = Path(data_dir)
    entries: list[CatalogEntry] = []
    for name in CATALOG_FILES:
        entries.extend(_read_entries(base / name))
    catalog = Catalog(entries)
    logger.info("Loaded catalog with %d items from %s", len(catalog), base)
    return catalog
