import json

import pytest

from varnamala.core.config import get_config
from varnamala.core.exceptions import CatalogLoadError, UnknownItem
from varnamala.models.card import Category
from varnamala.models.catalog import CATALOG_FILES, Catalog, CatalogEntry, load_catalog


@pytest.fixture
def bundled() -> Catalog:
    return load_catalog(get_config().catalog.data_dir)


def test_bundled_catalog(bundled):
    assert len(bundled) == 61
    assert bundled.ids[0] == "v-a"
    assert len(bundled.filter(Category.VOWEL)) == 11
    assert len(bundled.filter(Category.CONSONANT)) == 33
    assert len(bundled.filter(Category.MATRA)) == 13
    assert [e.glyph for e in bundled.filter(Category.CONJUNCT)] == ["क्ष", "त्र", "ज्ञ", "श्र"]


def test_catalog_lookup(catalog):
    assert "c-ka" in catalog
    assert "x-missing" not in catalog
    assert catalog.entry("m-aa").category == Category.MATRA
    with pytest.raises(UnknownItem):
        catalog.entry("x-missing")


def test_duplicate_ids_rejected():
    with pytest.raises(CatalogLoadError):
        Catalog([CatalogEntry(item_id="a", category="vowel"), CatalogEntry(item_id="a", category="matra")])


def _write(tmp_path, files: dict[str, object]) -> None:
    for name in CATALOG_FILES:
        (tmp_path / name).write_text(json.dumps(files.get(name, [])), encoding="utf-8")


def test_load_catalog_from_directory(tmp_path):
    _write(
        tmp_path,
        {
            "letters.core.json": [{"item_id": "v-a", "category": "vowel", "glyph": "अ"}],
            "letters.conjuncts.json": [{"item_id": "cj-tra", "category": "conjunct"}],
        },
    )
    catalog = load_catalog(tmp_path)
    assert catalog.ids == ["v-a", "cj-tra"]


def test_missing_catalog_file(tmp_path):
    (tmp_path / "letters.core.json").write_text("[]", encoding="utf-8")
    with pytest.raises(CatalogLoadError):
        load_catalog(tmp_path)


@pytest.mark.parametrize(
    "content",
    ["{not json", '{"item_id": "v-a"}', '[{"item_id": "v-a", "category": "diphthong"}]'],
)
def test_malformed_catalog_file(tmp_path, content):
    _write(tmp_path, {})
    (tmp_path / "letters.matras.json").write_text(content, encoding="utf-8")
    with pytest.raises(CatalogLoadError):
        load_catalog(tmp_path)
