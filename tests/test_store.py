import pytest

from pharmacy_stock.schemas import CatalogItem


@pytest.fixture
def listed_store(seeded_store):
    seeded_store.upsert_items([CatalogItem(item_code="B7", item_name="Cetirizine", manufacturer="Cipla")])
    return seeded_store


def _names(result):
    return [item.item_name for item in result["items"]]


def test_list_items_sorted_by_name(listed_store):
    result = listed_store.list_items()

    assert _names(result) == ["Cetirizine", "Ibuprofen", "Paracetamol"]
    assert result["total_items"] == 3
    assert result["total_pages"] == 1


def test_list_items_searches_name_and_code(listed_store):
    assert _names(listed_store.list_items(search="PARA")) == ["Paracetamol"]
    assert _names(listed_store.list_items(search="a2")) == ["Ibuprofen"]
    assert listed_store.list_items(search="zzz") == {"items": [], "total_pages": 0, "total_items": 0}


def test_list_items_pages(listed_store):
    result = listed_store.list_items(page=2, limit=2)

    assert _names(result) == ["Paracetamol"]
    assert result["total_pages"] == 2
    assert result["total_items"] == 3


def test_list_items_fetch_all_ignores_paging(listed_store):
    result = listed_store.list_items(page=3, limit=1, fetch_all=True)

    assert _names(result) == ["Cetirizine", "Ibuprofen", "Paracetamol"]
    assert result["total_pages"] == 1
    assert result["total_items"] == 3
