# tests/core/test_pagination.py
import pytest
from pydantic import ValidationError

from app.schemas.page import Order, PageOptions
from app.utils.pagination import order_clause, page_meta


def test_second_page_of_fifteen():
    meta = page_meta(PageOptions(page=2, limit=10), 15)
    assert meta == {
        "page": 2,
        "limit": 10,
        "total_items": 15,
        "total_pages": 2,
        "has_previous_page": True,
        "has_next_page": False,
    }


def test_page_past_the_end_keeps_totals():
    meta = page_meta(PageOptions(page=7, limit=10), 15)
    assert meta["total_items"] == 15
    assert meta["total_pages"] == 2
    assert meta["has_next_page"] is False


def test_empty_result_has_no_pages():
    meta = page_meta(PageOptions(), 0)
    assert meta["total_pages"] == 0
    assert meta["has_previous_page"] is False
    assert meta["has_next_page"] is False


def test_offset_is_one_based():
    assert PageOptions(page=1, limit=25).offset == 0
    assert PageOptions(page=3, limit=25).offset == 50


@pytest.mark.parametrize("kwargs", [{"page": 0}, {"limit": 0}, {"limit": 101}])
def test_page_options_bounds(kwargs):
    with pytest.raises(ValidationError):
        PageOptions(**kwargs)


def test_order_by_alias_accepted():
    assert PageOptions(orderBy="name").order_by == "name"


def test_order_clause_uses_whitelisted_column_with_tiebreaker():
    options = PageOptions(order_by="name", order=Order.ASC)
    clause = order_clause(options, {"name": "l.name", "id": "l.id"}, "l.id")
    assert clause == "ORDER BY l.name ASC, l.id ASC"


def test_order_clause_ignores_unknown_fields():
    options = PageOptions(order_by="name; DROP TABLE users", order=Order.DESC)
    clause = order_clause(options, {"name": "l.name"}, "l.id")
    assert clause == "ORDER BY l.id DESC"
