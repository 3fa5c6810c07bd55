"""Tests for availability refinement and the page-number window."""

import pytest

from storefront.services.catalog.pagination import ELLIPSIS, page_window
from storefront.services.catalog.refinement import refine_by_availability

from conftest import make_entries


def test_refinement_preserves_order():
    items = make_entries(9)

    available = refine_by_availability(items, "available")
    sold = refine_by_availability(items, "sold")

    assert [item.id for item in available] == [
        "art-1",
        "art-2",
        "art-4",
        "art-5",
        "art-7",
        "art-8",
    ]
    assert [item.id for item in sold] == ["art-3", "art-6", "art-9"]
    assert refine_by_availability(items, "all") == items


def test_refinement_is_idempotent():
    items = make_entries(12)

    once = refine_by_availability(items, "sold")

    assert refine_by_availability(once, "sold") == once


def test_refinement_of_empty_page():
    assert refine_by_availability([], "available") == []


@pytest.mark.parametrize(
    ("current", "total", "expected"),
    [
        (1, 0, []),
        (1, 1, [1]),
        (3, 7, [1, 2, 3, 4, 5, 6, 7]),
        (1, 10, [1, 2, ELLIPSIS, 10]),
        (5, 10, [1, ELLIPSIS, 4, 5, 6, ELLIPSIS, 10]),
        (10, 10, [1, ELLIPSIS, 9, 10]),
        (3, 10, [1, 2, 3, 4, ELLIPSIS, 10]),
    ],
)
def test_page_window(current, total, expected):
    assert page_window(current, total) == expected
