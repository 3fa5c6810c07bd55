"""Tests for checkout arithmetic and promo codes."""

import pytest

from storefront.services.checkout.totals import PromoCodeBook, compute_totals


@pytest.fixture()
def promo_codes():
    return PromoCodeBook({"MURAQQA10": 10})


def test_domestic_order_has_no_tax(promo_codes):
    totals = compute_totals(
        100_000,
        shipping=2_000,
        discount_percent=promo_codes.percent_for("MURAQQA10"),
        shipping_country="Pakistan",
        home_country="Pakistan",
        tax_percent=5,
    )

    assert totals.discount == 10_000
    assert totals.tax == 0
    assert totals.total == 92_000


def test_international_order_is_taxed(promo_codes):
    totals = compute_totals(
        100_000,
        shipping=2_000,
        discount_percent=promo_codes.percent_for("muraqqa10"),
        shipping_country="USA",
        home_country="Pakistan",
        tax_percent=5,
    )

    assert totals.tax == 5_000
    assert totals.total == 97_000


def test_country_match_ignores_case_and_whitespace():
    totals = compute_totals(
        10_000, shipping_country="  pakistan ", home_country="Pakistan", tax_percent=5
    )

    assert totals.tax == 0


def test_missing_country_is_not_taxed():
    assert compute_totals(10_000, shipping_country="", tax_percent=5).tax == 0


def test_percentages_round_down():
    totals = compute_totals(
        999,
        discount_percent=10,
        shipping_country="UAE",
        home_country="Pakistan",
        tax_percent=5,
    )

    assert totals.discount == 99
    assert totals.tax == 49
    assert totals.total == 999 - 99 + 49


def test_promo_code_book(promo_codes):
    assert "muraqqa10" in promo_codes
    assert "SUMMER50" not in promo_codes
    assert promo_codes.percent_for(None) == 0
    assert promo_codes.percent_for("SUMMER50") == 0
    assert PromoCodeBook.is_well_formed(" muraqqa10 ")
    assert not PromoCodeBook.is_well_formed("no spaces!")
    assert not PromoCodeBook.is_well_formed("ab")


def test_promo_code_book_reads_settings(monkeypatch):
    from storefront.config import settings

    monkeypatch.setattr(settings, "PROMO_CODES", "EID20:20, broken, XMAS:x")

    assert settings.promo_code_table == {"EID20": 20}
    assert PromoCodeBook().percent_for("eid20") == 20
