# tests/test_utils.py
from decimal import Decimal

import pytest
from pydantic import ValidationError

from catalog_crawler.config import build_search_url, load_settings
from catalog_crawler.models import Book, CrawlStats, ListingFailurePolicy
from catalog_crawler.utils import clean_text, compute_hash_for_book, parse_price


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("12,34", Decimal("12.34")),
        ("9.99", Decimal("9.99")),
        ("39,90 zł", Decimal("39.90")),
        (" 1 299,00 ", Decimal("1299.00")),
        ("15", Decimal("15.00")),
        ("abc", None),
        ("", None),
        (None, None),
        ("-5,00", None),
        ("1.234,56", None),
        ("1" * 30, None),
        ("9" * 40 + ",00 zł", None),
    ],
)
def test_parse_price(raw, expected):
    assert parse_price(raw) == expected


def test_clean_text_decodes_entities_and_collapses_whitespace():
    assert clean_text("  Jan&amp;nbsp;\n\t Kowalski &amp; syn ") == "Jan&nbsp; Kowalski & syn"
    assert clean_text(None) == ""


def test_book_normalizes_fields():
    book = Book(
        url="https://site/a-p-1.html",
        title="  Tytul ",
        publisher="  ",
        authors=[" Jan ", "Jan", "", "Ewa"],
    )

    assert book.title == "Tytul"
    assert book.publisher is None
    assert book.authors == ["Jan", "Ewa"]


def test_book_rejects_out_of_range_values():
    with pytest.raises(ValidationError):
        Book(url="https://site/a-p-1.html", year=99)
    with pytest.raises(ValidationError):
        Book(url="https://site/a-p-1.html", price=Decimal("-1.00"))
    with pytest.raises(ValidationError):
        Book(url="")


def test_book_is_frozen():
    book = Book(url="https://site/a-p-1.html", title="T")
    with pytest.raises(ValidationError):
        book.title = "changed"


def test_content_hash_tracks_authors():
    a = Book(url="https://site/a-p-1.html", title="T", authors=["Jan"])
    b = a.with_updates(authors=["Jan", "Ewa"])

    assert compute_hash_for_book(a.model_dump()) != compute_hash_for_book(b.model_dump())
    assert compute_hash_for_book(a.model_dump()) == compute_hash_for_book(a.model_dump())


def test_stats_labels_include_missing_author_count():
    labels = CrawlStats(missing_author_rejected=7).as_labels()

    assert labels["Rejected (missing author)"] == "7"
    assert labels["Records downloaded"] == "0"


def test_load_settings_from_env(monkeypatch):
    monkeypatch.setenv("CRAWL_MAX_PAGES", "5")
    monkeypatch.setenv("CRAWL_REQUEST_DELAY_MS", "300")
    monkeypatch.setenv("LISTING_FAILURE_POLICY", "CONTINUE")

    settings = load_settings()

    assert settings.max_pages == 5
    assert settings.request_delay == 0.3
    assert settings.listing_failure_policy == ListingFailurePolicy.CONTINUE


def test_load_settings_rejects_non_positive_pages(monkeypatch):
    monkeypatch.setenv("CRAWL_MAX_PAGES", "0")
    with pytest.raises(ValidationError):
        load_settings()


def test_build_search_url():
    assert build_search_url(" c sharp ", "https://www.taniaksiazka.pl/") == (
        "https://www.taniaksiazka.pl/szukaj?q=c+sharp"
    )
