# tests/test_db.py
import pytest

from catalog_crawler import db
from catalog_crawler.models import CrawlResult, CrawlStats, RunState


@pytest.mark.asyncio
async def test_save_crawl_result_upserts_books_and_records_run(fake_db, sample_books):
    result = CrawlResult(
        books=sample_books,
        stats=CrawlStats(pages_processed=1, total_found=4, unique_added=3, duplicates_rejected=1),
        state=RunState.COMPLETED,
    )

    summary = await db.save_crawl_result(result, "https://site/szukaj?q=x")

    assert summary["changed"] == 3
    assert await fake_db.books.count_documents() == 3
    stored = await fake_db.books.find_one({"_id": "https://site/beta-p-2.html"})
    assert stored["price"] == "19.99"
    assert stored["authors"] == ["Jan Kowalski", "Adam Nowak"]
    assert len(stored["content_hash"]) == 64

    run = await fake_db.crawl_runs.find_one({"_id": summary["run_id"]})
    assert run["state"] == "completed"
    assert run["stats"]["duplicates_rejected"] == 1
    assert run["books"] == 3


@pytest.mark.asyncio
async def test_unchanged_book_is_not_rewritten(fake_db, sample_books):
    book = sample_books[0]

    assert await db.upsert_book(book) is True
    assert await db.upsert_book(book) is False
    assert await db.upsert_book(book.with_updates(year=2022)) is True

    stored = await fake_db.books.find_one({"_id": book.url})
    assert stored["year"] == 2022
    assert await fake_db.books.count_documents() == 1
