# tests/conftest.py
import sys
import os

ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.insert(0, ROOT_DIR)

from bson import ObjectId
import pytest
from decimal import Decimal
from typing import List, Dict, Any

from catalog_crawler.config import CrawlSettings
from catalog_crawler.fetcher import FetchError, decode_body
from catalog_crawler.models import Book


def _matches(doc, q):
    for k, v in (q or {}).items():
        if doc.get(k) != v:
            return False
    return True


class FakeCollection:
    def __init__(self, docs: List[Dict[str, Any]] = None):
        self.docs = list(docs or [])
        # ensure all docs have _id as string
        for d in self.docs:
            if "_id" not in d:
                d["_id"] = str(ObjectId())

    async def find_one(self, q):
        """
        Find and return the first document matching the query.

        Only exact field matches are supported; an empty query returns the
        first stored document.
        """
        for d in self.docs:
            if _matches(d, q):
                return dict(d)
        return None

    async def insert_one(self, doc):
        """
        Insert a single document, assigning an ObjectId string when missing.

        Returns:
            object: A simple object with an `inserted_id` attribute, like Motor.
        """
        doc = dict(doc)
        if "_id" not in doc:
            doc["_id"] = str(ObjectId())
        self.docs.append(doc)

        class R:
            inserted_id = doc["_id"]

        return R()

    async def update_one(self, q, u, upsert=False):
        """
        Apply the $set part of an update to the first matching document.

        With upsert=True a missing document is created from the query fields
        plus the $set fields. Other operators ($inc, $push, ...) are ignored.
        """
        for sd in self.docs:
            if _matches(sd, q):
                sd.update(u.get("$set", {}))
                return {"matched_count": 1}
        if upsert:
            doc = dict(q)
            doc.update(u.get("$set", {}))
            await self.insert_one(doc)
        return {"matched_count": 0}

    async def count_documents(self, q=None):
        return sum(1 for d in self.docs if _matches(d, q))


class FakeDB:
    def __init__(self, books=None, crawl_runs=None):
        self.books = FakeCollection(books or [])
        self.crawl_runs = FakeCollection(crawl_runs or [])


class FakeFetcher:
    """
    Serve canned pages instead of hitting the network.

    Pages are given as {url: html or bytes}; a value that is an exception
    instance is raised instead. Unknown URLs raise FetchError, like a 404 would.
    """

    def __init__(self, pages):
        self.pages = pages
        self.requested = []

    async def fetch(self, url):
        self.requested.append(url)
        page = self.pages.get(url)
        if isinstance(page, Exception):
            raise page
        if page is None:
            raise FetchError(url, "HTTP 404", 404)
        if isinstance(page, bytes):
            return page
        return page.encode("utf-8")

    async def fetch_text(self, url):
        return decode_body(await self.fetch(url), "utf-8")


@pytest.fixture
def fast_settings():
    """Settings with rate-limit delays switched off."""
    return CrawlSettings(
        base_url="https://site",
        max_pages=3,
        request_delay_ms=0,
        page_delay_ms=0,
        retries=2,
    )


@pytest.fixture
def sample_books():
    """
    Three accepted books with overlapping authors and publishers.

    Used by the persistence and report tests.
    """
    return [
        Book(
            url="https://site/alpha-p-1.html",
            title="Alpha",
            price=Decimal("60.01"),
            publisher="Znak",
            year=2021,
            authors=["Jan Kowalski"],
        ),
        Book(
            url="https://site/beta-p-2.html",
            title="Beta",
            price=Decimal("19.99"),
            publisher="Znak",
            year=2018,
            authors=["Jan Kowalski", "Adam Nowak"],
        ),
        Book(
            url="https://site/gamma-p-3.html",
            title="Gamma",
            price=None,
            publisher="Helion",
            year=2024,
            authors=["Ewa Lis"],
        ),
    ]


@pytest.fixture
def fake_db(monkeypatch):
    """
    In-memory replacement for the Mongo database.

    Patches catalog_crawler.db.get_db so every sink function writes here.
    """
    db = FakeDB()
    monkeypatch.setattr("catalog_crawler.db.get_db", lambda: db)
    return db
