# catalog_crawler/db.py
from datetime import datetime, timezone
import logging
import os
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv

from .utils import compute_hash_for_book

load_dotenv()

MONGO_URI = os.getenv("MONGO_URI")
MONGO_DB = os.getenv("MONGO_DB", "books_crawler")

logger = logging.getLogger("db")
logger.setLevel(logging.INFO)

_client = None
_db = None


def get_client():
    """Initialize and return the MongoDB AsyncIOMotorClient singleton."""
    global _client, _db
    if _client is None:
        _client = AsyncIOMotorClient(MONGO_URI)
        _db = _client[MONGO_DB]
    return _client


def get_db():
    """Return the MongoDB database instance, initializing if needed."""
    global _db
    if _db is None:
        get_client()
    return _db


def book_to_doc(book):
    """Mongo document for a book, keyed by its URL. Prices are stored as strings."""
    data = book.model_dump()
    doc = {
        "_id": book.url,
        "url": book.url,
        "title": book.title,
        "price": str(book.price) if book.price is not None else None,
        "publisher": book.publisher,
        "year": book.year,
        "authors": list(book.authors),
    }
    doc["content_hash"] = compute_hash_for_book(data)
    return doc


async def upsert_book(book):
    """
    Insert or update a book in the books collection.

    Returns:
        bool: True when the stored record was new or changed, False when the
            content hash matched the stored one
    """
    db = get_db()
    doc = book_to_doc(book)
    existing = await db.books.find_one({"_id": doc["_id"]})
    if existing and existing.get("content_hash") == doc["content_hash"]:
        return False
    doc["updated_at"] = datetime.now(timezone.utc).isoformat()
    await db.books.update_one({"_id": doc["_id"]}, {"$set": doc}, upsert=True)
    return True


async def insert_crawl_run(result, seed_url):
    """Insert a crawl_runs record with the run statistics and return its string ID."""
    db = get_db()
    doc = {
        "seed_url": seed_url,
        "state": result.state.value,
        "error": result.error,
        "stats": result.stats.model_dump(),
        "books": len(result.books),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    res = await db.crawl_runs.insert_one(doc)
    return str(res.inserted_id)


async def save_crawl_result(result, seed_url):
    """
    Persist the accepted books and the run record of a finished crawl.

    Args:
        result (CrawlResult): Output of CrawlOrchestrator.run_crawl
        seed_url (str): Seed the run started from

    Returns:
        dict: {"run_id": str, "changed": int} where changed counts books
            that were new or updated
    """
    changed = 0
    for book in result.books:
        if await upsert_book(book):
            changed += 1
    run_id = await insert_crawl_run(result, seed_url)
    logger.info(f"Saved crawl run {run_id}: {len(result.books)} books, {changed} new or updated")
    return {"run_id": run_id, "changed": changed}
