# catalog_crawler/quality.py
import logging

UNKNOWN_AUTHOR_MARKERS = ("unknown", "nieznany")

logger = logging.getLogger("crawler")


def has_valid_authors(authors):
    """False for a missing/empty list, a blank entry or an "unknown" author."""
    if not authors:
        return False
    for author in authors:
        if author is None or not author.strip():
            return False
        lowered = author.lower()
        if any(marker in lowered for marker in UNKNOWN_AUTHOR_MARKERS):
            return False
    return True


class QualityFilter:
    """
    Decide whether an enriched book is worth keeping.

    Only authorship matters: catalog entries without a real author are
    mostly non-book products (gadgets, calendars, games). Missing price,
    publisher or year never cause a rejection.
    """

    def is_acceptable(self, book):
        ok = has_valid_authors(book.authors)
        if not ok:
            logger.info(f"Rejected '{book.title}': missing or unknown author")
        return ok
