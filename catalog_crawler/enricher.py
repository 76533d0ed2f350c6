# catalog_crawler/enricher.py
import logging
import re

from bs4 import BeautifulSoup

from .links import HTML_PARSER
from .utils import clean_text, parse_price

AUTHOR_PATH = "/autor/"
PUBLISHER_PATH = "/wydawnictwo/"

PUBLISHER_LABELS = ("wydawnictwo", "wydawca", "publisher")
YEAR_LABELS = ("rok wydania", "data wydania", "year of publication", "date of publication")

_AUTHOR_LABEL_RE = re.compile(r"^\s*(autorzy|autor|authors|author)\s*:\s*", re.IGNORECASE)
_AUTHOR_SPLIT_RE = re.compile(r"[,;]")
_YEAR_RE = re.compile(r"\d{4}")

logger = logging.getLogger("parser")
logger.setLevel(logging.INFO)


def _authors_from_info_block(soup):
    block = soup.select_one('[class*="product-info-author"]')
    if block is None:
        return []
    text = _AUTHOR_LABEL_RE.sub("", clean_text(block.get_text(" ")))
    tokens = (t.strip() for t in _AUTHOR_SPLIT_RE.split(text))
    return [t for t in tokens if len(t) > 1]


def _authors_from_links(soup):
    authors = []
    for a in soup.select(f'a[href*="{AUTHOR_PATH}"]'):
        name = clean_text(a.get_text(" "))
        if name and name not in authors:
            authors.append(name)
    return authors


# First non-empty result wins.
AUTHOR_STRATEGIES = (_authors_from_info_block, _authors_from_links)


def _scan_detail_table(soup):
    """Publisher and year from two-column "label | value" rows."""
    publisher = None
    year = None
    for tr in soup.select("tr"):
        cells = tr.find_all(["th", "td"])
        if len(cells) < 2:
            continue
        label = cells[0].get_text(strip=True).lower()
        value = clean_text(cells[1].get_text(" "))
        if publisher is None and any(m in label for m in PUBLISHER_LABELS):
            publisher = value or None
        if year is None and any(m in label for m in YEAR_LABELS):
            match = _YEAR_RE.search(value)
            if match:
                year = int(match.group(0))
    return publisher, year


def _publisher_from_link(soup):
    a = soup.select_one(f'a[href*="{PUBLISHER_PATH}"]')
    if a is None:
        return None
    return a.get_text(strip=True) or None


def _title(soup):
    h1 = soup.select_one("h1")
    if h1 is None:
        return None
    return clean_text(h1.get_text(" ")) or None


def _price(soup):
    meta = soup.select_one('meta[itemprop="price"]')
    if meta is None:
        return None
    return parse_price(meta.get("content"))


class DetailEnricher:
    """Refine a partial book with what its detail page says."""

    def __init__(self, parser=HTML_PARSER):
        self.parser = parser

    def resolve_authors(self, soup):
        for strategy in AUTHOR_STRATEGIES:
            authors = strategy(soup)
            if authors:
                return authors
        return []

    def enrich(self, book, detail_html):
        """
        Fill authors, publisher and year (and refine title/price) from a detail page.

        Args:
            book (Book): Partial book built from the listing page
            detail_html (str): Detail page markup

        Returns:
            Book: A new, refined book. Fields the detail page does not mention
                keep their listing values; nothing is ever cleared and no
                placeholder author is invented.

        Resolution:
            - authors: author info block, else anchors under /autor/
            - publisher: details table row, else first /wydawnictwo/ anchor
            - year: details table row only (first 4-digit run)
            - title: <h1>; price: <meta itemprop="price">
        """
        soup = BeautifulSoup(detail_html or "", self.parser)
        changes = {}

        title = _title(soup)
        if title:
            changes["title"] = title

        price = _price(soup)
        if price is not None:
            changes["price"] = price

        authors = self.resolve_authors(soup)
        if authors:
            changes["authors"] = authors

        publisher, year = _scan_detail_table(soup)
        if publisher is None:
            publisher = _publisher_from_link(soup)
        if publisher:
            changes["publisher"] = publisher
        if year is not None and 1000 <= year <= 9999:
            changes["year"] = year

        if not authors:
            logger.info(f"No authors found on detail page {book.url}")
        return book.with_updates(**changes) if changes else book
