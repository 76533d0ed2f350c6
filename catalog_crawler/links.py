# catalog_crawler/links.py
import logging
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup

from .models import Book
from .utils import clean_text, parse_price

HTML_PARSER = "lxml"

# TaniaKsiazka product pages look like "tytul-ksiazki-p-12345.html"
PRODUCT_URL_MARKER = "-p-"

_REJECTED_HREF_MARKERS = (
    "/autor/",
    "/wydawnictwo/",
    "/serie/",
    "dodaj-do-schowka",
    "koszyk",
)
_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".webp")

logger = logging.getLogger("parser")
logger.setLevel(logging.INFO)


def _heading_anchors(soup):
    return soup.select("h3 a[href]")


def _title_class_anchors(soup):
    return soup.select('a[class*="product-title"]')


def _product_container_anchors(soup):
    return soup.select('div[class*="product"] a[href], div[class*="offer"] a[href]')


# Union, in this order.
LINK_STRATEGIES = (_heading_anchors, _title_class_anchors, _product_container_anchors)


def _next_in_list_item(soup):
    return soup.select_one("li.next a[href]")


def _next_anchor_class(soup):
    return soup.select_one("a.next[href]")


# First valid href wins.
NEXT_PAGE_STRATEGIES = (_next_in_list_item, _next_anchor_class)


def is_script_href(href):
    return "javascript:" in href.lower()


def is_rejected_href(href):
    """True for hrefs that can never point at a product detail page."""
    if not href or not href.strip():
        return True
    lowered = href.strip().lower()
    if is_script_href(href):
        return True
    if any(marker in lowered for marker in _REJECTED_HREF_MARKERS):
        return True
    return lowered.endswith(_IMAGE_EXTENSIONS)


def is_product_url(url):
    return PRODUCT_URL_MARKER in urlparse(url).path


class LinkExtractor:
    """
    Pull candidate item URLs and pagination links out of listing pages.

    Listing markup on the catalog is inconsistent between views, so links are
    collected with several overlapping selectors and then filtered down to
    URLs shaped like product pages.
    """

    def __init__(self, parser=HTML_PARSER):
        self.parser = parser

    def _soup(self, html):
        return BeautifulSoup(html or "", self.parser)

    def _collect_links(self, soup, base_url):
        """Ordered mapping of product URL -> anchor text (first seen wins)."""
        found = {}
        for strategy in LINK_STRATEGIES:
            for a in strategy(soup):
                href = a.get("href", "")
                if is_rejected_href(href):
                    continue
                url = urljoin(base_url, href.strip())
                if not is_product_url(url):
                    continue
                if url not in found:
                    found[url] = clean_text(a.get_text(" "))
        return found

    def extract_listing_links(self, html, base_url):
        """
        Extract candidate product URLs from a listing page.

        Args:
            html (str): Listing page markup
            base_url (str): URL used to resolve relative hrefs

        Returns:
            list[str]: Absolute product URLs, de-duplicated, in discovery
                order (heading anchors, then title-class anchors, then anchors
                inside product/offer containers)

        Note:
            Author, publisher and series listings, cart/clipboard actions,
            javascript: links and images are dropped, as is anything lacking
            the "-p-" product marker.
        """
        return list(self._collect_links(self._soup(html), base_url))

    def extract_listing_items(self, html, base_url):
        """
        Build partial books from listing anchors carrying data attributes.

        The search view tags each product anchor with ``data-name``,
        ``data-price`` and ``data-brand`` (the publisher). Authors are never
        guessed here; they stay empty until the detail page is read.

        Args:
            html (str): Listing page markup
            base_url (str): URL used to resolve relative hrefs

        Returns:
            list[Book]: One partial book per distinct href on the page
        """
        soup = self._soup(html)
        seen = set()
        books = []
        for a in soup.select("a.ecommerce-datalayer[href], a[data-name][href]"):
            href = a.get("href", "").strip()
            if not href or is_script_href(href):
                continue
            url = urljoin(base_url, href)
            if url in seen:
                continue
            seen.add(url)

            title = (a.get("data-name") or "").strip() or clean_text(a.get_text(" "))
            books.append(
                Book(
                    url=url,
                    title=title,
                    price=parse_price(a.get("data-price")),
                    publisher=(a.get("data-brand") or "").strip() or None,
                    authors=[],
                )
            )
        return books

    def extract_candidates(self, html, base_url):
        """Structured listing items when present, otherwise one partial book per product link."""
        books = self.extract_listing_items(html, base_url)
        if books:
            return books
        links = self._collect_links(self._soup(html), base_url)
        if not links:
            logger.info(f"No candidates found on listing page {base_url}")
        return [Book(url=url, title=text) for url, text in links.items()]

    def extract_next_page_link(self, html, base_url):
        """
        Locate the "next page" link.

        Returns:
            str or None: Absolute URL of the next listing page, or None when
                there is no usable link
        """
        soup = self._soup(html)
        for strategy in NEXT_PAGE_STRATEGIES:
            a = strategy(soup)
            if a is None:
                continue
            href = a.get("href", "").strip()
            if not href or is_script_href(href):
                continue
            return urljoin(base_url, href)
        return None
