# catalog_crawler/utils.py
import hashlib
import html
import re
from decimal import Decimal, InvalidOperation

from tenacity import (
    AsyncRetrying,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

_WHITESPACE_RE = re.compile(r"\s+")
_NON_NUMERIC_RE = re.compile(r"[^0-9.\-]")
_CENT = Decimal("0.01")


def normalize_price_text(raw):
    """Turn a comma-or-dot price string into a plain dotted number string."""
    if raw is None:
        return ""
    text = raw.replace("\xa0", "").replace(" ", "").replace(",", ".")
    return _NON_NUMERIC_RE.sub("", text).rstrip(".")


def parse_price(raw):
    """
    Parse a catalog price string into a two-decimal Decimal.

    The catalog writes prices with either a comma or a dot as the decimal
    separator ("12,34", "9.99", "39,90 zł"). The text is normalized first and
    then parsed with Decimal, so the result never depends on the process
    locale.

    Args:
        raw (str | None): Price text as found in the markup

    Returns:
        Decimal or None: Price rounded to cents, or None when the text is
            missing, unparsable or negative
    """
    normalized = normalize_price_text(raw)
    if not normalized:
        return None
    try:
        value = Decimal(normalized)
        if not value.is_finite() or value < 0:
            return None
        # raises when the digits no longer fit the context precision
        return value.quantize(_CENT)
    except InvalidOperation:
        return None


def collapse_whitespace(text):
    """Collapse whitespace runs to single spaces and trim."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text).strip()


def clean_text(text):
    """Decode HTML entities and collapse whitespace."""
    return collapse_whitespace(html.unescape(text or ""))


def compute_hash_for_book(book_dict):
    """
    Generate a deterministic SHA-256 hash for a book's trackable fields.

    Used by the persistence sink to tell whether a stored record changed
    between crawls.

    Args:
        book_dict (dict): Dictionary containing book data (as produced by
            Book.model_dump())

    Returns:
        str: Hexadecimal SHA-256 hash string (64 characters)

    Tracked Fields:
        - title
        - price
        - publisher
        - year
        - authors (joined with ";")

    Note:
        Fields are concatenated with "|" delimiter in a fixed order to ensure
        hash consistency. Missing fields default to empty string.
    """

    keys = ["title", "price", "publisher", "year"]
    parts = [str(book_dict.get(k) if book_dict.get(k) is not None else "") for k in keys]
    parts.append(";".join(book_dict.get("authors") or []))
    s = "|".join(parts)
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def network_retry(exception_types=(Exception,), **tenacity_kwargs):
    """
    Create a tenacity async retrying controller for network calls.

    Args:
        exception_types (tuple): Exception classes that trigger a retry
        **tenacity_kwargs: Optional keyword arguments
            - attempts (int): Maximum number of attempts. Defaults to 3.
            - min_wait (float): Lower bound of the backoff in seconds. Defaults to 1.
            - max_wait (float): Upper bound of the backoff in seconds. Defaults to 10.

    Returns:
        tenacity.AsyncRetrying: Controller to iterate with ``async for``;
            the last exception is re-raised once attempts run out

    Example:
        async for attempt in network_retry((httpx.HTTPError,), attempts=5):
            with attempt:
                resp = await client.get(url)
    """
    return AsyncRetrying(
        stop=stop_after_attempt(tenacity_kwargs.get("attempts", 3)),
        wait=wait_exponential(
            multiplier=1,
            min=tenacity_kwargs.get("min_wait", 1),
            max=tenacity_kwargs.get("max_wait", 10),
        ),
        retry=retry_if_exception_type(exception_types),
        reraise=True,
    )
