# catalog_crawler/config.py
import os
from urllib.parse import quote_plus

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .models import ListingFailurePolicy

load_dotenv()

DEFAULT_BASE_URL = "https://www.taniaksiazka.pl"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class CrawlSettings(BaseModel):
    base_url: str = DEFAULT_BASE_URL
    seed_url: str = ""
    max_pages: int = Field(default=2, gt=0)
    request_delay_ms: int = Field(default=1000, ge=0)
    page_delay_ms: int = Field(default=1000, ge=0)
    retries: int = Field(default=3, gt=0)
    timeout: float = Field(default=30.0, gt=0)
    encoding: str = "utf-8"
    user_agent: str = DEFAULT_USER_AGENT
    listing_failure_policy: ListingFailurePolicy = ListingFailurePolicy.ABORT

    @property
    def request_delay(self):
        return self.request_delay_ms / 1000.0

    @property
    def page_delay(self):
        return self.page_delay_ms / 1000.0


def load_settings(**overrides):
    """
    Build CrawlSettings from the environment (and a .env file, if present).

    Args:
        **overrides: Field values that take precedence over the environment

    Returns:
        CrawlSettings: Validated settings

    Raises:
        pydantic.ValidationError: If a value is out of range (e.g. a
            non-positive CRAWL_MAX_PAGES) or the failure policy is unknown
    """
    values = {
        "base_url": os.getenv("BASE_URL", DEFAULT_BASE_URL),
        "seed_url": os.getenv("SEED_URL", ""),
        "max_pages": os.getenv("CRAWL_MAX_PAGES", "2"),
        "request_delay_ms": os.getenv("CRAWL_REQUEST_DELAY_MS", "1000"),
        "page_delay_ms": os.getenv("CRAWL_PAGE_DELAY_MS", "1000"),
        "retries": os.getenv("CRAWL_RETRIES", "3"),
        "timeout": os.getenv("CRAWL_TIMEOUT", "30"),
        "encoding": os.getenv("CRAWL_ENCODING", "utf-8"),
        "user_agent": os.getenv("CRAWL_USER_AGENT", DEFAULT_USER_AGENT),
        "listing_failure_policy": os.getenv("LISTING_FAILURE_POLICY", "abort").lower(),
    }
    values.update(overrides)
    return CrawlSettings.model_validate(values)


def build_search_url(query, base_url=DEFAULT_BASE_URL):
    """Seed URL for a catalog search, e.g. https://www.taniaksiazka.pl/szukaj?q=c+sharp."""
    return f"{base_url.rstrip('/')}/szukaj?q={quote_plus(query.strip())}"
