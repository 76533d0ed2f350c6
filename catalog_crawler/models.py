# catalog_crawler/models.py
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class RunState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    ABORTED = "aborted"
    CANCELLED = "cancelled"


class ListingFailurePolicy(str, Enum):
    ABORT = "abort"  # stop the run, pagination depends on the failed page
    CONTINUE = "continue"


class Book(BaseModel):
    """A catalog item. Partial when built from a listing, refined after enrichment."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., min_length=1, description="Canonical absolute URL, unique key")
    title: str = ""
    price: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    publisher: Optional[str] = None
    year: Optional[int] = Field(default=None, ge=1000, le=9999)
    authors: List[str] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, v):
        return (v or "").strip()

    @field_validator("publisher", mode="before")
    @classmethod
    def _blank_publisher_is_none(cls, v):
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @field_validator("authors", mode="before")
    @classmethod
    def _unique_authors(cls, v):
        seen = set()
        out = []
        for a in v or []:
            a = (a or "").strip()
            if a and a not in seen:
                seen.add(a)
                out.append(a)
        return out

    def with_updates(self, **changes):
        """Return a validated copy with the given fields replaced."""
        data = self.model_dump()
        data.update(changes)
        return Book.model_validate(data)


class CrawlStats(BaseModel):
    pages_processed: int = 0
    total_found: int = 0
    unique_added: int = 0
    duplicates_rejected: int = 0
    missing_author_rejected: int = 0

    def as_labels(self):
        """Label -> string mapping consumed by the report renderer."""
        return {
            "Records downloaded": str(self.unique_added),
            "Duplicates rejected": str(self.duplicates_rejected),
            "Pages processed": str(self.pages_processed),
            "Candidates found": str(self.total_found),
            "Rejected (missing author)": str(self.missing_author_rejected),
        }


class FrontierEntry(BaseModel):
    url: str
    index: int = Field(..., ge=1)


class CrawlResult(BaseModel):
    books: List[Book] = Field(default_factory=list)
    stats: CrawlStats = Field(default_factory=CrawlStats)
    state: RunState = RunState.COMPLETED
    error: Optional[str] = None
