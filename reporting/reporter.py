# reporting/reporter.py
import os
import json
from datetime import datetime, timezone
from typing import List, Optional
import logging

import pandas as pd
from pydantic import BaseModel, Field

logger = logging.getLogger("reporter")
logger.setLevel(logging.INFO)

REPORT_DIR = os.getenv("REPORT_DIR", "./reports")
CURRENCY = "PLN"
BOOK_COLUMNS = ["url", "title", "price", "publisher", "year", "authors"]


class AnalysisResult(BaseModel):
    name: str
    lines: List[str] = Field(default_factory=list)
    parameters: Optional[str] = None


def books_frame(books):
    """One row per book; authors joined with ", " and price as float."""
    rows = [
        {
            "url": b.url,
            "title": b.title,
            "price": float(b.price) if b.price is not None else None,
            "publisher": b.publisher,
            "year": b.year,
            "authors": ", ".join(b.authors),
        }
        for b in books
    ]
    df = pd.DataFrame(rows, columns=BOOK_COLUMNS)
    df["price"] = df["price"].astype("float64")
    df["year"] = df["year"].astype("Int64")
    return df


def _authors_frame(books):
    rows = [
        {"author": a, "price": float(b.price) if b.price is not None else None, "year": b.year}
        for b in books
        for a in b.authors
    ]
    df = pd.DataFrame(rows, columns=["author", "price", "year"])
    df["price"] = df["price"].astype("float64")
    df["year"] = df["year"].astype("Int64")
    return df


def _price_line(row):
    return f"{row['title']} - {row['authors']} ({row['price']:.2f} {CURRENCY})"


def _count_lines(counts, unit="books"):
    return [f"{name} ({int(n)} {unit})" for name, n in counts.items()]


def run_analyses(books, limit=10, max_price=50, min_year=2020):
    """
    Compute the standard analyses over the accepted books.

    Args:
        books (list[Book]): Accepted books of a crawl run
        limit (int): Maximum number of lines per analysis. Defaults to 10.
        max_price (float): Threshold for the "cheaper than" analysis
        min_year (int): Threshold for the "published since" analyses

    Returns:
        list[AnalysisResult]: In a fixed order:
            - Most expensive books
            - Cheapest books
            - Books cheaper than max_price
            - Books published since min_year
            - Top publishers (by book count)
            - Top authors (by book count)
            - Authors by average price
            - Authors with books published since min_year

    Note:
        Books without a price (or year) are left out of the analyses that
        need that field. Ties keep discovery order.
    """
    df = books_frame(books)
    priced = df.dropna(subset=["price"])
    dated = df.dropna(subset=["year"])
    authors = _authors_frame(books)
    limit_desc = f"Limit: {limit}"
    results = []

    top = priced.sort_values("price", ascending=False, kind="stable").head(limit)
    results.append(
        AnalysisResult(
            name="Most expensive books",
            lines=[_price_line(r) for _, r in top.iterrows()],
            parameters=limit_desc,
        )
    )

    cheap = priced.sort_values("price", kind="stable").head(limit)
    results.append(
        AnalysisResult(
            name="Cheapest books",
            lines=[_price_line(r) for _, r in cheap.iterrows()],
            parameters=limit_desc,
        )
    )

    under = priced[priced["price"] <= max_price].sort_values("price", kind="stable").head(limit)
    results.append(
        AnalysisResult(
            name="Books cheaper than",
            lines=[_price_line(r) for _, r in under.iterrows()],
            parameters=f"Max price: {max_price} {CURRENCY}, {limit_desc}",
        )
    )

    recent = dated[dated["year"] >= min_year].sort_values("year", ascending=False, kind="stable")
    results.append(
        AnalysisResult(
            name="Published since year",
            lines=[
                f"{r['title']} - {r['authors']} ({int(r['year'])})"
                for _, r in recent.head(limit).iterrows()
            ],
            parameters=f"Year: {min_year}, {limit_desc}",
        )
    )

    publishers = df.dropna(subset=["publisher"])["publisher"].value_counts().head(limit)
    results.append(
        AnalysisResult(name="Top publishers", lines=_count_lines(publishers), parameters=limit_desc)
    )

    author_counts = authors["author"].value_counts().head(limit)
    results.append(
        AnalysisResult(name="Top authors", lines=_count_lines(author_counts), parameters=limit_desc)
    )

    avg = (
        authors.dropna(subset=["price"])
        .groupby("author")["price"]
        .mean()
        .sort_values(ascending=False, kind="stable")
        .head(limit)
    )
    results.append(
        AnalysisResult(
            name="Authors by average price",
            lines=[f"{name} (avg {value:.2f} {CURRENCY})" for name, value in avg.items()],
            parameters=limit_desc,
        )
    )

    since = authors.dropna(subset=["year"])
    since_counts = since[since["year"] >= min_year]["author"].value_counts().head(limit)
    results.append(
        AnalysisResult(
            name="Authors with books since year",
            lines=_count_lines(since_counts),
            parameters=f"Year: {min_year}, {limit_desc}",
        )
    )
    return results


def generate_report(
    result,
    seed_url=None,
    query=None,
    report_dir=None,
    limit=10,
    max_price=50,
    min_year=2020,
):
    """
    Write the JSON and CSV report of a crawl run.

    Args:
        result (CrawlResult): Output of CrawlOrchestrator.run_crawl
        seed_url (str, optional): Seed URL, recorded in the report header
        query (str, optional): Search phrase, recorded in the report header
        report_dir (str, optional): Output directory. Defaults to REPORT_DIR.
        limit, max_price, min_year: Passed to run_analyses()

    Returns:
        tuple[str, str]: Paths of the JSON and CSV files

    Output Files:
        - {report_dir}/crawl_{YYYY-MM-DD}.json: header, stats labels,
          analyses and accepted books
        - {report_dir}/crawl_{YYYY-MM-DD}.csv: accepted books, one per row
    """
    report_dir = report_dir or REPORT_DIR
    os.makedirs(report_dir, exist_ok=True)

    filename_base = f"crawl_{datetime.now(timezone.utc).date().isoformat()}"
    json_path = os.path.join(report_dir, f"{filename_base}.json")
    csv_path = os.path.join(report_dir, f"{filename_base}.csv")

    analyses = run_analyses(result.books, limit=limit, max_price=max_price, min_year=min_year)
    payload = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "query": query,
        "seed_url": seed_url,
        "state": result.state.value,
        "stats": result.stats.as_labels(),
        "analyses": [a.model_dump() for a in analyses],
        "books": [b.model_dump(mode="json") for b in result.books],
    }

    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)

    books_frame(result.books).to_csv(csv_path, index=False)

    logger.info(f"Generated crawl report: {json_path}, {csv_path}")
    return json_path, csv_path
