# catalog_crawler/crawler.py
import argparse
import asyncio
import logging
from collections import deque

from reporting.reporter import generate_report

from .config import build_search_url, load_settings
from .db import save_crawl_result
from .duplicates import DuplicateDetector
from .enricher import DetailEnricher
from .fetcher import FetchError, PageFetcher
from .links import LinkExtractor
from .models import (
    CrawlResult,
    CrawlStats,
    FrontierEntry,
    ListingFailurePolicy,
    RunState,
)
from .quality import QualityFilter

logger = logging.getLogger("crawler")
logger.setLevel(logging.INFO)
handler = logging.StreamHandler()
handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
logger.addHandler(handler)


class _RunContext:
    """Mutable state of one crawl run. Owned by the orchestrator, never shared."""

    def __init__(self, seed_url, duplicates=None):
        self.frontier = deque([FrontierEntry(url=seed_url, index=1)])
        self.stats = CrawlStats()
        self.duplicates = duplicates if duplicates is not None else DuplicateDetector()
        self.books = []
        self.error = None


class CrawlOrchestrator:
    """
    Walk a paginated catalog listing, one page and one item at a time.

    Each listing page is fetched, its candidates are de-duplicated, enriched
    from their detail pages and passed through the quality filter, and then
    the "next" link is queued while the page budget allows. Fetching is
    strictly sequential and rate limited.
    """

    def __init__(
        self,
        fetcher,
        settings=None,
        *,
        link_extractor=None,
        enricher=None,
        quality_filter=None,
        progress=None,
    ):
        self.fetcher = fetcher
        self.settings = settings or load_settings()
        self.link_extractor = link_extractor or LinkExtractor()
        self.enricher = enricher or DetailEnricher()
        self.quality_filter = quality_filter or QualityFilter()
        self.progress = progress
        self.state = RunState.IDLE

    def _notify(self, message):
        """Report progress; a failing callback never stops the crawl."""
        if self.progress is None:
            return
        try:
            self.progress(message)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")

    async def _fetch_html(self, url):
        return await self.fetcher.fetch_text(url)

    @staticmethod
    def _cancelled(cancel_event):
        return cancel_event is not None and cancel_event.is_set()

    async def _process_candidate(self, ctx, candidate):
        """
        Run one candidate through dedup, enrichment and the quality filter.

        A detail-page fetch failure is not fatal: the candidate keeps its
        listing-level data and is still judged by the quality filter.
        """
        if ctx.duplicates.is_duplicate(candidate.url):
            ctx.stats.duplicates_rejected += 1
            self._notify(f"Skipped duplicate: {candidate.title or candidate.url}")
            return

        await asyncio.sleep(self.settings.request_delay)
        book = candidate
        try:
            detail_html = await self._fetch_html(candidate.url)
            book = self.enricher.enrich(candidate, detail_html)
        except FetchError as e:
            logger.warning(f"Detail fetch failed for {candidate.url}, keeping listing data: {e}")
            self._notify(f"Could not fetch details for {candidate.url}; kept listing data.")

        if not self.quality_filter.is_acceptable(book):
            ctx.stats.missing_author_rejected += 1
            self._notify(f"Rejected (missing author): {book.title or book.url}")
            return

        ctx.books.append(book)
        ctx.stats.unique_added += 1
        self._notify(f"Added: {book.title}")

    async def run_crawl(self, seed_url, max_pages=None, *, cancel_event=None, duplicates=None):
        """
        Crawl the catalog starting from a listing page.

        Args:
            seed_url (str): First listing page (e.g. a search results URL)
            max_pages (int, optional): Listing page budget. Defaults to
                settings.max_pages.
            cancel_event (asyncio.Event, optional): Checked at every page start
                and before every detail fetch; when set the run stops and
                returns what it has.
            duplicates (DuplicateDetector, optional): Detector to use for this
                run. A fresh one is created when omitted, so runs do not see
                each other's URLs unless the caller passes the same detector.

        Returns:
            CrawlResult: Accepted books in discovery order, run statistics,
                terminal state and the abort cause (if any)

        Raises:
            RuntimeError: If a run is already in progress
            ValueError: If max_pages is not positive

        Failure Policy:
            - Listing-page FetchError: the run is ABORTED (default policy), or
              the page is skipped when settings.listing_failure_policy is
              "continue"
            - Detail-page FetchError: logged, listing data kept

        Note:
            Partial results are never discarded: aborted and cancelled runs
            return everything accepted so far.
        """
        if self.state == RunState.RUNNING:
            raise RuntimeError("A crawl is already running")
        max_pages = self.settings.max_pages if max_pages is None else max_pages
        if max_pages <= 0:
            raise ValueError("max_pages must be positive")

        self.state = RunState.RUNNING
        ctx = _RunContext(seed_url, duplicates)
        try:
            final_state = await self._crawl_pages(ctx, max_pages, cancel_event)
        except asyncio.CancelledError:
            self.state = RunState.CANCELLED
            raise
        except Exception:
            self.state = RunState.ABORTED
            raise

        self.state = final_state
        stats = ctx.stats
        summary = (
            f"Summary: found {stats.total_found}, added {stats.unique_added}, "
            f"duplicates rejected {stats.duplicates_rejected}, "
            f"rejected (missing author) {stats.missing_author_rejected}, "
            f"pages {stats.pages_processed} [{final_state.value}]"
        )
        logger.info(summary)
        self._notify(summary)
        return CrawlResult(books=ctx.books, stats=stats, state=final_state, error=ctx.error)

    async def _crawl_pages(self, ctx, max_pages, cancel_event):
        """The page loop; returns the terminal state."""
        stats = ctx.stats
        final_state = RunState.COMPLETED

        while ctx.frontier and stats.pages_processed < max_pages:
            if self._cancelled(cancel_event):
                final_state = RunState.CANCELLED
                break

            entry = ctx.frontier.popleft()
            stats.pages_processed += 1
            self._notify(f"Processing listing page {entry.index}/{max_pages}: {entry.url}")

            try:
                html = await self._fetch_html(entry.url)
            except FetchError as e:
                logger.exception(f"Listing page fetch failed: {entry.url}")
                self._notify(f"Listing page fetch failed: {e}")
                if self.settings.listing_failure_policy == ListingFailurePolicy.ABORT:
                    ctx.error = str(e)
                    final_state = RunState.ABORTED
                    self._notify("Crawl aborted.")
                    break
                await asyncio.sleep(self.settings.page_delay)
                continue

            candidates = self.link_extractor.extract_candidates(html, entry.url)
            stats.total_found += len(candidates)
            self._notify(f"Found {len(candidates)} candidates.")

            for candidate in candidates:
                if self._cancelled(cancel_event):
                    final_state = RunState.CANCELLED
                    break
                await self._process_candidate(ctx, candidate)
            if final_state == RunState.CANCELLED:
                break

            if stats.pages_processed < max_pages:
                next_url = self.link_extractor.extract_next_page_link(html, entry.url)
                if next_url and next_url.lower() != entry.url.lower():
                    ctx.frontier.append(FrontierEntry(url=next_url, index=entry.index + 1))
                    self._notify("Queued the next listing page.")

            await asyncio.sleep(self.settings.page_delay)

        return final_state


# convenience script
async def main(argv=None):
    parser = argparse.ArgumentParser(description="Crawl the book catalog search results.")
    parser.add_argument("query", nargs="?", help="search phrase (SEED_URL is used when omitted)")
    parser.add_argument("--max-pages", type=int, default=None)
    parser.add_argument("--save", action="store_true", help="store results in MongoDB")
    parser.add_argument("--report", action="store_true", help="write JSON/CSV report")
    args = parser.parse_args(argv)

    settings = load_settings()
    if args.query:
        seed = build_search_url(args.query, settings.base_url)
    elif settings.seed_url:
        seed = settings.seed_url
    else:
        parser.error("either a query or SEED_URL is required")

    async with PageFetcher(settings) as fetcher:
        orchestrator = CrawlOrchestrator(fetcher, settings, progress=print)
        result = await orchestrator.run_crawl(seed, args.max_pages)

    if args.save:
        await save_crawl_result(result, seed)
    if args.report:
        generate_report(result, seed_url=seed, query=args.query)
    return result


if __name__ == "__main__":
    asyncio.run(main())
