"""Ingest pipeline: fetch, deduplicate, classify, summarize, score, publish.

Manages one run end to end:
1. Load every cached article and the set of known content hashes
2. Fetch all sources (each may fail independently)
3. Process unseen items through a bounded worker pool
4. Sort, partition by month, window by recency and write the public feed
"""

import asyncio
import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Callable, Optional

from .config.settings import Settings
from .digest.classifier import CategoryClassifier
from .digest.hype import HypeScorer, load_lexicon
from .digest.summarizer import PROMPT_VERSION, Summarizer
from .news.feed_loader import load_sources
from .news.fetcher import FeedFetcher
from .news.hashing import content_hash, share_id
from .news.models import ArticleRecord, CachedArticle, ModelMeta, RawFeedItem, SourceDescriptor
from .output.formatter import OutputFormatter, recent_window, sort_records
from .storage.cache import CacheStore
from .utils.cost_tracker import RunCosts
from .utils.dates import to_iso, utc_now

logger = logging.getLogger(__name__)


@dataclass
class WorkItem:
    """A new feed item scheduled for processing."""

    item: RawFeedItem
    content_hash: str
    processing_order: int


@dataclass
class RunStats:
    """Counters for one pipeline run."""

    sources_ok: int = 0
    sources_failed: int = 0
    loaded_from_cache: int = 0
    reused: int = 0
    new_articles: int = 0
    failed_items: int = 0
    refreshed: int = 0
    total_in_cache: int = 0
    window_articles: int = 0
    duration_seconds: float = 0.0
    llm_calls: int = 0
    llm_cost_usd: float = 0.0
    costs: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RunResult:
    """Sorted records (all of them, not just the window) plus run stats."""

    records: list[ArticleRecord]
    stats: RunStats
    started_at: datetime


class IngestPipeline:
    """
    Runs the ingest pipeline over a fixed set of sources.

    All collaborators are passed in, so one LLM client and one config object
    live for exactly one run and tests can substitute fakes.
    """

    def __init__(
        self,
        sources: list[SourceDescriptor],
        fetcher,
        classifier: CategoryClassifier,
        summarizer: Summarizer,
        hype_scorer: HypeScorer,
        cache: CacheStore,
        formatter: OutputFormatter,
        items_per_source: int = 4,
        max_concurrency: int = 4,
        window_days: int = 30,
        refresh_stale: bool = False,
        costs: Optional[RunCosts] = None,
        now: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the pipeline.

        Args:
            sources: Sources to fetch, in processing order
            fetcher: Object exposing ``async fetch(source) -> list[RawFeedItem]``
            classifier: Category classifier
            summarizer: Article summarizer
            hype_scorer: Hype meter
            cache: Article cache
            formatter: Public output writer
            items_per_source: Newest entries considered per source
            max_concurrency: Items processed at the same time
            window_days: Recency window for items.json
            refresh_stale: Re-summarize cached entries from older prompt versions
            costs: LLM cost accumulator reported in the run stats
            now: Clock, injectable for tests
        """
        self.sources = sources
        self.fetcher = fetcher
        self.classifier = classifier
        self.summarizer = summarizer
        self.hype_scorer = hype_scorer
        self.cache = cache
        self.formatter = formatter
        self.items_per_source = items_per_source
        self.max_concurrency = max_concurrency
        self.window_days = window_days
        self.refresh_stale = refresh_stale
        self.costs = costs
        self.now = now

    @classmethod
    def from_settings(cls, settings: Settings, llm, fetcher=None) -> "IngestPipeline":
        """Wire the default collaborators from settings and an LLM client."""
        if fetcher is None:
            fetcher = FeedFetcher(
                items_per_source=settings.items_per_source,
                timeout=settings.feed_timeout_seconds,
                max_attempts=settings.feed_max_attempts,
            )
        return cls(
            sources=load_sources(settings.sources_file),
            fetcher=fetcher,
            classifier=CategoryClassifier(llm),
            summarizer=Summarizer(llm),
            hype_scorer=HypeScorer(load_lexicon(settings.hype_lexicon_file)),
            cache=CacheStore(settings.cache_dir),
            formatter=OutputFormatter(settings.output_dir),
            items_per_source=settings.items_per_source,
            max_concurrency=settings.max_concurrency,
            window_days=settings.window_days,
            refresh_stale=settings.refresh_stale,
            costs=getattr(llm, "costs", None),
        )

    async def run(self) -> RunResult:
        """
        Run the full pipeline once.

        Raises:
            OSError: If the cache or output directory cannot be created, or
                the public feed cannot be written
        """
        started_at = self.now()
        t0 = time.monotonic()
        stats = RunStats()
        semaphore = asyncio.Semaphore(self.max_concurrency)

        self.cache.ensure_dir()
        self.formatter.ensure_dir()

        # Step 1: Load everything already cached
        cached = list(self.cache.load_all())
        records = {a.content_hash: a.to_record() for a in cached}
        stats.loaded_from_cache = len(records)
        logger.info("[PIPELINE] Starting with %d cached articles", len(records))

        if self.refresh_stale:
            stale = [a for a in cached if a.model_meta.prompt_version != PROMPT_VERSION]
            refreshed = await asyncio.gather(*(self._refresh(a, semaphore) for a in stale))
            for article in refreshed:
                if article is not None:
                    records[article.content_hash] = article.to_record()
                    stats.refreshed += 1

        # Step 2: Fetch sources
        batches = await self._fetch_sources(stats)

        # Step 3: Schedule unseen items, then process them in parallel
        work = self._plan(batches, set(records), started_at, stats)
        results = await asyncio.gather(*(self._process(w, semaphore) for w in work))
        for record in results:
            if record is None:
                stats.failed_items += 1
                continue
            records[record.id] = record
            stats.new_articles += 1

        # Step 4: Sort, partition and window
        ordered = sort_records(list(records.values()))
        stats.total_in_cache = len(ordered)
        self.formatter.write_monthly(ordered, generated_at=started_at)
        window = recent_window(ordered, self.window_days, now=started_at)
        self.formatter.write_latest(window, total_in_cache=len(ordered), generated_at=started_at)
        stats.window_articles = len(window)

        stats.duration_seconds = time.monotonic() - t0
        if self.costs is not None:
            stats.llm_calls = self.costs.calls
            stats.llm_cost_usd = round(self.costs.cost_usd, 6)
            stats.costs = self.costs.summary()

        logger.info(
            "[PIPELINE] Done: %d new, %d reused, %d failed, %d refreshed; "
            "%d sources ok, %d failed; %d total (%d in window)",
            stats.new_articles,
            stats.reused,
            stats.failed_items,
            stats.refreshed,
            stats.sources_ok,
            stats.sources_failed,
            stats.total_in_cache,
            stats.window_articles,
        )
        return RunResult(records=ordered, stats=stats, started_at=started_at)

    async def _fetch_sources(
        self, stats: RunStats
    ) -> list[tuple[SourceDescriptor, list[RawFeedItem]]]:
        """Fetch all sources concurrently; a failed source is logged and skipped."""
        results = await asyncio.gather(
            *(self.fetcher.fetch(s) for s in self.sources), return_exceptions=True
        )

        batches = []
        for source, result in zip(self.sources, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                stats.sources_failed += 1
                logger.error("[PIPELINE] Failed to fetch source %s: %s", source.name, result)
                continue
            stats.sources_ok += 1
            batches.append((source, list(result)[: self.items_per_source]))
        return batches

    def _plan(
        self,
        batches: list[tuple[SourceDescriptor, list[RawFeedItem]]],
        known: set[str],
        started_at: datetime,
        stats: RunStats,
    ) -> list[WorkItem]:
        """Pick unseen items and stamp them with their arrival order.

        Each hash is scheduled at most once, so no two workers ever write the
        same cache file.
        """
        base_order = int(started_at.timestamp() * 1000)
        scheduled: set[str] = set()
        work = []

        for source, items in batches:
            for item in items:
                try:
                    digest = content_hash(item.title, item.source, item.published_at, item.body)
                except Exception as e:
                    stats.failed_items += 1
                    logger.error("[PIPELINE] Could not hash %r from %s: %s", item.title, source.name, e)
                    continue

                if digest in known or digest in scheduled:
                    stats.reused += 1
                    logger.debug("[PIPELINE] Already have: %s", item.title[:50])
                    continue

                scheduled.add(digest)
                work.append(WorkItem(item=item, content_hash=digest, processing_order=base_order + len(work)))

        logger.info("[PIPELINE] %d new items to process", len(work))
        return work

    async def _process(self, work: WorkItem, semaphore: asyncio.Semaphore) -> Optional[ArticleRecord]:
        """Classify, summarize, score and cache one item; None on failure."""
        item = work.item
        async with semaphore:
            try:
                article = await self._build_article(work)
                self.cache.write(article)
            except Exception as e:
                logger.error("[PIPELINE] Failed to process %r (%s): %s", item.title[:60], item.source, e)
                return None

        logger.info("[PIPELINE] Cached new article: %s", item.title[:60])
        return article.to_record()

    async def _build_article(self, work: WorkItem) -> CachedArticle:
        item = work.item
        classification = await self.classifier.classify(item.domain, item.title, item.lede)
        result = await self.summarizer.summarize(item.title, item.lede, item.body)
        summary = result.summary
        hype = self.hype_scorer.score(
            item.title, item.source, classification.category, summary.as_text()
        )

        timestamp = to_iso(self.now())
        return CachedArticle(
            content_hash=work.content_hash,
            share_id=share_id(item.title, work.content_hash),
            category=classification.category,
            category_confidence=classification.confidence,
            title=item.title,
            headline=summary.headline,
            url=item.link,
            source=item.source,
            published_at=item.published_at,
            raw_excerpt=item.lede,
            raw_body=item.body,
            speedrun=summary.speedrun,
            why_it_matters=summary.why_it_matters,
            lenses=summary.lenses,
            hype_meter=hype,
            model_meta=ModelMeta(model=result.model, prompt_version=result.prompt_version),
            created_at=timestamp,
            updated_at=timestamp,
            processing_order=work.processing_order,
        )

    async def _refresh(
        self, article: CachedArticle, semaphore: asyncio.Semaphore
    ) -> Optional[CachedArticle]:
        """Re-summarize a cached entry produced by an older prompt version.

        Identity fields (hash, share id, category, created_at, processing
        order) are kept; only the summary, hype meter and model metadata change.
        """
        async with semaphore:
            try:
                result = await self.summarizer.summarize(
                    article.title, article.raw_excerpt, article.raw_body
                )
                if result.placeholder:
                    logger.warning(
                        "[PIPELINE] Keeping %s prompt output for %s, refresh was malformed",
                        article.model_meta.prompt_version,
                        article.content_hash[:12],
                    )
                    return None

                summary = result.summary
                refreshed = article.model_copy(
                    update={
                        "headline": summary.headline,
                        "speedrun": summary.speedrun,
                        "why_it_matters": summary.why_it_matters,
                        "lenses": summary.lenses,
                        "hype_meter": self.hype_scorer.score(
                            article.title, article.source, article.category, summary.as_text()
                        ),
                        "model_meta": ModelMeta(
                            model=result.model, prompt_version=result.prompt_version
                        ),
                        "updated_at": to_iso(self.now()),
                    }
                )
                self.cache.write(refreshed)
            except Exception as e:
                logger.error("[PIPELINE] Failed to refresh %s: %s", article.content_hash[:12], e)
                return None

        logger.info(
            "[PIPELINE] Refreshed %s from prompt %s",
            article.content_hash[:12],
            article.model_meta.prompt_version,
        )
        return refreshed
