"""RSS feed fetching for the ingest pipeline.

Downloads each source's feed over HTTPS with a timeout and bounded retries,
parses it with feedparser and keeps only the newest few entries.
"""

import html
import logging
import re
from datetime import datetime, timezone
from typing import Optional

import feedparser
import httpx

from ..utils.dates import to_iso, utc_now
from ..utils.retry import is_retryable_http_error, retrying
from .models import RawFeedItem, SourceDescriptor

logger = logging.getLogger(__name__)

LEDE_LENGTH = 400

_HEADERS = {"User-Agent": "aibyte-ingest/1.0 (RSS reader)"}


class FeedFetchError(Exception):
    """A feed could not be downloaded or parsed."""


class FeedFetcher:
    """
    Fetches and parses source feeds.

    Each call fetches one source; the pipeline decides how failures are
    handled, so errors propagate as FeedFetchError or httpx exceptions.
    """

    def __init__(
        self,
        items_per_source: int = 4,
        timeout: float = 30.0,
        max_attempts: int = 3,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize feed fetcher.

        Args:
            items_per_source: How many of the newest entries to keep per feed
            timeout: Per-request timeout in seconds
            max_attempts: Total attempts per feed, including the first
            client: Shared HTTP client (one is created per call if omitted)
        """
        self.items_per_source = items_per_source
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.client = client

    async def fetch(self, source: SourceDescriptor) -> list[RawFeedItem]:
        """
        Fetch the newest entries of one source.

        Returns:
            Up to items_per_source RawFeedItem, in feed order

        Raises:
            FeedFetchError: If the body is not a parseable feed
            httpx.HTTPError: If the request still fails after retries
        """
        fetched_at = utc_now()
        content = await retrying("FETCHER", self.max_attempts, is_retryable_http_error)(
            self._download, source.rss
        )
        items = parse_feed(content, source, self.items_per_source, fetched_at)
        logger.info("[FETCHER] %s: %d items", source.name, len(items))
        return items

    async def _download(self, url: str) -> bytes:
        if self.client is not None:
            return await self._get(self.client, url)
        async with httpx.AsyncClient(
            follow_redirects=True, timeout=self.timeout, headers=_HEADERS
        ) as client:
            return await self._get(client, url)

    async def _get(self, client: httpx.AsyncClient, url: str) -> bytes:
        response = await client.get(url, timeout=self.timeout)
        response.raise_for_status()
        return response.content


def parse_feed(
    content: bytes,
    source: SourceDescriptor,
    limit: int,
    fetched_at: Optional[datetime] = None,
) -> list[RawFeedItem]:
    """Parse raw feed bytes into at most ``limit`` RawFeedItem."""
    feed = feedparser.parse(content)
    if feed.bozo and not feed.entries:
        raise FeedFetchError(f"{source.name}: not a valid feed ({feed.get('bozo_exception')})")

    fetched_at = fetched_at or utc_now()
    items = []
    for entry in feed.entries[:limit]:
        title = entry.get("title", "") or ""
        text = _clean_text(_entry_text(entry))
        published = _parse_date(entry)
        if published is None:
            logger.debug("[FETCHER] %s: no date on %r, using fetch time", source.name, title[:50])
            published = fetched_at

        items.append(
            RawFeedItem(
                title=title,
                link=entry.get("link", "") or "",
                published_at=to_iso(published),
                lede=text[:LEDE_LENGTH],
                body=text or title,
                source=source.name,
                domain=source.domain,
            )
        )
    return items


def _entry_text(entry: feedparser.FeedParserDict) -> str:
    summary = entry.get("summary")
    if summary:
        return summary
    content = entry.get("content") or []
    if content:
        return content[0].get("value", "") or ""
    return ""


def _parse_date(entry: feedparser.FeedParserDict) -> Optional[datetime]:
    """Parse entry date from various RSS formats."""
    for field in ("published_parsed", "updated_parsed"):
        parsed = entry.get(field)
        if parsed:
            # Convert time.struct_time to datetime with UTC timezone
            return datetime(*parsed[:6], tzinfo=timezone.utc)
    return None


def _clean_text(text: str) -> str:
    """Strip HTML tags, unescape entities and collapse whitespace."""
    clean = re.sub(r"<[^>]+>", "", text)
    return re.sub(r"\s+", " ", html.unescape(clean)).strip()
