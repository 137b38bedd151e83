"""Public feed output.

Writes the JSON artifacts the web front end reads:
- items.json / items-latest.json: rolling recency window
- {Month}_{Year}_News.json: one file per publication month
- metadata.json: index of the month files, newest first
- pattern-latest.json / pattern-{week_id}.json: The Pattern
"""

import calendar
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from ..news.models import ArticleRecord
from ..utils.dates import parse_timestamp, to_iso, utc_now
from ..utils.jsonio import write_json

logger = logging.getLogger(__name__)

LATEST_FILES = ("items.json", "items-latest.json")
METADATA_FILE = "metadata.json"


def sort_records(records: list[ArticleRecord]) -> list[ArticleRecord]:
    """Newest first; processing_order breaks ties between equal timestamps."""
    return sorted(
        records,
        key=lambda r: (parse_timestamp(r.published_at), r.processing_order),
        reverse=True,
    )


@dataclass
class MonthBucket:
    """Articles published in one calendar month."""

    year: int
    month_num: int
    articles: list[ArticleRecord] = field(default_factory=list)

    @property
    def month(self) -> str:
        return f"{calendar.month_name[self.month_num]} {self.year}"

    @property
    def filename(self) -> str:
        return f"{calendar.month_name[self.month_num]}_{self.year}_News.json"


def partition_by_month(records: list[ArticleRecord]) -> list[MonthBucket]:
    """Group records by UTC publication month, newest month first."""
    buckets: dict[tuple[int, int], MonthBucket] = {}
    for record in records:
        published = parse_timestamp(record.published_at)
        key = (published.year, published.month)
        if key not in buckets:
            buckets[key] = MonthBucket(year=published.year, month_num=published.month)
        buckets[key].articles.append(record)

    ordered = [buckets[k] for k in sorted(buckets, reverse=True)]
    for bucket in ordered:
        bucket.articles = sort_records(bucket.articles)
    return ordered


def recent_window(
    records: list[ArticleRecord], days: int, now: Optional[datetime] = None
) -> list[ArticleRecord]:
    """Keep records published within the last ``days`` days."""
    cutoff = (now or utc_now()) - timedelta(days=days)
    return [r for r in records if parse_timestamp(r.published_at) >= cutoff]


class OutputFormatter:
    """Writes the public feed files into one output directory."""

    def __init__(self, output_dir: Path):
        """
        Initialize formatter.

        Args:
            output_dir: Public data directory (e.g. public/data)
        """
        self.output_dir = Path(output_dir)

    def ensure_dir(self) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def write_latest(
        self,
        records: list[ArticleRecord],
        total_in_cache: int,
        generated_at: Optional[datetime] = None,
    ) -> dict:
        """Write the rolling-window feed to items.json and items-latest.json."""
        output = {
            "generated_at": to_iso(generated_at or utc_now()),
            "total_articles": len(records),
            "total_in_cache": total_in_cache,
            "articles": [r.to_public() for r in records],
        }
        for name in LATEST_FILES:
            write_json(self.output_dir / name, output)

        logger.info(
            "[OUTPUT] Wrote %d recent articles (%d in cache) to %s",
            len(records),
            total_in_cache,
            ", ".join(LATEST_FILES),
        )
        return output

    def write_monthly(
        self, records: list[ArticleRecord], generated_at: Optional[datetime] = None
    ) -> dict:
        """Write one file per publication month plus the metadata index."""
        generated = to_iso(generated_at or utc_now())
        buckets = partition_by_month(records)

        months_index = []
        for bucket in buckets:
            write_json(
                self.output_dir / bucket.filename,
                {
                    "month": bucket.month,
                    "year": bucket.year,
                    "total": len(bucket.articles),
                    "generated_at": generated,
                    "articles": [r.to_public() for r in bucket.articles],
                },
            )
            logger.info("[OUTPUT] %s: %d articles", bucket.filename, len(bucket.articles))
            months_index.append(
                {
                    "month": bucket.month,
                    "year": bucket.year,
                    "month_num": bucket.month_num,
                    "filename": bucket.filename,
                    "article_count": len(bucket.articles),
                }
            )

        metadata = {
            "generated_at": generated,
            "total_articles": len(records),
            "total_months": len(months_index),
            "months": months_index,
        }
        write_json(self.output_dir / METADATA_FILE, metadata)
        logger.info("[OUTPUT] %s: %d months indexed", METADATA_FILE, len(months_index))
        return metadata

    def write_pattern(self, pattern: dict, archive: bool = True) -> Path:
        """Write The Pattern to pattern-latest.json (and its weekly archive file)."""
        latest = self.output_dir / "pattern-latest.json"
        write_json(latest, pattern)
        if archive and pattern.get("week_id"):
            write_json(self.output_dir / f"pattern-{pattern['week_id']}.json", pattern)
        return latest
