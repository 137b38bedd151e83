import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from aibyte.digest.classifier import CategoryClassifier
from aibyte.digest.hype import HypeScorer
from aibyte.digest.summarizer import Summarizer
from aibyte.news.hashing import content_hash
from aibyte.news.models import CachedArticle, Category, Lenses, ModelMeta, RawFeedItem, SourceDescriptor
from aibyte.output.formatter import OutputFormatter
from aibyte.pipeline import IngestPipeline
from aibyte.storage.cache import CacheStore

NOW = datetime(2024, 12, 10, 12, 0, tzinfo=timezone.utc)

VALID_SUMMARY = {
    "headline": "Lab ships a faster model",
    "speedrun": "A lab released a faster model that answers questions quickly.",
    "why_it_matters": [
        "Teams can answer customer questions with lower latency.",
        "Costs drop for workloads that were previously too slow.",
    ],
    "lenses": {
        "eli12": "The computer got quicker at answering.",
        "pm": "Support teams can serve more users.",
        "engineer": "Latency improved through a smaller decoder.",
    },
}


class FakeLLM:
    """Stands in for LLMClient: replies per step, records every call."""

    model = "fake-model"

    def __init__(self, responses=None):
        # step -> str | Exception | callable(prompt) -> str
        self.responses = {"summarize": json.dumps(VALID_SUMMARY), "classify": "capabilities_and_how"}
        self.responses.update(responses or {})
        self.calls: list[dict] = []

    async def complete(self, prompt, *, temperature=0.3, max_tokens=1500, step="llm"):
        self.calls.append({"step": step, "prompt": prompt, "temperature": temperature})
        response = self.responses.get(step, "")
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(prompt)
        return response

    def count(self, step: str) -> int:
        return sum(1 for c in self.calls if c["step"] == step)


class FakeFetcher:
    """Returns canned items per source id; an Exception value makes that source fail."""

    def __init__(self, items_by_source: dict):
        self.items_by_source = items_by_source
        self.fetched: list[str] = []

    async def fetch(self, source):
        self.fetched.append(source.id)
        result = self.items_by_source.get(source.id, [])
        if isinstance(result, Exception):
            raise result
        return list(result)


class CountingClassifier(CategoryClassifier):
    def __init__(self, llm):
        super().__init__(llm)
        self.invocations = 0

    async def classify(self, domain, title, lede):
        self.invocations += 1
        return await super().classify(domain, title, lede)


def make_source(id="verge-ai", name="The Verge (AI)", domain="theverge.com") -> SourceDescriptor:
    return SourceDescriptor(id=id, name=name, rss=f"https://{domain}/rss.xml", domain=domain)


def make_item(
    title: str,
    source: SourceDescriptor = None,
    published_at: str = "2024-12-05T09:00:00Z",
    body: str = None,
) -> RawFeedItem:
    source = source or make_source()
    body = body if body is not None else f"{title}. Full story text."
    return RawFeedItem(
        title=title,
        link=f"https://{source.domain}/{title.lower().replace(' ', '-')}",
        published_at=published_at,
        lede=body[:400],
        body=body,
        source=source.name,
        domain=source.domain,
    )


def make_cached(item: RawFeedItem, prompt_version: str = "v2.0", **overrides) -> CachedArticle:
    digest = content_hash(item.title, item.source, item.published_at, item.body)
    fields = dict(
        content_hash=digest,
        share_id="abc123",
        category=Category.CAPABILITIES,
        category_confidence="high",
        title=item.title,
        url=item.link,
        source=item.source,
        published_at=item.published_at,
        raw_excerpt=item.lede,
        raw_body=item.body,
        speedrun="Cached speedrun.",
        why_it_matters=["Cached bullet one.", "Cached bullet two."],
        lenses=Lenses(eli12="Cached eli12.", pm="Cached pm.", engineer="Cached engineer."),
        hype_meter=2,
        model_meta=ModelMeta(model="gpt-4o-mini", prompt_version=prompt_version),
        created_at="2024-12-05T10:00:00Z",
        updated_at="2024-12-05T10:00:00Z",
        processing_order=1733392800000,
    )
    fields.update(overrides)
    return CachedArticle(**fields)


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def cache(tmp_path: Path) -> CacheStore:
    store = CacheStore(tmp_path / "cache")
    store.ensure_dir()
    return store


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    return tmp_path / "public" / "data"


@pytest.fixture
def build_pipeline(fake_llm: FakeLLM, cache: CacheStore, output_dir: Path):
    """Factory for a pipeline wired to fakes; returns (pipeline, classifier)."""

    def _build(sources, items_by_source, **kwargs):
        classifier = CountingClassifier(fake_llm)
        pipeline = IngestPipeline(
            sources=sources,
            fetcher=FakeFetcher(items_by_source),
            classifier=classifier,
            summarizer=Summarizer(fake_llm),
            hype_scorer=HypeScorer(),
            cache=cache,
            formatter=OutputFormatter(output_dir),
            now=lambda: NOW,
            **kwargs,
        )
        return pipeline, classifier

    return _build
