import json

import pytest

from aibyte.digest.summarizer import (
    PROMPT_VERSION,
    Summarizer,
    parse_summary,
    placeholder_summary,
    strip_code_fence,
)
from tests.conftest import VALID_SUMMARY, FakeLLM


class TestParseSummary:
    def test_bare_json(self):
        summary = parse_summary(json.dumps(VALID_SUMMARY))
        assert summary.speedrun == VALID_SUMMARY["speedrun"]
        assert summary.lenses.engineer == VALID_SUMMARY["lenses"]["engineer"]
        assert summary.headline == VALID_SUMMARY["headline"]

    def test_fenced_json(self):
        text = "```json\n" + json.dumps(VALID_SUMMARY) + "\n```"
        assert parse_summary(text) is not None

    def test_headline_is_optional(self):
        data = {k: v for k, v in VALID_SUMMARY.items() if k != "headline"}
        assert parse_summary(json.dumps(data)).headline is None

    def test_extra_bullets_truncated_to_two(self):
        data = dict(VALID_SUMMARY, why_it_matters=["one", "two", "three"])
        assert parse_summary(json.dumps(data)).why_it_matters == ["one", "two"]

    def test_single_bullet_is_malformed(self):
        data = dict(VALID_SUMMARY, why_it_matters=["only one"])
        assert parse_summary(json.dumps(data)) is None

    def test_missing_lens_is_malformed(self):
        data = dict(VALID_SUMMARY, lenses={"eli12": "x", "pm": "y"})
        assert parse_summary(json.dumps(data)) is None

    def test_non_object_json_is_malformed(self):
        assert parse_summary("[1, 2, 3]") is None

    def test_prose_is_malformed(self):
        assert parse_summary("Sure! Here is a summary of the article.") is None


def test_strip_code_fence():
    assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fence('```\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fence('{"a": 1}') == '{"a": 1}'


def test_placeholder_has_every_field():
    summary = placeholder_summary()
    assert len(summary.why_it_matters) == 2
    texts = [summary.speedrun, *summary.why_it_matters, summary.lenses.eli12, summary.lenses.pm, summary.lenses.engineer]
    assert all("unable to summarize" in t.lower() for t in texts)


class TestSummarizer:
    @pytest.mark.asyncio
    async def test_summarize(self):
        llm = FakeLLM()
        result = await Summarizer(llm).summarize("Title", "Lede", "Body")

        assert not result.placeholder
        assert result.model == "fake-model"
        assert result.prompt_version == PROMPT_VERSION
        assert result.summary.why_it_matters == VALID_SUMMARY["why_it_matters"]
        assert "Title\n\nLede\n\nBody" in llm.calls[0]["prompt"]
        assert llm.calls[0]["temperature"] == 0.3

    @pytest.mark.asyncio
    async def test_malformed_response_yields_placeholder(self):
        llm = FakeLLM({"summarize": "not json at all {"})
        result = await Summarizer(llm).summarize("Title", "Lede", "Body")

        assert result.placeholder
        data = result.summary.model_dump()
        for key in ("speedrun", "why_it_matters", "lenses"):
            assert key in data
        assert set(data["lenses"]) == {"eli12", "pm", "engineer"}

    @pytest.mark.asyncio
    async def test_empty_response_yields_placeholder(self):
        result = await Summarizer(FakeLLM({"summarize": ""})).summarize("T", "L", "B")
        assert result.placeholder

    @pytest.mark.asyncio
    async def test_call_failure_propagates(self):
        llm = FakeLLM({"summarize": TimeoutError("model timed out")})
        with pytest.raises(TimeoutError):
            await Summarizer(llm).summarize("Title", "Lede", "Body")
