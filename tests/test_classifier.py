import pytest

from aibyte.digest.classifier import CategoryClassifier, rule_classify
from aibyte.news.models import Category
from tests.conftest import FakeLLM


class TestRuleClassify:
    def test_research_domain_routes_to_capabilities(self):
        assert (
            rule_classify("openai.com", "Scaling laws for reasoning models", "New research results")
            == Category.CAPABILITIES
        )

    def test_research_domain_with_deployment_for_customers(self):
        result = rule_classify(
            "openai.com",
            "OpenAI launches ChatGPT Enterprise",
            "Now rolling out to business customers worldwide",
        )
        assert result == Category.IN_ACTION

    def test_research_domain_launch_without_audience_is_undecided(self):
        assert rule_classify("deepmind.google", "DeepMind launches a new model", "") is None

    def test_research_domain_launch_falls_through_to_policy(self):
        result = rule_classify("deepmind.google", "DeepMind launches AI safety policy framework", "")
        assert result == Category.TRENDS

    def test_deployment_with_audience_signal(self):
        result = rule_classify(
            "theverge.com", "Retailer rolls out AI assistant", "Millions of users get access"
        )
        assert result == Category.IN_ACTION

    def test_deployment_without_audience_is_not_enough(self):
        assert rule_classify("theverge.com", "Startup announces beta", "") is None

    def test_policy_language_routes_to_trends(self):
        assert (
            rule_classify("aibusiness.com", "EU finalizes AI regulation", "The rules apply next year")
            == Category.TRENDS
        )

    def test_labor_language_routes_to_trends(self):
        assert rule_classify("reddit.com", "Will AI take our jobs?", "") == Category.TRENDS

    def test_keywords_match_word_starts_only(self):
        # "flaw" must not trigger the "law" keyword
        assert rule_classify("theverge.com", "A flaw in the attention kernel", "") is None

    def test_undecided(self):
        assert rule_classify("theverge.com", "Something odd happened", "Nobody knows why") is None


class TestCategoryClassifier:
    @pytest.mark.asyncio
    async def test_rules_skip_llm(self):
        llm = FakeLLM()
        result = await CategoryClassifier(llm).classify("openai.com", "Interpretability research", "")
        assert result.category == Category.CAPABILITIES
        assert result.confidence == "high"
        assert result.method == "rules"
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_tie_break_valid_token(self):
        llm = FakeLLM({"classify": "trends_risks_outlook"})
        result = await CategoryClassifier(llm).classify("theverge.com", "Something odd happened", "")
        assert result.category == Category.TRENDS
        assert result.category.value == "trends_risks_outlook"
        assert result.confidence == "medium"
        assert llm.count("classify") == 1
        assert llm.calls[0]["temperature"] == 0

    @pytest.mark.asyncio
    async def test_tie_break_strips_whitespace(self):
        llm = FakeLLM({"classify": "  in_action_real_world\n"})
        result = await CategoryClassifier(llm).tie_break("Something odd happened", "")
        assert result.category == Category.IN_ACTION
        assert result.confidence == "medium"

    @pytest.mark.asyncio
    async def test_tie_break_garbage_falls_back(self):
        llm = FakeLLM({"classify": "I think this is about robots!"})
        result = await CategoryClassifier(llm).classify("theverge.com", "Something odd happened", "")
        assert result.category == Category.CAPABILITIES
        assert result.confidence == "low"
        assert result.method == "fallback"

    @pytest.mark.asyncio
    async def test_tie_break_call_failure_falls_back(self):
        llm = FakeLLM({"classify": RuntimeError("connection reset")})
        result = await CategoryClassifier(llm).classify("theverge.com", "Something odd happened", "")
        assert result.category == Category.CAPABILITIES
        assert result.confidence == "low"

    @pytest.mark.asyncio
    async def test_prompt_contains_headline_and_dek(self):
        llm = FakeLLM({"classify": "capabilities_and_how"})
        await CategoryClassifier(llm).tie_break("Odd headline", "Odd dek")
        prompt = llm.calls[0]["prompt"]
        assert "Headline: Odd headline" in prompt
        assert "Dek: Odd dek" in prompt
