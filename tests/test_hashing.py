from aibyte.news.hashing import content_hash, share_id

BASE = dict(
    title="OpenAI releases o3",
    source="OpenAI",
    published_at="2024-12-05T09:00:00Z",
    body="The model is available today.",
)


class TestContentHash:
    def test_deterministic(self):
        assert content_hash(**BASE) == content_hash(**BASE)

    def test_sha256_hex(self):
        digest = content_hash(**BASE)
        assert len(digest) == 64
        int(digest, 16)

    def test_title_case_and_whitespace_normalized(self):
        drifted = dict(BASE, title="  OPENAI Releases O3 \n")
        assert content_hash(**drifted) == content_hash(**BASE)

    def test_each_field_changes_hash(self):
        original = content_hash(**BASE)
        for key, value in [
            ("title", "OpenAI releases o4"),
            ("source", "Google DeepMind"),
            ("published_at", "2024-12-06T09:00:00Z"),
            ("body", "The model is available tomorrow."),
        ]:
            assert content_hash(**dict(BASE, **{key: value})) != original, key

    def test_body_is_not_normalized(self):
        padded = dict(BASE, body=" The model is available today.")
        upper = dict(BASE, body="THE MODEL IS AVAILABLE TODAY.")
        assert content_hash(**padded) != content_hash(**BASE)
        assert content_hash(**upper) != content_hash(**BASE)


class TestShareId:
    def test_initials_plus_hash_suffix(self):
        assert share_id("GPT-5 System Card", "abcdef") == "gscabc"

    def test_at_most_three_initials(self):
        assert share_id("DeepSeek Chinese Startup Shakes Markets", "123456") == "dcs123"

    def test_short_words_skipped(self):
        # "is" is too short to count as a significant word
        assert share_id("AI Brainrot is Real", "9f0000") == "br9f0"

    def test_fallback_for_single_word_titles(self):
        assert share_id("Gemini", "fff000") == "gemini"[:5] + "fff"

    def test_stable_for_same_inputs(self):
        assert share_id("Same Title Here", "0a1b2c") == share_id("Same Title Here", "0a1b2c")
