"""Configuration settings for the AIByte ingest pipeline."""

from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

# Load .env file
load_dotenv()

_PACKAGE_DIR = Path(__file__).parent.parent


class Settings(BaseSettings):
    """Pipeline settings loaded from environment variables.

    Built once by the CLI and handed to the pipeline, fetcher and LLM client;
    nothing in the package reads a global instance.
    """

    # API Keys
    openai_api_key: str = ""

    # LLM Configuration
    llm_model: str = "gpt-4o-mini"
    llm_timeout_seconds: float = 60.0
    llm_max_attempts: int = Field(default=3, ge=1)

    # Feed Fetching
    feed_timeout_seconds: float = 30.0
    feed_max_attempts: int = Field(default=3, ge=1)
    items_per_source: int = Field(default=4, ge=4, le=8)

    # Processing
    max_concurrency: int = Field(default=4, ge=1)
    window_days: int = Field(default=30, ge=1)
    refresh_stale: bool = False

    # The Pattern (weekly synthesis)
    pattern_days: int = Field(default=7, ge=1)
    pattern_min_articles: int = Field(default=3, ge=1)

    # Paths
    cache_dir: Path = Path("data") / "cache"
    output_dir: Path = Path("public") / "data"
    sources_file: Path = _PACKAGE_DIR / "config" / "sources.json"
    hype_lexicon_file: Path = _PACKAGE_DIR / "config" / "hype_lexicon.yaml"

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"
