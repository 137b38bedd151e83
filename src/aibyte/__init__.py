"""AIByte: AI-news ingest, summarization and feed publishing."""

__version__ = "1.0.0"
