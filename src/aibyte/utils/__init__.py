"""LLM client, retries, cost tracking and small helpers."""
