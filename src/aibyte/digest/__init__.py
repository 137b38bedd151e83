"""Classification, summarization, hype scoring and The Pattern."""
