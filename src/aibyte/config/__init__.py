"""Settings and static source/lexicon configuration."""
