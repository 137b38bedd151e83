"""Prompt templates for classification, summarization and The Pattern."""

from .loader import render

__all__ = ["render"]
