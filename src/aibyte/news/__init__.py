"""Feed sources, fetching, hashing and article models."""

from .hashing import content_hash, share_id
from .models import ArticleRecord, CachedArticle, Category, RawFeedItem, SourceDescriptor

__all__ = [
    "ArticleRecord",
    "CachedArticle",
    "Category",
    "RawFeedItem",
    "SourceDescriptor",
    "content_hash",
    "share_id",
]
