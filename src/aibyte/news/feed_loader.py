"""Load feed sources from JSON configuration."""

import json
import logging
from pathlib import Path
from typing import Optional

from .models import SourceDescriptor

logger = logging.getLogger(__name__)

_DEFAULT_SOURCES = Path(__file__).parent.parent / "config" / "sources.json"


def load_sources(path: Optional[Path] = None) -> list[SourceDescriptor]:
    """
    Load source descriptors from JSON file.

    Args:
        path: Path to sources.json. Defaults to the packaged source list.

    Returns:
        List of enabled SourceDescriptor objects, in file order.

    Raises:
        FileNotFoundError: If the sources file does not exist
        KeyError: If an entry is missing a required field
    """
    if path is None:
        path = _DEFAULT_SOURCES

    with open(path) as f:
        data = json.load(f)

    sources = []
    seen_ids: set[str] = set()
    for entry in data.get("sources", []):
        source = SourceDescriptor(
            id=entry["id"],
            name=entry["name"],
            rss=entry["rss"],
            domain=entry["domain"],
            enabled=entry.get("enabled", True),
        )
        if source.id in seen_ids:
            logger.warning("[SOURCES] Duplicate source id %s, keeping first", source.id)
            continue
        seen_ids.add(source.id)
        if source.enabled:
            sources.append(source)

    logger.info("[SOURCES] Loaded %d enabled sources from %s", len(sources), path.name)
    return sources
