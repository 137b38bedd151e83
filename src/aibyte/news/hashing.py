"""Content fingerprints and short share identifiers."""

import hashlib
import re


def content_hash(title: str, source: str, published_at: str, body: str) -> str:
    """Fingerprint a feed item for deduplication.

    Title is trimmed and lowercased so re-fetches with trivial title drift
    collapse onto the same entry. Body is hashed verbatim. URL is not part
    of the key.
    """
    key = f"{title.strip().lower()}||{source}||{published_at}||{body}"
    return hashlib.sha256(key.encode("utf-8")).hexdigest()


def share_id(title: str, digest: str) -> str:
    """Build a short share-link id, e.g. "GPT-5 System Card" -> "gsc" + 3 hash chars."""
    suffix = digest[:3]
    words = [
        w for w in re.sub(r"[^a-z0-9\s]", "", title.lower()).split() if len(w) > 2
    ]

    if len(words) >= 2:
        return "".join(w[0] for w in words[:3]) + suffix

    prefix = re.sub(r"[^a-z]", "", title.lower()[:5])
    return prefix + suffix
