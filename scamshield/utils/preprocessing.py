import hashlib
from urllib.parse import urlparse


def normalize_url(url: str) -> str:
    url = (url or "").strip()
    return url


def fingerprint(content: str) -> str:
    """
    SHA-256 hex digest of trimmed, case-folded content.

    Used as the dedup/cache key; identical normalized content always maps to
    the same 64-character fingerprint.
    """
    normalized = (content or "").strip().casefold()
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest()


def is_url(text: str) -> bool:
    """True when the whole (trimmed) input is a single http(s) URL."""
    candidate = (text or "").strip()
    if not candidate or any(ch.isspace() for ch in candidate):
        return False
    try:
        parsed = urlparse(candidate)
    except ValueError:
        return False
    return parsed.scheme.lower() in ("http", "https") and bool(parsed.hostname)
