"""Content fingerprints for exact-duplicate detection."""
import hashlib
import re
from functools import lru_cache

from bs4 import BeautifulSoup

_WHITESPACE = re.compile(r"\s+")


def _strip_markup(text: str) -> str:
    if "<" not in text:
        return text
    return BeautifulSoup(text, "html.parser").get_text(" ")


@lru_cache(maxsize=4096)
def fingerprint_text(*parts: str) -> str:
    """Canonical text the fingerprint is computed over.

    Parts are joined in the order given, markup is dropped, whitespace is
    removed and the result lowercased.
    """
    joined = "".join(p for p in parts if p)
    return _WHITESPACE.sub("", _strip_markup(joined)).lower()


def content_fingerprint(*parts: str) -> str:
    """MD5 hex digest of ``fingerprint_text(*parts)``."""
    return hashlib.md5(fingerprint_text(*parts).encode("utf-8")).hexdigest()
