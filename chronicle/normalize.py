"""Title normalization.

Turns a display title into a comparison key: lowercase, no whitespace, no
bracket/quote glyphs and no sentence punctuation, in both Western and CJK
(full-width) forms.  Normalizing an already-normalized key returns it
unchanged.
"""
import re

_WHITESPACE = re.compile(r"\s+")
_BRACKETS = re.compile(r"[「」『』【】〈〉《》（）()\[\]]")
_PUNCTUATION = re.compile(r"[，。、；：！？,.;:!?]")
_QUOTES = re.compile(r"[\"'“”‘’＂＇]")


def normalize_title(title: str) -> str:
    """Return the canonical comparison key for *title*.

    Empty or missing titles yield "" — callers must never treat two empty
    keys as a match.
    """
    if not title:
        return ""
    key = title.lower()
    key = _WHITESPACE.sub("", key)
    key = _BRACKETS.sub("", key)
    key = _PUNCTUATION.sub("", key)
    key = _QUOTES.sub("", key)
    return key.strip()
