"""Character-bigram similarity shared by every dedup call site.

The score is the Dice coefficient over bigram multisets::

    2 * |bigrams(a) & bigrams(b)| / (|bigrams(a)| + |bigrams(b)|)

Bigrams work the same for space-free CJK titles and for normalized Latin
titles, which is why the classifier, the feed filter and the flagger all use
this one function and differ only in threshold.
"""
from collections import Counter


def bigrams(text: str) -> Counter:
    """Multiset of adjacent character pairs in *text*."""
    return Counter(text[i:i + 2] for i in range(len(text) - 1))


def bigram_similarity(a: str, b: str) -> float:
    """Return a symmetric similarity score in [0, 1].

    Strings shorter than two characters compare by equality.  Empty strings
    never match anything, including each other.
    """
    if not a or not b:
        return 0.0
    if len(a) < 2 or len(b) < 2:
        return 1.0 if a == b else 0.0
    if a == b:
        return 1.0
    ba, bb = bigrams(a), bigrams(b)
    overlap = sum((ba & bb).values())
    return 2.0 * overlap / (sum(ba.values()) + sum(bb.values()))
