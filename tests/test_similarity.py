"""Tests for chronicle.similarity — bigram Dice coefficient."""
import pytest

from chronicle.similarity import bigram_similarity, bigrams


class TestBigrams:
    def test_multiset(self):
        assert bigrams("aaaa")["aa"] == 3

    def test_short_string_has_none(self):
        assert sum(bigrams("a").values()) == 0


class TestBigramSimilarity:
    def test_reflexive(self):
        assert bigram_similarity("typhoonsignal", "typhoonsignal") == 1.0
        assert bigram_similarity("颱風", "颱風") == 1.0

    @pytest.mark.parametrize("a,b", [
        ("abcd", "abce"),
        ("typhoonsignalno8", "signalno8typhoon"),
        ("八號風球生效", "八號風球取消"),
        ("x", "xy"),
    ])
    def test_symmetric(self, a, b):
        assert bigram_similarity(a, b) == bigram_similarity(b, a)

    def test_dice_value(self):
        # ab,bc,cd vs ab,bc,ce → 2 shared of 3 + 3
        assert bigram_similarity("abcd", "abce") == pytest.approx(4 / 6)

    def test_multiset_counts(self):
        # aa x3 vs aa x1 → 1 shared
        assert bigram_similarity("aaaa", "aa") == pytest.approx(0.5)

    def test_exact_boundary_value(self):
        assert bigram_similarity("abcxyz", "abcpqr") == 0.4

    def test_disjoint(self):
        assert bigram_similarity("abc", "xyz") == 0.0

    def test_short_strings_compare_by_equality(self):
        assert bigram_similarity("a", "a") == 1.0
        assert bigram_similarity("a", "b") == 0.0
        assert bigram_similarity("a", "ab") == 0.0

    def test_empty_never_matches(self):
        assert bigram_similarity("", "") == 0.0
        assert bigram_similarity("", "abc") == 0.0

    def test_range(self):
        score = bigram_similarity("typhoonsignalno8issued", "typhoonsignalno8cancelled")
        assert 0.0 < score < 1.0
