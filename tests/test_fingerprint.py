"""Tests for chronicle.fingerprint."""
from chronicle.fingerprint import content_fingerprint, fingerprint_text


class TestFingerprintText:
    def test_whitespace_and_case_ignored(self):
        assert fingerprint_text("Title", "Some  Body\ntext") == "titlesomebodytext"

    def test_markup_removed(self):
        assert fingerprint_text("T", "<p>Hello <b>world</b></p>") == "thelloworld"

    def test_empty_parts_skipped(self):
        assert fingerprint_text("Title", "") == fingerprint_text("Title")


class TestContentFingerprint:
    def test_deterministic(self):
        assert content_fingerprint("A title", "body") == content_fingerprint("A title", "body")

    def test_hex_md5_length(self):
        fp = content_fingerprint("A title", "body")
        assert len(fp) == 32
        int(fp, 16)

    def test_different_content_differs(self):
        assert content_fingerprint("A title", "body one") != content_fingerprint("A title", "body two")

    def test_syndicated_copy_matches_despite_formatting(self):
        wire = content_fingerprint("Storm nears", "<p>The observatory said.</p>")
        plain = content_fingerprint("Storm  nears", "The observatory said.")
        assert wire == plain
