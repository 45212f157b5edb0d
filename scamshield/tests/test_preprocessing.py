"""Tests for content fingerprinting and URL detection."""

from scamshield.utils.preprocessing import fingerprint, is_url, normalize_url


class TestFingerprint:
    def test_deterministic(self):
        assert fingerprint("Claim your prize now") == fingerprint("Claim your prize now")

    def test_case_and_surrounding_whitespace_collide(self):
        """Trimmed, case-folded variants share a fingerprint."""
        assert fingerprint("  Claim Your PRIZE now\n") == fingerprint("claim your prize now")

    def test_different_content_differs(self):
        assert fingerprint("claim your prize") != fingerprint("claim your prizes")

    def test_fixed_length_hex(self):
        value = fingerprint("anything")
        assert len(value) == 64
        int(value, 16)

    def test_empty_input(self):
        """Empty and missing content still fingerprint."""
        assert fingerprint("") == fingerprint("   ")
        assert fingerprint(None) == fingerprint("")


class TestIsUrl:
    def test_plain_urls(self):
        assert is_url("https://example.com")
        assert is_url("  http://paypal-secure-login.tk/verify  ")

    def test_text_containing_a_url_is_not_a_url(self):
        assert not is_url("check this out https://example.com")

    def test_other_schemes_rejected(self):
        assert not is_url("ftp://example.com/file")
        assert not is_url("javascript:alert(1)")

    def test_missing_host(self):
        assert not is_url("https://")
        assert not is_url("")


def test_normalize_url_trims():
    assert normalize_url("  https://example.com/a ") == "https://example.com/a"
