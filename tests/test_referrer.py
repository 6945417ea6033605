"""Tests for the referrer canonicalizer."""

import pytest

from strata.aggregation.referrer import canonicalize, canonicalize_records, infer_medium


class TestCanonicalize:
    """Tests for canonicalize()."""

    @pytest.mark.parametrize("raw", ["", None, "   "])
    def test_blank_is_direct(self, raw) -> None:
        assert canonicalize(raw) == ("(direct)", "none")

    def test_search_url(self) -> None:
        result = canonicalize("https://www.google.com/search?q=x")
        assert result.source == "google.com"
        assert result.medium == "organic"

    def test_strips_scheme_www_path_and_port(self) -> None:
        assert canonicalize("http://www.example.com:8080/blog/post#top").source == "example.com"

    def test_lowercases_host(self) -> None:
        assert canonicalize("News.Ycombinator.com/item?id=1").source == "news.ycombinator.com"

    @pytest.mark.parametrize(
        "raw, source, medium",
        [
            ("https://t.co/abc123", "twitter.com", "social"),
            ("l.facebook.com", "facebook.com", "social"),
            ("https://lnkd.in/xyz", "linkedin.com", "social"),
            ("youtu.be/video", "youtube.com", "social"),
            ("com.google.android.gm", "mail.google.com", "email"),
        ],
    )
    def test_aliases(self, raw: str, source: str, medium: str) -> None:
        assert canonicalize(raw) == (source, medium)

    def test_email_provider(self) -> None:
        assert canonicalize("https://outlook.live.com/mail/").medium == "email"

    def test_unknown_host_is_referral(self) -> None:
        assert canonicalize("https://blog.example.org/post").medium == "referral"

    def test_explicit_medium_wins(self) -> None:
        assert canonicalize("google.com", "cpc") == ("google.com", "cpc")

    def test_blank_medium_is_inferred(self) -> None:
        assert canonicalize("bing.com", "") == ("bing.com", "organic")

    @pytest.mark.parametrize("bare, host", [("google", "google.com"), ("Bing", "bing.com"), ("facebook", "facebook.com")])
    def test_ga4_bare_names_match_hosts(self, bare: str, host: str) -> None:
        assert canonicalize(bare, "organic").source == host
        assert canonicalize(bare, "organic").source == canonicalize(f"https://www.{host}/").source

    def test_ga4_direct_source_kept(self) -> None:
        assert canonicalize("(direct)", "(none)") == ("(direct)", "(none)")


class TestInferMedium:
    """Tests for infer_medium()."""

    def test_direct(self) -> None:
        assert infer_medium("(direct)") == "none"

    def test_social_checked_before_organic(self) -> None:
        assert infer_medium("facebook-google-bridge.com") == "social"

    def test_webmail_is_email_not_search(self) -> None:
        assert infer_medium("mail.yahoo.com") == "email"


class TestCanonicalizeRecords:
    """Tests for canonicalize_records()."""

    def test_rewrites_source_and_medium_only(self) -> None:
        records = [{"source": "https://www.bing.com/search", "sessions": 4}]
        result = canonicalize_records(records)
        assert result == [{"source": "bing.com", "medium": "organic", "sessions": 4}]

    def test_does_not_mutate_input(self) -> None:
        records = [{"source": "t.co"}]
        canonicalize_records(records)
        assert records == [{"source": "t.co"}]
