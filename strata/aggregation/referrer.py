"""STRATA — Referrer Canonicalizer.

Turns raw referrer strings ("https://www.t.co/abc", "l.facebook.com",
"") into a stable (source, medium) pair. Raw referrer data often names the
redirect host rather than the content host, hence the alias table.
"""

import re
from typing import Any, Dict, List, NamedTuple, Optional

DIRECT_SOURCE = "(direct)"
DIRECT_MEDIUM = "none"
DEFAULT_MEDIUM = "referral"

SCHEME = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)

# Shortener / in-app redirect hosts → canonical content host
DOMAIN_ALIASES: Dict[str, str] = {
    "t.co": "twitter.com",
    "x.com": "twitter.com",
    "fb.me": "facebook.com",
    "l.facebook.com": "facebook.com",
    "lm.facebook.com": "facebook.com",
    "m.facebook.com": "facebook.com",
    "l.instagram.com": "instagram.com",
    "lnkd.in": "linkedin.com",
    "youtu.be": "youtube.com",
    "m.youtube.com": "youtube.com",
    "bit.ly": "bitly.com",
    "out.reddit.com": "reddit.com",
    "com.google.android.gm": "mail.google.com",
    # GA4 reports sessionSource as a bare name for the big engines and networks
    "google": "google.com",
    "bing": "bing.com",
    "yahoo": "yahoo.com",
    "duckduckgo": "duckduckgo.com",
    "facebook": "facebook.com",
    "instagram": "instagram.com",
    "linkedin": "linkedin.com",
    "reddit": "reddit.com",
}

# Checked in order; first category with a matching keyword wins. Email comes
# before search so webmail hosts (mail.google.com, mail.yahoo.com) stay email.
MEDIUM_KEYWORDS = (
    (
        "social",
        (
            "facebook",
            "twitter",
            "linkedin",
            "instagram",
            "pinterest",
            "reddit",
            "tiktok",
            "youtube",
        ),
    ),
    ("email", ("mail", "outlook", "newsletter", "mailchimp")),
    ("organic", ("google", "bing", "yahoo", "duckduckgo", "baidu", "yandex", "ecosia")),
)


class ReferrerSource(NamedTuple):
    source: str
    medium: str


def _blank(value: Optional[Any]) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _hostname(value: str) -> str:
    """Bare host of a URL-ish string: no path, query, fragment or port."""
    host = re.split(r"[/?#]", value, maxsplit=1)[0]
    return host.split(":", 1)[0]


def infer_medium(source: str) -> str:
    """Infer a medium from keywords in the source host."""
    if source in (DIRECT_SOURCE, "direct"):
        return DIRECT_MEDIUM
    lowered = source.lower()
    for medium, keywords in MEDIUM_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return medium
    return DEFAULT_MEDIUM


def canonicalize(raw_source: Optional[Any], medium: Optional[str] = None) -> ReferrerSource:
    """Clean a raw referrer into (source, medium). Neither is ever empty."""
    if _blank(raw_source):
        return ReferrerSource(DIRECT_SOURCE, DIRECT_MEDIUM)

    source = str(raw_source).strip()
    source = SCHEME.sub("", source)
    if source.lower().startswith("www."):
        source = source[4:]

    host = _hostname(source).lower()
    source = DOMAIN_ALIASES.get(host, host) or DIRECT_SOURCE

    if _blank(medium):
        return ReferrerSource(source, infer_medium(source))
    return ReferrerSource(source, str(medium).strip())


def canonicalize_records(records: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Apply canonicalize() to the source/medium of canonical traffic records."""
    cleaned: List[Dict[str, Any]] = []
    for record in records:
        source, medium = canonicalize(record.get("source"), record.get("medium"))
        cleaned.append({**record, "source": source, "medium": medium})
    return cleaned
