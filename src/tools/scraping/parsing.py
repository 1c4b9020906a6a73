"""Parsing helpers that turn fetched pages into listing fields.

These are deliberately loose: marketplace markup changes often, so every
helper returns ``None``/empty instead of raising on unexpected input.
"""

import html as html_lib
import re
from typing import Optional
from urllib.parse import unquote, urljoin, urlparse

from bs4 import BeautifulSoup

# "1234 lei", "1.234 lei", "1 234 lei", "3.799,99 lei"
PRICE_LEI_RE = re.compile(r"(\d[\d.\s]{2,}?)(?:,\d{1,2})?\s*lei\b", re.IGNORECASE)

_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


def normalize_text(text: Optional[str]) -> str:
    """Collapse whitespace runs and trim."""
    return _WS_RE.sub(" ", text or "").strip()


def strip_html(text: Optional[str]) -> str:
    """Replace tags with spaces (tolerates truncated markup)."""
    return _TAG_RE.sub(" ", str(text or ""))


def decode_html(text: Optional[str]) -> str:
    """Decode HTML entities."""
    return html_lib.unescape(str(text or ""))


def parse_lei_amount(raw: str) -> Optional[int]:
    """Parse the digit group of a lei price ("1.234", "1 234") as an integer."""
    digits = re.sub(r"[\s.]", "", raw or "")
    if not digits.isdigit():
        return None
    value = int(digits)
    return value if value > 0 else None


def extract_price_ron(text: str) -> Optional[int]:
    """Return the first lei price found in ``text``."""
    match = PRICE_LEI_RE.search(text or "")
    if not match:
        return None
    return parse_lei_amount(match.group(1))


def _soup(page: str) -> BeautifulSoup:
    return BeautifulSoup(page or "", "lxml")


def extract_meta(page: str, name_or_property: str) -> Optional[str]:
    """Content of ``<meta name=...>`` or ``<meta property=...>``."""
    soup = _soup(page)
    wanted = name_or_property.lower()
    for tag in soup.find_all("meta"):
        key = (tag.get("name") or tag.get("property") or "").lower()
        if key == wanted and tag.get("content") is not None:
            return normalize_text(tag["content"]) or None
    return None


def extract_title_tag(page: str) -> Optional[str]:
    """Text of the ``<title>`` element."""
    soup = _soup(page)
    if soup.title:
        return normalize_text(soup.title.get_text()) or None
    return None


def grab_text_chunk(page: str, needles: list[str], max_len: int = 3000) -> str:
    """Slice of ``page`` starting at the first needle found (case-insensitive)."""
    lower = (page or "").lower()
    for needle in needles:
        idx = lower.find(needle.lower())
        if idx != -1:
            return page[idx:idx + max_len]
    return ""


def title_from_pricy_path(pathname: str) -> Optional[str]:
    """Human title from a ``/ProductUrlId/<id>/<slug>`` path."""
    parts = [p for p in (pathname or "").split("/") if p]
    try:
        idx = parts.index("ProductUrlId")
    except ValueError:
        return None
    if idx + 2 >= len(parts):
        return None
    slug = unquote(parts[idx + 2])
    title = normalize_text(re.sub(r"[-_]+", " ", slug))
    return title or None


def absolute_url(href: str, base: str) -> str:
    """Resolve ``href`` against ``base`` unless already absolute."""
    return href if href.startswith("http") else urljoin(base, href)


def safe_host(url: str) -> Optional[str]:
    """Lowercased hostname, or None when ``url`` does not parse."""
    try:
        host = urlparse(url).hostname
    except ValueError:
        return None
    return host.lower() if host else None


def num_or_none(value) -> Optional[float]:
    """Parse a request number ("4000", "55,5"); blanks and junk give None."""
    if value is None:
        return None
    text = str(value).strip().replace(",", ".")
    if not text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return number


def listing_page_fields(page: str, fallback_title: Optional[str] = None) -> dict:
    """Title, description text and price from a single listing page."""
    title = extract_meta(page, "og:title") or extract_title_tag(page) or fallback_title
    description = extract_meta(page, "description") or ""
    body = normalize_text(
        strip_html(grab_text_chunk(page, ["Descriere", "Description"], 4000))
    )
    raw_text = normalize_text(f"{description} {decode_html(body)}"[:3500])
    return {
        "title": normalize_text(title) or None,
        "raw_text": raw_text or None,
        "price_ron": extract_price_ron(page),
    }
