"""Heuristics that turn provider headlines/snippets into RawRecord fields."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from datetime import UTC, date, datetime
from typing import Any
from urllib.parse import urlparse

from app.models.startup import RawRecord

TRIGGER_WORDS = [
    " raises ",
    " raised ",
    " lands ",
    " secures ",
    " closes ",
    " scores ",
    " bags ",
    " announces ",
    " launches ",
    " gets ",
]
HEADLINE_PREFIXES = ("show hn:", "launch hn:", "ask hn:", "exclusive:", "breaking:")
STAGE_KEYWORDS = ["pre-seed", "seed", "angel", "growth"]
SERIES_PATTERN = re.compile(r"\bseries [a-z](?:\d)?\b", flags=re.IGNORECASE)
AMOUNT_PATTERN = re.compile(r"\$?([\d,.]+)\s?(billion|million|thousand|bn|m|b|k)?\b", flags=re.IGNORECASE)
HEADLINE_SPLIT = re.compile(r"\s[-–—|:]\s|:\s")
FUNDING_SIGNALS = ("raise", "funding", "seed", "series", "backed", "investment", "million", "venture")


def parse_company(title: str) -> str | None:
    """Extract a company name from a headline."""
    cleaned = (title or "").strip()
    if not cleaned:
        return None

    lowered = cleaned.lower()
    for prefix in HEADLINE_PREFIXES:
        if lowered.startswith(prefix):
            cleaned = cleaned[len(prefix):].strip()
            lowered = cleaned.lower()
            break

    for trigger in TRIGGER_WORDS:
        if trigger in f" {lowered} ":
            index = f" {lowered} ".index(trigger)
            candidate = cleaned[:index].replace("—", "-").strip(" -,")
            if candidate:
                return candidate

    head = HEADLINE_SPLIT.split(cleaned, maxsplit=1)[0].strip(" -,")
    return head or None


def parse_stage(text: str) -> str | None:
    """Detect funding stage keywords."""
    text_lower = (text or "").lower()
    series_match = SERIES_PATTERN.search(text_lower)
    if series_match:
        return series_match.group(0).title()
    for stage in STAGE_KEYWORDS:
        if re.search(rf"\b{re.escape(stage)}\b", text_lower):
            return stage.title()
    return None


def parse_amount(text: str) -> int | None:
    """Parse the largest funding amount in text, returning integer USD."""
    best_amount: int | None = None
    for match in AMOUNT_PATTERN.finditer(text or ""):
        token = match.group(0)
        multiplier_label = match.group(2)
        # Skip plain integers without currency context to avoid catching years and IDs.
        if not token.startswith("$") and not multiplier_label:
            continue

        raw_value = match.group(1).replace(",", "").rstrip(".")
        try:
            value = float(raw_value)
        except ValueError:
            continue

        multiplier = 1
        if multiplier_label:
            label = multiplier_label.lower()
            if label in {"billion", "b", "bn"}:
                multiplier = 1_000_000_000
            elif label in {"million", "m"}:
                multiplier = 1_000_000
            elif label in {"thousand", "k"}:
                multiplier = 1_000

        amount = int(value * multiplier)
        if amount <= 0:
            continue
        best_amount = max(best_amount or 0, amount)

    return best_amount


def format_amount(amount: int | None) -> str | None:
    """Render an integer USD amount as a compact label such as ``$2.5M``."""
    if not amount:
        return None
    for threshold, suffix in ((1_000_000_000, "B"), (1_000_000, "M"), (1_000, "K")):
        if amount >= threshold:
            scaled = amount / threshold
            text = f"{scaled:.1f}".rstrip("0").rstrip(".")
            return f"${text}{suffix}"
    return f"${amount}"


def parse_date(value: Any) -> date | None:
    """Parse ISO strings or unix timestamps into a date."""
    if value in (None, ""):
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=UTC).date()
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for fmt in ("%a, %d %b %Y %H:%M:%S %z", "%Y-%m-%d %H:%M:%S", "%B %d, %Y"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def website_from_url(url: str | None) -> str | None:
    """Return the scheme+host of a URL, used as a best-effort website."""
    if not url:
        return None
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        return None
    return f"{parsed.scheme}://{parsed.netloc}"


def looks_like_funding(text: str) -> bool:
    lowered = (text or "").lower()
    return any(signal in lowered for signal in FUNDING_SIGNALS)


def query_terms(query: str | None) -> list[str]:
    return [token for token in (query or "").lower().split() if len(token) > 2]


def matches_query(query: str, *texts: str | None) -> bool:
    """Local substring filter for sources that cannot filter by query upstream."""
    terms = query_terms(query)
    if not terms:
        return True
    haystack = " ".join(text for text in texts if text).lower()
    return any(term in haystack for term in terms)


def build_raw_record(
    *,
    source: str,
    title: str,
    url: str | None,
    snippet: str = "",
    published: Any = None,
    confidence: float,
    tags: Iterable[str] = (),
    extra: Mapping[str, Any] | None = None,
    today: date | None = None,
) -> RawRecord | None:
    """Normalize one provider hit. Returns None when no company name can be found."""
    company = parse_company(title)
    if not company or not url:
        return None
    text = f"{title} {snippet}"
    amount = format_amount(parse_amount(text))
    stage = parse_stage(text)
    announced = parse_date(published) or today or datetime.now(tz=UTC).date()
    record_tags = {tag.lower() for tag in tags if tag}
    if stage:
        record_tags.add(stage.lower())
    extra = extra or {}
    return RawRecord(
        name=company,
        description=(snippet or title).strip(),
        website=extra.get("website"),
        funding_amount=amount or stage,
        location=extra.get("location"),
        date_announced=announced.isoformat(),
        tags=record_tags,
        sources=[source],
        source_urls=[url],
        confidence_score=confidence,
    )
