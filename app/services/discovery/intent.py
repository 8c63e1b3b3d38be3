"""Turns a free-text discovery query into a structured QueryIntent.

The parser is pure: no I/O, no clock, same output for the same input string.
Every vocabulary is an ordered list of ``(label, phrases)``; within a category
the match that starts earliest in the query wins and equal start positions are
broken by list order.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from app.models.query_intent import DEFAULT_LOOKBACK_DAYS, IntentClass, QueryIntent

MAX_LOOKBACK_DAYS = 365

DOMAIN_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("AI", ("artificial intelligence", "machine learning", "generative ai", "genai", "ai", "ml", "llm", "llms")),
    ("Fintech", ("fintech", "payments", "banking", "insurtech", "lending")),
    ("SaaS", ("saas", "b2b software", "enterprise software")),
    ("Healthtech", ("healthtech", "health tech", "healthcare", "medtech", "biotech", "digital health")),
    ("Climate", ("climate", "climatetech", "cleantech", "clean energy", "renewable", "carbon")),
    ("Crypto", ("crypto", "web3", "blockchain", "defi")),
    ("Edtech", ("edtech", "education")),
    ("E-commerce", ("e-commerce", "ecommerce", "retail", "marketplace", "d2c")),
    ("Cybersecurity", ("cybersecurity", "security", "infosec")),
    ("Robotics", ("robotics", "robots", "automation")),
    ("Developer Tools", ("developer tools", "devtools", "dev tools", "open source")),
    ("Proptech", ("proptech", "real estate")),
    ("Mobility", ("mobility", "autonomous vehicles", "ev", "electric vehicles")),
    ("Gaming", ("gaming", "games")),
    ("Foodtech", ("foodtech", "agtech", "agritech")),
]

FUNDING_STAGES: list[tuple[str, tuple[str, ...]]] = [
    ("Pre-Seed", ("pre-seed", "pre seed", "preseed")),
    ("Seed", ("seed",)),
    ("Series A", ("series a",)),
    ("Series B", ("series b",)),
    ("Series C", ("series c",)),
    ("Series D", ("series d",)),
    ("Bootstrapped", ("bootstrapped", "self-funded")),
    ("IPO", ("ipo", "public offering")),
    ("Growth", ("growth stage", "late stage", "growth equity")),
]

LOCATIONS: list[tuple[str, tuple[str, ...]]] = [
    ("San Francisco", ("san francisco", "bay area", "silicon valley", "sf")),
    ("New York", ("new york", "nyc")),
    ("Los Angeles", ("los angeles",)),
    ("Boston", ("boston",)),
    ("Austin", ("austin",)),
    ("Seattle", ("seattle",)),
    ("Toronto", ("toronto",)),
    ("London", ("london",)),
    ("Berlin", ("berlin",)),
    ("Paris", ("paris",)),
    ("Amsterdam", ("amsterdam",)),
    ("Stockholm", ("stockholm",)),
    ("Tel Aviv", ("tel aviv", "israel")),
    ("Bangalore", ("bangalore", "bengaluru")),
    ("Singapore", ("singapore",)),
    ("Europe", ("europe", "european", "eu")),
    ("India", ("india", "indian")),
    ("United States", ("united states", "usa")),
    ("Remote", ("remote",)),
]

STOPWORDS = frozenset(
    {
        "a", "about", "all", "an", "and", "any", "are", "at", "by", "companies", "company",
        "day", "days", "find", "for", "from", "funded", "funding", "get", "give", "in",
        "is", "just", "last", "latest", "list", "me", "month", "months", "new", "newest",
        "of", "on", "or", "past", "quarter", "raised", "raises", "raising", "recent",
        "recently", "round", "rounds", "search", "show", "startup", "startups", "that",
        "the", "this", "to", "today", "top", "week", "weeks", "what", "which", "who",
        "with", "year", "years", "yesterday",
    }
)

RECENT_PATTERN = re.compile(r"\b(recent|recently|latest|newest|today|just|this week)\b")
FUNDED_PATTERN = re.compile(r"\b(funded|funding|raised|raises|raising|backed|investment)\b")
LIST_PATTERN = re.compile(r"\b(list|show|all|top)\b")
TOKEN_PATTERN = re.compile(r"[a-z0-9]+(?:[-'.+][a-z0-9]+)*")


@dataclass(frozen=True)
class _Match:
    label: str
    start: int
    end: int


def _timeframe_unit(multiplier: int) -> Callable[[re.Match[str]], int]:
    return lambda match: int(match.group(1)) * multiplier


def _fixed(days: int) -> Callable[[re.Match[str]], int]:
    return lambda _match: days


TIMEFRAME_PATTERNS: list[tuple[re.Pattern[str], Callable[[re.Match[str]], int]]] = [
    (re.compile(r"\b(?:last|past|previous)\s+(\d{1,3})\s+days?\b"), _timeframe_unit(1)),
    (re.compile(r"\b(?:last|past|previous)\s+(\d{1,2})\s+weeks?\b"), _timeframe_unit(7)),
    (re.compile(r"\b(?:last|past|previous)\s+(\d{1,2})\s+months?\b"), _timeframe_unit(30)),
    (re.compile(r"\btoday\b"), _fixed(1)),
    (re.compile(r"\byesterday\b"), _fixed(2)),
    (re.compile(r"\b(?:this|last|past)\s+week\b"), _fixed(7)),
    (re.compile(r"\b(?:this|last|past)\s+month\b"), _fixed(30)),
    (re.compile(r"\b(?:this|last|past)\s+quarter\b"), _fixed(90)),
    (re.compile(r"\b(?:this|last|past)\s+year\b"), _fixed(365)),
]


def _phrase_pattern(phrase: str) -> re.Pattern[str]:
    return re.compile(rf"(?<![a-z0-9]){re.escape(phrase)}(?![a-z0-9])")


def _compile(vocabulary: Sequence[tuple[str, tuple[str, ...]]]) -> list[tuple[str, list[re.Pattern[str]]]]:
    return [(label, [_phrase_pattern(phrase) for phrase in phrases]) for label, phrases in vocabulary]


_DOMAIN_PATTERNS = _compile(DOMAIN_KEYWORDS)
_STAGE_PATTERNS = _compile(FUNDING_STAGES)
_LOCATION_PATTERNS = _compile(LOCATIONS)


def _first_match(text: str, vocabulary: list[tuple[str, list[re.Pattern[str]]]]) -> _Match | None:
    best: tuple[int, int, _Match] | None = None
    for order, (label, patterns) in enumerate(vocabulary):
        for pattern in patterns:
            found = pattern.search(text)
            if not found:
                continue
            # Prefer the longest phrase starting at the same position for this label.
            candidate = (found.start(), order, _Match(label, found.start(), found.end()))
            if best is None or candidate[:2] < best[:2] or (
                candidate[:2] == best[:2] and candidate[2].end > best[2].end
            ):
                best = candidate
    return best[2] if best else None


def parse_lookback_days(text: str, default: int = DEFAULT_LOOKBACK_DAYS) -> int:
    """Return the day count of the earliest timeframe phrase, or ``default``."""
    best: tuple[int, int, int] | None = None
    for order, (pattern, to_days) in enumerate(TIMEFRAME_PATTERNS):
        found = pattern.search(text)
        if not found:
            continue
        candidate = (found.start(), order, to_days(found))
        if best is None or candidate[:2] < best[:2]:
            best = candidate
    if best is None:
        return default
    return max(1, min(best[2], MAX_LOOKBACK_DAYS))


def classify_intent(text: str) -> IntentClass:
    if RECENT_PATTERN.search(text):
        return IntentClass.RECENT
    if FUNDED_PATTERN.search(text):
        return IntentClass.FUNDED
    if LIST_PATTERN.search(text):
        return IntentClass.LIST
    return IntentClass.SEARCH


def extract_search_terms(text: str, consumed: Sequence[_Match]) -> list[str]:
    remaining = text
    for match in consumed:
        remaining = remaining[: match.start] + " " * (match.end - match.start) + remaining[match.end :]
    terms: list[str] = []
    for token in TOKEN_PATTERN.findall(remaining):
        if token in STOPWORDS or not any(char.isalpha() for char in token):
            continue
        if token not in terms:
            terms.append(token)
    return terms


def parse_query_intent(query: str | None) -> QueryIntent:
    """Parse a free-text query. Never raises; empty input yields the default intent."""
    text = (query or "").lower().strip()
    if not text:
        return QueryIntent()

    domain = _first_match(text, _DOMAIN_PATTERNS)
    stage = _first_match(text, _STAGE_PATTERNS)
    location = _first_match(text, _LOCATION_PATTERNS)
    consumed = [match for match in (domain, stage, location) if match is not None]

    return QueryIntent(
        search_terms=extract_search_terms(text, consumed),
        domain=domain.label if domain else None,
        funding_stage=stage.label if stage else None,
        lookback_days=parse_lookback_days(text),
        location=location.label if location else None,
        intent_class=classify_intent(text),
    )
