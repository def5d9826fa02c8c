"""
City and district matching against the courier catalog.

One matcher, two modes:

* ``suggest`` ranks up to 8 candidates while the customer types. It is
  permissive: a single matching word is enough.
* ``resolve`` picks one district on checkout submission when the customer
  did not select a suggestion. It only answers when the best score
  reaches ``MIN_SCORE``.

Both modes share the query normalization (trimming, lower-casing, Arabic
detection, abbreviation expansion) but keep their own scoring tables.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .districts import DistrictEntry

logger = logging.getLogger(__name__)

MIN_QUERY_LENGTH = 2
MIN_SCORE = 50
SUGGEST_LIMIT = 8
SUGGEST_MIN_SCORE = 8

ARABIC_RE = re.compile(r"[\u0600-\u06FF]")
WORD_SPLIT_RE = re.compile(r"[\s\-_,]+")

# Common shorthand typed by customers, expanded word by word
CITY_ALIASES = {
    "casa": "casablanca",
    "d": "dar",
    "dar": "casablanca",  # Dar el Beida
    "beida": "casablanca",
    "rb": "rabat",
    "rab": "rabat",
    "mk": "marrakech",
    "mar": "marrakech",
    "mkch": "marrakech",
    "tng": "tanger",
    "tan": "tanger",
    "tang": "tanger",
    "ag": "agadir",
    "fes": "fes",
    "fs": "fes",
    "mek": "meknes",
    "mkn": "meknes",
    "ouj": "oujda",
    "tet": "tetouan",
    "ken": "kenitra",
    "saf": "safi",
    "el": "al",
    "al": "al",
    "bni": "beni",
    "bn": "beni",
    "si": "sidi",
    "sd": "sidi",
    "mly": "moulay",
    "ml": "moulay",
}


@dataclass(frozen=True)
class MatchResult:
    district: DistrictEntry
    score: float


def is_arabic(text: str) -> bool:
    return bool(ARABIC_RE.search(text or ""))


def expand(word: str) -> str:
    lower = word.lower()
    return CITY_ALIASES.get(lower, lower)


def expand_query(text: str) -> str:
    return " ".join(expand(w) for w in text.split())


def _too_short(query: Optional[str]) -> bool:
    return not query or len(query.strip()) < MIN_QUERY_LENGTH


# --- resolve -----------------------------------------------------------------


def _latin_score(entry: DistrictEntry, query: str) -> float:
    city = entry.city.lower().strip()
    name = entry.name.lower().strip()

    if query in (city, name):
        return 100
    if (city and city.startswith(query)) or (name and name.startswith(query)):
        return 80
    if query in city or query in name:
        return 60

    words = query.split()
    city_words = city.split()
    matching = [w for w in words if any(d in w or w in d for d in city_words)]
    if matching and len(matching) == len(words):
        return len(matching) / len(words) * 50
    return 0


def _arabic_score(entry: DistrictEntry, query: str) -> float:
    arabic = entry.arabic_name.strip()
    if not arabic:
        return 0

    if arabic == query:
        return 100
    if arabic.startswith(query):
        return 85
    if query in arabic:
        return 70

    words = query.split()
    arabic_words = arabic.split()
    matching = [w for w in words if any(a in w or w in a for a in arabic_words)]
    if matching:
        return len(matching) / len(words) * 65
    return 0


def score_resolve(entry: DistrictEntry, query: str) -> float:
    text = query.strip()
    variants = {text.lower(), expand_query(text)}

    score = max(_latin_score(entry, v) for v in variants)
    if is_arabic(text):
        score = max(score, _arabic_score(entry, text))
    return score


def resolve(query: str, catalog: Iterable[DistrictEntry], min_score: float = MIN_SCORE) -> Optional[MatchResult]:
    """
    Single best district for ``query`` or None below ``min_score``.
    Ties keep the entry seen first in the catalog.
    """
    if _too_short(query):
        return None

    best, best_score = None, 0
    for entry in catalog:
        score = score_resolve(entry, query)
        if score > best_score:
            best, best_score = entry, score
            if score >= 100:
                break

    if best is None or best_score < min_score:
        logger.info("No district match for %r (best score %s)", query, best_score)
        return None

    logger.info("City match: %r -> %s (id=%s, score=%s)", query, best.label, best.id, best_score)
    return MatchResult(district=best, score=best_score)


# --- suggest -----------------------------------------------------------------


def _query_words(query: str) -> List[str]:
    words = (w.strip() for w in WORD_SPLIT_RE.split(query.lower().strip()))
    return [w for w in words if len(w) >= 2 or (w and w in CITY_ALIASES)]


def _latin_word_score(expanded: str, search_words: List[str]) -> int:
    best = 0
    for word in search_words:
        if word == expanded:
            best = max(best, 30)
        elif word.startswith(expanded):
            best = max(best, 25)
        elif expanded.startswith(word[: min(3, len(word))]):
            best = max(best, 15)
        elif expanded in word and len(expanded) >= 3:
            best = max(best, 10)
        elif len(expanded) >= 4 and expanded[:4] in word:
            best = max(best, 8)
    return best


def score_suggest(entry: DistrictEntry, words: List[str], arabic_query: bool):
    """Return ``(score, matched_words)`` for one catalog entry."""
    name = entry.name.lower()
    city = entry.city.lower()
    arabic = entry.arabic_name.lower()
    search_text = f"{city} {name} {arabic}"
    search_words = [w for w in WORD_SPLIT_RE.split(search_text) if w]

    score = 0
    matched = 0
    adjacency = 0

    if arabic_query:
        if " ".join(words) in arabic:
            score += 100
            matched = len(words)
        else:
            for idx, word in enumerate(words):
                if word in arabic:
                    score += 20
                    matched += 1
                    if idx > 0 and f"{words[idx - 1]} {word}" in arabic:
                        adjacency += 10
        # mixed queries can still hit the Latin names
        for word in words:
            expanded = expand(word)
            for search_word in search_words:
                if search_word.startswith(expanded) or expanded.startswith(search_word[:3]):
                    score += 5
    else:
        for idx, word in enumerate(words):
            expanded = expand(word)
            word_score = _latin_word_score(expanded, search_words)
            if not word_score:
                continue
            matched += 1
            score += word_score

            if idx > 0:
                previous = expand(words[idx - 1])
                prev_pos = search_text.find(previous)
                curr_pos = search_text.find(expanded)
                if prev_pos != -1 and curr_pos != -1 and 0 < curr_pos - prev_pos < 20:
                    adjacency += 15

    if matched == len(words) and len(words) > 1:
        score += 30
    if city and any(city.startswith(expand(w)) for w in words):
        score += 10
    score += adjacency
    if len(words) <= 2 and len(name) > 30:
        score -= 5

    return score, matched


def suggest(query: str, catalog: Iterable[DistrictEntry], limit: int = SUGGEST_LIMIT) -> List[MatchResult]:
    """Autocomplete candidates: full matches first, then score, ratio, name."""
    if _too_short(query):
        return []

    words = _query_words(query)
    if not words:
        return []

    arabic_query = is_arabic(query)
    scored = []
    for entry in catalog:
        score, matched = score_suggest(entry, words, arabic_query)
        if matched > 0 and score >= SUGGEST_MIN_SCORE:
            scored.append((matched / len(words), score, entry))

    scored.sort(key=lambda s: (s[0] < 1, -s[1], -s[0], s[2].name.lower()))
    return [MatchResult(district=entry, score=score) for _, score, entry in scored[:limit]]


class CityMatcher:
    """Both matching modes bound to one catalog snapshot."""

    def __init__(self, catalog: Iterable[DistrictEntry], fallback_district_id: int = 46):
        self.catalog = tuple(catalog)
        self.fallback_district_id = fallback_district_id

    def suggest(self, query: str, limit: int = SUGGEST_LIMIT) -> List[MatchResult]:
        return suggest(query, self.catalog, limit=limit)

    def resolve(self, query: str) -> Optional[MatchResult]:
        return resolve(query, self.catalog)

    def resolve_district_id(self, query: str) -> int:
        """Never fails: unmatched cities go to the catch-all district."""
        match = self.resolve(query)
        if match is None:
            logger.warning(
                "No district match for %r, falling back to district %s",
                query,
                self.fallback_district_id,
            )
            return self.fallback_district_id
        return match.district.id
