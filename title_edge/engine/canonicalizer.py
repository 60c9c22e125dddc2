from __future__ import annotations

import hashlib
import logging
import re
import unicodedata
from dataclasses import dataclass
from typing import Iterable, List, Optional

from title_edge.models import MEDIA_MOVIE, MEDIA_SHOW, NormalizedTitle

logger = logging.getLogger(__name__)

TITLE_KEY_LENGTH = 16

_BRACKETED_SUFFIXES = (
    re.compile(r"\s*\(Limited Series\)\s*$", re.IGNORECASE),
    re.compile(r"\s*\(Miniseries\)\s*$", re.IGNORECASE),
    re.compile(r"\s*\(Mini-Series\)\s*$", re.IGNORECASE),
    re.compile(r"\s*\(TV Series\)\s*$", re.IGNORECASE),
    re.compile(r"\s*\(Series\)\s*$", re.IGNORECASE),
    re.compile(r"\s*\(Film\)\s*$", re.IGNORECASE),
    re.compile(r"\s*\(Movie\)\s*$", re.IGNORECASE),
    re.compile(r"\s*\(Documentary\)\s*$", re.IGNORECASE),
    re.compile(r"\s*\(Docuseries\)\s*$", re.IGNORECASE),
    re.compile(r"\s*\(Part \d+\)\s*$", re.IGNORECASE),
    re.compile(r"\s*\(Volume \d+\)\s*$", re.IGNORECASE),
)

# Order matters: separator forms are tried before the bare forms.
_SEASON_PATTERNS = (
    re.compile(r"^(.+?)\s*[:-]\s*Season\s+(\d+)$", re.IGNORECASE),
    re.compile(r"^(.+?)\s+Season\s+(\d+)$", re.IGNORECASE),
    re.compile(r"^(.+?)\s*[:-]\s*S(\d+)$", re.IGNORECASE),
    re.compile(r"^(.+?)\s+S(\d+)$", re.IGNORECASE),
    re.compile(r"^(.+?)\s*[:-]\s*Part\s+(\d+)$", re.IGNORECASE),
    re.compile(r"^(.+?)\s+Part\s+(\d+)$", re.IGNORECASE),
    re.compile(r"^(.+?)\s*[:-]\s*Volume\s+(\d+)$", re.IGNORECASE),
    re.compile(r"^(.+?)\s+Volume\s+(\d+)$", re.IGNORECASE),
)

_ROMAN_NUMERALS = {
    "I": 1,
    "II": 2,
    "III": 3,
    "IV": 4,
    "V": 5,
    "VI": 6,
    "VII": 7,
    "VIII": 8,
    "IX": 9,
    "X": 10,
    "XI": 11,
    "XII": 12,
    "XIII": 13,
    "XIV": 14,
    "XV": 15,
}

# A standalone upper-case numeral after another word, closing the title or a title segment.
_ROMAN_PATTERN = re.compile(
    r"(?<=\s)(" + "|".join(sorted(_ROMAN_NUMERALS, key=len, reverse=True)) + r")\b(?=\s*$|\s*[:-])"
)

_DASHES = re.compile("[‒–—―−]")
_SINGLE_QUOTES = re.compile("[‘’‚‛′]")
_DOUBLE_QUOTES = re.compile("[“”„‟″]")
_LEADING_PUNCT = re.compile(r"^[:\-,.\s]+")
_TRAILING_PUNCT = re.compile(r"[:\-,.\s]+$")
_NON_ALNUM = re.compile(r"[^a-z0-9]")


@dataclass(frozen=True)
class SeasonInfo:
    base_name: str
    season_number: int


def normalize_text(text: Optional[str]) -> str:
    text = (text or "").strip()
    text = re.sub(r"\s+", " ", text)
    text = _DASHES.sub("-", text)
    text = _SINGLE_QUOTES.sub("'", text)
    text = _DOUBLE_QUOTES.sub('"', text)
    text = _LEADING_PUNCT.sub("", text)
    return _TRAILING_PUNCT.sub("", text)


def remove_bracketed_suffixes(title: str) -> str:
    result = title
    while True:
        before = result
        for pattern in _BRACKETED_SUFFIXES:
            result = pattern.sub("", result)
        if result == before:
            return result.strip()


def remove_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def convert_roman_numerals(title: str) -> str:
    return _ROMAN_PATTERN.sub(lambda m: str(_ROMAN_NUMERALS[m.group(1)]), title)


def extract_season_info(title: str) -> Optional[SeasonInfo]:
    for pattern in _SEASON_PATTERNS:
        match = pattern.match(title)
        if not match:
            continue
        base = normalize_text(match.group(1))
        if not base:
            continue
        return SeasonInfo(base_name=base, season_number=int(match.group(2)))
    return None


def matching_key(text: Optional[str]) -> str:
    return _NON_ALNUM.sub("", remove_accents(text or "").lower())


def generate_title_key(canonical: str, media_kind: str = MEDIA_SHOW) -> str:
    payload = f"{matching_key(canonical)}:{_coerce_media_kind(media_kind)}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:TITLE_KEY_LENGTH]


def canonicalize(title: Optional[str], media_kind: str = MEDIA_SHOW) -> NormalizedTitle:
    original = "" if title is None else str(title)
    kind = _coerce_media_kind(media_kind)

    canonical, season = _single_pass(original)
    # Passes only strip text or turn numerals into digits, so this reaches a fixed point.
    while True:
        again, extra_season = _single_pass(canonical)
        if again == canonical:
            break
        if season is None:
            season = extra_season
        canonical = again

    return NormalizedTitle(
        original=original,
        canonical=canonical,
        normalized=matching_key(canonical),
        season=season,
        title_key=generate_title_key(canonical, kind),
        media_kind=kind,
    )


def titles_match(title1: str, title2: str) -> bool:
    key1 = matching_key(remove_bracketed_suffixes(normalize_text(title1)))
    key2 = matching_key(remove_bracketed_suffixes(normalize_text(title2)))
    return key1 == key2


def is_alias(new_title: str, existing_canonical: str) -> bool:
    return canonicalize(new_title).normalized == matching_key(existing_canonical)


def merge_aliases(existing_aliases: Optional[Iterable[str]], new_alias: str) -> List[str]:
    aliases = list(dict.fromkeys(existing_aliases or []))
    cleaned = normalize_text(new_alias)
    if not cleaned:
        return aliases

    new_key = matching_key(cleaned)
    if any(matching_key(existing) == new_key for existing in aliases):
        return aliases

    aliases.append(cleaned)
    return aliases


def search_terms(title: str) -> List[str]:
    normalized = canonicalize(title)
    terms = [title, normalized.canonical]
    if normalized.season:
        terms.extend(
            [
                f"{normalized.canonical} Season {normalized.season}",
                f"{normalized.canonical}: Season {normalized.season}",
                f"{normalized.canonical} S{normalized.season}",
            ]
        )
    terms.extend([title.lower(), normalized.canonical.lower()])
    return [t for t in dict.fromkeys(terms) if t]


def _single_pass(text: str) -> tuple[str, Optional[int]]:
    processed = normalize_text(text)
    processed = remove_bracketed_suffixes(processed)
    processed = remove_accents(processed)
    processed = convert_roman_numerals(processed)

    info = extract_season_info(processed)
    if info is not None:
        return info.base_name, info.season_number
    return processed, None


def _coerce_media_kind(media_kind: Optional[str]) -> str:
    kind = str(media_kind or "").strip().upper()
    if kind in (MEDIA_SHOW, MEDIA_MOVIE):
        return kind
    if kind:
        logger.debug("Unknown media kind %r, falling back to %s", media_kind, MEDIA_SHOW)
    return MEDIA_SHOW
