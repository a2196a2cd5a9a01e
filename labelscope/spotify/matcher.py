"""
Artist-name matching between MusicBrainz credits and Spotify results.

Spotify search is fuzzy and returns albums by other artists with similar
titles, so every candidate is checked against the artist we searched for.
Strategies are tried in order over all candidates; the first strategy that
accepts any candidate wins, so an exact match further down the result list
beats a substring match at the top.

Strategies:
    1. exact          normalized names are equal
    2. substring      one normalized name contains the other
    3. collaboration  equal after stripping collaboration suffixes
                      ("Artist feat. Other", "Artist & Other", "Artist x Other")
    4. word_overlap   at least 75% of significant words shared

Normalization uses rapidfuzz's default processor (lowercase, punctuation to
spaces, trimmed) after folding accents, so "Björk" matches "Bjork".
"""

import re
import unicodedata
from typing import Callable, Iterable, Sequence, TypeVar

from rapidfuzz.utils import default_process


T = TypeVar("T")

# Minimum share of significant words two names must have in common
WORD_OVERLAP_THRESHOLD = 0.75

# Words ignored by the word-overlap strategy
STOP_WORDS = frozenset({"the", "a", "an", "and", "of", "de", "la", "le", "les", "el"})

# Everything after the first collaboration marker is dropped
COLLABORATION_PATTERN = re.compile(
    r"\s*(?:,|\s(?:feat\.?|ft\.?|featuring|&|and|with|x)\s).*$",
    re.IGNORECASE,
)


def normalize_name(name: str) -> str:
    """
    Normalize an artist name for comparison.

    Examples:
        "Björk"          -> "bjork"
        "  The   Orb! "  -> "the orb"
        "AC/DC"          -> "ac dc"
    """
    folded = unicodedata.normalize("NFKD", name)
    folded = "".join(c for c in folded if not unicodedata.combining(c))
    return " ".join(default_process(folded).split())


def strip_collaborators(name: str) -> str:
    """
    Drop collaboration suffixes from a credit.

    Examples:
        "Burial feat. Four Tet"  -> "Burial"
        "Mount Kimbie, King Krule" -> "Mount Kimbie"
        "Skream & Benga"         -> "Skream"
    """
    return COLLABORATION_PATTERN.sub("", name.strip())


def significant_words(name: str) -> set[str]:
    return {w for w in normalize_name(name).split() if w not in STOP_WORDS}


def exact_match(wanted: str, candidate: str) -> bool:
    a, b = normalize_name(wanted), normalize_name(candidate)
    return bool(a) and a == b


def substring_match(wanted: str, candidate: str) -> bool:
    a, b = normalize_name(wanted), normalize_name(candidate)
    if not a or not b:
        return False
    return a in b or b in a


def collaboration_match(wanted: str, candidate: str) -> bool:
    return exact_match(strip_collaborators(wanted), strip_collaborators(candidate))


def word_overlap_match(wanted: str, candidate: str) -> bool:
    """Shared significant words over the larger word set, >= 75%."""
    a, b = significant_words(wanted), significant_words(candidate)
    if not a or not b:
        return False
    return len(a & b) / max(len(a), len(b)) >= WORD_OVERLAP_THRESHOLD


def _with_joined_credit(names: Iterable[str]) -> list[str]:
    names = [n for n in names if n]
    if len(names) > 1:
        names.append(", ".join(names))
    return names


MATCH_STRATEGIES: tuple[tuple[str, Callable[[str, str], bool]], ...] = (
    ("exact", exact_match),
    ("substring", substring_match),
    ("collaboration", collaboration_match),
    ("word_overlap", word_overlap_match),
)


def match_artist_name(wanted: str, candidate_names: Iterable[str]) -> str | None:
    """
    First strategy accepting any of candidate_names for wanted.

    candidate_names are the artists of one result; the joined credit
    ("A, B") is tried as well.

    Returns:
        The strategy name ("exact", "substring"...), or None.
    """
    names = _with_joined_credit(candidate_names)
    for strategy, accepts in MATCH_STRATEGIES:
        if any(accepts(wanted, name) for name in names):
            return strategy
    return None


def select_candidate(
    wanted: str,
    candidates: Sequence[T],
    names_of: Callable[[T], Iterable[str]]
) -> tuple[T, str] | None:
    """
    Pick the first candidate accepted by the earliest strategy.

    Args:
        wanted: Artist name we searched for.
        candidates: Search results in ranking order.
        names_of: Returns the artist names of a candidate.

    Returns:
        (candidate, strategy name), or None when no strategy accepts any
        candidate.
    """
    for strategy, accepts in MATCH_STRATEGIES:
        for candidate in candidates:
            names = _with_joined_credit(names_of(candidate))
            if any(accepts(wanted, name) for name in names):
                return candidate, strategy
    return None
