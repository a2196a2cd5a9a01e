"""
Derived views over denormalized MusicBrainz release lists.

Every aggregation has the same shape: fold a flat list of records into a
map keyed by entity ID, then emit a list sorted by count (descending).
Python's sort is stable and the maps keep insertion order, so equal counts
stay in the order the entities were first seen.

Aggregations:
    aggregate_labels()      - label citations across an artist's releases
    aggregate_roster()      - artist roster of a label
    genre_stats()           - genre frequency, share of total tag weight
    decade_stats()          - release histogram per decade
    collaboration_stats()   - artists credited together with a focal artist

Malformed records (no ID, wrong shape) are skipped with a debug message;
partial upstream data is routine and never aborts an aggregation.

Roster Classification:
    former   if the artist's life-span has an end date
    current  else if the last release on the label is within 5 years of
             today, or no release on the label is dated
    former   otherwise
"""

from datetime import date
from typing import Any, Iterable, Iterator, Mapping

from labelscope.core.logger import get_logger
from labelscope.musicbrainz.models import (
    ROSTER_CURRENT,
    ROSTER_FORMER,
    AggregatedLabel,
    Artist,
    CollaborationInfo,
    DecadeStat,
    GenreStat,
    Period,
    Release,
    ReleaseGroup,
    RosterEntry,
    RosterSummary,
    Tag,
)


logger = get_logger(__name__)

# Artists whose last release is older than this are "former"
ACTIVE_WINDOW_YEARS = 5

# Size of every derived statistics list
TOP_N = 10


def _iter_releases(records: Iterable[Any]) -> Iterator[Release]:
    """Yield Release objects, parsing API dicts and skipping malformed ones."""
    for record in records:
        if isinstance(record, Release):
            yield record
            continue
        try:
            yield Release.from_api(record)
        except (ValueError, TypeError, AttributeError, KeyError) as e:
            logger.debug(f"Skipping malformed release record: {e}")


def parse_partial_date(value: str | None) -> date | None:
    """
    Parse a MusicBrainz partial date.

    Missing month/day default to 1. Returns None for empty or invalid input.

    Examples:
        "1994"       -> date(1994, 1, 1)
        "1994-06"    -> date(1994, 6, 1)
        "1994-06-21" -> date(1994, 6, 21)
    """
    if not value:
        return None
    parts = value.split("-")
    try:
        year = int(parts[0])
        month = int(parts[1]) if len(parts) > 1 and parts[1] else 1
        day = int(parts[2]) if len(parts) > 2 and parts[2] else 1
        return date(year, month, day)
    except (ValueError, IndexError):
        return None


def _years_before(today: date, years: int) -> date:
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        # 29 February
        return today.replace(year=today.year - years, day=28)


def classify_roster_artist(
    artist: Artist,
    last_release_date: str | None,
    today: date | None = None
) -> str:
    """
    Classify an artist's association with a label as current or former.

    Args:
        artist: The artist, life-span included when known.
        last_release_date: Latest release date on the label, if any.
        today: Reference date (defaults to date.today()).
    """
    if artist.life_span.end:
        return ROSTER_FORMER

    last = parse_partial_date(last_release_date)
    if last is None:
        return ROSTER_CURRENT

    today = today or date.today()
    if last >= _years_before(today, ACTIVE_WINDOW_YEARS):
        return ROSTER_CURRENT
    return ROSTER_FORMER


# =============================================================================
# LABEL AGGREGATION
# =============================================================================

def aggregate_labels(releases: Iterable[Any]) -> list[AggregatedLabel]:
    """
    Roll up label citations across a release list.

    Each label-info entry naming a label increments that label's count, so a
    release citing the same label twice (two catalog numbers) counts twice.
    The summary kept for a label is the first one seen.

    Args:
        releases: Release objects or raw release dicts (with "label-info").

    Returns:
        One AggregatedLabel per distinct label ID, most cited first.
    """
    labels = {}
    counts: dict[str, int] = {}

    for release in _iter_releases(releases):
        for info in release.label_info:
            if info.label is None:
                continue
            label_id = info.label.id
            if label_id not in labels:
                labels[label_id] = info.label
                counts[label_id] = 0
            counts[label_id] += 1

    aggregated = [AggregatedLabel(label=labels[i], release_count=counts[i]) for i in labels]
    return sorted(aggregated, key=lambda a: a.release_count, reverse=True)


# =============================================================================
# ROSTER AGGREGATION
# =============================================================================

class _RosterAccumulator:
    __slots__ = ("artist", "release_count", "first_date", "last_date", "releases")

    def __init__(self, artist: Artist) -> None:
        self.artist = artist
        self.release_count = 0
        self.first_date: str | None = None
        self.last_date: str | None = None
        self.releases: list[str] = []

    def add(self, release: Release) -> None:
        self.release_count += 1
        self.releases.append(release.title)
        if release.date:
            if self.first_date is None or release.date < self.first_date:
                self.first_date = release.date
            if self.last_date is None or release.date > self.last_date:
                self.last_date = release.date


def aggregate_roster(
    releases: Iterable[Any],
    today: date | None = None,
    artists: Mapping[str, Artist] | None = None
) -> list[RosterEntry]:
    """
    Build a label's artist roster from its releases.

    Credits in browsed releases carry no life-span, so the "ended" half of
    the classification only applies to artists found in artists.

    Args:
        releases: Release objects or raw release dicts (with "artist-credit").
        today: Reference date for the current/former rule.
        artists: Full artist records by ID, replacing the credited ones.

    Returns:
        One RosterEntry per credited artist, most releases first.

    Behavior:
        1. For each release, count it once for every distinct credited artist
        2. Track min/max release date per artist
        3. period = (first, last) release dates when any release is dated,
           otherwise the artist's life-span
        4. relationship_type via classify_roster_artist()
    """
    accumulators: dict[str, _RosterAccumulator] = {}

    for release in _iter_releases(releases):
        seen_on_release = set()
        for credit in release.artist_credit:
            artist_id = credit.artist.id
            if artist_id in seen_on_release:
                continue
            seen_on_release.add(artist_id)
            if artist_id not in accumulators:
                artist = (artists or {}).get(artist_id, credit.artist)
                accumulators[artist_id] = _RosterAccumulator(artist)
            accumulators[artist_id].add(release)

    roster = []
    for acc in accumulators.values():
        if acc.first_date or acc.last_date:
            period = Period(begin=acc.first_date, end=acc.last_date)
        else:
            period = Period(begin=acc.artist.life_span.begin, end=acc.artist.life_span.end)

        roster.append(RosterEntry(
            artist=acc.artist,
            period=period,
            release_count=acc.release_count,
            relationship_type=classify_roster_artist(acc.artist, acc.last_date, today),
            releases=tuple(acc.releases),
        ))

    return sorted(roster, key=lambda e: e.release_count, reverse=True)


def summarize_roster(roster: Iterable[RosterEntry]) -> RosterSummary:
    """Count artists per classification and releases over a roster."""
    entries = list(roster)
    current = sum(1 for e in entries if e.relationship_type == ROSTER_CURRENT)
    former = sum(1 for e in entries if e.relationship_type == ROSTER_FORMER)
    return RosterSummary(
        total_artists=len(entries),
        current_artists=current,
        former_artists=former,
        total_releases=sum(e.release_count for e in entries),
    )


def filter_roster(roster: Iterable[RosterEntry], relationship_type: str = "all") -> list[RosterEntry]:
    if relationship_type == "all":
        return list(roster)
    return [e for e in roster if e.relationship_type == relationship_type]


def sort_roster(
    roster: Iterable[RosterEntry],
    by: str = "releases",
    descending: bool = False
) -> list[RosterEntry]:
    """
    Sort a roster by "name", "period" (first date) or "releases".

    Entries without a period begin always sort last.
    """
    entries = list(roster)
    if by == "name":
        return sorted(entries, key=lambda e: e.artist.name.lower(), reverse=descending)
    if by == "releases":
        return sorted(entries, key=lambda e: e.release_count, reverse=descending)
    if by == "period":
        dated = [e for e in entries if e.period.begin]
        undated = [e for e in entries if not e.period.begin]
        return sorted(dated, key=lambda e: e.period.begin, reverse=descending) + undated
    raise ValueError(f"Unknown roster sort field: {by!r}")


def format_period(period: Period) -> str:
    """
    Render a roster period with years only.

    Examples:
        Period("1990-03", "2001")  -> "1990 - 2001"
        Period("1990", None)       -> "1990 - present"
        Period(None, "2001-05-01") -> "Until 2001"
        Period()                   -> "Unknown period"
    """
    begin = period.begin.split("-")[0] if period.begin else None
    end = period.end.split("-")[0] if period.end else None
    if begin and end:
        return f"{begin} - {end}"
    if begin:
        return f"{begin} - present"
    if end:
        return f"Until {end}"
    return "Unknown period"


# =============================================================================
# DERIVED STATISTICS
# =============================================================================

def _percentage(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


def _record_tags(record: Any) -> list[Tag]:
    if isinstance(record, ReleaseGroup):
        return list(record.genres)
    if isinstance(record, dict):
        tags = []
        for raw in record.get("genres") or record.get("tags") or []:
            try:
                tags.append(Tag.from_api(raw))
            except (ValueError, TypeError, AttributeError):
                continue
        return tags
    if isinstance(record, Tag):
        return [record]
    return []


def genre_stats(records: Iterable[Any], top: int = TOP_N) -> list[GenreStat]:
    """
    Genre frequency weighted by tag votes.

    Args:
        records: ReleaseGroup objects, raw dicts with "genres"/"tags", or Tags.
        top: Number of genres to return.

    Returns:
        Genres with summed vote count and share of the total weight (percent).
    """
    weights: dict[str, int] = {}
    for record in records:
        for tag in _record_tags(record):
            key = tag.name.lower()
            weights[key] = weights.get(key, 0) + max(tag.count, 0)

    total = sum(weights.values())
    ranked = sorted(weights.items(), key=lambda item: item[1], reverse=True)[:top]
    return [GenreStat(name=name, count=count, percentage=_percentage(count, total)) for name, count in ranked]


def _record_date(record: Any) -> str | None:
    if isinstance(record, Release):
        return record.date
    if isinstance(record, ReleaseGroup):
        return record.first_release_date
    if isinstance(record, dict):
        return record.get("date") or record.get("first-release-date")
    return None


def decade_stats(records: Iterable[Any], top: int = TOP_N) -> list[DecadeStat]:
    """
    Histogram of releases per decade.

    Undated records are ignored; percentages are of the dated records.
    Decades are labelled "1990s", most populated first.
    """
    counts: dict[str, int] = {}
    for record in records:
        parsed = parse_partial_date(_record_date(record))
        if parsed is None:
            continue
        decade = f"{parsed.year // 10 * 10}s"
        counts[decade] = counts.get(decade, 0) + 1

    total = sum(counts.values())
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)[:top]
    return [DecadeStat(decade=d, count=c, percentage=_percentage(c, total)) for d, c in ranked]


def _collaboration_type(join_phrase: str) -> str:
    phrase = join_phrase.strip().lower()
    if "feat" in phrase or phrase.startswith("ft"):
        return "featuring"
    if phrase.startswith("vs") or "versus" in phrase:
        return "versus"
    return "collaboration"


def collaboration_stats(
    releases: Iterable[Any],
    artist_id: str,
    top: int = TOP_N
) -> list[CollaborationInfo]:
    """
    Artists credited together with artist_id.

    Only multi-artist credits that include artist_id count. The type of a
    collaboration comes from the join phrase just before the collaborator
    in the first shared credit (" feat. " -> featuring).
    """
    collaborators: dict[str, dict[str, Any]] = {}

    for release in _iter_releases(releases):
        credits = release.artist_credit
        if len(credits) < 2 or not any(c.artist.id == artist_id for c in credits):
            continue

        seen_on_release = set()
        for index, credit in enumerate(credits):
            other_id = credit.artist.id
            if other_id == artist_id or other_id in seen_on_release:
                continue
            seen_on_release.add(other_id)

            if other_id not in collaborators:
                phrase = credits[index - 1].join_phrase if index > 0 else credit.join_phrase
                collaborators[other_id] = {
                    "artist": credit.artist,
                    "type": _collaboration_type(phrase),
                    "releases": [],
                }
            collaborators[other_id]["releases"].append(release.title)

    infos = [
        CollaborationInfo(
            artist=c["artist"],
            collaboration_type=c["type"],
            release_count=len(c["releases"]),
            releases=tuple(c["releases"]),
        )
        for c in collaborators.values()
    ]
    return sorted(infos, key=lambda i: i.release_count, reverse=True)[:top]
