"""
Data models for MusicBrainz entities and the views derived from them.

Remote entities (Label, Artist, Release...) are frozen dataclasses built
from the JSON returned by the web service with ``from_api()``. Missing
fields default to empty strings or "Unknown" rather than triggering extra
lookups. Derived views (roster entries, statistics, family trees) are
built by the aggregator and the tree builder.

Design Decisions:
    - Remote entities are immutable; tree nodes are mutable because the
      roster pass writes each roster back onto its node.
    - Dates are kept as MusicBrainz partial-date strings ("1990",
      "1990-04", "1990-04-23"), which order correctly as strings.
    - from_api() never raises on a missing key; it raises ValueError only
      when the record has no ID at all, which callers treat as malformed.

Usage:
    label = Label.from_api({"id": "46f0f4cd-...", "name": "Warp"})
    release = Release.from_api(release_json)
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


UNKNOWN = "Unknown"

ROSTER_CURRENT = "current"
ROSTER_FORMER = "former"


def _require_id(data: dict[str, Any], kind: str) -> str:
    entity_id = data.get("id") if isinstance(data, dict) else None
    if not entity_id:
        raise ValueError(f"{kind} record without id")
    return entity_id


@dataclass(frozen=True)
class LifeSpan:
    """
    Begin/end dates of an artist or label.

    Attributes:
        begin: Partial date string or None.
        end: Partial date string or None.
        ended: MusicBrainz "ended" flag (may be True without an end date).
    """
    begin: str | None = None
    end: str | None = None
    ended: bool = False

    @classmethod
    def from_api(cls, data: dict[str, Any] | None) -> "LifeSpan":
        data = data or {}
        return cls(
            begin=data.get("begin") or None,
            end=data.get("end") or None,
            ended=bool(data.get("ended", False)),
        )


@dataclass(frozen=True)
class Label:
    """
    Immutable representation of a MusicBrainz label.

    Attributes:
        id: MusicBrainz label ID (UUID string).
        name: Label name. "Unknown" when absent.
        type: "Original Production", "Imprint", "Holding"... or "Unknown".
        country: ISO country code or "Unknown".
        disambiguation: Free-text comment distinguishing same-named labels.
        life_span: Founding/defunct dates.
        label_code: LC code without the "LC" prefix, if any.
    """
    id: str
    name: str = UNKNOWN
    type: str = UNKNOWN
    country: str = UNKNOWN
    disambiguation: str = ""
    life_span: LifeSpan = LifeSpan()
    label_code: int | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Label":
        return cls(
            id=_require_id(data, "label"),
            name=data.get("name") or UNKNOWN,
            type=data.get("type") or UNKNOWN,
            country=data.get("country") or UNKNOWN,
            disambiguation=data.get("disambiguation") or "",
            life_span=LifeSpan.from_api(data.get("life-span")),
            label_code=data.get("label-code"),
        )


@dataclass(frozen=True)
class Artist:
    """
    Immutable representation of a MusicBrainz artist.

    Artist objects embedded in release credits usually carry no life-span;
    search and lookup results do.
    """
    id: str
    name: str = UNKNOWN
    sort_name: str = ""
    type: str = UNKNOWN
    country: str = UNKNOWN
    disambiguation: str = ""
    life_span: LifeSpan = LifeSpan()

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Artist":
        return cls(
            id=_require_id(data, "artist"),
            name=data.get("name") or UNKNOWN,
            sort_name=data.get("sort-name") or "",
            type=data.get("type") or UNKNOWN,
            country=data.get("country") or UNKNOWN,
            disambiguation=data.get("disambiguation") or "",
            life_span=LifeSpan.from_api(data.get("life-span")),
        )


@dataclass(frozen=True)
class ArtistCredit:
    """One name in a release's artist credit, with its join phrase (" feat. ")."""
    artist: Artist
    name: str
    join_phrase: str = ""


def _parse_artist_credit(raw: list[dict[str, Any]] | None) -> tuple[ArtistCredit, ...]:
    """Parse an "artist-credit" array, skipping entries without an artist ID."""
    credits = []
    for credit in raw or []:
        artist_data = credit.get("artist") if isinstance(credit, dict) else None
        if not artist_data or not artist_data.get("id"):
            continue
        credits.append(ArtistCredit(
            artist=Artist.from_api(artist_data),
            name=credit.get("name") or artist_data.get("name") or UNKNOWN,
            join_phrase=credit.get("joinphrase") or "",
        ))
    return tuple(credits)


@dataclass(frozen=True)
class LabelInfo:
    """A label citation on a release. label is None for "[no label]" entries."""
    label: Label | None
    catalog_number: str = ""


@dataclass(frozen=True)
class Release:
    """
    Immutable representation of a MusicBrainz release.

    Attributes:
        id: Release ID.
        title: Release title.
        date: Partial release date, or None.
        status: "Official", "Promotion", ... or "".
        country: Release country or "".
        artist_credit: Credited artists in credit order.
        label_info: Label citations in the order MusicBrainz lists them.
        release_group_id: ID of the release group, if included.
        primary_type: Release-group primary type ("Album", "EP"...), if included.
    """
    id: str
    title: str = UNKNOWN
    date: str | None = None
    status: str = ""
    country: str = ""
    artist_credit: tuple[ArtistCredit, ...] = ()
    label_info: tuple[LabelInfo, ...] = ()
    release_group_id: str | None = None
    primary_type: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Release":
        label_info = []
        for info in data.get("label-info") or []:
            if not isinstance(info, dict):
                continue
            label_data = info.get("label")
            label = Label.from_api(label_data) if label_data and label_data.get("id") else None
            label_info.append(LabelInfo(label=label, catalog_number=info.get("catalog-number") or ""))

        group = data.get("release-group") or {}
        return cls(
            id=_require_id(data, "release"),
            title=data.get("title") or UNKNOWN,
            date=data.get("date") or None,
            status=data.get("status") or "",
            country=data.get("country") or "",
            artist_credit=_parse_artist_credit(data.get("artist-credit")),
            label_info=tuple(label_info),
            release_group_id=group.get("id"),
            primary_type=group.get("primary-type"),
        )

    @property
    def artist_names(self) -> str:
        """Artist credit rendered the way MusicBrainz displays it."""
        return "".join(f"{c.name}{c.join_phrase}" for c in self.artist_credit).strip()


@dataclass(frozen=True)
class Tag:
    """A genre or folksonomy tag with its vote count."""
    name: str
    count: int = 1

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Tag":
        name = data.get("name")
        if not name:
            raise ValueError("tag without name")
        return cls(name=name, count=int(data.get("count") or 1))


@dataclass(frozen=True)
class ReleaseGroup:
    """
    Abstract grouping of a release across editions.

    Attributes:
        id: Release-group ID.
        title: Title.
        primary_type: "Album", "Single", "EP"...
        secondary_types: "Compilation", "Live"...
        first_release_date: Earliest release date of the group.
        artist_credit: Credited artists.
        genres: Genres (falls back to tags when the group has no genres).
        release_ids: IDs of the releases in the group, when included.
    """
    id: str
    title: str = UNKNOWN
    primary_type: str | None = None
    secondary_types: tuple[str, ...] = ()
    first_release_date: str | None = None
    artist_credit: tuple[ArtistCredit, ...] = ()
    genres: tuple[Tag, ...] = ()
    release_ids: tuple[str, ...] = ()

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ReleaseGroup":
        raw_tags = data.get("genres") or data.get("tags") or []
        genres = []
        for tag in raw_tags:
            try:
                genres.append(Tag.from_api(tag))
            except (ValueError, TypeError, AttributeError):
                continue
        return cls(
            id=_require_id(data, "release-group"),
            title=data.get("title") or UNKNOWN,
            primary_type=data.get("primary-type"),
            secondary_types=tuple(data.get("secondary-types") or ()),
            first_release_date=data.get("first-release-date") or None,
            artist_credit=_parse_artist_credit(data.get("artist-credit")),
            genres=tuple(genres),
            release_ids=tuple(r["id"] for r in data.get("releases") or [] if r.get("id")),
        )


@dataclass(frozen=True)
class CoverArt:
    """
    Front cover of a release from the Cover Art Archive.

    Attributes:
        release_id: Release the art belongs to.
        image_url: Full-size image URL.
        thumbnail_url: 250px thumbnail URL, falling back to the full image.
    """
    release_id: str
    image_url: str
    thumbnail_url: str

    @classmethod
    def from_api(cls, release_id: str, data: dict[str, Any]) -> "CoverArt | None":
        images = data.get("images") or []
        front = next((img for img in images if img.get("front")), images[0] if images else None)
        if not front or not front.get("image"):
            return None
        thumbs = front.get("thumbnails") or {}
        return cls(
            release_id=release_id,
            image_url=front["image"],
            thumbnail_url=thumbs.get("250") or thumbs.get("small") or front["image"],
        )


@dataclass(frozen=True)
class Relationship:
    """
    Relationship from a tree node's parent to the node's label.

    Attributes:
        type: parent, subsidiary, imprint, reissue-series, holding,
              renamed-to or other.
        direction: "forward" or "backward", as reported by MusicBrainz.
        begin/end/ended: Period of the relationship.
        attributes: Relationship attributes, if any.
    """
    type: str
    direction: str = "forward"
    begin: str | None = None
    end: str | None = None
    ended: bool = False
    attributes: tuple[str, ...] = ()


@dataclass(frozen=True)
class RelatedLabel:
    """A label reached through a relationship."""
    label: Label
    relationship: Relationship


@dataclass(frozen=True)
class Period:
    begin: str | None = None
    end: str | None = None


@dataclass(frozen=True)
class RosterEntry:
    """
    An artist's association with a label, derived from release data.

    Attributes:
        artist: The credited artist.
        period: First/last release dates on the label, or the artist's
                own life-span when no release is dated.
        release_count: Releases on the label crediting the artist.
        relationship_type: "current" or "former".
        releases: Titles of those releases, in input order.
    """
    artist: Artist
    period: Period
    release_count: int
    relationship_type: str
    releases: tuple[str, ...] = ()


@dataclass(frozen=True)
class RosterSummary:
    total_artists: int
    current_artists: int
    former_artists: int
    total_releases: int


@dataclass(frozen=True)
class AggregatedLabel:
    """A label seen in a release list, with the number of citations."""
    label: Label
    release_count: int


@dataclass(frozen=True)
class GenreStat:
    name: str
    count: int
    percentage: float


@dataclass(frozen=True)
class DecadeStat:
    decade: str
    count: int
    percentage: float


@dataclass(frozen=True)
class CollaborationInfo:
    """
    Another artist credited together with a focal artist.

    Attributes:
        artist: The collaborator.
        collaboration_type: "featuring", "versus" or "collaboration", taken
                            from the join phrase preceding the collaborator.
        release_count: Shared releases.
        releases: Titles of the shared releases.
    """
    artist: Artist
    collaboration_type: str
    release_count: int
    releases: tuple[str, ...] = ()


@dataclass
class LabelTreeNode:
    """
    Node of a label family tree.

    Attributes:
        label: The label at this node.
        relationship: How the parent node relates to this label (None at root).
        children: Child nodes, populated only below max_depth.
        artist_roster: Roster attached by the roster pass, None before it ran.
        depth: Distance from the root (root = 0).
    """
    label: Label
    relationship: Relationship | None = None
    children: list["LabelTreeNode"] = field(default_factory=list)
    artist_roster: list[RosterEntry] | None = None
    depth: int = 0

    def walk(self):
        """Yield this node and every descendant in pre-order."""
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass
class LabelFamilyTree:
    """
    A family tree and its tree-wide totals.

    Attributes:
        root_label: Label the tree was built from.
        tree: Root node.
        total_labels: Number of nodes in the tree.
        total_artists: Sum of roster sizes over all nodes.
        max_depth: Deepest depth reached by any node.
        last_updated: Build (or filter) time.
    """
    root_label: Label
    tree: LabelTreeNode
    total_labels: int = 0
    total_artists: int = 0
    max_depth: int = 0
    last_updated: datetime = field(default_factory=datetime.now)

    @classmethod
    def from_tree(cls, tree: LabelTreeNode) -> "LabelFamilyTree":
        """Compute the totals of a finished tree."""
        nodes = list(tree.walk())
        return cls(
            root_label=tree.label,
            tree=tree,
            total_labels=len(nodes),
            total_artists=sum(len(n.artist_roster or ()) for n in nodes),
            max_depth=max(n.depth for n in nodes),
        )
