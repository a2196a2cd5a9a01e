"""
MusicBrainz web service client for labelscope.

Every request goes through one RateLimitedQueue (MusicBrainz allows about
one request per second per client and does not queue on its side) and one
ResponseCache, so repeated lookups during a tree build cost nothing.

Endpoints:
    search_labels / search_artists       GET /label, /artist ?query=
    get_label / get_artist               GET /label/{id}, /artist/{id}
    get_label_relationships              GET /label/{id}?inc=label-rels
    browse_label_releases                GET /release?label={id}
    browse_artist_releases               GET /release?artist={id}
    get_release_group / get_release      GET /release-group/{id}, /release/{id}
    get_cover_art                        Cover Art Archive /release/{id}

Higher-level helpers combine the collector and the aggregator:
    get_label_roster(label_id, with_life_spans=False) -> list[RosterEntry]
    get_artist_labels(artist_id)                      -> list[AggregatedLabel]

Usage:
    async with MusicBrainzClient(config.musicbrainz) as client:
        labels = await client.search_labels("Warp")
        roster = await client.get_label_roster(labels[0].id)
"""

import asyncio
from typing import Any

import aiohttp

from labelscope.core.cache import ResponseCache, make_key
from labelscope.core.config import MusicBrainzConfig
from labelscope.core.exceptions import (
    LabelscopeError,
    NetworkError,
    NotFoundError,
    RequestCancelled,
    raise_for_status,
)
from labelscope.core.logger import get_logger
from labelscope.core.pagination import Page, collect_all
from labelscope.core.request_queue import RateLimitedQueue
from labelscope.musicbrainz.aggregator import aggregate_labels, aggregate_roster
from labelscope.musicbrainz.models import (
    AggregatedLabel,
    Artist,
    CoverArt,
    Label,
    RelatedLabel,
    Relationship,
    Release,
    ReleaseGroup,
    RosterEntry,
)


logger = get_logger(__name__)

COVER_ART_URL = "https://coverartarchive.org"
REQUEST_TIMEOUT_SECONDS = 30

# Marker cached for releases without cover art (the cache treats None as a miss)
_NO_COVER_ART: dict[str, Any] = {}

# (MusicBrainz relation type, direction) -> tree relationship type
RELATIONSHIP_TYPE_MAP = {
    ("label ownership", "forward"): "subsidiary",
    ("label ownership", "backward"): "parent",
    ("imprint", "forward"): "imprint",
    ("imprint", "backward"): "parent",
    ("label reissue", "forward"): "reissue-series",
    ("label reissue", "backward"): "reissue-series",
    ("label rename", "forward"): "renamed-to",
    ("label holding", "forward"): "holding",
    ("label holding", "backward"): "holding",
    ("holding", "forward"): "holding",
    ("holding", "backward"): "holding",
}


def map_relationship(relation: dict[str, Any]) -> Relationship:
    """
    Convert a MusicBrainz label-label relation into a tree Relationship.

    Unknown relation types (distribution, business association...) map to
    "other".
    """
    mb_type = (relation.get("type") or "").lower()
    direction = relation.get("direction") or "forward"
    return Relationship(
        type=RELATIONSHIP_TYPE_MAP.get((mb_type, direction), "other"),
        direction=direction,
        begin=relation.get("begin") or None,
        end=relation.get("end") or None,
        ended=bool(relation.get("ended", False)),
        attributes=tuple(relation.get("attributes") or ()),
    )


class MusicBrainzClient:
    """
    Asynchronous, queued and cached MusicBrainz client.

    Attributes:
        config: MusicBrainz settings (user agent, base URL, pacing).
        cache: Response cache shared by every endpoint.
        queue: FIFO queue enforcing config.request_interval.

    The aiohttp session is created lazily on first use; call close() (or
    use the client as an async context manager) to release it.
    """

    def __init__(
        self,
        config: MusicBrainzConfig,
        cache: ResponseCache | None = None,
        queue: RateLimitedQueue | None = None,
        cache_ttl: float = 300.0
    ) -> None:
        self.config = config
        self.cache = cache if cache is not None else ResponseCache(ttl=cache_ttl)
        self.queue = queue if queue is not None else RateLimitedQueue(
            interval=config.request_interval, name="musicbrainz"
        )
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "MusicBrainzClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        self.queue.clear()
        if self._session is not None:
            await self._session.close()
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers={
                    "User-Agent": self.config.user_agent,
                    "Accept": "application/json",
                },
                timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT_SECONDS),
            )
        return self._session

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    async def _fetch_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        """
        Perform one GET and decode the JSON body.

        Raises:
            NetworkError: On connection failures and timeouts.
            LabelscopeError subclasses: On non-2xx statuses (raise_for_status).
        """
        query = {"fmt": "json", **(params or {})}
        service = "Cover Art Archive" if url.startswith(COVER_ART_URL) else "MusicBrainz"
        session = self._get_session()

        try:
            async with session.get(url, params=query) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise_for_status(response.status, str(response.url), response.headers, body, service)
                return await response.json(content_type=None)
        except (aiohttp.ClientConnectionError, asyncio.TimeoutError) as e:
            raise NetworkError(
                f"Could not reach {service}: {e or type(e).__name__}",
                details={"url": url, "original_error": repr(e)}
            ) from e
        except aiohttp.ContentTypeError as e:
            raise NetworkError(
                f"Unexpected response from {service}",
                details={"url": url, "original_error": repr(e)}
            ) from e

    async def _get(self, path: str, params: dict[str, Any], cache_key: str) -> Any:
        """Cached, queued GET against the MusicBrainz web service."""
        cached = self.cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Cache hit: {cache_key}")
            return cached

        url = f"{self.config.base_url}/{path.lstrip('/')}"
        logger.debug(f"GET {url} {params}")
        data = await self.queue.enqueue(lambda: self._fetch_json(url, params))
        self.cache.put(cache_key, data)
        return data

    # =========================================================================
    # SEARCH
    # =========================================================================

    async def search_labels(self, query: str, limit: int = 20) -> list[Label]:
        data = await self._get(
            "label",
            {"query": query, "limit": limit},
            make_key("label-search", query, limit=limit),
        )
        return _parse_many(data.get("labels"), Label)

    async def search_artists(self, query: str, limit: int = 10) -> list[Artist]:
        data = await self._get(
            "artist",
            {"query": query, "limit": limit},
            make_key("artist-search", query, limit=limit),
        )
        return _parse_many(data.get("artists"), Artist)

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    async def get_label(self, label_id: str) -> Label:
        data = await self._get(f"label/{label_id}", {}, make_key("label", label_id))
        return _parse_entity(data, Label, "label_id", label_id)

    async def get_artist(self, artist_id: str) -> Artist:
        data = await self._get(f"artist/{artist_id}", {}, make_key("artist", artist_id))
        return _parse_entity(data, Artist, "artist_id", artist_id)

    async def get_label_relationships(self, label_id: str) -> list[RelatedLabel]:
        """
        Labels related to label_id through label-label relations.

        Returns:
            One RelatedLabel per relation, in MusicBrainz order. Relations
            without a usable target label are skipped.
        """
        data = await self._get(
            f"label/{label_id}",
            {"inc": "label-rels"},
            make_key("label-rels", label_id),
        )
        related = []
        for relation in data.get("relations") or []:
            if relation.get("target-type") not in (None, "label"):
                continue
            target = relation.get("label")
            if not target or not target.get("id"):
                continue
            related.append(RelatedLabel(label=Label.from_api(target), relationship=map_relationship(relation)))
        return related

    async def get_release_group(self, release_group_id: str) -> ReleaseGroup:
        data = await self._get(
            f"release-group/{release_group_id}",
            {"inc": "artist-credits+genres+releases"},
            make_key("release-group", release_group_id),
        )
        return _parse_entity(data, ReleaseGroup, "release_group_id", release_group_id)

    async def get_release(self, release_id: str) -> Release:
        data = await self._get(
            f"release/{release_id}",
            {"inc": "artist-credits+labels+release-groups"},
            make_key("release", release_id),
        )
        return _parse_entity(data, Release, "release_id", release_id)

    async def get_cover_art(self, release_id: str) -> CoverArt | None:
        """
        Front cover of a release, or None.

        Missing art is normal: a 404 or any other failure degrades to None
        and is logged, never raised. Lookups share the MusicBrainz queue.
        """
        cache_key = make_key("cover-art", release_id)
        data = self.cache.get(cache_key)
        if data is None:
            url = f"{COVER_ART_URL}/release/{release_id}"
            try:
                data = await self.queue.enqueue(lambda: self._fetch_json(url))
            except RequestCancelled:
                raise
            except NotFoundError:
                data = _NO_COVER_ART
            except LabelscopeError as e:
                logger.warning(f"Cover art lookup failed for release {release_id}: {e}")
                return None
            self.cache.put(cache_key, data)

        if data is _NO_COVER_ART:
            return None
        return CoverArt.from_api(release_id, data)

    # =========================================================================
    # BROWSE (PAGINATED)
    # =========================================================================

    async def browse_label_releases(self, label_id: str, offset: int = 0, limit: int = 100) -> Page:
        data = await self._get(
            "release",
            {"label": label_id, "inc": "artist-credits+labels", "offset": offset, "limit": limit},
            make_key("label-releases", label_id, offset=offset, limit=limit),
        )
        return Page(items=data.get("releases") or [], total=int(data.get("release-count") or 0))

    async def browse_artist_releases(self, artist_id: str, offset: int = 0, limit: int = 100) -> Page:
        data = await self._get(
            "release",
            {"artist": artist_id, "inc": "labels+release-groups", "offset": offset, "limit": limit},
            make_key("artist-releases", artist_id, offset=offset, limit=limit),
        )
        return Page(items=data.get("releases") or [], total=int(data.get("release-count") or 0))

    async def collect_label_releases(self, label_id: str, max_records: int | None = None) -> list[dict]:
        return await collect_all(
            lambda offset, limit: self.browse_label_releases(label_id, offset, limit),
            page_size=self.config.page_size,
            max_records=max_records or self.config.max_records,
        )

    async def collect_artist_releases(self, artist_id: str, max_records: int | None = None) -> list[dict]:
        return await collect_all(
            lambda offset, limit: self.browse_artist_releases(artist_id, offset, limit),
            page_size=self.config.page_size,
            max_records=max_records or self.config.max_records,
        )

    # =========================================================================
    # AGGREGATED VIEWS
    # =========================================================================

    async def get_label_roster(self, label_id: str, with_life_spans: bool = False) -> list[RosterEntry]:
        """
        Artist roster of a label.

        Browsed credits carry no life-span. With with_life_spans, every
        credited artist is looked up once more (one queued request each) so
        that artists whose life-span has ended classify as former. A failed
        lookup keeps the credited artist.
        """
        releases = await self.collect_label_releases(label_id)
        artists = await self._lookup_credited_artists(releases) if with_life_spans else None
        roster = aggregate_roster(releases, artists=artists)
        logger.debug(f"Label {label_id}: {len(roster)} artist(s) from {len(releases)} release(s)")
        return roster

    async def _lookup_credited_artists(self, releases: list[dict]) -> dict[str, Artist]:
        artist_ids: dict[str, None] = {}
        for release in releases:
            for credit in release.get("artist-credit") or []:
                artist = credit.get("artist") if isinstance(credit, dict) else None
                if artist and artist.get("id"):
                    artist_ids.setdefault(artist["id"])

        artists = {}
        for artist_id in artist_ids:
            try:
                artists[artist_id] = await self.get_artist(artist_id)
            except RequestCancelled:
                raise
            except LabelscopeError as e:
                logger.warning(f"Artist lookup failed for {artist_id}: {e}")
        return artists

    async def get_artist_labels(self, artist_id: str) -> list[AggregatedLabel]:
        releases = await self.collect_artist_releases(artist_id)
        return aggregate_labels(releases)


def _parse_many(records: list[dict] | None, model) -> list:
    parsed = []
    for record in records or []:
        try:
            parsed.append(model.from_api(record))
        except (ValueError, TypeError, AttributeError) as e:
            logger.debug(f"Skipping malformed {model.__name__} record: {e}")
    return parsed


def _parse_entity(data: Any, model, id_field: str, entity_id: str):
    """Parse a lookup response, reporting an unusable body as a LabelscopeError."""
    try:
        return model.from_api(data)
    except (ValueError, TypeError, AttributeError) as e:
        raise LabelscopeError(
            f"Malformed {model.__name__} response for {entity_id}",
            details={id_field: entity_id, "original_error": repr(e)}
        ) from e
