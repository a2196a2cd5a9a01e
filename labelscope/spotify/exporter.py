"""
Label playlist export: MusicBrainz releases -> Spotify playlist.

Export Workflow:
    1. For every release, search Spotify for the album
       (artist:"X" album:"Y", then, when no result passes the matcher,
       an album-only search over 50 results)
       and keep the first candidate accepted by the artist matcher
    2. Fetch the album's full track list and keep the first track_count
       tracks (all of them when track_count is None)
    3. Accumulate track URIs in first-seen order, dropping duplicates
    4. Create "<Label> - Label Playlist" and write the URIs in batches of
       100, each batch a separate high-priority request

Failure Handling:
    - No matching album, or a lookup error for one release: the release
      contributes no tracks and is recorded in the unmatched report.
    - AuthorizationExpired, terminal RateLimitExceeded and RequestCancelled
      abort the export.

Usage:
    exporter = PlaylistExporter(spotify_client)
    summary = await exporter.export("Warp", releases_from_roster(roster))
    print(summary.url, summary.tracks_added)
"""

from dataclasses import dataclass, field
from typing import Iterable

from labelscope.core.exceptions import (
    AuthorizationExpired,
    LabelscopeError,
    RateLimitExceeded,
    RequestCancelled,
)
from labelscope.core.logger import get_logger, log_unmatched_release
from labelscope.core.progress import ExportProgressBar
from labelscope.musicbrainz.models import RosterEntry
from labelscope.spotify.client import SpotifyClient
from labelscope.spotify.matcher import select_candidate
from labelscope.spotify.models import SpotifyAlbum


logger = get_logger(__name__)

DEFAULT_TRACK_COUNT = 5

# Result sizes of the two album searches
ARTIST_ALBUM_SEARCH_LIMIT = 10
ALBUM_ONLY_SEARCH_LIMIT = 50

PLAYLIST_NAME_TEMPLATE = "{label} - Label Playlist"
PLAYLIST_DESCRIPTION_TEMPLATE = "Curated playlist from {label} releases"


@dataclass(frozen=True)
class ExportRelease:
    """A release to look up on Spotify."""
    artist_name: str
    release_title: str


@dataclass(frozen=True)
class TrackSelection:
    """
    Outcome of the matching phase.

    Attributes:
        uris: Unique track URIs in first-seen order.
        candidate_count: Tracks considered after truncation, duplicates included.
        duplicates_skipped: Tracks dropped because their URI was already taken.
        unmatched: Releases that contributed no tracks.
    """
    uris: list[str] = field(default_factory=list)
    candidate_count: int = 0
    duplicates_skipped: int = 0
    unmatched: list[ExportRelease] = field(default_factory=list)


@dataclass(frozen=True)
class PlaylistSummary:
    id: str
    name: str
    url: str
    tracks_added: int
    duplicates_skipped: int
    unmatched: list[ExportRelease] = field(default_factory=list)


def _quote(value: str) -> str:
    return value.replace('"', " ").strip()


def releases_from_roster(
    roster: Iterable[RosterEntry],
    max_artists: int = 10,
    max_releases_per_artist: int = 5
) -> list[ExportRelease]:
    """
    Turn a roster into export requests.

    Takes the first max_artists entries (rosters are sorted by release
    count) and up to max_releases_per_artist distinct titles of each.
    """
    releases = []
    for entry in list(roster)[:max_artists]:
        titles = list(dict.fromkeys(entry.releases))[:max_releases_per_artist]
        releases.extend(ExportRelease(entry.artist.name, title) for title in titles)
    return releases


class PlaylistExporter:
    """
    Matches releases against the Spotify catalog and writes a playlist.

    Attributes:
        client: Spotify client used for every lookup and write.
    """

    def __init__(self, client: SpotifyClient) -> None:
        self.client = client

    async def find_album(self, artist_name: str, release_title: str) -> SpotifyAlbum | None:
        """
        Find the Spotify album for a release.

        The album-only search runs whenever the artist+album search yields
        no candidate accepted by the matcher, empty results included.

        Returns:
            The first candidate accepted by the matcher, or None.
        """
        queries = (
            (f'artist:"{_quote(artist_name)}" album:"{_quote(release_title)}"', ARTIST_ALBUM_SEARCH_LIMIT),
            (f'album:"{_quote(release_title)}"', ALBUM_ONLY_SEARCH_LIMIT),
        )
        for query, limit in queries:
            candidates = await self.client.search_albums(query, limit=limit)
            selected = select_candidate(artist_name, candidates, lambda album: album.artist_names)
            if selected is not None:
                album, strategy = selected
                logger.debug(f"Matched {artist_name} - {release_title} -> {album.name} ({strategy})")
                return album
            logger.debug(f"No accepted candidate among {len(candidates)} result(s) for {query}")
        return None

    async def collect_tracks(
        self,
        releases: Iterable[ExportRelease],
        track_count: int | None = DEFAULT_TRACK_COUNT,
        show_progress: bool = False
    ) -> TrackSelection:
        """
        Collect unique track URIs for releases.

        Args:
            releases: Releases in the order their tracks should appear.
            track_count: Tracks kept per album, None for the full album.
            show_progress: Display an ExportProgressBar.

        Raises:
            AuthorizationExpired, RateLimitExceeded, RequestCancelled.
        """
        releases = list(releases)
        uris: list[str] = []
        seen: set[str] = set()
        candidate_count = 0
        duplicates = 0
        unmatched: list[ExportRelease] = []

        progress = ExportProgressBar(total=len(releases)) if show_progress else None
        if progress:
            progress.start()
        try:
            for release in releases:
                try:
                    album = await self.find_album(release.artist_name, release.release_title)
                    tracks = await self.client.get_album_tracks(album.id) if album else []
                except (AuthorizationExpired, RateLimitExceeded, RequestCancelled):
                    raise
                except LabelscopeError as e:
                    log_unmatched_release(logger, release.artist_name, release.release_title, f"lookup failed: {e}")
                    unmatched.append(release)
                    if progress:
                        progress.update(matched=False)
                    continue

                if album is None or not tracks:
                    reason = "no matching album" if album is None else "album has no tracks"
                    log_unmatched_release(logger, release.artist_name, release.release_title, reason)
                    unmatched.append(release)
                    if progress:
                        progress.update(matched=False)
                    continue

                if track_count is not None:
                    tracks = tracks[:track_count]
                candidate_count += len(tracks)

                release_duplicates = 0
                for track in tracks:
                    if track.uri in seen:
                        release_duplicates += 1
                        logger.debug(f"Duplicate track skipped: {track.name} ({track.uri})")
                        continue
                    seen.add(track.uri)
                    uris.append(track.uri)
                duplicates += release_duplicates

                if progress:
                    progress.update(matched=True, duplicates=release_duplicates)
        finally:
            if progress:
                progress.stop()

        if duplicates:
            logger.info(f"Skipped {duplicates} duplicate track(s)")
        return TrackSelection(
            uris=uris,
            candidate_count=candidate_count,
            duplicates_skipped=duplicates,
            unmatched=unmatched,
        )

    async def export(
        self,
        label_name: str,
        releases: Iterable[ExportRelease],
        track_count: int | None = DEFAULT_TRACK_COUNT,
        public: bool = True,
        show_progress: bool = False
    ) -> PlaylistSummary:
        """
        Create a label playlist from releases.

        The playlist is created even when no track matched; it is then
        empty and the summary reports every release as unmatched.
        """
        selection = await self.collect_tracks(releases, track_count, show_progress=show_progress)

        playlist = await self.client.create_playlist(
            PLAYLIST_NAME_TEMPLATE.format(label=label_name),
            PLAYLIST_DESCRIPTION_TEMPLATE.format(label=label_name),
            public,
        )
        if selection.uris:
            added = await self.client.add_tracks(playlist.id, selection.uris)
        else:
            logger.warning(f"No tracks matched for {label_name}; playlist is empty")
            added = 0

        return PlaylistSummary(
            id=playlist.id,
            name=playlist.name,
            url=playlist.url,
            tracks_added=added,
            duplicates_skipped=selection.duplicates_skipped,
            unmatched=selection.unmatched,
        )
