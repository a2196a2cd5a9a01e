# tests/test_exporter.py
"""Tests for the playlist exporter"""

import pytest

from labelscope.core.exceptions import AuthorizationExpired, NetworkError
from labelscope.musicbrainz.models import Artist, Period, RosterEntry
from labelscope.spotify.exporter import ExportRelease, PlaylistExporter, releases_from_roster
from labelscope.spotify.models import SpotifyAlbum, SpotifyPlaylist, SpotifyTrack


def make_album(album_id, name, *artists):
    return SpotifyAlbum(id=album_id, name=name, artist_names=artists, uri=f"spotify:album:{album_id}")


def make_tracks(*track_ids):
    return [
        SpotifyTrack(id=track_id, name=f"Track {track_id}", uri=f"spotify:track:{track_id}")
        for track_id in track_ids
    ]


class FakeSpotifyClient:
    """Records searches and writes; answers from dictionaries"""

    def __init__(self, searches=None, tracks=None, failing_albums=(), search_error=None):
        self.searches = searches or {}
        self.tracks = tracks or {}
        self.failing_albums = set(failing_albums)
        self.search_error = search_error
        self.queries = []
        self.created = []
        self.added = []

    async def search_albums(self, query, limit=10):
        self.queries.append((query, limit))
        if self.search_error:
            raise self.search_error
        return self.searches.get(query, [])

    async def get_album_tracks(self, album_id):
        if album_id in self.failing_albums:
            raise NetworkError("connection reset")
        return self.tracks.get(album_id, [])

    async def create_playlist(self, name, description="", public=True):
        self.created.append((name, description, public))
        return SpotifyPlaylist(id="pl1", name=name, url="https://open.spotify.com/playlist/pl1")

    async def add_tracks(self, playlist_id, uris):
        self.added.append((playlist_id, list(uris)))
        return len(uris)


AMBER = 'artist:"Autechre" album:"Amber"'
TRI = 'artist:"Autechre" album:"Tri Repetae"'


class TestCollectTracks:
    """Test matching, truncation and de-duplication"""

    @pytest.mark.asyncio
    async def test_duplicates_counted(self):
        """Duplicates skipped equals candidates minus unique URIs"""
        client = FakeSpotifyClient(
            searches={AMBER: [make_album("a1", "Amber", "Autechre")], TRI: [make_album("a2", "Tri Repetae", "Autechre")]},
            tracks={"a1": make_tracks("t1", "t2", "t3", "t4", "t5", "t6"), "a2": make_tracks("t3", "t4", "t9")},
        )
        releases = [ExportRelease("Autechre", "Amber"), ExportRelease("Autechre", "Tri Repetae")]

        selection = await PlaylistExporter(client).collect_tracks(releases, track_count=5)

        assert selection.uris == [f"spotify:track:{t}" for t in ("t1", "t2", "t3", "t4", "t5", "t9")]
        assert selection.candidate_count == 8
        assert selection.duplicates_skipped == 2
        assert selection.duplicates_skipped == selection.candidate_count - len(selection.uris)
        assert selection.unmatched == []

    @pytest.mark.asyncio
    async def test_full_album(self):
        """track_count=None keeps every track"""
        client = FakeSpotifyClient(
            searches={AMBER: [make_album("a1", "Amber", "Autechre")]},
            tracks={"a1": make_tracks("t1", "t2", "t3", "t4", "t5", "t6")},
        )
        selection = await PlaylistExporter(client).collect_tracks([ExportRelease("Autechre", "Amber")], track_count=None)
        assert len(selection.uris) == 6

    @pytest.mark.asyncio
    async def test_album_only_fallback(self):
        """An empty artist+album search falls back to the album title alone"""
        client = FakeSpotifyClient(
            searches={'album:"Amber"': [
                make_album("x1", "Amber", "Amber Run"),
                make_album("a1", "Amber", "Autechre"),
            ]},
            tracks={"a1": make_tracks("t1")},
        )
        album = await PlaylistExporter(client).find_album("Autechre", "Amber")

        assert album.id == "a1"
        assert client.queries == [(AMBER, 10), ('album:"Amber"', 50)]

    @pytest.mark.asyncio
    async def test_rejected_results_fall_back_to_album_only(self):
        """Artist+album results by other artists still trigger the album-only search"""
        client = FakeSpotifyClient(searches={
            AMBER: [make_album("x1", "Amber", "Amber Run")],
            'album:"Amber"': [make_album("a1", "Amber", "Autechre")],
        })

        album = await PlaylistExporter(client).find_album("Autechre", "Amber")

        assert album is not None
        assert album.id == "a1"
        assert client.queries == [(AMBER, 10), ('album:"Amber"', 50)]

    @pytest.mark.asyncio
    async def test_wrong_artist_is_unmatched(self):
        """Results by other artists in both searches are rejected"""
        client = FakeSpotifyClient(searches={
            AMBER: [make_album("x1", "Amber", "Amber Run")],
            'album:"Amber"': [make_album("x2", "Amber", "Amber Mark")],
        })
        release = ExportRelease("Autechre", "Amber")

        selection = await PlaylistExporter(client).collect_tracks([release])

        assert selection.uris == []
        assert selection.unmatched == [release]
        assert client.queries == [(AMBER, 10), ('album:"Amber"', 50)]

    @pytest.mark.asyncio
    async def test_lookup_error_skips_release(self):
        """A failing track listing affects one release only"""
        client = FakeSpotifyClient(
            searches={AMBER: [make_album("a1", "Amber", "Autechre")], TRI: [make_album("a2", "Tri Repetae", "Autechre")]},
            tracks={"a2": make_tracks("t7")},
            failing_albums={"a1"},
        )
        releases = [ExportRelease("Autechre", "Amber"), ExportRelease("Autechre", "Tri Repetae")]

        selection = await PlaylistExporter(client).collect_tracks(releases)

        assert selection.uris == ["spotify:track:t7"]
        assert selection.unmatched == [releases[0]]

    @pytest.mark.asyncio
    async def test_authorization_error_aborts(self):
        """An expired session stops the whole export"""
        client = FakeSpotifyClient(search_error=AuthorizationExpired("expired"))
        exporter = PlaylistExporter(client)

        with pytest.raises(AuthorizationExpired):
            await exporter.export("Warp", [ExportRelease("Autechre", "Amber")])
        assert client.created == []


class TestExport:
    """Test playlist creation"""

    @pytest.mark.asyncio
    async def test_export_creates_named_playlist(self):
        """Name and description follow the label"""
        client = FakeSpotifyClient(
            searches={AMBER: [make_album("a1", "Amber", "Autechre")]},
            tracks={"a1": make_tracks("t1", "t2")},
        )
        summary = await PlaylistExporter(client).export("Warp", [ExportRelease("Autechre", "Amber")], public=False)

        assert client.created == [("Warp - Label Playlist", "Curated playlist from Warp releases", False)]
        assert client.added == [("pl1", ["spotify:track:t1", "spotify:track:t2"])]
        assert summary.tracks_added == 2
        assert summary.url == "https://open.spotify.com/playlist/pl1"

    @pytest.mark.asyncio
    async def test_empty_export_still_creates_playlist(self):
        """Nothing matched: an empty playlist and every release unmatched"""
        client = FakeSpotifyClient()
        releases = [ExportRelease("Autechre", "Amber")]

        summary = await PlaylistExporter(client).export("Warp", releases)

        assert len(client.created) == 1
        assert client.added == []
        assert summary.tracks_added == 0
        assert summary.unmatched == releases


class TestReleasesFromRoster:
    """Test roster to export request conversion"""

    def test_limits(self):
        """Artists and titles per artist are capped; repeated titles collapse"""
        roster = [
            RosterEntry(Artist("a", "Autechre"), Period(), 3, "current", ("Amber", "Amber", "Tri Repetae", "LP5")),
            RosterEntry(Artist("b", "Boards of Canada"), Period(), 1, "former", ("Geogaddi",)),
            RosterEntry(Artist("c", "Clark"), Period(), 1, "current", ("Turning Dragon",)),
        ]
        releases = releases_from_roster(roster, max_artists=2, max_releases_per_artist=2)
        assert releases == [
            ExportRelease("Autechre", "Amber"),
            ExportRelease("Autechre", "Tri Repetae"),
            ExportRelease("Boards of Canada", "Geogaddi"),
        ]
