# tests/test_musicbrainz_client.py
"""Tests for the MusicBrainz client with the transport mocked out"""

from unittest.mock import AsyncMock

import pytest

from labelscope.core.cache import ResponseCache
from labelscope.core.exceptions import LabelscopeError, NetworkError, NotFoundError
from labelscope.core.request_queue import RateLimitedQueue
from labelscope.musicbrainz.client import COVER_ART_URL, MusicBrainzClient, map_relationship
from labelscope.musicbrainz.family_tree import FamilyTreeBuilder


@pytest.fixture
def client(musicbrainz_config, fake_clock):
    queue = RateLimitedQueue(interval=1.0, clock=fake_clock, sleep=fake_clock.sleep, name="musicbrainz-test")
    return MusicBrainzClient(musicbrainz_config, cache=ResponseCache(ttl=300, clock=fake_clock), queue=queue)


class TestMapRelationship:
    """Test MusicBrainz relation type mapping"""

    @pytest.mark.parametrize("mb_type, direction, expected", [
        ("label ownership", "forward", "subsidiary"),
        ("label ownership", "backward", "parent"),
        ("imprint", "forward", "imprint"),
        ("imprint", "backward", "parent"),
        ("label reissue", "forward", "reissue-series"),
        ("label rename", "forward", "renamed-to"),
        ("label holding", "backward", "holding"),
        ("label distribution", "forward", "other"),
    ])
    def test_types(self, mb_type, direction, expected):
        """Type and direction decide the tree relationship"""
        assert map_relationship({"type": mb_type, "direction": direction}).type == expected

    def test_period_and_attributes(self):
        """Dates and attributes are carried over"""
        relationship = map_relationship({
            "type": "Imprint",
            "begin": "1999",
            "end": "",
            "ended": False,
            "attributes": ["primary"],
        })
        assert relationship.type == "imprint"
        assert relationship.direction == "forward"
        assert relationship.begin == "1999"
        assert relationship.end is None
        assert relationship.attributes == ("primary",)


class TestLookups:
    """Test lookups, caching and pacing"""

    @pytest.mark.asyncio
    async def test_label_lookup_is_cached(self, client, musicbrainz_config):
        """A second lookup of the same label sends nothing"""
        client._fetch_json = AsyncMock(return_value={"id": "warp", "name": "Warp", "country": "GB"})

        first = await client.get_label("warp")
        second = await client.get_label("warp")

        assert first == second
        assert first.country == "GB"
        client._fetch_json.assert_awaited_once_with(f"{musicbrainz_config.base_url}/label/warp", {})

    @pytest.mark.asyncio
    async def test_requests_are_spaced(self, client, fake_clock):
        """Two uncached lookups are a full interval apart"""
        client._fetch_json = AsyncMock(side_effect=[{"id": "a", "name": "A"}, {"id": "b", "name": "B"}])

        await client.get_label("a")
        await client.get_label("b")

        assert fake_clock.sleeps == [1.0]

    @pytest.mark.asyncio
    async def test_malformed_label_is_labelscope_error(self, client):
        """A label body without an ID raises LabelscopeError naming the label"""
        client._fetch_json = AsyncMock(return_value={"name": "No ID"})

        with pytest.raises(LabelscopeError) as exc_info:
            await client.get_label("broken")

        assert exc_info.value.details["label_id"] == "broken"

    @pytest.mark.asyncio
    async def test_malformed_root_label_aborts_tree(self, client):
        """A tree rooted at an unusable label fails with LabelscopeError"""
        client._fetch_json = AsyncMock(return_value={"name": "No ID"})

        with pytest.raises(LabelscopeError):
            await FamilyTreeBuilder(client).build_tree("broken")

    @pytest.mark.asyncio
    async def test_malformed_release_is_labelscope_error(self, client, fake_clock):
        """Release lookups report unusable bodies the same way"""
        client._fetch_json = AsyncMock(return_value={"title": "No ID"})

        with pytest.raises(LabelscopeError) as exc_info:
            await client.get_release("r1")

        assert exc_info.value.details["release_id"] == "r1"

        assert fake_clock.sleeps == [1.0]

    @pytest.mark.asyncio
    async def test_relationships(self, client):
        """Relations without a label target are skipped"""
        client._fetch_json = AsyncMock(return_value={
            "id": "warp",
            "name": "Warp",
            "relations": [
                {"type": "imprint", "direction": "forward", "target-type": "label",
                 "label": {"id": "arcola", "name": "Arcola"}},
                {"type": "label ownership", "direction": "backward", "target-type": "label",
                 "label": {"id": "owner", "name": "Owner"}},
                {"type": "official site", "target-type": "url", "url": {"resource": "https://warp.net"}},
                {"type": "imprint", "direction": "forward", "target-type": "label", "label": {"name": "No ID"}},
            ],
        })

        related = await client.get_label_relationships("warp")

        assert [(r.label.id, r.relationship.type) for r in related] == [("arcola", "imprint"), ("owner", "parent")]
        assert client._fetch_json.await_args.args[1] == {"inc": "label-rels"}

    @pytest.mark.asyncio
    async def test_search_skips_malformed_records(self, client):
        """Search results without an ID are dropped"""
        client._fetch_json = AsyncMock(return_value={"labels": [{"name": "no id"}, {"id": "warp", "name": "Warp"}]})
        labels = await client.search_labels("Warp")
        assert [label.id for label in labels] == ["warp"]

    @pytest.mark.asyncio
    async def test_label_roster_paginates(self, client, make_release):
        """150 releases at 100 per page take two requests"""
        releases = [make_release(f"r{i}", f"Release {i}", "2025", [(f"artist{i % 3}", f"Artist {i % 3}")]) for i in range(150)]

        async def fetch(url, params):
            offset, limit = params["offset"], params["limit"]
            return {"releases": releases[offset:offset + limit], "release-count": 150}

        client._fetch_json = AsyncMock(side_effect=fetch)

        roster = await client.get_label_roster("warp")

        assert [c.args[1]["offset"] for c in client._fetch_json.await_args_list] == [0, 100]
        assert sum(entry.release_count for entry in roster) == 150
        assert {entry.artist.id for entry in roster} == {"artist0", "artist1", "artist2"}

    @pytest.mark.asyncio
    async def test_label_roster_with_life_spans(self, client, make_release, musicbrainz_config):
        """Each credited artist is looked up once; a failed lookup keeps the credit"""
        releases = [
            make_release("r1", "Last Single", "2099-01-01", [("split", "Split")]),
            make_release("r2", "Other", "2099-02-01", [("split", "Split"), ("gone", "Gone")]),
        ]

        async def fetch(url, params=None):
            if url.endswith("/artist/split"):
                return {"id": "split", "name": "Split", "life-span": {"begin": "1990", "end": "2020", "ended": True}}
            if url.endswith("/artist/gone"):
                raise NotFoundError("MusicBrainz resource not found", 404)
            return {"releases": releases, "release-count": 2}

        client._fetch_json = AsyncMock(side_effect=fetch)

        roster = await client.get_label_roster("warp", with_life_spans=True)

        types = {entry.artist.id: entry.relationship_type for entry in roster}
        assert types == {"split": "former", "gone": "current"}
        urls = [c.args[0] for c in client._fetch_json.await_args_list]
        base = musicbrainz_config.base_url
        assert urls == [f"{base}/release", f"{base}/artist/split", f"{base}/artist/gone"]

    @pytest.mark.asyncio
    async def test_artist_labels(self, client, make_release):
        """Label citations across an artist's releases"""
        client._fetch_json = AsyncMock(return_value={
            "releases": [
                make_release("r1", "A", labels=[("warp", "Warp", "WARP1")]),
                make_release("r2", "B", labels=[("warp", "Warp", "WARP2")]),
                make_release("r3", "C", labels=[("skam", "Skam", "SKA1")]),
            ],
            "release-count": 3,
        })

        labels = await client.get_artist_labels("autechre")

        assert [(a.label.name, a.release_count) for a in labels] == [("Warp", 2), ("Skam", 1)]

    @pytest.mark.asyncio
    async def test_release_and_release_group(self, client, make_release):
        """Lookups request the includes their models need"""
        client._fetch_json = AsyncMock(side_effect=[
            make_release("r1", "Amber", "1994-11-07", [("ae", "Autechre")], [("warp", "Warp", "WARPCD25")]),
            {"id": "g1", "title": "Amber", "primary-type": "Album",
             "genres": [{"name": "idm", "count": 5}], "releases": [{"id": "r1"}, {"id": "r2"}]},
        ])

        release = await client.get_release("r1")
        group = await client.get_release_group("g1")

        assert release.artist_names == "Autechre"
        assert release.label_info[0].label.name == "Warp"
        assert group.release_ids == ("r1", "r2")
        assert group.genres[0].name == "idm"
        includes = [c.args[1]["inc"] for c in client._fetch_json.await_args_list]
        assert includes == ["artist-credits+labels+release-groups", "artist-credits+genres+releases"]

    @pytest.mark.asyncio
    async def test_close_clears_queue(self, client):
        """Closing leaves no session and an empty queue"""
        await client.close()
        assert client._session is None
        assert len(client.queue) == 0


class TestCoverArt:
    """Test Cover Art Archive lookups"""

    @pytest.mark.asyncio
    async def test_front_cover(self, client):
        """The front image and its 250px thumbnail"""
        client._fetch_json = AsyncMock(return_value={"images": [
            {"front": False, "image": "https://img/back.jpg"},
            {"front": True, "image": "https://img/front.jpg", "thumbnails": {"250": "https://img/front-250.jpg"}},
        ]})

        cover = await client.get_cover_art("r1")

        assert cover.image_url == "https://img/front.jpg"
        assert cover.thumbnail_url == "https://img/front-250.jpg"
        assert client._fetch_json.await_args.args[0] == f"{COVER_ART_URL}/release/r1"

    @pytest.mark.asyncio
    async def test_missing_cover_is_cached_none(self, client):
        """A 404 is None and is not asked again"""
        client._fetch_json = AsyncMock(side_effect=NotFoundError("Cover Art Archive resource not found", 404))

        assert await client.get_cover_art("r1") is None
        assert await client.get_cover_art("r1") is None
        assert client._fetch_json.await_count == 1

    @pytest.mark.asyncio
    async def test_failure_is_none_and_not_cached(self, client):
        """Other errors degrade to None and are retried next time"""
        client._fetch_json = AsyncMock(side_effect=NetworkError("connection reset"))

        assert await client.get_cover_art("r1") is None
        assert await client.get_cover_art("r1") is None
        assert client._fetch_json.await_count == 2

    @pytest.mark.asyncio
    async def test_cover_lookups_share_the_queue(self, client, fake_clock):
        """Two uncached cover lookups are a full interval apart"""
        image = {"images": [{"front": True, "image": "https://img/front.jpg"}]}
        client._fetch_json = AsyncMock(side_effect=[image, image])

        await client.get_cover_art("r1")
        await client.get_cover_art("r2")

        assert fake_clock.sleeps == [1.0]
        assert client._fetch_json.await_count == 2
