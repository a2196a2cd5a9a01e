"""Test configuration and fixtures"""

import asyncio
import tempfile
from pathlib import Path
from typing import Any

import pytest

from labelscope.core.config import MusicBrainzConfig


class FakeClock:
    """Simulated monotonic clock whose sleep() advances time instantly."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def fake_clock():
    return FakeClock(start=1000.0)


@pytest.fixture
def musicbrainz_config():
    return MusicBrainzConfig(user_agent="labelscope-tests/0.1 ( tests@example.com )")


@pytest.fixture
def make_release():
    """Factory for MusicBrainz release JSON as returned by /release?label=..."""

    def _make(
        release_id: str,
        title: str,
        date: str | None = None,
        artists: list[tuple] | None = None,
        labels: list[tuple] | None = None
    ) -> dict[str, Any]:
        artist_credit = []
        for artist in artists or []:
            artist_id, name = artist[0], artist[1]
            join_phrase = artist[2] if len(artist) > 2 else ""
            artist_credit.append({
                "name": name,
                "joinphrase": join_phrase,
                "artist": {"id": artist_id, "name": name, "sort-name": name},
            })
        label_info = []
        for label in labels or []:
            label_id, name = label[0], label[1]
            catalog_number = label[2] if len(label) > 2 else ""
            label_info.append({
                "catalog-number": catalog_number,
                "label": {"id": label_id, "name": name} if label_id else None,
            })
        release = {
            "id": release_id,
            "title": title,
            "status": "Official",
            "artist-credit": artist_credit,
            "label-info": label_info,
        }
        if date is not None:
            release["date"] = date
        return release

    return _make


@pytest.fixture
def sample_label_data():
    """Sample label lookup response"""
    return {
        "id": "46f0f4cd-8aab-4b33-b698-f459faf64190",
        "name": "Warp",
        "type": "Original Production",
        "country": "GB",
        "disambiguation": "",
        "label-code": 2070,
        "life-span": {"begin": "1989", "end": None, "ended": False},
    }
