"""
Tests for FeedSession and DiscoveryCache.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from xrai.discovery.models import HomeFeed, ShortsFeed, SignalSnapshot, VideoCandidate
from xrai.discovery.session import DiscoveryCache, FeedSession


def _make_video(index, prefix="vid"):
    return VideoCandidate(
        id=f"{prefix}{index:08d}",
        title=f"Video {index}",
        channel_id=f"UC{index}",
        channel_name=f"Channel {index}",
    )


class TestDiscoveryCache:
    def test_get_put(self):
        cache = DiscoveryCache()
        assert cache.get("home", 1) is None
        cache.put("home", 1, "page-one")
        assert cache.get("home", 1) == "page-one"
        assert cache.get("home", 2) is None
        assert len(cache) == 1

    def test_clear_by_kind(self):
        cache = DiscoveryCache()
        cache.put("home", 1, "a")
        cache.put("home", 2, "b")
        cache.put("shorts", 1, "c")
        cache.clear("home")
        assert len(cache) == 1
        assert cache.get("shorts", 1) == "c"
        cache.clear()
        assert len(cache) == 0


class TestFeedSession:
    @pytest.fixture
    def assembler(self):
        assembler = MagicMock()
        assembler.get_xrai_recommendations = AsyncMock(
            side_effect=[
                HomeFeed(
                    videos=[_make_video(i) for i in range(0, 10)],
                    shorts=[_make_video(i, prefix="sht") for i in range(0, 5)],
                ),
                HomeFeed(
                    videos=[_make_video(i) for i in range(5, 15)],
                    shorts=[_make_video(i, prefix="sht") for i in range(3, 8)],
                ),
            ]
        )
        assembler.get_xrai_shorts = AsyncMock(
            side_effect=[
                ShortsFeed(shorts=[_make_video(i, prefix="sht") for i in range(0, 4)]),
                ShortsFeed(shorts=[_make_video(i, prefix="sht") for i in range(2, 6)]),
            ]
        )
        return assembler

    @pytest.mark.asyncio
    async def test_home_pages_grow_without_duplicates(self, assembler):
        session = FeedSession(assembler, SignalSnapshot())

        videos, shorts = await session.next_home_page()
        assert len(videos) == 10
        assert len(shorts) == 5

        videos, shorts = await session.next_home_page()
        assert [v.id for v in videos] == [f"vid{i:08d}" for i in range(10, 15)]
        assert [v.id for v in shorts] == [f"sht{i:08d}" for i in range(5, 8)]

        assert len(session.videos) == 15
        assert len({v.id for v in session.videos}) == 15
        assert session.home_page == 2
        pages = [c.kwargs["page"] for c in assembler.get_xrai_recommendations.await_args_list]
        assert pages == [1, 2]

    @pytest.mark.asyncio
    async def test_shorts_pages_pass_seen_ids(self, assembler):
        session = FeedSession(assembler, SignalSnapshot())

        await session.next_shorts_page()
        added = await session.next_shorts_page()

        assert [v.id for v in added] == ["sht00000004", "sht00000005"]
        second_call = assembler.get_xrai_shorts.await_args_list[1]
        assert set(second_call.kwargs["seen_ids"]) == {f"sht{i:08d}" for i in range(4)}
        assert second_call.kwargs["page"] == 2
        assert len(session.shorts) == 6
