"""
Tests for the YouTube Data API adapter, using httpx.MockTransport.
"""
import httpx
import pytest

from xrai.config import ConfigError, FeedSettings
from xrai.providers.base import ProviderError, QuotaExceededError
from xrai.providers.youtube_api import API_BASE, PageCursor, YouTubeDataProvider


def _video_item(video_id, title="A video", duration="PT4M13S", channel="UCabc"):
    return {
        "id": video_id,
        "snippet": {
            "title": title,
            "channelId": channel,
            "channelTitle": "Some Channel",
            "publishedAt": "2024-01-01T00:00:00Z",
            "thumbnails": {"high": {"url": f"https://i.ytimg.com/{video_id}.jpg"}},
        },
        "contentDetails": {"duration": duration},
        "statistics": {"viewCount": "1234"},
    }


VIDEOS = {
    "vid00000001": _video_item("vid00000001", "Long one", "PT4M13S"),
    "vid00000002": _video_item("vid00000002", "Tiny one", "PT45S"),
    "vid00000003": _video_item("vid00000003", "Tagged #Shorts", "PT2M"),
}


def _playlist_item(video_id):
    return {"contentDetails": {"videoId": video_id}}


def _channel_item(channel_id, hidden=False):
    return {
        "id": channel_id,
        "snippet": {
            "title": "Abc Channel",
            "description": "We make videos",
            "thumbnails": {"default": {"url": "https://yt3.ggpht.com/avatar.jpg"}},
        },
        "contentDetails": {"relatedPlaylists": {"uploads": "UUabc"}},
        "statistics": {
            "subscriberCount": "15000",
            "hiddenSubscriberCount": hidden,
            "videoCount": "321",
        },
        "brandingSettings": {"image": {"bannerExternalUrl": "https://yt3.ggpht.com/banner"}},
    }


CHANNELS = {
    "UCabc": _channel_item("UCabc"),
    "UChidden": _channel_item("UChidden", hidden=True),
}

PLAYLISTS = {
    "PLlist": {
        "id": "PLlist",
        "snippet": {"title": "A Playlist", "channelTitle": "Abc Channel"},
        "contentDetails": {"itemCount": "2"},
    },
}


def _handler(requests):
    def handle(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        endpoint = request.url.path.rsplit("/", 1)[-1]
        params = request.url.params

        if endpoint == "search":
            if params.get("pageToken") == "TOKEN2":
                return httpx.Response(200, json={"items": []})
            return httpx.Response(
                200,
                json={
                    "nextPageToken": "TOKEN2",
                    "items": [
                        {"id": {"kind": "youtube#video", "videoId": "vid00000001"}, "snippet": {}},
                        {"id": {"kind": "youtube#video", "videoId": "vid00000002"}, "snippet": {}},
                        {"id": {"kind": "youtube#video", "videoId": "vid00000003"}, "snippet": {}},
                        {
                            "id": {"kind": "youtube#channel", "channelId": "UCchan"},
                            "snippet": {"title": "A Channel"},
                        },
                        {
                            "id": {"kind": "youtube#playlist", "playlistId": "PLlist"},
                            "snippet": {"title": "A Playlist", "channelTitle": "Someone"},
                        },
                    ],
                },
            )
        if endpoint == "videos":
            if params.get("chart") == "mostPopular":
                return httpx.Response(200, json={"items": list(VIDEOS.values())})
            ids = params["id"].split(",")
            return httpx.Response(200, json={"items": [VIDEOS[i] for i in ids if i in VIDEOS]})
        if endpoint == "commentThreads":
            return httpx.Response(
                200,
                json={
                    "items": [
                        {
                            "id": "thread1",
                            "snippet": {
                                "totalReplyCount": 2,
                                "topLevelComment": {
                                    "id": "comment1",
                                    "snippet": {
                                        "textOriginal": "Great video",
                                        "authorDisplayName": "Viewer",
                                        "authorChannelId": {"value": "UCviewer"},
                                        "likeCount": 7,
                                    },
                                },
                            },
                        }
                    ]
                },
            )
        if endpoint == "channels":
            if params["id"] not in CHANNELS:
                return httpx.Response(200, json={"items": []})
            return httpx.Response(200, json={"items": [CHANNELS[params["id"]]]})
        if endpoint == "playlistItems":
            if params["playlistId"] == "UUabc" and params.get("pageToken") == "UPLOADS2":
                return httpx.Response(200, json={"items": [_playlist_item("vid00000003")]})
            if params["playlistId"] == "UUabc":
                return httpx.Response(
                    200,
                    json={
                        "nextPageToken": "UPLOADS2",
                        "items": [_playlist_item("vid00000001"), _playlist_item("vid00000002")],
                    },
                )
            return httpx.Response(
                200, json={"items": [_playlist_item("vid00000003"), _playlist_item("vid00000001")]}
            )
        if endpoint == "playlists":
            if params.get("channelId") == "UCabc":
                return httpx.Response(
                    200,
                    json={"items": [PLAYLISTS["PLlist"], {"snippet": {"title": "No id"}}]},
                )
            found = [PLAYLISTS[params["id"]]] if params.get("id") in PLAYLISTS else []
            return httpx.Response(200, json={"items": found})
        return httpx.Response(404, json={"error": "not found"})

    return handle


@pytest.fixture
def settings():
    return FeedSettings(youtube_api_key="test-key")


@pytest.fixture
def requests():
    return []


@pytest.fixture
def provider(settings, requests):
    client = httpx.AsyncClient(base_url=API_BASE, transport=httpx.MockTransport(_handler(requests)))
    return YouTubeDataProvider(settings, client=client)


class TestYouTubeDataProvider:
    def test_missing_api_key(self):
        with pytest.raises(ConfigError):
            YouTubeDataProvider(FeedSettings(youtube_api_key=None))

    @pytest.mark.asyncio
    async def test_search_normalizes_results(self, provider, requests):
        async with provider:
            page = await provider.search("cats")

        assert [v.id for v in page.videos] == ["vid00000001"]
        assert [v.id for v in page.shorts] == ["vid00000002", "vid00000003"]
        assert page.videos[0].duration == "4:13"
        assert page.videos[0].duration_seconds == 253
        assert page.channels[0].name == "A Channel"
        assert page.playlists[0].author == "Someone"
        assert page.continuation == PageCursor("search", "cats", "TOKEN2")
        assert requests[0].url.params["key"] == "test-key"
        assert requests[0].url.params["q"] == "cats"

    @pytest.mark.asyncio
    async def test_continue_search(self, provider, requests):
        async with provider:
            page = await provider.continue_search(PageCursor("search", "cats", "TOKEN2"))
        assert page.videos == []
        assert page.continuation is None
        assert requests[0].url.params["pageToken"] == "TOKEN2"

    @pytest.mark.asyncio
    async def test_foreign_cursor_rejected(self, provider):
        async with provider:
            with pytest.raises(ProviderError):
                await provider.continue_search(PageCursor("comments", "vid00000001", "X"))

    @pytest.mark.asyncio
    async def test_trending(self, provider, requests):
        async with provider:
            page = await provider.get_trending("Music")
        assert len(page.videos) == 3
        assert requests[0].url.params["videoCategoryId"] == "10"

    @pytest.mark.asyncio
    async def test_related_excludes_source(self, provider):
        async with provider:
            page = await provider.get_video_related("vid00000001")
        ids = [v.id for v in page.candidates]
        assert "vid00000001" not in ids
        assert ids == ["vid00000002", "vid00000003"]
        assert page.continuation.kind == "related"

    @pytest.mark.asyncio
    async def test_comments(self, provider):
        async with provider:
            page = await provider.get_comments("vid00000001")
        comment = page.comments[0]
        assert comment.comment_id == "comment1"
        assert comment.text == "Great video"
        assert comment.author_id == "UCviewer"
        assert comment.like_count == "7"
        assert comment.reply_count == "2"
        assert page.continuation is None

    @pytest.mark.asyncio
    async def test_quota_exceeded(self, settings):
        client = httpx.AsyncClient(
            base_url=API_BASE,
            transport=httpx.MockTransport(lambda request: httpx.Response(403, json={})),
        )
        async with YouTubeDataProvider(settings, client=client) as provider:
            with pytest.raises(QuotaExceededError):
                await provider.search("cats")

    @pytest.mark.asyncio
    async def test_other_http_errors(self, settings):
        client = httpx.AsyncClient(
            base_url=API_BASE,
            transport=httpx.MockTransport(lambda request: httpx.Response(500, json={})),
        )
        async with YouTubeDataProvider(settings, client=client) as provider:
            with pytest.raises(ProviderError) as exc_info:
                await provider.get_trending()
        assert not isinstance(exc_info.value, QuotaExceededError)

    @pytest.mark.asyncio
    async def test_channel_not_found(self, provider):
        async with provider:
            with pytest.raises(ProviderError):
                await provider.get_channel_videos("UCmissing")

    @pytest.mark.asyncio
    async def test_channel_videos_with_metadata(self, provider, requests):
        async with provider:
            page = await provider.get_channel_videos("UCabc")
            rest = await provider.continue_channel_videos(page.continuation)

        info = page.channel
        assert info.name == "Abc Channel"
        assert info.description == "We make videos"
        assert info.avatar_url == "https://yt3.ggpht.com/avatar.jpg"
        assert info.banner_url == "https://yt3.ggpht.com/banner"
        assert info.subscriber_count == "15000"
        assert info.video_count == "321"
        assert [v.id for v in page.videos] == ["vid00000001", "vid00000002"]
        assert page.continuation == PageCursor("uploads", "UUabc", "UPLOADS2")
        assert [v.id for v in rest.videos] == ["vid00000003"]
        assert rest.continuation is None
        assert "brandingSettings" in requests[0].url.params["part"]

    @pytest.mark.asyncio
    async def test_hidden_subscriber_count(self, provider):
        async with provider:
            page = await provider.get_channel_videos("UChidden")
        assert page.channel.subscriber_count == ""

    @pytest.mark.asyncio
    async def test_channel_shorts(self, provider):
        async with provider:
            page = await provider.get_channel_shorts("UCabc")
        assert [v.id for v in page.videos] == ["vid00000002"]
        assert page.continuation is None
        assert page.channel.id == "UCabc"

    @pytest.mark.asyncio
    async def test_channel_playlists(self, provider, requests):
        async with provider:
            playlists = await provider.get_channel_playlists("UCabc")
        assert [p.id for p in playlists] == ["PLlist"]
        assert playlists[0].video_count == 2
        assert requests[0].url.params["channelId"] == "UCabc"

    @pytest.mark.asyncio
    async def test_playlist(self, provider):
        async with provider:
            page = await provider.get_playlist("PLlist")
        assert page.playlist.title == "A Playlist"
        assert page.playlist.author == "Abc Channel"
        assert [v.id for v in page.videos] == ["vid00000003", "vid00000001"]
        assert page.continuation is None

    @pytest.mark.asyncio
    async def test_playlist_not_found(self, provider):
        async with provider:
            with pytest.raises(ProviderError):
                await provider.get_playlist("PLmissing")

    @pytest.mark.asyncio
    async def test_playlist_cursor_kind_checked(self, provider):
        async with provider:
            with pytest.raises(ProviderError):
                await provider.continue_playlist(PageCursor("uploads", "UUabc", "UPLOADS2"))
