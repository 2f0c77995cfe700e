# Collectors module
from .aggregator import PagerState, aggregate, paginate
from .sources import (
    ChannelPagerState,
    PlaylistPagerState,
    SearchPagerState,
    collect_channel_playlists,
    collect_channel_shorts,
    collect_comments,
    collect_related,
    get_channel_videos_page,
    get_playlist_page,
    search_page,
)
