# Providers module
from .base import ProviderError, QuotaExceededError, VideoProvider
from .youtube_api import RateLimiter, YouTubeDataProvider
