"""
Runtime settings for feed assembly and continuation aggregation.

Defaults mirror the tuned values of the home and shorts feeds. Every field can
be overridden from the environment with an ``XRAI_`` prefix, e.g.
``XRAI_SHORTS_BATCH_SIZE=30``. The YouTube API key is read from
``YOUTUBE_API_KEY``.
"""
import logging
import os
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "XRAI_"


class ConfigError(Exception):
    """Raised when settings are missing or malformed."""


class FeedSettings(BaseModel):
    """Tunable budgets and ratios for the feed engine."""

    # Home feed (simple ratio mix)
    home_target_videos: int = Field(50, ge=1)
    home_trending_ratio: float = Field(0.40, ge=0.0, le=1.0)
    home_target_shorts: int = Field(20, ge=0)
    feed_negative_threshold: float = 2.0

    # Shorts feed (scored selection)
    shorts_batch_size: int = Field(20, ge=1)
    shorts_popular_ratio: float = Field(0.85, ge=0.0, le=1.0)
    shorts_min_score: float = -50.0
    shorts_seed_count: int = Field(2, ge=1)
    channel_cooldown: int = Field(3, ge=1)
    scorer_noise: float = Field(15.0, ge=0.0)

    # Continuation budgets
    related_target: int = Field(50, ge=1)
    related_max_attempts: int = Field(2, ge=0)
    comments_target: int = Field(300, ge=1)
    comments_max_attempts: int = Field(5, ge=0)
    channel_page_size: int = Field(30, ge=1)
    search_page_size: int = Field(20, ge=1)
    playlist_page_size: int = Field(30, ge=1)

    # Upstream
    source_timeout: float = Field(20.0, gt=0)
    trending_category: Optional[str] = "Music"
    region_code: str = "JP"
    language: str = "ja"
    min_request_interval: float = Field(0.0, ge=0.0)
    youtube_api_key: Optional[str] = None

    @classmethod
    def from_env(cls, environ=None) -> "FeedSettings":
        """Build settings from environment variables.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``).

        Returns:
            FeedSettings with overrides applied.

        Raises:
            ConfigError: If an override does not validate.
        """
        environ = os.environ if environ is None else environ
        overrides = {}
        for name in cls.model_fields:
            value = environ.get(ENV_PREFIX + name.upper())
            if value is not None:
                overrides[name] = value

        api_key = environ.get("YOUTUBE_API_KEY")
        if api_key and "youtube_api_key" not in overrides:
            overrides["youtube_api_key"] = api_key

        try:
            settings = cls.model_validate(overrides)
        except ValidationError as e:
            raise ConfigError(f"Invalid XRAI settings: {e}") from e

        if overrides:
            logger.debug(
                "Loaded settings overrides: %s",
                sorted(k for k in overrides if k != "youtube_api_key"),
            )
        return settings
