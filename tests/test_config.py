"""
Tests for settings loading.
"""
import pytest

from xrai.config import ConfigError, FeedSettings


class TestFeedSettings:
    def test_defaults(self):
        settings = FeedSettings()
        assert settings.shorts_batch_size == 20
        assert settings.shorts_popular_ratio == pytest.approx(0.85)
        assert settings.home_trending_ratio == pytest.approx(0.40)
        assert settings.related_target == 50
        assert settings.related_max_attempts == 2
        assert settings.comments_target == 300
        assert settings.comments_max_attempts == 5
        assert settings.channel_cooldown == 3
        assert settings.youtube_api_key is None

    def test_env_overrides(self):
        settings = FeedSettings.from_env(
            {
                "XRAI_SHORTS_BATCH_SIZE": "30",
                "XRAI_SHORTS_POPULAR_RATIO": "0.5",
                "XRAI_REGION_CODE": "US",
                "YOUTUBE_API_KEY": "abc",
            }
        )
        assert settings.shorts_batch_size == 30
        assert settings.shorts_popular_ratio == pytest.approx(0.5)
        assert settings.region_code == "US"
        assert settings.youtube_api_key == "abc"

    def test_prefixed_key_wins(self):
        settings = FeedSettings.from_env(
            {"XRAI_YOUTUBE_API_KEY": "prefixed", "YOUTUBE_API_KEY": "plain"}
        )
        assert settings.youtube_api_key == "prefixed"

    def test_unrelated_env_ignored(self):
        settings = FeedSettings.from_env({"PATH": "/usr/bin", "SHORTS_BATCH_SIZE": "99"})
        assert settings.shorts_batch_size == 20

    @pytest.mark.parametrize(
        "name,value",
        [
            ("XRAI_SHORTS_BATCH_SIZE", "lots"),
            ("XRAI_SHORTS_POPULAR_RATIO", "1.5"),
            ("XRAI_SOURCE_TIMEOUT", "0"),
        ],
    )
    def test_invalid_values(self, name, value):
        with pytest.raises(ConfigError):
            FeedSettings.from_env({name: value})
