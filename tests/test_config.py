"""Tests for config.py - environment-driven settings."""

from tunesearch.config import SearchSettings


class TestSearchSettings:
    def test_defaults(self):
        settings = SearchSettings()

        assert settings.cache_ttl_seconds == 300
        assert settings.cache_max_items == 1000
        assert settings.batch_size == 20
        assert settings.default_limit == 20
        assert settings.suggestion_limit == 3
        assert settings.request_timeout_seconds == 60
        assert settings.seed_file is None

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("TUNESEARCH_CACHE_TTL_SECONDS", "30")
        monkeypatch.setenv("TUNESEARCH_CACHE_MAX_ITEMS", "50")
        monkeypatch.setenv("TUNESEARCH_BATCH_SIZE", "10")
        monkeypatch.setenv("TUNESEARCH_SEED_FILE", "/tmp/videos.json")

        settings = SearchSettings.from_env()

        assert settings.cache_ttl_seconds == 30
        assert settings.cache_max_items == 50
        assert settings.batch_size == 10
        assert settings.seed_file == "/tmp/videos.json"
        assert settings.tokens_file is None

    def test_invalid_values_fall_back_to_defaults(self, monkeypatch):
        monkeypatch.setenv("TUNESEARCH_CACHE_TTL_SECONDS", "soon")
        monkeypatch.setenv("TUNESEARCH_CACHE_MAX_ITEMS", "-1")
        monkeypatch.setenv("TUNESEARCH_BATCH_SIZE", " ")

        settings = SearchSettings.from_env()

        assert settings.cache_ttl_seconds == 300
        assert settings.cache_max_items == 1000
        assert settings.batch_size == 20
