"""Tests for cache freshness classification at and around the one-hour boundary."""
import os
from unittest.mock import patch

import pytest

from portfolio_service.cache import CacheValidity, classify
from portfolio_service.errors import CachePermissionError

WRITTEN_AT = 1_700_000_000.0


@pytest.fixture
def cache_file(tmp_path):
    """A cache file whose mtime is pinned to WRITTEN_AT."""
    path = tmp_path / "response.json"
    path.write_text("{}")
    os.utime(path, (WRITTEN_AT, WRITTEN_AT))
    return path


class TestClassify:

    @pytest.mark.parametrize("now", [0.0, WRITTEN_AT, WRITTEN_AT + 10_000_000])
    def test_missing_file_is_absent_at_any_time(self, tmp_path, now):
        assert classify(tmp_path / "missing.json", now) is CacheValidity.ABSENT

    def test_missing_parent_directory_is_absent(self, tmp_path):
        assert classify(tmp_path / "nope" / "response.json", WRITTEN_AT) is CacheValidity.ABSENT

    @pytest.mark.parametrize("age", [0, 1, 600, 3599, 3600])
    def test_fresh_within_one_hour(self, cache_file, age):
        assert classify(cache_file, WRITTEN_AT + age) is CacheValidity.FRESH

    def test_exact_boundary_is_fresh(self, cache_file):
        assert classify(cache_file, WRITTEN_AT + 3600) is CacheValidity.FRESH

    @pytest.mark.parametrize("age", [3600.001, 3601, 7200])
    def test_expired_after_one_hour(self, cache_file, age):
        assert classify(cache_file, WRITTEN_AT + age) is CacheValidity.EXPIRED

    def test_custom_ttl(self, cache_file):
        assert classify(cache_file, WRITTEN_AT + 60, ttl_seconds=60) is CacheValidity.FRESH
        assert classify(cache_file, WRITTEN_AT + 61, ttl_seconds=60) is CacheValidity.EXPIRED

    def test_permission_denied_is_distinct_from_absent(self, cache_file):
        with patch("portfolio_service.cache.validator.os.stat", side_effect=PermissionError("denied")):
            with pytest.raises(CachePermissionError) as exc_info:
                classify(cache_file, WRITTEN_AT)

        assert exc_info.value.status_code == 403
