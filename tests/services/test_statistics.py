"""Tests for CacheStatistics."""

from catalogvault.services.statistics import CacheStatistics


def test_hit_ratio_and_reset() -> None:
    stats = CacheStatistics()
    stats.record_cache_hit()
    stats.record_cache_hit()
    stats.record_cache_miss()
    stats.record_api_call()
    stats.record_api_call(success=False)

    assert stats.hit_ratio == 2 / 3
    assert stats.to_dict()["api_errors"] == 1

    stats.reset()

    assert stats.to_dict() == {
        "cache_hits": 0,
        "cache_misses": 0,
        "cache_hit_ratio": 0.0,
        "cache_writes": 0,
        "suppressed_writes": 0,
        "api_calls": 0,
        "api_errors": 0,
    }


def test_empty_hit_ratio() -> None:
    assert CacheStatistics().hit_ratio == 0.0
