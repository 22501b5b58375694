import numpy as np
import pytest

from phagecompare.cache import SignatureCache, make_cache_key, make_cache_key_from_id
from phagecompare.config import CacheConfig
from phagecompare.errors import InvalidParameter


def blob(nbytes, fill=0):
    return np.full(nbytes, fill, dtype=np.uint8)


class TestKeys:
    def test_case_insensitive(self):
        assert make_cache_key("acgt", 16, 128, True) == make_cache_key("ACGT", 16, 128, True)

    def test_parameters_in_key(self):
        base = make_cache_key("ACGT", 16, 128, True)
        assert base != make_cache_key("ACGT", 21, 128, True)
        assert base != make_cache_key("ACGT", 16, 64, True)
        assert base != make_cache_key("ACGT", 16, 128, False)

    def test_id_and_content_keys_do_not_collide(self):
        assert make_cache_key_from_id("ACGT", 16, 128, True) != make_cache_key("ACGT", 16, 128, True)


class TestLru:
    def test_hit_returns_same_object(self):
        cache = SignatureCache()
        value = blob(8)
        cache.set("a", value)
        assert cache.get("a") is value

    def test_entry_limit_evicts_least_recent(self):
        cache = SignatureCache(max_entries=2)
        cache.set("a", blob(1))
        cache.set("b", blob(1))
        cache.get("a")
        cache.set("c", blob(1))
        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache

    def test_has_does_not_refresh(self):
        cache = SignatureCache(max_entries=2)
        cache.set("a", blob(1))
        cache.set("b", blob(1))
        assert cache.has("a")
        cache.set("c", blob(1))
        assert not cache.has("a")

    def test_byte_budget(self):
        cache = SignatureCache(max_bytes=25)
        for key in "abc":
            cache.set(key, blob(10))
        assert len(cache) == 2
        assert cache.stats().bytes == 20
        assert "a" not in cache

    def test_oversized_entry_not_stored(self):
        cache = SignatureCache(max_bytes=16)
        cache.set("small", blob(8))
        cache.set("huge", blob(32))
        assert "huge" not in cache
        assert "small" in cache

    def test_overwrite_updates_size(self):
        cache = SignatureCache()
        cache.set("a", blob(10))
        cache.set("a", blob(4))
        assert cache.stats().bytes == 4
        assert len(cache) == 1

    def test_delete_and_clear(self):
        cache = SignatureCache()
        cache.set("a", blob(4))
        cache.set("b", blob(4))
        assert cache.delete("a")
        assert not cache.delete("a")
        cache.clear()
        assert len(cache) == 0
        assert cache.stats().bytes == 0


class TestGetOrCompute:
    def test_computes_once(self):
        cache = SignatureCache()
        calls = []

        def compute():
            calls.append(1)
            return blob(4, fill=7)

        first = cache.get_or_compute("k", compute)
        second = cache.get_or_compute("k", compute)
        assert first is second
        assert len(calls) == 1

    def test_none_never_cached(self):
        cache = SignatureCache()
        assert cache.get_or_compute("k", lambda: None) is None
        assert "k" not in cache

    def test_recompute_after_eviction_is_fresh(self):
        cache = SignatureCache(max_entries=1)
        cache.get_or_compute("a", lambda: blob(4, fill=1))
        cache.get_or_compute("b", lambda: blob(4, fill=2))
        again = cache.get_or_compute("a", lambda: blob(4, fill=3))
        assert again[0] == 3


class TestStats:
    def test_hits_and_misses(self):
        cache = SignatureCache()
        cache.get("missing")
        cache.set("a", blob(4))
        cache.get("a")
        cache.get("a")
        stats = cache.stats()
        assert stats.hits == 2
        assert stats.misses == 1
        assert stats.hit_rate == pytest.approx(2 / 3)
        assert stats.entries == 1

    def test_reset(self):
        cache = SignatureCache()
        cache.get("missing")
        cache.reset_stats()
        assert cache.stats().misses == 0
        assert cache.stats().hit_rate == 0.0


class TestConfig:
    def test_from_config(self):
        cache = SignatureCache.from_config(CacheConfig(max_entries=3, max_bytes=100))
        assert cache.max_entries == 3
        assert cache.max_bytes == 100

    @pytest.mark.parametrize("kwargs", [{"max_entries": 0}, {"max_bytes": -1}])
    def test_invalid_limits(self, kwargs):
        with pytest.raises(InvalidParameter):
            SignatureCache(**kwargs)
