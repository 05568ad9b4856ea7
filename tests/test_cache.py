import pytest

from letterdash.cache import CategoryCache, LetterFrequencyCache, TTLCache
from letterdash.config import CacheConfig


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance_ms(self, ms):
        self.now += ms / 1000


@pytest.mark.unit
def test_hit_and_miss_stats():
    cache = TTLCache(max_size=10, ttl=1000)
    assert cache.get('a') is None
    cache.set('a', 1)
    assert cache.get('a') == 1

    stats = cache.get_stats()
    assert stats['hits'] == 1
    assert stats['misses'] == 1
    assert stats['total_requests'] == 2
    assert stats['hit_rate'] == 50
    assert stats['size'] == 1


@pytest.mark.unit
def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = TTLCache(max_size=10, ttl=1000, clock=clock)
    cache.set('a', 1)
    clock.advance_ms(1000)
    assert cache.get('a') == 1
    clock.advance_ms(1)
    assert cache.has('a') is False
    assert cache.get('a') is None
    assert len(cache) == 0


@pytest.mark.unit
def test_lru_eviction():
    cache = TTLCache(max_size=2, ttl=1000)
    cache.set('a', 1)
    cache.set('b', 2)
    cache.get('a')
    cache.set('c', 3)
    assert cache.has('a')
    assert not cache.has('b')
    assert cache.get_stats()['evictions'] == 1


@pytest.mark.unit
def test_overwrite_does_not_evict():
    cache = TTLCache(max_size=2, ttl=1000)
    cache.set('a', 1)
    cache.set('b', 2)
    cache.set('a', 10)
    assert len(cache) == 2
    assert cache.get('a') == 10
    assert cache.get_stats()['evictions'] == 0


@pytest.mark.unit
def test_cleanup_and_clear():
    clock = FakeClock()
    cache = TTLCache(max_size=10, ttl=100, clock=clock)
    cache.set('old', 1)
    clock.advance_ms(50)
    cache.set('new', 2)
    clock.advance_ms(60)
    assert cache.cleanup() == 1
    assert len(cache) == 1

    cache.get('new')
    cache.delete('new')
    assert len(cache) == 0
    cache.clear()
    assert cache.get_stats()['total_requests'] == 0


@pytest.mark.unit
def test_from_config():
    cache = CategoryCache.from_config(CacheConfig(max_size=3, ttl=50))
    assert (cache.max_size, cache.ttl) == (3, 50)
    default = CategoryCache.from_config(None)
    assert (default.max_size, default.ttl) == (500, 600000)


@pytest.mark.unit
def test_category_cache_keys():
    cache = CategoryCache()
    cache.set_by_difficulty(2, ['animals'])
    cache.set_compatible('C', ['animals', 'foods'])
    assert cache.get_by_difficulty(2) == ['animals']
    assert cache.get_by_difficulty(3) is None
    assert cache.get_compatible('C') == ['animals', 'foods']


@pytest.mark.unit
def test_letter_cache_returns_copies():
    cache = LetterFrequencyCache()
    table = {'A': 0.5, 'B': 0.5}
    cache.set_adjusted('general', 3, table)
    table['A'] = 0.0

    cached = cache.get_adjusted('general', 3)
    assert cached == {'A': 0.5, 'B': 0.5}
    cached['B'] = 1.0
    assert cache.get_adjusted('general', 3)['B'] == 0.5
    assert cache.get_adjusted('animals', 3) is None
