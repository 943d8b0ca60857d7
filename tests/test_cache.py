from canon_context.generation.cache import MISSING, TTLCache, cache_key


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_cache_key_is_order_independent():
    assert cache_key("c1", {"limit": 5, "type": "x"}) == cache_key("c1", {"type": "x", "limit": 5})
    assert cache_key("c1", {"limit": 5}) != cache_key("c1", {"limit": 6})
    assert cache_key("c1") == 'c1:{}'


def test_get_set_and_lazy_expiry():
    clock = FakeClock()
    cache = TTLCache(10, clock=clock)
    cache.set("k", ("a",))
    assert cache.get("k") == ("a",)

    clock.now = 9.9
    assert cache.get("k") == ("a",)

    clock.now = 10.0
    assert cache.get("k") is MISSING
    # expired entry was dropped on lookup
    assert len(cache) == 0


def test_none_is_a_cacheable_value():
    cache = TTLCache(60)
    cache.set("parent", None)
    assert cache.get("parent") is None


def test_expire_and_clear():
    cache = TTLCache(60)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.expire("a")
    assert cache.get("a") is MISSING
    assert cache.get("b") == 2
    cache.clear()
    assert cache.get("b") is MISSING


def test_last_writer_wins():
    cache = TTLCache(60)
    cache.set("k", 1)
    cache.set("k", 2)
    assert cache.get("k") == 2


def test_disabled_cache_never_stores():
    cache = TTLCache(60, enabled=False)
    cache.set("k", 1)
    assert cache.get("k") is MISSING
    assert len(cache) == 0


def test_stats_count_hits_and_misses():
    cache = TTLCache(60)
    cache.get("nope")
    cache.set("k", 1)
    cache.get("k")
    assert cache.stats() == {"entries": 1, "hits": 1, "misses": 1}
