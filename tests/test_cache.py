from outreach.cache import ExpiringCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_entries_expire_after_ttl() -> None:
    clock = FakeClock()
    cache: ExpiringCache[str, int] = ExpiringCache(10.0, clock=clock)

    cache.set("a", 1)
    clock.now = 9.9
    assert cache.get("a") == 1

    clock.now = 10.0
    assert cache.get("a") is None
    assert len(cache) == 0


def test_zero_ttl_disables_caching() -> None:
    cache: ExpiringCache[str, int] = ExpiringCache(0)

    cache.set("a", 1)

    assert cache.get("a") is None


def test_full_cache_evicts_entry_closest_to_expiry() -> None:
    clock = FakeClock()
    cache: ExpiringCache[str, int] = ExpiringCache(10.0, max_entries=2, clock=clock)

    cache.set("old", 1)
    clock.now = 1.0
    cache.set("new", 2)
    cache.set("newest", 3)

    assert cache.get("old") is None
    assert cache.get("new") == 2
    assert cache.get("newest") == 3


def test_delete_and_clear() -> None:
    cache: ExpiringCache[str, int] = ExpiringCache(60.0)
    cache.set("a", 1)
    cache.set("b", 2)

    assert cache.delete("a") is True
    assert cache.delete("a") is False
    cache.clear()
    assert len(cache) == 0
