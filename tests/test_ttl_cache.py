from design_assistant.ttl_cache import InMemoryCacheStore, TTLCache, cache_key


def test_value_present_before_ttl_and_absent_after(clock):
    store = InMemoryCacheStore()
    cache = TTLCache(store=store, clock=clock)
    cache.set("k", "v", 10)
    clock.advance(9)
    assert cache.get("k") == "v"
    clock.advance(1)
    assert cache.get("k") is None
    assert len(store) == 0


def test_expiry_is_lazy(clock):
    store = InMemoryCacheStore()
    cache = TTLCache(store=store, clock=clock)
    cache.set("k", "v", 1)
    clock.advance(5)
    assert len(store) == 1
    cache.get("k")
    assert len(store) == 0


def test_injected_empty_store_receives_writes(clock):
    store = InMemoryCacheStore()
    cache = TTLCache(store=store, clock=clock)
    cache.set("k", "v", 10)
    assert len(store) == 1
    assert store.read("k").value == "v"


def test_delete(clock):
    cache = TTLCache(clock=clock)
    cache.set("k", [1], 10)
    cache.delete("k")
    assert cache.get("k") is None


def test_cache_key_is_case_folded():
    assert cache_key("figma:close", "  Select ") == cache_key("figma:close", "select")
    assert cache_key("a", "x") != cache_key("b", "x")
