"""Tests for the in-memory content cache — keys, TTL, invalidation."""

import pytest

from tcdocs.services.content_cache import FileContentCache, SessionCaches, key_for, split_key


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return FileContentCache(ttl_seconds=300, clock=clock)


class TestKeys:
    def test_skips_missing_attendee(self):
        assert key_for("center1", None, "doc9", "cert.pdf") == "center1_doc9_cert.pdf"

    def test_with_attendee(self):
        assert key_for("c", "a", "d", "f") == "c_a_d_f"

    def test_injective_with_separator_in_id(self):
        assert key_for("a_b", "c") != key_for("a", "b_c")

    def test_split_is_inverse(self):
        ids = ("c\\1", "a_2", "doc", "my_file.pdf")
        assert split_key(key_for(*ids)) == ids

    def test_requires_an_id(self):
        with pytest.raises(ValueError):
            key_for(None, None)


class TestTtl:
    def test_hit_within_ttl(self, cache, clock):
        cache.set("k", "Zm9v", "text/plain")
        clock.now += 299
        entry = cache.get("k")
        assert entry is not None
        assert entry.content == "Zm9v"

    def test_exactly_at_ttl_is_fresh(self, cache, clock):
        cache.set("k", "Zm9v", "text/plain")
        clock.now += 300
        assert cache.get("k") is not None

    def test_stale_entry_is_removed(self, cache, clock):
        cache.set("k", "Zm9v", "text/plain")
        clock.now += 301
        assert cache.get("k") is None
        assert "k" not in cache

    def test_overwrite_refreshes_timestamp(self, cache, clock):
        cache.set("k", "old", "text/plain")
        clock.now += 200
        cache.set("k", "new", "text/plain")
        clock.now += 200
        assert cache.get("k").content == "new"

    def test_empty_content_is_cached(self, cache):
        cache.set("k", "", "application/pdf")
        assert cache.get("k").content == ""


class TestInvalidation:
    def test_invalidate(self, cache):
        cache.set("k", "x", "text/plain")
        assert cache.invalidate("k") is True
        assert cache.invalidate("k") is False

    def test_prefix_only_hits_document(self, cache):
        cache.set(key_for("c", None, "d", "f1"), "x", "text/plain")
        cache.set(key_for("c", None, "d", "f2"), "x", "text/plain")
        cache.set(key_for("c", None, "d2", "f1"), "x", "text/plain")
        # attendee "d" scope under the same centre: must survive
        cache.set(key_for("c", "d", "x", "f1"), "x", "text/plain")

        assert cache.invalidate_prefix("c", None, "d") == 2
        assert len(cache) == 2

    def test_clear(self, cache):
        cache.set("a", "x", "text/plain")
        cache.clear()
        assert len(cache) == 0


class TestStats:
    def test_counts(self, cache):
        cache.set("a", "x" * 2048, "text/plain")
        cache.get("a")
        cache.get("missing")
        stats = cache.stats()
        assert stats.total_entries == 1
        assert stats.total_size_kb == 2.0
        assert stats.hits == 1
        assert stats.misses == 1
        assert stats.hit_rate_percent == 50.0

    def test_no_lookups(self, cache):
        assert cache.stats().hit_rate_percent is None

    def test_purge_expired(self, cache, clock):
        cache.set("old", "x", "text/plain")
        clock.now += 200
        cache.set("new", "x", "text/plain")
        clock.now += 150
        assert cache.purge_expired() == 1
        assert "new" in cache


class TestSessionCaches:
    @pytest.fixture
    def sessions(self, clock):
        return SessionCaches(ttl_seconds=300, clock=clock)

    def test_tokens_get_separate_caches(self, sessions):
        sessions.for_token("alice").set("center1_doc9_cert.pdf", "x", "application/pdf")
        assert sessions.for_token("bob").get("center1_doc9_cert.pdf") is None
        assert sessions.for_token(None).get("center1_doc9_cert.pdf") is None
        assert sessions.for_token("alice").get("center1_doc9_cert.pdf") is not None

    def test_same_token_same_cache(self, sessions):
        assert sessions.for_token("alice") is sessions.for_token("alice")

    def test_fresh_session_survives_lookup_by_others(self, sessions):
        mine = sessions.for_token("alice")
        sessions.for_token("bob")
        assert sessions.for_token("alice") is mine

    def test_idle_expired_session_is_dropped(self, sessions, clock):
        sessions.for_token("alice").set("k", "x", "text/plain")
        clock.now += 301
        sessions.for_token("bob")
        assert len(sessions) == 1

    def test_session_with_fresh_entries_is_kept(self, sessions, clock):
        sessions.for_token("alice").set("k", "x", "text/plain")
        clock.now += 200
        sessions.for_token("bob")
        assert len(sessions) == 2
