from __future__ import annotations

from datetime import datetime, timedelta, timezone

from tweezers.core.model import Change, ChangeKind, Hunk, build_hunk
from tweezers.memory.schema import HunkRecord
from tweezers.memory.store import InMemoryStore
from tweezers.services.hunk_cache import HunkCache

START = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)


def _hunk(content: str, *, index: int = 1) -> Hunk:
    return build_hunk(1, 1, [Change(ChangeKind.UNCHANGED, "ctx"), Change(ChangeKind.ADDED, content)], index=index)


def _listed(*pairs: tuple[int, str]) -> list[Hunk]:
    return [Hunk(1, 1, 1, 1, index=index, id=hunk_id) for index, hunk_id in pairs]


def test_map_hunks_reuses_ids_across_sessions() -> None:
    store = InMemoryStore()
    cache = HunkCache(store, clock=FakeClock())

    first = cache.map_hunks("a.py", [_hunk("one"), _hunk("two", index=2)])
    cache.save()
    reopened = HunkCache(store, clock=FakeClock())
    second = reopened.map_hunks("a.py", [_hunk("two", index=1)])

    assert second[0].id == first[1].id
    assert second[0].index == 1
    assert all(len(hunk.id) >= 4 for hunk in first)


def test_colliding_prefixes_get_distinct_ids() -> None:
    cache = HunkCache(InMemoryStore(), clock=FakeClock())

    first = cache.assign_id("aaaa1111" + "0" * 56)
    second = cache.assign_id("aaaa2222" + "0" * 56)

    assert first == "aaaa"
    assert second == "aaaa2"
    assert cache.assign_id("aaaa2222" + "0" * 56) == "aaaa2"


def test_selector_resolution_prefers_ids_then_indices() -> None:
    hunks = _listed((1, "abc1"), (2, "def2"), (3, "2a10"))

    assert HunkCache.find_hunk(hunks, "2").id == "def2"
    assert HunkCache.find_hunk(hunks, "2a10").index == 3
    assert HunkCache.find_hunk(hunks, 3).id == "2a10"
    assert HunkCache.find_hunk(hunks, " abc1 ").index == 1
    assert HunkCache.find_hunk(hunks, "zzzz") is None
    assert HunkCache.find_hunk(hunks, 9) is None


def test_numeric_looking_id_beats_index() -> None:
    hunks = _listed((1, "7"), (7, "beef"))

    assert HunkCache.find_hunk(hunks, "7").index == 1
    assert HunkCache.find_hunk(hunks, 7).index == 7


def test_save_prunes_expired_ids_from_both_maps() -> None:
    clock = FakeClock()
    store = InMemoryStore()
    cache = HunkCache(store, clock=clock)
    stale = cache.assign_id("1111" + "a" * 60)
    clock.advance(days=8)
    fresh = cache.assign_id("2222" + "b" * 60)

    cache.save()

    assert stale not in cache.document.ids
    assert "1111" + "a" * 60 not in cache.document.fingerprints
    assert fresh in cache.document.ids
    assert store.payload is not None
    assert set(store.payload["ids"]) == {fresh}
    assert set(store.payload["fingerprints"].values()) == {fresh}


def test_seen_ids_are_refreshed_and_survive_pruning() -> None:
    clock = FakeClock()
    cache = HunkCache(InMemoryStore(), clock=clock)
    fingerprint = "3333" + "c" * 60
    hunk_id = cache.assign_id(fingerprint)
    clock.advance(days=6)
    cache.assign_id(fingerprint)
    clock.advance(days=6)

    cache.save()

    assert hunk_id in cache.document.ids


def test_orphaned_fingerprints_are_dropped() -> None:
    cache = HunkCache(InMemoryStore(), clock=FakeClock())
    cache.document.fingerprints["dead" + "0" * 60] = "dead"
    cache.document.ids["live"] = HunkRecord(fingerprint="live" + "0" * 60, last_seen_at=START)
    cache.document.fingerprints["live" + "0" * 60] = "live"

    cache.prune()

    assert cache.document.fingerprints == {"live" + "0" * 60: "live"}


def test_history_is_newest_first_and_bounded() -> None:
    clock = FakeClock()
    cache = HunkCache(InMemoryStore(), clock=clock, history_limit=20)
    for number in range(25):
        cache.add_history(f"patch {number}\n", files=["a.py"], selectors=[number], description=f"op {number}")
        clock.advance(seconds=1)

    history = cache.history()

    assert len(history) == 20
    assert history[0].description == "op 24"
    assert history[-1].description == "op 5"
    assert history[0].selectors == ["24"]
    assert history[0].apply_options == ["--cached"]
    assert cache.history_entry(0) is history[0]
    assert cache.history_entry(20) is None


def test_remove_history_entry_by_step() -> None:
    clock = FakeClock()
    cache = HunkCache(InMemoryStore(), clock=clock)
    cache.add_history("old\n", files=["a.py"], description="old")
    clock.advance(seconds=1)
    cache.add_history("new\n", files=["a.py"], description="new")

    removed = cache.remove_history_entry(1)

    assert removed is not None and removed.description == "old"
    assert [entry.description for entry in cache.history()] == ["new"]
    assert cache.remove_history_entry(5) is None


def test_mutations_are_not_persisted_until_save() -> None:
    store = InMemoryStore()
    cache = HunkCache(store, clock=FakeClock())

    cache.map_hunks("a.py", [_hunk("one")])
    cache.add_history("patch\n", files=["a.py"])

    assert store.saves == 0
    assert store.payload is None


def test_clear_resets_ids_and_history() -> None:
    store = InMemoryStore()
    cache = HunkCache(store, clock=FakeClock())
    cache.map_hunks("a.py", [_hunk("one")])
    cache.add_history("patch\n", files=["a.py"])

    cache.clear()

    assert cache.document.ids == {}
    assert cache.history() == []
    assert store.payload is not None and store.payload["history"] == []
