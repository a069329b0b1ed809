"""In-memory document store contract."""
import pytest

from services.errors import DocumentExistsError, DocumentMissingError, ValidationError
from services.store import MemoryStore

COL = "professionals/ana/blocks"


@pytest.fixture
def mem():
    return MemoryStore()


def test_get_and_query(mem):
    mem.set(f"{COL}/a", {"date": "2025-06-01", "time": "10:30"})
    mem.set(f"{COL}/b", {"date": "2025-06-02", "time": "all"})
    assert mem.get(f"{COL}/a").data["time"] == "10:30"
    assert mem.get(f"{COL}/zzz") is None
    assert [d.id for d in mem.query(COL, [("date", ">=", "2025-06-02")])] == ["b"]
    assert [d.id for d in mem.query(COL, [("time", "in", ["10:30", "11:15"])])] == ["a"]
    assert len(mem.list(COL)) == 2


def test_query_ignores_subcollections(mem):
    mem.set("professionals/ana", {"name": "Ana"})
    mem.set(f"{COL}/a", {"date": "2025-06-01"})
    assert [d.id for d in mem.list("professionals")] == ["ana"]


def test_returned_data_is_a_copy(mem):
    mem.set(f"{COL}/a", {"date": "2025-06-01"})
    mem.get(f"{COL}/a").data["date"] = "changed"
    assert mem.get(f"{COL}/a").data["date"] == "2025-06-01"


def test_commit_is_all_or_nothing(mem):
    mem.create(f"{COL}/a", {"x": 1})
    with pytest.raises(DocumentExistsError):
        mem.commit([
            ("set", f"{COL}/b", {"x": 2}),
            ("create", f"{COL}/a", {"x": 3}),
        ])
    assert mem.get(f"{COL}/b") is None
    assert mem.get(f"{COL}/a").data == {"x": 1}


def test_update_missing_document(mem):
    with pytest.raises(DocumentMissingError):
        mem.update(f"{COL}/nope", {"x": 1})


def test_set_merge(mem):
    mem.set(f"{COL}/a", {"x": 1, "y": 1})
    mem.set(f"{COL}/a", {"y": 2}, merge=True)
    assert mem.get(f"{COL}/a").data == {"x": 1, "y": 2}
    mem.set(f"{COL}/c", {"y": 2}, merge=True)
    assert mem.get(f"{COL}/c").data == {"y": 2}


def test_bad_paths_and_filters(mem):
    with pytest.raises(ValidationError):
        mem.get("professionals")
    with pytest.raises(ValidationError):
        mem.query(COL, [("date", "!=", "x")])


def test_watch_initial_snapshot_and_changes(mem):
    seen = []
    sub = mem.watch(COL, [("date", "==", "2025-06-01")], lambda docs: seen.append(sorted(d.id for d in docs)))
    assert seen == [[]]

    mem.set(f"{COL}/a", {"date": "2025-06-01"})
    mem.set(f"{COL}/b", {"date": "2025-06-02"})
    mem.set("professionals/ana/appointments/x", {"date": "2025-06-01"})
    assert seen == [[], ["a"], ["a"]]

    sub.unsubscribe()
    sub.unsubscribe()
    mem.delete(f"{COL}/a")
    assert len(seen) == 3
    assert mem.active_watchers == 0


def test_failing_callback_does_not_break_writes(mem):
    def boom(docs):
        if docs:
            raise RuntimeError("boom")

    with mem.watch(COL, None, boom):
        mem.set(f"{COL}/a", {"date": "2025-06-01"})
    assert mem.get(f"{COL}/a") is not None
    assert mem.active_watchers == 0
