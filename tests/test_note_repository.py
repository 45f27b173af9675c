"""Tests for the NoteRepository index over a versioned store."""
import datetime

import pytest

from tests.fakes import InMemoryStore
from zettelvc.exceptions import StorageError
from zettelvc.models.schema import Note
from zettelvc.storage.note_repository import NoteRepository
from zettelvc.storage.record_codec import RecordCodec

T0 = datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)


def make_note(note_id, minutes=0, **overrides):
    stamp = T0 + datetime.timedelta(minutes=minutes)
    fields = dict(id=note_id, title=f"Note {note_id}", body="", created_at=T0, updated_at=stamp)
    fields.update(overrides)
    return Note(**fields)


def seeded_store(*notes):
    codec = RecordCodec()
    return InMemoryStore({n.id: codec.encode(n).payload for n in notes})


class TestLoad:
    def test_load_empty_store(self):
        repo = NoteRepository(InMemoryStore())
        report = repo.load()
        assert report.loaded == 0
        assert report.ok
        assert repo.active_notes() == []

    def test_load_skips_bad_records(self):
        store = seeded_store(make_note("a"))
        store.records["broken"] = "{oops"
        store.records["wrong-key"] = RecordCodec().encode(make_note("c")).payload
        repo = NoteRepository(store)

        report = repo.load()

        assert report.loaded == 1
        assert sorted(s.key for s in report.skipped) == ["broken", "wrong-key"]
        assert repo.last_report is report
        assert repo.ids() == ["a"]

    def test_load_keeps_dangling_links(self):
        repo = NoteRepository(seeded_store(make_note("a", links=["ghost"])))
        repo.load()
        assert repo.get("a").links == ["ghost"]

    def test_load_failure_propagates(self):
        store = InMemoryStore()
        store.fail_read = True
        with pytest.raises(StorageError):
            NoteRepository(store).load()

    def test_refresh_picks_up_external_changes(self):
        store = seeded_store(make_note("a"))
        repo = NoteRepository(store)
        repo.load()
        store.records["b"] = RecordCodec().encode(make_note("b")).payload

        repo.refresh()

        assert repo.contains("b")


class TestOrdering:
    def test_active_notes_most_recent_first(self):
        repo = NoteRepository(seeded_store(
            make_note("old", minutes=1),
            make_note("new", minutes=5),
            make_note("mid", minutes=3),
        ))
        repo.load()
        assert [n.id for n in repo.active_notes()] == ["new", "mid", "old"]

    def test_ties_broken_by_id(self):
        repo = NoteRepository(seeded_store(make_note("b"), make_note("a"), make_note("c")))
        repo.load()
        assert [n.id for n in repo.active_notes()] == ["a", "b", "c"]

    def test_archived_notes_hidden_but_readable(self):
        repo = NoteRepository(seeded_store(make_note("a"), make_note("z", archived=True)))
        repo.load()
        assert [n.id for n in repo.active_notes()] == ["a"]
        assert [n.id for n in repo.all_notes()] == ["a", "z"]
        assert repo.get("z").archived


class TestSave:
    def test_lookups_return_copies(self):
        repo = NoteRepository(seeded_store(make_note("a")))
        repo.load()
        copy = repo.get("a")
        copy.title = "Changed"
        assert repo.get("a").title == "Note a"

    def test_save_writes_and_records_one_change(self):
        store = InMemoryStore()
        repo = NoteRepository(store)
        repo.load()

        repo.save(make_note("a"), "Note: Note a")

        assert "a" in store.records
        assert store.descriptions == ["Note: Note a"]
        assert repo.contains("a")

    def test_write_failure_leaves_index_unchanged(self):
        store = InMemoryStore()
        repo = NoteRepository(store)
        repo.load()
        store.fail_write = True

        with pytest.raises(StorageError):
            repo.save(make_note("a"), "Note: Note a")

        assert not repo.contains("a")
        assert store.changes == []

    def test_record_failure_rolls_back(self):
        store = seeded_store(make_note("a"))
        repo = NoteRepository(store)
        repo.load()
        before = store.records["a"]
        store.fail_record = True

        with pytest.raises(StorageError):
            repo.save(make_note("a", title="Renamed"), "Update: Renamed")

        assert repo.get("a").title == "Note a"
        assert store.records["a"] == before

    def test_history_per_note(self):
        store = InMemoryStore()
        repo = NoteRepository(store)
        repo.load()
        repo.save(make_note("a"), "Note: a")
        repo.save(make_note("b"), "Note: b")
        repo.save(make_note("a", title="A2"), "Update: A2")

        assert [e.description for e in repo.history(note_id="a")] == ["Update: A2", "Note: a"]
        assert len(repo.history(limit=2)) == 2
