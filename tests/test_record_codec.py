"""Tests for the JSON record codec."""
import datetime
import json

import pytest

from zettelvc.exceptions import ErrorCode, RecordDecodeError
from zettelvc.models.schema import Note
from zettelvc.storage.base import StoredRecord
from zettelvc.storage.record_codec import RecordCodec

T0 = datetime.datetime(2024, 1, 1, 12, 0, tzinfo=datetime.timezone.utc)


@pytest.fixture
def codec():
    return RecordCodec()


@pytest.fixture
def note():
    return Note(
        id="abc",
        title="Zettel",
        body="Line one\nLine two",
        links=["def"],
        tags=["idea"],
        created_at=T0,
        updated_at=T0 + datetime.timedelta(hours=1),
    )


def record(key, document):
    return StoredRecord(key=key, payload=json.dumps(document))


class TestEncode:
    def test_encode_uses_persisted_field_names(self, codec, note):
        rec = codec.encode(note)
        assert rec.key == "abc"
        document = json.loads(rec.payload)
        assert document["content"] == "Line one\nLine two"
        assert "body" not in document
        assert document["archived"] is False
        assert document["created_at"].startswith("2024-01-01T12:00:00")

    @pytest.mark.parametrize(
        "changes",
        [
            {},
            {"links": [], "tags": []},
            {"archived": True},
            {"title": "Zettelkästen ✓", "body": "Grüße, 世界\n"},
            {"body": ""},
            {"links": ["def", "ghi"], "tags": ["idea", "draft"]},
        ],
        ids=["links-and-tags", "no-links-or-tags", "archived", "non-ascii", "empty-body", "several"],
    )
    def test_round_trip_preserves_note(self, codec, note, changes):
        variant = note.model_copy(update=changes)
        assert codec.decode(codec.encode(variant)) == variant

    def test_non_ascii_is_kept_readable(self, codec, note):
        note.title = "Zettelkästen"
        assert "Zettelkästen" in codec.encode(note).payload


class TestDecode:
    def test_legacy_record_without_archived(self, codec):
        decoded = codec.decode(record("abc", {
            "id": "abc", "title": "Old", "content": "x",
            "created_at": "2023-01-01T00:00:00Z", "updated_at": "2023-01-01T00:00:00Z",
        }))
        assert decoded.archived is False
        assert decoded.links == []
        assert decoded.tags == []

    def test_invalid_json(self, codec):
        with pytest.raises(RecordDecodeError) as exc_info:
            codec.decode(StoredRecord(key="abc", payload="{not json"))
        assert exc_info.value.key == "abc"
        assert exc_info.value.code == ErrorCode.RECORD_MALFORMED

    def test_non_object_document(self, codec):
        with pytest.raises(RecordDecodeError, match="not a JSON object"):
            codec.decode(StoredRecord(key="abc", payload="[1, 2]"))

    def test_missing_fields(self, codec):
        with pytest.raises(RecordDecodeError) as exc_info:
            codec.decode(record("abc", {"id": "abc", "title": "T"}))
        assert "content" in exc_info.value.reason

    def test_invariant_violation(self, codec):
        with pytest.raises(RecordDecodeError):
            codec.decode(record("abc", {
                "id": "abc", "title": "", "content": "",
                "created_at": "2023-01-01T00:00:00Z", "updated_at": "2023-01-01T00:00:00Z",
            }))

    def test_id_must_match_key(self, codec, note):
        rec = codec.encode(note)
        with pytest.raises(RecordDecodeError, match="does not match"):
            codec.decode(StoredRecord(key="other", payload=rec.payload))
