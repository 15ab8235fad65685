"""Unit tests for tuple helpers used by the optimistic stores."""

import pytest

from dreamspace.client import sequences
from dreamspace.core.records import DreamRecord

DREAMS = (
    DreamRecord(id="d1", title="Marathon"),
    DreamRecord(id="d2", title="Piano"),
    DreamRecord(id="d3", title="Spanish"),
)


class TestSequences:
    """Each helper returns a new tuple and leaves the input alone."""

    def test_update_by_id_shares_untouched_items(self):
        updated = sequences.update_by_id(DREAMS, "d2", progress=50)

        assert updated[1].progress == 50
        assert DREAMS[1].progress == 0
        assert updated[0] is DREAMS[0]
        assert updated[2] is DREAMS[2]

    def test_remove_by_id(self):
        assert [d.id for d in sequences.remove_by_id(DREAMS, "d1")] == ["d2", "d3"]

    def test_upsert_replaces_or_appends(self):
        renamed = DreamRecord(id="d3", title="Portuguese")
        added = DreamRecord(id="d4", title="Sail")

        assert sequences.upsert_by_id(DREAMS, renamed)[2].title == "Portuguese"
        assert sequences.upsert_by_id(DREAMS, added)[-1] is added

    def test_unknown_id_raises_key_error(self):
        with pytest.raises(KeyError):
            sequences.update_by_id(DREAMS, "nope", title="x")

    def test_index_out_of_range(self):
        with pytest.raises(IndexError):
            sequences.remove_at(DREAMS, 3)
        with pytest.raises(IndexError):
            sequences.replace_at(DREAMS, -1, DREAMS[0])
