"""Tests for core/progression.py and the ProgressionEntry model."""
import pytest

from core.models import ProgressionEntry
from core.progression import Progression
from core.theory import get_scale_chords

C_MAJOR = get_scale_chords("C", "major")


def entry(entry_id, position, duration=8):
    return ProgressionEntry(
        id=entry_id, root_note="C", intervals=(0, 4, 7),
        numeral="I", position=position, duration=duration,
    )


class TestAppend:
    def test_blocks_follow_each_other(self):
        progression = Progression()
        first = progression.append(C_MAJOR[0])
        second = progression.append(C_MAJOR[4], duration=2)
        third = progression.append(C_MAJOR[5])

        assert [e.position for e in progression] == [0, 4, 6]
        assert progression.end == 10
        assert progression.total_duration == 10
        assert len({first.id, second.id, third.id}) == 3

    def test_selection_keeps_modified_intervals(self):
        progression = Progression()
        added = progression.append(C_MAJOR[4].selection((0, 4, 7, 10)))
        assert added.intervals == (0, 4, 7, 10)
        assert added.numeral == "V"
        assert added.root_note == "G"

    def test_interval_override_normalized(self):
        progression = Progression()
        added = progression.append(C_MAJOR[0], intervals=[7, 0, 4, 4, 40])
        assert added.intervals == (0, 4, 7)

    def test_invalid_duration_uses_default(self):
        progression = Progression()
        assert progression.append(C_MAJOR[0], duration=0).duration == 4


class TestEditing:
    def test_remove(self):
        progression = Progression()
        first = progression.append(C_MAJOR[0])
        progression.append(C_MAJOR[3])
        assert progression.remove(first.id) == first
        assert len(progression) == 1
        assert progression.remove(first.id) is None

    def test_clear(self):
        progression = Progression()
        progression.append(C_MAJOR[0])
        progression.clear()
        assert len(progression) == 0
        assert progression.end == 0

    def test_insert_keeps_position_order(self):
        progression = Progression([entry("b", 8), entry("a", 0), entry("c", 8)])
        assert [e.id for e in progression] == ["a", "b", "c"]
        assert progression.index_of("c") == 2
        assert progression.index_of("z") == -1

    def test_duplicate_id_rejected(self):
        progression = Progression([entry("a", 0)])
        with pytest.raises(ValueError):
            progression.insert(entry("a", 8))


class TestEntryModel:
    @pytest.mark.parametrize("kwargs", [
        {"id": ""},
        {"root_note": "H"},
        {"position": -1},
        {"duration": 0},
        {"intervals": (0, 24)},
    ])
    def test_validation(self, kwargs):
        fields = dict(id="x", root_note="C", intervals=(0, 4, 7),
                      numeral="I", position=0, duration=8)
        fields.update(kwargs)
        with pytest.raises(ValueError):
            ProgressionEntry(**fields)

    def test_dict_conversion(self):
        progression = Progression()
        progression.append(C_MAJOR[0])
        progression.append(C_MAJOR[4].selection((0, 4, 7, 10)), duration=4)

        restored = Progression.from_dict(progression.to_dict())
        assert restored.entries == progression.entries
