"""Tests for CareBlockRepository (the care block registry)."""

from datetime import date, datetime, time

import pytest

from rhythm.database.care_block_repository import CareBlockRepository
from rhythm.models.care_block import BlockCategory, CareBlock, Recurrence


class TestCareBlockCrud:
    def test_add_and_get(self, make_block, household):
        block = make_block()
        fetched = household.care_blocks.get(block.id)
        assert fetched is not None
        assert fetched.name == "Daycare"
        assert fetched.category == BlockCategory.CHILDCARE.value
        assert fetched.recurrence == Recurrence.WEEKDAYS.value
        assert fetched.child_ids == ["milo"]

    def test_get_unknown_returns_none(self, household):
        assert household.care_blocks.get("nope") is None

    def test_list_orders_by_start(self, make_block, household):
        make_block(name="Afternoon", start_time=time(13, 0), end_time=time(14, 0))
        make_block(name="Morning", start_time=time(8, 0), end_time=time(9, 0))
        assert [b.name for b in household.care_blocks.list()] == ["Morning", "Afternoon"]

    def test_update_merges_changes(self, make_block, household):
        block = make_block()
        updated = household.care_blocks.update(block.id, name="Grandma's", travel_after_min=10)
        assert updated.name == "Grandma's"
        assert updated.travel_after_min == 10
        assert updated.start_time == time(8, 30)

    def test_update_revalidates(self, make_block, household):
        """An update that inverts the window is rejected and nothing is saved."""
        block = make_block()
        with pytest.raises(ValueError):
            household.care_blocks.update(block.id, start_time=time(16, 0))
        assert household.care_blocks.get(block.id).start_time == time(8, 30)

    def test_update_unknown_returns_none(self, household):
        assert household.care_blocks.update("nope", name="x") is None

    def test_remove(self, make_block, household):
        block = make_block()
        assert household.care_blocks.remove(block.id) is True
        assert household.care_blocks.get(block.id) is None
        assert household.care_blocks.remove(block.id) is False

    def test_block_without_children_is_stored(self, make_block, household):
        block = make_block(child_ids=[])
        assert household.care_blocks.get(block.id).child_ids == []

    def test_list_for_child(self, make_block, household):
        make_block(child_ids=["milo", "ada"])
        make_block(child_ids=["ada"], name="Swim", category=BlockCategory.ACTIVITY)
        assert len(household.care_blocks.list_for_child("ada")) == 2
        assert len(household.care_blocks.list_for_child("milo")) == 1

    def test_replace_all(self, make_block, household, sample_block_base):
        make_block()
        replacement = CareBlock(**{**sample_block_base, "id": "new", "name": "Nanny"})
        household.care_blocks.replace_all([replacement])
        assert [b.id for b in household.care_blocks.list()] == ["new"]


class TestActiveQueries:
    def test_active_on_respects_recurrence(self, make_block, household):
        make_block()
        assert len(household.care_blocks.active_on(date(2024, 1, 2))) == 1
        assert household.care_blocks.active_on(date(2024, 1, 6)) == []

    def test_active_on_skips_inactive(self, make_block, household):
        make_block(is_active=False)
        assert household.care_blocks.active_on(date(2024, 1, 2)) == []

    def test_active_now_uses_effective_window(self, make_block, household, clock):
        make_block(name="Dentist", category=BlockCategory.APPOINTMENT, start_time=time(9, 0),
                   end_time=time(10, 0), travel_before_min=15, recurrence=Recurrence.DAILY)
        clock.at(8, 50)
        assert [b.name for b in household.care_blocks.active_now()] == ["Dentist"]
        clock.at(8, 40)
        assert household.care_blocks.active_now() == []

    def test_active_now_end_is_exclusive(self, make_block, household, clock):
        make_block()
        clock.at(15, 0)
        assert household.care_blocks.active_now() == []
        clock.at(14, 59)
        assert len(household.care_blocks.active_now()) == 1

    def test_active_now_with_injected_clock(self, db_session, make_block):
        make_block()
        registry = CareBlockRepository(db_session, clock=lambda: datetime(2024, 1, 6, 10, 0))
        assert registry.active_now() == []


class TestBufferEdges:
    def test_leave_by_and_return_time(self, make_block):
        block = make_block(travel_before_min=20, travel_after_min=25)
        assert CareBlockRepository.leave_by_time(block) == time(8, 10)
        assert CareBlockRepository.return_time(block) == time(15, 25)

    def test_no_buffer_returns_none(self, make_block):
        block = make_block()
        assert CareBlockRepository.leave_by_time(block) is None
        assert CareBlockRepository.return_time(block) is None
