"""Tests for the sleep and away logs (lifecycle, auto-expiry, corrections)."""

from datetime import date, datetime, time, timedelta

import pytest

from rhythm.models.care_log import EndReason, SleepType


@pytest.fixture
def milo(make_child):
    return make_child("Milo", is_napping_age=True)


class TestLifecycle:
    def test_start_opens_entry(self, household, milo, clock):
        log = household.sleep_logs.start("milo", SleepType.NAP)
        assert log.is_open
        assert log.started_at == clock.now
        assert log.started_on == date(2024, 1, 2)
        assert log.auto_tracked is False
        assert household.sleep_logs.is_active("milo") is True
        assert household.sleep_logs.active_for("milo").id == log.id

    def test_end_closes_at_now(self, household, milo, clock):
        household.away_logs.start("milo", "Grandma's")
        clock.advance(hours=2)
        closed = household.away_logs.end("milo")
        assert closed.ended_at == clock.now
        assert closed.end_reason == EndReason.USER.value
        assert closed.label == "Grandma's"
        assert household.away_logs.active_for("milo") is None

    def test_end_without_open_entry_returns_none(self, household, milo):
        assert household.sleep_logs.end("milo") is None

    def test_start_supersedes_open_entry(self, household, milo, clock):
        """Starting while an entry is open closes the old one first."""
        first = household.sleep_logs.start("milo", SleepType.NAP)
        clock.advance(minutes=40)
        second = household.sleep_logs.start("milo", SleepType.NAP)

        old = household.sleep_logs.get(first.id)
        assert old.ended_at == clock.now
        assert old.end_reason == EndReason.SUPERSEDED.value
        assert [log.id for log in household.sleep_logs.list_open()] == [second.id]

    def test_last_end_time(self, household, milo, clock):
        assert household.sleep_logs.last_end_time("milo") is None
        household.sleep_logs.start("milo", SleepType.NAP)
        clock.advance(minutes=90)
        household.sleep_logs.end("milo")
        assert household.sleep_logs.last_end_time("milo") == clock.now

    def test_logs_are_per_child(self, household, milo, make_child):
        make_child("Ada")
        household.away_logs.start("milo")
        assert household.away_logs.is_active("ada") is False

    def test_delete_and_clear(self, household, milo):
        log = household.away_logs.start("milo")
        assert household.away_logs.delete(log.id) is True
        assert household.away_logs.delete(log.id) is False
        household.away_logs.start("milo")
        assert household.away_logs.clear() == 1
        assert household.away_logs.list_all() == []


class TestAutoTracked:
    def test_start_auto_is_back_dated(self, household, milo):
        at = datetime(2024, 1, 2, 8, 30)
        log = household.away_logs.start_auto("milo", at, label="Daycare")
        assert log.started_at == at
        assert log.auto_tracked is True

    def test_end_auto_is_back_dated(self, household, milo, clock):
        household.away_logs.start_auto("milo", datetime(2024, 1, 2, 8, 30), label="Daycare")
        clock.at(15, 10)
        closed = household.away_logs.end_auto("milo", datetime(2024, 1, 2, 15, 0))
        assert closed.ended_at == datetime(2024, 1, 2, 15, 0)
        assert closed.end_reason == EndReason.SCHEDULED.value

    def test_end_auto_never_before_start(self, household, milo, clock):
        household.away_logs.start("milo")
        closed = household.away_logs.end_auto("milo", clock.now - timedelta(hours=1))
        assert closed.ended_at == closed.started_at

    def test_revert_auto_start_deletes_entry(self, household, milo):
        household.away_logs.start_auto("milo", datetime(2024, 1, 2, 8, 30), label="Daycare")
        assert household.away_logs.revert_auto_start("milo") is True
        assert household.away_logs.list_all() == []

    def test_revert_by_id_removes_that_entry_only(self, household, milo):
        morning = household.away_logs.start_auto("milo", datetime(2024, 1, 2, 8, 30), label="Morning")
        household.away_logs.end_auto("milo", datetime(2024, 1, 2, 12, 0))
        afternoon = household.away_logs.start_auto("milo", datetime(2024, 1, 2, 13, 0), label="Afternoon")

        assert household.away_logs.revert_auto_start("milo", log_id=morning.id) is True
        assert [log.id for log in household.away_logs.list_all()] == [afternoon.id]
        assert household.away_logs.revert_auto_start("milo", log_id=morning.id) is False

    def test_revert_leaves_user_entries_alone(self, household, milo):
        household.away_logs.start("milo")
        assert household.away_logs.revert_auto_start("milo") is False
        assert household.away_logs.is_active("milo") is True


class TestAutoExpiry:
    def test_nap_expires_with_fallback_duration(self, household, milo, clock):
        clock.at(8, 0)
        log = household.sleep_logs.start("milo", SleepType.NAP)
        clock.at(11, 1)
        expired = household.sleep_logs.close_expired()
        assert [e.id for e in expired] == [log.id]

        closed = household.sleep_logs.get(log.id)
        assert closed.ended_at == datetime(2024, 1, 2, 10, 0)
        assert closed.end_reason == EndReason.AUTO_EXPIRED.value

    def test_close_expired_is_idempotent(self, household, milo, clock):
        clock.at(8, 0)
        log = household.sleep_logs.start("milo", SleepType.NAP)
        clock.at(11, 30)
        assert len(household.sleep_logs.close_expired()) == 1
        clock.at(12, 30)
        assert household.sleep_logs.close_expired() == []
        assert household.sleep_logs.get(log.id).ended_at == datetime(2024, 1, 2, 10, 0)

    def test_nap_under_ceiling_stays_open(self, household, milo, clock):
        clock.at(8, 0)
        household.sleep_logs.start("milo", SleepType.NAP)
        clock.at(10, 59)
        assert household.sleep_logs.close_expired() == []
        assert household.sleep_logs.is_active("milo") is True

    def test_reads_close_expired_entries(self, household, milo, clock):
        clock.at(8, 0)
        household.sleep_logs.start("milo", SleepType.NAP)
        clock.at(12, 0)
        assert household.sleep_logs.active_for("milo") is None

    def test_nap_uses_nearest_schedule(self, household, milo, make_nap_schedule, clock):
        make_nap_schedule(nap_number=1, typical_start=time(9, 30), typical_end=time(10, 30))
        make_nap_schedule(nap_number=2, typical_start=time(13, 0), typical_end=time(15, 0))
        clock.at(13, 10)
        log = household.sleep_logs.start("milo", SleepType.NAP)
        clock.at(16, 30)
        household.sleep_logs.close_expired()
        assert household.sleep_logs.get(log.id).ended_at == datetime(2024, 1, 2, 15, 10)

    def test_estimated_end_is_capped_at_now(self, household, milo, make_nap_schedule, clock):
        make_nap_schedule(typical_start=time(12, 0), typical_end=time(16, 30))
        clock.at(12, 0)
        log = household.sleep_logs.start("milo", SleepType.NAP)
        clock.at(15, 1)
        household.sleep_logs.close_expired()
        assert household.sleep_logs.get(log.id).ended_at == datetime(2024, 1, 2, 15, 1)

    def test_night_uses_bedtime_and_wake_time(self, household, make_child, clock):
        make_child("Ada", bedtime=time(19, 0), wake_time=time(7, 0))
        clock.set(datetime(2024, 1, 1, 19, 0))
        log = household.sleep_logs.start("ada", SleepType.NIGHT)
        clock.set(datetime(2024, 1, 2, 9, 30))
        household.sleep_logs.close_expired()
        assert household.sleep_logs.get(log.id).ended_at == datetime(2024, 1, 2, 7, 0)

    def test_night_fallback_duration(self, household, milo, clock):
        clock.set(datetime(2024, 1, 1, 20, 0))
        log = household.sleep_logs.start("milo", SleepType.NIGHT)
        clock.set(datetime(2024, 1, 2, 10, 1))
        household.sleep_logs.close_expired()
        assert household.sleep_logs.get(log.id).ended_at == datetime(2024, 1, 2, 7, 0)

    def test_night_under_ceiling_stays_open(self, household, milo, clock):
        clock.set(datetime(2024, 1, 1, 20, 0))
        household.sleep_logs.start("milo", SleepType.NIGHT)
        clock.set(datetime(2024, 1, 2, 9, 0))
        assert household.sleep_logs.is_active("milo") is True


class TestQueries:
    def test_logs_overlapping_includes_spanning_entries(self, household, milo, clock):
        sleep = household.sleep_logs
        clock.set(datetime(2023, 12, 31, 13, 0))
        sleep.start("milo", SleepType.NAP)
        clock.set(datetime(2023, 12, 31, 14, 0))
        sleep.end("milo")

        clock.set(datetime(2024, 1, 1, 20, 0))
        night = sleep.start("milo", SleepType.NIGHT)
        clock.set(datetime(2024, 1, 2, 6, 0))
        sleep.end("milo")

        clock.set(datetime(2024, 1, 2, 12, 0))
        nap = sleep.start("milo", SleepType.NAP)

        assert [log.id for log in sleep.logs_overlapping(date(2024, 1, 2))] == [night.id, nap.id]
        assert [log.id for log in sleep.logs_overlapping(date(2024, 1, 1))] == [night.id]

    def test_open_entry_spans_into_today(self, household, milo, clock):
        clock.set(datetime(2024, 1, 1, 18, 0))
        away = household.away_logs.start("milo", "Grandma's")
        clock.set(datetime(2024, 1, 2, 9, 0))
        assert [log.id for log in household.away_logs.logs_overlapping(date(2024, 1, 2))] == [away.id]

    def test_list_for_date_and_naps_on(self, household, milo, clock):
        clock.at(9, 0)
        household.sleep_logs.start("milo", SleepType.NAP)
        clock.at(10, 0)
        household.sleep_logs.end("milo")
        assert len(household.sleep_logs.list_for_date(date(2024, 1, 2))) == 1
        assert len(household.sleep_logs.naps_on("milo", date(2024, 1, 2))) == 1
        assert household.sleep_logs.naps_on("milo", date(2024, 1, 3)) == []


class TestUpdate:
    def test_correct_start_time(self, household, milo, clock):
        log = household.sleep_logs.start("milo", SleepType.NAP)
        corrected = household.sleep_logs.update(log.id, started_at=datetime(2024, 1, 2, 8, 15))
        assert corrected.started_at == datetime(2024, 1, 2, 8, 15)
        assert corrected.is_open

    def test_setting_end_closes_entry(self, household, milo, clock):
        log = household.sleep_logs.start("milo", SleepType.NAP)
        closed = household.sleep_logs.update(log.id, ended_at=clock.now + timedelta(minutes=45))
        assert closed.ended_at == clock.now + timedelta(minutes=45)
        assert closed.end_reason == EndReason.USER.value

    def test_end_before_start_is_rejected(self, household, milo, clock):
        log = household.sleep_logs.start("milo", SleepType.NAP)
        with pytest.raises(ValueError):
            household.sleep_logs.update(log.id, ended_at=clock.now - timedelta(minutes=1))

    def test_closed_entry_cannot_be_reopened(self, household, milo):
        household.sleep_logs.start("milo", SleepType.NAP)
        closed = household.sleep_logs.end("milo")
        with pytest.raises(ValueError):
            household.sleep_logs.update(closed.id, ended_at=None)

    def test_update_unknown_returns_none(self, household):
        assert household.sleep_logs.update("nope", started_at=datetime(2024, 1, 2)) is None


class TestEvents:
    def test_nap_emits_sleep_and_nap_events(self, household, milo, bus):
        household.sleep_logs.start("milo", SleepType.NAP)
        assert bus.has_fired("sleep-start")
        assert bus.has_fired("sleep-start:milo")
        assert bus.has_fired("nap-start:milo")
        household.sleep_logs.end("milo")
        assert bus.has_fired("nap-end")

    def test_night_does_not_emit_nap_events(self, household, milo, bus):
        household.sleep_logs.start("milo", SleepType.NIGHT)
        assert bus.has_fired("sleep-start")
        assert not bus.has_fired("nap-start")

    def test_away_events(self, household, milo, bus):
        household.away_logs.start("milo")
        household.away_logs.end("milo")
        assert bus.has_fired("away-start:milo")
        assert bus.has_fired("away-end")
