"""Tests for the background transition scan."""

from datetime import timedelta

from sqlalchemy.orm import sessionmaker

from rhythm import scheduler as scan


def test_run_transition_scan_uses_own_session(db_session):
    factory = sessionmaker(autocommit=False, autoflush=False, bind=db_session.get_bind())
    assert scan.run_transition_scan(session_factory=factory) == 0


def test_scan_interval_from_env(monkeypatch):
    assert scan.scan_interval_minutes() == 5
    monkeypatch.setenv("TRANSITION_SCAN_INTERVAL_MIN", "2")
    assert scan.scan_interval_minutes() == 2


def test_start_registers_single_instance_job():
    scan.start_scheduler()
    try:
        job = scan.scheduler.get_job(scan.TRANSITION_SCAN_JOB_ID)
        assert job is not None
        assert job.max_instances == 1
        assert job.coalesce is True
        assert job.trigger.interval == timedelta(minutes=5)
    finally:
        scan.stop_scheduler()
        scan.scheduler.remove_all_jobs()
