"""Job records: forward-only status, progress updates and expiry."""

from datetime import datetime, timedelta, timezone

import pytest

from aistudio.core.errors import ConflictError, NotFoundError
from aistudio.features.video.job_store import JobStore, new_job_id


class Clock:
    def __init__(self):
        self.now = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now


def test_new_job_id_format():
    job_id = new_job_id(datetime(2026, 1, 1, tzinfo=timezone.utc))
    prefix, ms, suffix = job_id.split("_")
    assert prefix == "job"
    assert ms == str(int(datetime(2026, 1, 1, tzinfo=timezone.utc).timestamp() * 1000))
    assert len(suffix) == 9


def test_create_job_is_queued():
    store = JobStore()
    job = store.create_job(total_segments=4)
    assert job.status == "queued"
    assert job.progress.total_segments == 4
    assert store.get_job(job.id) == job


def test_forward_transitions():
    store = JobStore()
    job = store.create_job(2)
    store.start_job(job.id)
    store.update_job_progress(job.id, 1, "Generating segment 1 of 2")
    assert store.get_job(job.id).progress.current_segment == 1

    done = store.complete_job(job.id, [], total_cost="$0.66", total_duration=18.0)
    assert done.status == "completed"
    assert done.completed_at is not None
    assert done.progress.current_segment == 2


def test_terminal_states_never_change():
    store = JobStore()
    job = store.create_job(1)
    store.start_job(job.id)
    store.fail_job(job.id, "boom")

    with pytest.raises(ConflictError):
        store.update_job(job.id, status="processing")
    with pytest.raises(ConflictError):
        store.complete_job(job.id, [])
    assert store.get_job(job.id).status == "failed"
    assert store.get_job(job.id).error == "boom"


def test_cannot_skip_processing():
    store = JobStore()
    job = store.create_job(1)
    with pytest.raises(ConflictError):
        store.complete_job(job.id, [])
    assert store.get_job(job.id).status == "queued"


def test_unknown_job():
    store = JobStore()
    assert store.get_job("job_missing") is None
    with pytest.raises(NotFoundError):
        store.update_job("job_missing", status="processing")


def test_records_are_replaced_not_mutated():
    store = JobStore()
    job = store.create_job(1)
    store.start_job(job.id)
    assert job.status == "queued"
    assert store.get_job(job.id).status == "processing"


def test_sweep_drops_expired_jobs():
    clock = Clock()
    store = JobStore(ttl_seconds=3600, clock=clock)
    old = store.create_job(1)
    clock.now += timedelta(minutes=30)
    fresh = store.create_job(1)

    clock.now += timedelta(minutes=31)
    assert store.sweep() == 1
    assert store.get_job(old.id) is None
    assert store.get_job(fresh.id) is not None


def test_list_jobs_newest_first():
    clock = Clock()
    store = JobStore(clock=clock)
    first = store.create_job(1)
    clock.now += timedelta(seconds=1)
    second = store.create_job(1)
    assert [job.id for job in store.list_jobs()] == [second.id, first.id]
