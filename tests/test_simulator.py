import pytest

from satfusion.errors import StorageUnavailable
from satfusion.services.job_store import JobStore
from satfusion.services.simulator import AnalysisSimulator, progress_steps
from satfusion.services.strategies import strategy_for


@pytest.fixture()
def store():
    return JobStore()


def _simulator(store, emitter, **kwargs):
    kwargs.setdefault("step_delay", 0)
    kwargs.setdefault("series_length", 16)
    kwargs.setdefault("sleep", lambda s: None)
    return AnalysisSimulator(store, emitter, **kwargs)


def test_progress_steps():
    assert list(progress_steps(10)) == [0, 10, 20, 30, 40, 50, 60, 70, 80, 90, 100]
    assert list(progress_steps(30)) == [0, 30, 60, 90, 100]
    assert list(progress_steps(100)) == [0, 100]
    with pytest.raises(ValueError):
        list(progress_steps(0))

def test_run_completes_job(store, recording_emitter):
    job = store.create("owner-1", "ds-1", "spectral-indices")

    assert _simulator(store, recording_emitter).run(job.id) == "completed"

    done = store.get(job.id)
    assert done.status == "completed"
    assert done.progress == 100
    assert done.started_at is not None and done.completed_at is not None
    assert done.error is None
    assert len(done.results["ndvi"]) == 16

def test_events_are_ordered_and_end_with_completion(store, recording_emitter):
    job = store.create("owner-1", "ds-1", "spectral-indices")
    _simulator(store, recording_emitter).run(job.id)

    names = recording_emitter.names()
    assert names == ["analysis_progress"] * 11 + ["analysis_completed"]
    progress = [p["progress"] for _, e, p in recording_emitter.events if e == "analysis_progress"]
    assert progress == sorted(progress) == list(range(0, 101, 10))
    assert all(channel == "user:owner-1" for channel, _, _ in recording_emitter.events)
    assert recording_emitter.events[-1][2]["results"] == store.get(job.id).results

def test_sleeps_between_every_step(store, recording_emitter):
    slept = []
    job = store.create("owner-1", "ds-1", "spectral-indices")
    _simulator(store, recording_emitter, step_size=25, step_delay=0.5, sleep=slept.append).run(job.id)
    assert slept == [0.5] * 5

def test_strategy_error_marks_job_failed(store, recording_emitter):
    def broken_strategy(kind, series_length):
        raise RuntimeError("sensor bands missing")

    job = store.create("owner-1", "ds-1", "spectral-indices")
    status = _simulator(store, recording_emitter, strategy_factory=broken_strategy).run(job.id)

    assert status == "failed"
    failed = store.get(job.id)
    assert failed.status == "failed"
    assert failed.error == "sensor bands missing"
    assert failed.results is None
    # progress reached before the failure is kept
    assert failed.progress == 100
    assert recording_emitter.names()[-1] == "analysis_failed"
    assert recording_emitter.events[-1][2] == {"analysis_id": job.id, "error": "sensor bands missing"}

def test_storage_failure_mid_run_keeps_partial_progress(store, recording_emitter):
    job = store.create("owner-1", "ds-1", "change-detection")
    real_update = store.update

    def flaky_update(job_id, only_if_status=None, **fields):
        if fields.get("progress") == 40:
            raise StorageUnavailable("db down")
        return real_update(job_id, only_if_status=only_if_status, **fields)

    store.update = flaky_update
    status = _simulator(store, recording_emitter).run(job.id)

    assert status == "failed"
    failed = store.get(job.id)
    assert failed.status == "failed"
    assert failed.progress == 30
    assert "analysis_completed" not in recording_emitter.names()
    assert recording_emitter.names().count("analysis_failed") == 1

def test_cancelled_job_stops_at_next_step(store, recording_emitter):
    job = store.create("owner-1", "ds-1", "spectral-indices")
    calls = []

    def sleep(_):
        calls.append(1)
        if len(calls) == 4:
            store.update(job.id, status="cancelled")

    status = _simulator(store, recording_emitter, sleep=sleep).run(job.id)

    assert status == "cancelled"
    stopped = store.get(job.id)
    assert stopped.status == "cancelled"
    assert stopped.progress == 20
    assert stopped.results is None and stopped.error is None
    assert recording_emitter.names() == ["analysis_progress"] * 3

def test_deleted_job_stops_without_writing(store, recording_emitter):
    job = store.create("owner-1", "ds-1", "spectral-indices")
    job_id = job.id

    def sleep(_):
        store.delete(job_id)

    assert _simulator(store, recording_emitter, sleep=sleep).run(job_id) == "cancelled"
    assert store.get(job_id) is None
    assert recording_emitter.events == []

def test_job_not_pending_is_not_run_twice(store, recording_emitter):
    job = store.create("owner-1", "ds-1", "spectral-indices")
    sim = _simulator(store, recording_emitter)
    assert sim.run(job.id) == "completed"
    first = store.get(job.id).results

    assert sim.run(job.id) == "cancelled"
    assert store.get(job.id).results == first

def test_missing_job_is_a_noop(store, recording_emitter):
    assert _simulator(store, recording_emitter).run("missing-id") == "missing"
    assert recording_emitter.events == []

def test_storage_down_at_load_does_not_escape(recording_emitter):
    class DownStore(JobStore):
        def get(self, job_id):
            raise StorageUnavailable("db down")

    assert _simulator(DownStore(), recording_emitter).run("j1") == "failed"
    assert recording_emitter.events == []

def test_from_config_reads_pipeline_settings(app, store, recording_emitter):
    sim = AnalysisSimulator.from_config(app.config, store, recording_emitter)
    assert sim.step_size == app.config["ANALYSIS_STEP_SIZE"]
    assert sim.step_delay == app.config["ANALYSIS_STEP_DELAY"]
    assert sim.series_length == app.config["ANALYSIS_SERIES_LENGTH"]
    assert sim.strategy_factory is strategy_for
