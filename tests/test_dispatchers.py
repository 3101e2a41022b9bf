import pytest
from flask import current_app

from satfusion.services.dispatchers import BackgroundDispatcher, CeleryDispatcher, make_dispatcher
from satfusion.tasks import analysis_tasks


class InlineSocketIO:
    """Runs background tasks right away on the calling thread."""

    def __init__(self):
        self.calls = 0

    def start_background_task(self, target, *args, **kwargs):
        self.calls += 1
        return target(*args, **kwargs)


class FakeSimulator:
    def __init__(self, seen):
        self.seen = seen

    def run(self, job_id):
        # runs must get an app context of their own
        self.seen.append((job_id, current_app.name))
        return "completed"


def test_background_dispatcher_runs_in_app_context(app):
    seen = []
    sio = InlineSocketIO()
    d = BackgroundDispatcher(app, sio, lambda: FakeSimulator(seen))

    handle = d.start("job-1")
    assert isinstance(handle, str) and len(handle) == 32
    assert sio.calls == 1
    assert seen == [("job-1", app.name)]
    assert d.cancel(handle) is None

def test_background_handles_are_unique(app):
    d = BackgroundDispatcher(app, InlineSocketIO(), lambda: FakeSimulator([]))
    assert d.start("a") != d.start("a")

def test_celery_dispatcher_queues_and_revokes(monkeypatch):
    queued, revoked = [], []

    class Result:
        id = "celery-123"

    def fake_delay(job_id):
        queued.append(job_id)
        return Result()

    monkeypatch.setattr(analysis_tasks.simulate_analysis, "delay", fake_delay)
    monkeypatch.setattr(analysis_tasks.simulate_analysis.app.control, "revoke", revoked.append)

    d = CeleryDispatcher()
    assert d.start("job-9") == "celery-123"
    assert queued == ["job-9"]

    d.cancel("celery-123")
    d.cancel(None)
    assert revoked == ["celery-123"]

def test_simulate_task_uses_app_simulator(app, monkeypatch):
    ran = []

    class Sim:
        def run(self, job_id):
            ran.append(job_id)
            return "completed"

    monkeypatch.setitem(app.extensions, "satfusion.simulator_factory", Sim)
    out = analysis_tasks.simulate_analysis.run("job-3")
    assert out == {"job_id": "job-3", "status": "completed"}
    assert ran == ["job-3"]

@pytest.mark.parametrize("kind, cls", [("celery", CeleryDispatcher), (" Background ", BackgroundDispatcher)])
def test_make_dispatcher(app, monkeypatch, kind, cls):
    monkeypatch.setitem(app.config, "ANALYSIS_DISPATCHER", kind)
    assert isinstance(make_dispatcher(app, InlineSocketIO(), lambda: None), cls)

def test_make_dispatcher_rejects_unknown(app, monkeypatch):
    monkeypatch.setitem(app.config, "ANALYSIS_DISPATCHER", "threads")
    with pytest.raises(ValueError):
        make_dispatcher(app, InlineSocketIO(), lambda: None)
