import os
import pytest

from satfusion import create_app
from satfusion.auth import issue_token
from satfusion.models import db as _db
from satfusion.models import AnalysisJob, Dataset

@pytest.fixture(scope="session")
def app():
    os.environ["FLASK_ENV"] = "testing"
    app = create_app("testing")
    with app.app_context():
        _db.create_all()
        yield app
        _db.drop_all()

@pytest.fixture(autouse=True)
def clean_tables(app):
    yield
    _db.session.rollback()
    AnalysisJob.query.delete()
    Dataset.query.delete()
    _db.session.commit()

@pytest.fixture()
def client(app):
    return app.test_client()

@pytest.fixture()
def auth_headers(app):
    def _headers(user_id="user-a"):
        token = issue_token(user_id, app.config["JWT_SECRET"], app.config["JWT_ALGORITHM"])
        return {"Authorization": f"Bearer {token}"}
    return _headers


class FakeDispatcher:
    """Records start/cancel calls instead of queueing anything."""

    def __init__(self):
        self.started = []
        self.cancelled = []

    def start(self, job_id):
        self.started.append(job_id)
        return f"fake-task-{len(self.started)}"

    def cancel(self, task_id):
        self.cancelled.append(task_id)


class RecordingEmitter:
    def __init__(self):
        self.events = []

    def publish(self, channel, event, payload):
        self.events.append((channel, event, payload))
        return True

    def publish_job_event(self, job, event, payload):
        self.events.append((f"user:{job.owner_id}", event, payload))
        return True

    def names(self):
        return [e[1] for e in self.events]


@pytest.fixture()
def analysis_service(app):
    return app.extensions["satfusion.analysis"]

@pytest.fixture()
def dispatcher(analysis_service, monkeypatch):
    fake = FakeDispatcher()
    monkeypatch.setattr(analysis_service, "dispatcher", fake)
    return fake

@pytest.fixture()
def recording_emitter():
    return RecordingEmitter()

@pytest.fixture()
def make_dataset(client, auth_headers):
    def _make(user_id="user-a", **overrides):
        body = {
            "name": "Delhi NCR",
            "satellite": "Sentinel-2",
            "region": {"type": "Polygon", "coordinates": [[[77.0, 28.4], [77.4, 28.4], [77.4, 28.8], [77.0, 28.4]]]},
            "acquisition_date": "2024-03-01T10:00:00Z",
            "cloud_cover": 12,
            "resolution": "10m",
        }
        body.update(overrides)
        rv = client.post("/api/datasets", json=body, headers=auth_headers(user_id))
        assert rv.status_code == 201, rv.get_json()
        return rv.get_json()["dataset"]
    return _make
