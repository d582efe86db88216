"""
Campus events - test configuration and fixtures
"""
import io
import os
import tempfile
from urllib.parse import urlsplit

import pytest

# Set testing environment before the app module builds its engine
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only"
os.environ["UPLOAD_FOLDER"] = tempfile.mkdtemp(prefix="campus-events-uploads-")
os.environ["LOG_LEVEL"] = "WARNING"

from app import app as flask_app
from extensions import db
import services


@pytest.fixture
def app(tmp_path):
    flask_app.config.update(
        TESTING=True,
        UPLOAD_FOLDER=str(tmp_path / "uploads"),
        MAX_CONTENT_LENGTH=200 * 1024 * 1024,
    )
    with flask_app.app_context():
        db.drop_all()
        db.create_all()
        yield flask_app
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin(app):
    return services.seed_admin("admin@gdgconnect.com", "admin123")


@pytest.fixture
def student(app):
    services.register("a@x.com", "pw123456", "Asha", "CSE", "1XX21CS001")
    return {"email": "a@x.com", "password": "pw123456"}


@pytest.fixture
def event_id(app):
    created = services.create_event("DevFest", "Talks and workshops", "2024-11-02", "Main Hall")
    return created["eventId"]


class FlaskResponse:
    """The slice of requests.Response that DashboardClient reads."""

    def __init__(self, response):
        self._response = response
        self.status_code = response.status_code
        self.ok = 200 <= response.status_code < 400
        self.content = response.get_data()
        self.text = response.get_data(as_text=True)
        self.headers = response.headers

    def json(self):
        body = self._response.get_json(silent=True)
        if body is None:
            raise ValueError("response is not JSON")
        return body


class FlaskSession:
    """Routes requests.Session.request calls into the Flask test client."""

    def __init__(self, test_client):
        self.test_client = test_client

    def request(self, method, url, json=None, params=None, files=None, timeout=None):
        path = urlsplit(url).path
        kwargs = {"method": method, "query_string": params}
        if json is not None:
            kwargs["json"] = json
        if files:
            kwargs["data"] = {
                field: (io.BytesIO(content), name, mimetype)
                for field, (name, content, mimetype) in files.items()
            }
            kwargs["content_type"] = "multipart/form-data"
        return FlaskResponse(self.test_client.open(path, **kwargs))


@pytest.fixture
def dashboard(client):
    from client import DashboardClient

    return DashboardClient("http://testserver/api", session=FlaskSession(client))
