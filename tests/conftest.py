"""
Pytest configuration file for the FishingHit test suite.

This file defines shared fixtures and helpers used across the test files:
- Stores backed by files in a temporary directory and a throwaway Fernet key,
  so tests never touch real data.
- A mocked `requests.Session` and a `FakeResponse` helper for the auth endpoints.
- A `FakeTimer` that replaces `threading.Timer` so launch timeouts fire on demand.
"""
import json
from unittest.mock import MagicMock

import pytest
from cryptography.fernet import Fernet

from fishinghit.auth_client import AuthClient
from fishinghit.config import load_config
from fishinghit.preferences import PreferenceStore
from fishinghit.records import RecordStore
from fishinghit.services import AppServices
from fishinghit.session import SessionManager

AUTH_ENDPOINT = "https://auth.example.test/api"
SERVICE_LINK = "https://link.example.test/complete"


class FakeResponse:
    """Minimal stand-in for `requests.Response`."""

    def __init__(self, body=None, status_code=200, headers=None, raw_text=None):
        self.status_code = status_code
        self.headers = dict(headers or {})
        self._body = body
        self._raw_text = raw_text

    def json(self):
        if self._raw_text is not None:
            return json.loads(self._raw_text)
        if self._body is None:
            raise ValueError("No JSON body")
        return self._body


class FakeTimer:
    """Replaces `threading.Timer`; call `fire()` to run the callback."""

    instances = []

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.started = False
        self.cancelled = False
        FakeTimer.instances.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.function()


@pytest.fixture
def encryptor():
    """A Fernet cipher with a fresh key, isolated from any real key file."""
    return Fernet(Fernet.generate_key())


@pytest.fixture
def prefs(tmp_path, encryptor):
    return PreferenceStore(str(tmp_path / "preferences.json"), encryptor)


@pytest.fixture
def store(tmp_path, encryptor):
    return RecordStore(str(tmp_path / "records.json"), encryptor, media_dir=str(tmp_path / "media"))


@pytest.fixture
def http():
    """A mocked HTTP session whose `post` returns a successful login by default."""
    session = MagicMock()
    session.post.return_value = FakeResponse({"success": "Authorization successful"})
    return session


@pytest.fixture
def client(http):
    return AuthClient(AUTH_ENDPOINT, timeout=5, http=http)


@pytest.fixture
def session_manager(client, prefs):
    return SessionManager(client, prefs)


@pytest.fixture
def app_config(tmp_path, monkeypatch):
    """Configuration pointing every file at the temporary directory."""
    monkeypatch.setenv("FISHINGHIT_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.delenv("FISHINGHIT_KEY_FILE", raising=False)
    monkeypatch.setenv("FISHINGHIT_AUTH_ENDPOINT", AUTH_ENDPOINT)
    return load_config()


@pytest.fixture
def fake_timer():
    FakeTimer.instances = []
    return FakeTimer


@pytest.fixture
def services(app_config, http, fake_timer):
    """Fully wired services on temporary files, with a mocked network and timer."""
    return AppServices(app_config, http=http, timer_factory=fake_timer)
