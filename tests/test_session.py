"""
Unit tests for authentication: the auth client decoders, the session manager,
the event bus and the launch coordinator.

The HTTP session is a `MagicMock`, so every outbound request is recorded and
can be asserted on; nothing leaves the process.
"""
import threading
import time

import pytest
import requests

from fishinghit import events
from fishinghit.auth_client import decode_auth_response, decode_registration_fill
from fishinghit.errors import InvalidCredentials, ParseError, UnknownAuthError, UserExists
from fishinghit.events import EventBus
from fishinghit.guide import load_favorites, set_favorite
from fishinghit.launch import LaunchCoordinator
from fishinghit.models import SessionState
from fishinghit.preferences import (
    AUTO_LOGIN_DISABLED,
    CLIENT_ID,
    PUSH_ID,
    STORED_EMAIL,
    STORED_PASSWORD,
    PreferenceStore,
)
from fishinghit.session import SessionManager

from conftest import AUTH_ENDPOINT, SERVICE_LINK, FakeResponse


def _link_response():
    return FakeResponse({"success": "Authorization successful"}, headers={"service-link": SERVICE_LINK})


# Auth client decoders

def test_decode_auth_response_success_and_error():
    ok = decode_auth_response(FakeResponse({"success": "Authorization successful"}))
    assert ok.ok and ok.message == "Authorization successful" and ok.service_link is None

    rejected = decode_auth_response(FakeResponse({"error": "Invalid email or password"}, status_code=401))
    assert rejected.error == "Invalid email or password"
    assert not rejected.ok


def test_decode_auth_response_rejects_bad_bodies():
    with pytest.raises(ParseError):
        decode_auth_response(FakeResponse(raw_text="<html>oops</html>"))
    with pytest.raises(ParseError):
        decode_auth_response(FakeResponse(["success"]))
    with pytest.raises(ParseError):
        decode_auth_response(FakeResponse({"success": 1}))
    with pytest.raises(ParseError):
        decode_auth_response(FakeResponse({}))


def test_decode_auth_response_non_200_without_body():
    response = decode_auth_response(FakeResponse(status_code=502))
    assert response.status_code == 502
    assert response.error is None and not response.ok


def test_decode_registration_fill():
    fill = decode_registration_fill(FakeResponse({"client_id": 42, "response": "ok"}))
    assert fill.client_id == "42" and fill.status == "ok"
    assert decode_registration_fill(FakeResponse({"client_id": "c1"})).status is None

    with pytest.raises(ParseError):
        decode_registration_fill(FakeResponse({"response": "ok"}))
    with pytest.raises(ParseError):
        decode_registration_fill(FakeResponse({"client_id": ["c1"]}))
    with pytest.raises(ParseError):
        decode_registration_fill(FakeResponse({"client_id": "c1", "response": {"url": "x"}}))
    with pytest.raises(UnknownAuthError):
        decode_registration_fill(FakeResponse({"client_id": "c1"}, status_code=500))


# Session manager

def test_login_success_without_service_link(session_manager, http, prefs):
    """A plain success authenticates and stores the credentials."""
    assert session_manager.login("a@b.com", "x") is True

    snapshot = session_manager.snapshot()
    assert snapshot.authenticated is True
    assert snapshot.state == SessionState.GUEST_OR_AUTHENTICATED
    assert snapshot.credential_identifier == "a@b.com"
    assert prefs.get_string(STORED_EMAIL) == "a@b.com"
    assert prefs.get_string(STORED_PASSWORD) == "x"
    http.post.assert_called_once_with(
        AUTH_ENDPOINT,
        json={"email": "a@b.com", "password": "x", "metod": "autorization"},
        timeout=5,
    )


def test_login_invalid_credentials(session_manager, http, prefs):
    http.post.return_value = FakeResponse({"error": "Invalid email or password"})
    with pytest.raises(InvalidCredentials) as exc_info:
        session_manager.login("a@b.com", "wrong")

    assert exc_info.value.message == "Invalid email or password"
    assert session_manager.snapshot().authenticated is False
    assert session_manager.snapshot().state == SessionState.LOADING
    assert prefs.get_string(STORED_EMAIL) is None


@pytest.mark.parametrize("response", [
    FakeResponse(status_code=500),
    FakeResponse({"message": "maintenance"}, status_code=503),
    FakeResponse({"error": "Invalid email or password"}, status_code=500),
])
def test_login_non_200_is_unknown(session_manager, http, response):
    http.post.return_value = response
    with pytest.raises(UnknownAuthError):
        session_manager.login("a@b.com", "x")
    assert session_manager.snapshot().authenticated is False


def test_login_network_error_is_unknown(session_manager, http):
    http.post.side_effect = requests.ConnectionError("offline")
    with pytest.raises(UnknownAuthError):
        session_manager.login("a@b.com", "x")


def test_login_malformed_body_raises_parse_error(session_manager, http):
    http.post.return_value = FakeResponse(raw_text="not json")
    with pytest.raises(ParseError):
        session_manager.login("a@b.com", "x")


def test_register_success(session_manager, http, prefs):
    assert session_manager.register("new@b.com", "+100200", "pw") is True
    http.post.assert_called_once_with(
        AUTH_ENDPOINT,
        json={"email": "new@b.com", "password": "pw", "metod": "registration", "phone": "+100200"},
        timeout=5,
    )
    assert prefs.get_string(STORED_EMAIL) == "new@b.com"
    assert session_manager.snapshot().authenticated is True


def test_register_without_phone_omits_field(session_manager, http):
    session_manager.register("new@b.com", "", "pw")
    assert "phone" not in http.post.call_args.kwargs["json"]


def test_register_existing_user_leaves_session_untouched(session_manager, http, prefs):
    http.post.return_value = FakeResponse({"error": "User already exists"})
    before = session_manager.snapshot()

    with pytest.raises(UserExists):
        session_manager.register("dup@b.com", "", "pw")

    assert session_manager.snapshot() == before
    assert prefs.get_string(STORED_EMAIL) is None


def test_visit_as_guest_makes_no_requests(session_manager, http, prefs):
    session_manager.visit_as_guest()

    snapshot = session_manager.snapshot()
    assert http.post.call_count == 0
    assert snapshot.authenticated is True
    assert snapshot.is_guest
    assert snapshot.state == SessionState.GUEST_OR_AUTHENTICATED
    assert prefs.get_string(STORED_EMAIL) == "guest"


def test_logout_clears_stored_credentials(session_manager, http, prefs):
    session_manager.login("a@b.com", "x")
    session_manager.logout()

    snapshot = session_manager.snapshot()
    assert snapshot.authenticated is False
    assert snapshot.state == SessionState.UNAUTHENTICATED
    assert snapshot.credential_identifier is None
    assert prefs.get_string(STORED_EMAIL) is None
    assert prefs.get_string(STORED_PASSWORD) is None
    assert http.post.call_count == 1


def test_restore_uses_stored_identifier(session_manager, prefs):
    assert session_manager.restore() is False
    assert session_manager.snapshot().state == SessionState.LOADING

    prefs.update({STORED_EMAIL: "a@b.com", STORED_PASSWORD: "x"})
    assert session_manager.restore() is True
    snapshot = session_manager.snapshot()
    assert snapshot.authenticated and snapshot.credential_identifier == "a@b.com"


def test_service_link_completes_registration(session_manager, http, prefs):
    prefs.update({PUSH_ID: "push-1", CLIENT_ID: "old-client"})
    session_manager.record_push_token("tok-123")
    session_manager.record_attribution({"af_status": "Organic"})
    session_manager.record_deep_link("fishinghit://promo")
    http.post.side_effect = [_link_response(), FakeResponse({"client_id": "client-9", "response": "done"})]

    assert session_manager.login("a@b.com", "x") is True

    follow_up = http.post.call_args_list[1]
    assert follow_up.args[0] == SERVICE_LINK
    assert follow_up.kwargs["params"] == {
        "apns_push_token": "tok-123",
        "client_id": "old-client",
        "push_id": "push-1",
        "exp_1": "true",
    }
    assert follow_up.kwargs["json"] == {"af_status": "Organic", "deep_link": "fishinghit://promo"}

    snapshot = session_manager.snapshot()
    assert snapshot.registration_complete is True
    assert snapshot.authenticated is True
    assert snapshot.state == SessionState.GUEST_OR_AUTHENTICATED
    assert prefs.get_string(CLIENT_ID) == "client-9"
    assert prefs.get_string(PUSH_ID) is None
    assert prefs.get_string(STORED_EMAIL) == "a@b.com"


def test_service_link_without_status_disables_auto_login(session_manager, http, prefs):
    http.post.side_effect = [_link_response(), FakeResponse({"client_id": "client-9"})]

    assert session_manager.login("a@b.com", "x") is False

    follow_up = http.post.call_args_list[1]
    assert follow_up.kwargs["params"] == {"apns_push_token": ""}
    snapshot = session_manager.snapshot()
    assert snapshot.authenticated is False
    assert snapshot.registration_complete is False
    assert snapshot.state == SessionState.UNAUTHENTICATED
    assert prefs.get_string(CLIENT_ID) == "client-9"
    assert session_manager.is_auto_login_disabled() is True
    assert prefs.get_string(STORED_EMAIL) is None


def test_service_link_failure_is_silent(session_manager, http, prefs):
    prefs.set(PUSH_ID, "push-1")
    http.post.side_effect = [_link_response(), requests.Timeout("slow")]

    assert session_manager.login("a@b.com", "x") is False

    assert session_manager.snapshot().state == SessionState.UNAUTHENTICATED
    assert prefs.get_string(PUSH_ID) == "push-1"
    assert session_manager.is_auto_login_disabled() is False


def test_automatic_login_anonymous_rejection(session_manager, http):
    http.post.return_value = FakeResponse({"error": "Invalid email or password"})

    assert session_manager.attempt_automatic_login() is False

    assert http.post.call_args.kwargs["json"]["email"] == ""
    assert session_manager.snapshot().state == SessionState.UNAUTHENTICATED


def test_automatic_login_uses_stored_credentials(session_manager, http, prefs):
    prefs.update({STORED_EMAIL: "a@b.com", STORED_PASSWORD: "x"})
    assert session_manager.attempt_automatic_login() is True
    assert http.post.call_args.kwargs["json"]["email"] == "a@b.com"


def test_automatic_rejection_keeps_user_who_entered_the_app(session_manager, http):
    session_manager.visit_as_guest()
    http.post.return_value = FakeResponse({"error": "Invalid email or password"})

    assert session_manager.attempt_automatic_login() is False

    snapshot = session_manager.snapshot()
    assert snapshot.state == SessionState.GUEST_OR_AUTHENTICATED
    assert snapshot.is_guest


class SlowFernet:
    """Wraps a Fernet cipher and stalls the first encryption until released."""

    def __init__(self, fernet):
        self._fernet = fernet
        self.writing = threading.Event()
        self._stalled = False

    def encrypt(self, data):
        if not self._stalled:
            self._stalled = True
            self.writing.set()
            time.sleep(0.2)
        return self._fernet.encrypt(data)

    def decrypt(self, token):
        return self._fernet.decrypt(token)


def test_favorite_write_does_not_drop_concurrent_login(tmp_path, encryptor, client):
    """A login saved while a favorites write is in progress must survive it."""
    slow = SlowFernet(encryptor)
    path = str(tmp_path / "preferences.json")
    prefs = PreferenceStore(path, slow)
    manager = SessionManager(client, prefs)

    worker = threading.Thread(target=set_favorite, args=(prefs, "Pike", True))
    worker.start()
    assert slow.writing.wait(timeout=5)
    assert manager.login("a@b.com", "x") is True
    worker.join()

    assert prefs.get_string(STORED_EMAIL) == "a@b.com"
    reloaded = PreferenceStore(path, encryptor)
    assert reloaded.get_string(STORED_EMAIL) == "a@b.com"
    assert load_favorites(reloaded) == {"Pike"}


def test_deep_link_keeps_first_value(session_manager):
    session_manager.record_deep_link("fishinghit://first")
    session_manager.record_deep_link("fishinghit://second")
    assert session_manager.snapshot().deferred_deep_link == "fishinghit://first"


def test_snapshot_is_read_only(session_manager):
    snapshot = session_manager.snapshot()
    with pytest.raises(AttributeError):
        snapshot.authenticated = True


# Event bus

def test_event_bus_delivers_and_isolates_failures():
    bus = EventBus()
    received = []

    def broken(payload):
        raise RuntimeError("boom")

    bus.subscribe("topic", broken)
    bus.subscribe("topic", received.append)
    bus.subscribe("topic", received.append)

    assert bus.post("topic", {"value": 1}) == 1
    assert received == [{"value": 1}]

    bus.unsubscribe("topic", received.append)
    assert bus.post("topic", {"value": 2}) == 0
    assert bus.post("other") == 0


# Launch coordinator

@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def coordinator(session_manager, bus, fake_timer):
    return LaunchCoordinator(session_manager, bus, timeout=5.5, timer_factory=fake_timer)


def test_launch_restores_stored_session_without_waiting(coordinator, session_manager, prefs, http, fake_timer):
    prefs.set(STORED_EMAIL, "a@b.com")
    coordinator.start()

    assert session_manager.snapshot().state == SessionState.GUEST_OR_AUTHENTICATED
    assert fake_timer.instances == []
    assert http.post.call_count == 0


def test_launch_skips_attempt_when_auto_login_disabled(coordinator, session_manager, prefs, bus, http, fake_timer):
    prefs.set(AUTO_LOGIN_DISABLED, True)
    coordinator.start()

    assert session_manager.snapshot().state == SessionState.UNAUTHENTICATED
    assert fake_timer.instances == []
    assert bus.post(events.PUSH_TOKEN_RECEIVED, {"apnstoken": "tok"}) == 0
    assert http.post.call_count == 0


def test_launch_waits_for_both_signals(coordinator, session_manager, bus, http, fake_timer):
    coordinator.start()
    timer = fake_timer.instances[0]
    assert timer.started and timer.interval == 5.5

    bus.post(events.PUSH_TOKEN_RECEIVED, {"apnstoken": "tok"})
    assert http.post.call_count == 0

    bus.post(events.ATTRIBUTION_DATA_RECEIVED, {"data": {"af_status": "Organic"}})
    assert http.post.call_count == 1
    assert timer.cancelled
    snapshot = session_manager.snapshot()
    assert snapshot.push_token == "tok"
    assert snapshot.attribution_payload == {"af_status": "Organic"}
    assert snapshot.state == SessionState.GUEST_OR_AUTHENTICATED

    timer.fire()
    bus.post(events.PUSH_TOKEN_RECEIVED, {"apnstoken": "tok-2"})
    assert http.post.call_count == 1


def test_launch_timeout_triggers_attempt(coordinator, session_manager, bus, http, fake_timer):
    http.post.return_value = FakeResponse({"error": "Invalid email or password"})
    coordinator.start()
    bus.post(events.PUSH_TOKEN_RECEIVED, {"apnstoken": "tok"})

    fake_timer.instances[0].fire()

    assert http.post.call_count == 1
    assert coordinator.attempt_claimed
    assert session_manager.snapshot().state == SessionState.UNAUTHENTICATED

    bus.post(events.ATTRIBUTION_DATA_RECEIVED, {})
    assert http.post.call_count == 1


def test_launch_failed_attempt_is_retried_by_later_signal(coordinator, session_manager, bus, http, fake_timer):
    http.post.side_effect = [requests.ConnectionError("offline"), FakeResponse({"success": "ok"})]
    coordinator.start()

    fake_timer.instances[0].fire()
    assert http.post.call_count == 1
    assert not coordinator.attempt_claimed
    assert session_manager.snapshot().state == SessionState.UNAUTHENTICATED

    bus.post(events.ATTRIBUTION_DATA_RECEIVED, {"data": {"campaign": "spring"}})
    assert http.post.call_count == 2
    assert session_manager.snapshot().state == SessionState.GUEST_OR_AUTHENTICATED


def test_launch_ignores_repeated_signal_values(coordinator, bus, http, fake_timer):
    http.post.side_effect = requests.ConnectionError("offline")
    coordinator.start()
    fake_timer.instances[0].fire()
    assert http.post.call_count == 1

    bus.post(events.PUSH_TOKEN_RECEIVED, {"apnstoken": "tok"})
    assert http.post.call_count == 2
    bus.post(events.PUSH_TOKEN_RECEIVED, {"apnstoken": "tok"})
    assert http.post.call_count == 2


def test_launch_concurrent_triggers_start_one_request(coordinator, http, fake_timer):
    def slow_post(*args, **kwargs):
        time.sleep(0.05)
        return FakeResponse({"success": "ok"})

    http.post.side_effect = slow_post
    coordinator.start()
    coordinator._timed_out = True
    barrier = threading.Barrier(8)

    def trigger():
        barrier.wait()
        coordinator.try_attempt()

    threads = [threading.Thread(target=trigger) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert http.post.call_count == 1


def test_launch_forwards_deep_links_and_push_ids(coordinator, session_manager, bus, prefs):
    coordinator.start()
    bus.post(events.DEEP_LINK_RECEIVED, {"deeplink": "fishinghit://promo"})
    bus.post(events.PUSH_OPENED, {"push_id": "push-7"})

    assert session_manager.snapshot().deferred_deep_link == "fishinghit://promo"
    assert prefs.get_string(PUSH_ID) == "push-7"


def test_launch_stop_unsubscribes(coordinator, bus, fake_timer):
    coordinator.start()
    coordinator.stop()
    assert fake_timer.instances[0].cancelled
    assert bus.post(events.PUSH_TOKEN_RECEIVED, {"apnstoken": "tok"}) == 0


def test_launch_retry_skipped_after_guest_entry(coordinator, session_manager, bus, http, fake_timer):
    http.post.side_effect = [
        requests.ConnectionError("offline"),
        FakeResponse({"error": "Invalid email or password"}),
    ]
    coordinator.start()
    fake_timer.instances[0].fire()
    assert not coordinator.attempt_claimed

    session_manager.visit_as_guest()
    bus.post(events.ATTRIBUTION_DATA_RECEIVED, {"data": {"campaign": "late"}})

    snapshot = session_manager.snapshot()
    assert snapshot.state == SessionState.GUEST_OR_AUTHENTICATED
    assert snapshot.is_guest
    assert http.post.call_count == 1
    assert coordinator.attempt_claimed


def test_launch_retry_skipped_after_manual_login(coordinator, session_manager, bus, http, fake_timer):
    http.post.side_effect = [
        requests.ConnectionError("offline"),
        FakeResponse({"success": "Authorization successful"}),
    ]
    coordinator.start()
    fake_timer.instances[0].fire()

    assert session_manager.login("a@b.com", "x") is True
    bus.post(events.PUSH_TOKEN_RECEIVED, {"apnstoken": "late-token"})

    snapshot = session_manager.snapshot()
    assert snapshot.state == SessionState.GUEST_OR_AUTHENTICATED
    assert snapshot.credential_identifier == "a@b.com"
    assert http.post.call_count == 2
