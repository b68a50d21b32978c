"""
Launch-time coordination of the automatic login attempt.

After startup the app waits for two independent signals, the push token and the
attribution data, before it makes its one automatic login attempt, because the
registration-completion request needs both. If they have not both arrived when
the launch timeout expires, the attempt is made with whatever is available.
"""
# fishinghit/launch.py

from __future__ import annotations

import threading
from typing import Any, Callable, Mapping, Optional

from fishinghit import events
from fishinghit.errors import FishingHitError
from fishinghit.events import EventBus
from fishinghit.logging_config import get_logger
from fishinghit.models import SessionState
from fishinghit.session import SessionManager

logger = get_logger(__name__)

DEFAULT_LAUNCH_TIMEOUT = 5.5

_UNSET = object()


class LaunchCoordinator:
    """Gates the automatic login on the launch signals or a timeout."""

    def __init__(self, session: SessionManager, bus: EventBus, timeout: float = DEFAULT_LAUNCH_TIMEOUT,
                 timer_factory: Callable[[float, Callable[[], None]], Any] = threading.Timer) -> None:
        self._session = session
        self._bus = bus
        self._timeout = timeout
        self._timer_factory = timer_factory
        self._timer = None
        self._lock = threading.Lock()

        self._attempt_claimed = False
        self._timed_out = False
        self._last_push_token: Any = _UNSET
        self._last_attribution: Any = _UNSET
        self._subscriptions = (
            (events.PUSH_TOKEN_RECEIVED, self._on_push_token),
            (events.ATTRIBUTION_DATA_RECEIVED, self._on_attribution),
            (events.DEEP_LINK_RECEIVED, self._on_deep_link),
            (events.PUSH_OPENED, self._on_push_opened),
        )

    @property
    def attempt_claimed(self) -> bool:
        with self._lock:
            return self._attempt_claimed

    def start(self) -> None:
        """Restores a stored session, or starts waiting for the launch signals."""
        if self._session.restore():
            return
        if self._session.is_auto_login_disabled():
            logger.info("Automatic login disabled; showing the login screen")
            self._session.resolve_unauthenticated()
            return
        for topic, handler in self._subscriptions:
            self._bus.subscribe(topic, handler)
        self._timer = self._timer_factory(self._timeout, self._on_timeout)
        if hasattr(self._timer, "daemon"):
            self._timer.daemon = True
        self._timer.start()

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        for topic, handler in self._subscriptions:
            self._bus.unsubscribe(topic, handler)

    def _on_push_token(self, payload: Mapping) -> None:
        token = payload.get("apnstoken") or payload.get("token")
        if not token:
            return
        with self._lock:
            if token == self._last_push_token:
                return
            self._last_push_token = token
        self._session.record_push_token(token)
        self.try_attempt()

    def _on_attribution(self, payload: Mapping) -> None:
        # A failed attribution lookup is delivered with an empty payload and still counts.
        data = dict(payload.get("data") or {})
        with self._lock:
            if data == self._last_attribution:
                return
            self._last_attribution = data
        self._session.record_attribution(data)
        self.try_attempt()

    def _on_deep_link(self, payload: Mapping) -> None:
        link = payload.get("deeplink")
        if link:
            self._session.record_deep_link(link)

    def _on_push_opened(self, payload: Mapping) -> None:
        push_id = payload.get("push_id")
        if isinstance(push_id, str) and push_id:
            try:
                self._session.record_push_id(push_id)
            except FishingHitError:
                logger.exception("Could not store push id")

    def _on_timeout(self) -> None:
        with self._lock:
            self._timed_out = True
        logger.debug("Launch timeout reached")
        self.try_attempt()

    def _ready(self) -> bool:
        both_signals = self._last_push_token is not _UNSET and self._last_attribution is not _UNSET
        return self._timed_out or both_signals

    def try_attempt(self) -> Optional[bool]:
        """Makes the automatic login attempt if the launch conditions allow it.

        The claim on the attempt is taken atomically, so concurrent triggers never
        start two requests. An attempt that fails for an unknown reason releases the
        claim so that a later signal can trigger it again. Once the user is in the
        app (logged in or visiting as a guest) the claim is kept and nothing is sent.

        Returns:
            bool or None: The attempt's outcome, or None if no attempt was made.
        """
        with self._lock:
            if self._attempt_claimed or not self._ready():
                return None
            self._attempt_claimed = True

        if self._session.snapshot().state == SessionState.GUEST_OR_AUTHENTICATED:
            logger.debug("Session already resolved; skipping automatic login")
            self._cancel_timer()
            return None

        try:
            outcome = self._session.attempt_automatic_login()
        except FishingHitError as e:
            logger.warning("Automatic login failed: %s", e)
            with self._lock:
                self._attempt_claimed = False
            self._session.resolve_unauthenticated()
            return False

        self._cancel_timer()
        return outcome

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
