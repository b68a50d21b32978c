"""
This module provides the session manager for the FishingHit application.

It defines the `SessionManager` class, which is responsible for:
- Login, registration, logout and guest access against the remote auth endpoint.
- Persisting the stored login in the preference store and restoring it at startup.
- Completing registration through the server-issued service link, using the push
  token, attribution data and deep link collected after launch.
- Exposing the session to the rest of the app as read-only `SessionSnapshot`s.

Session state and the preference store are only changed while holding the
manager's lock. Network requests run outside the lock.
"""
# fishinghit/session.py

from __future__ import annotations

import threading
from typing import Any, Dict, Mapping, Optional, Type

from fishinghit import preferences as prefs_keys
from fishinghit.auth_client import METHOD_LOGIN, METHOD_REGISTRATION, AuthClient
from fishinghit.errors import (
    AuthError,
    InvalidCredentials,
    PersistenceError,
    UnknownAuthError,
    UserExists,
)
from fishinghit.logging_config import get_logger
from fishinghit.models import SessionSnapshot, SessionState
from fishinghit.preferences import PreferenceStore

logger = get_logger(__name__)

GUEST_IDENTIFIER = "guest"


class SessionManager:
    """Owns the authentication state for the current run."""

    def __init__(self, client: AuthClient, prefs: PreferenceStore) -> None:
        self._client = client
        self._prefs = prefs
        self._lock = threading.RLock()

        self.state = SessionState.LOADING
        self.credential_identifier: Optional[str] = None
        self.credential_secret: Optional[str] = None
        self.authenticated = False
        self.registration_complete = False
        self.push_token: Optional[str] = None
        self.attribution_payload: Optional[Dict[str, Any]] = None
        self.deferred_deep_link: Optional[str] = None

    def snapshot(self) -> SessionSnapshot:
        """Returns a read-only copy of the current session."""
        with self._lock:
            return SessionSnapshot(
                state=self.state,
                credential_identifier=self.credential_identifier,
                authenticated=self.authenticated,
                registration_complete=self.registration_complete,
                push_token=self.push_token,
                attribution_payload=dict(self.attribution_payload) if self.attribution_payload is not None else None,
                deferred_deep_link=self.deferred_deep_link,
            )

    def restore(self) -> bool:
        """Restores a stored login at startup.

        Returns:
            bool: True if a stored identifier was found and the session is now authenticated.
        """
        with self._lock:
            identifier = self._prefs.get_string(prefs_keys.STORED_EMAIL)
            if not identifier:
                return False
            self.credential_identifier = identifier
            self.credential_secret = self._prefs.get_string(prefs_keys.STORED_PASSWORD)
            self.authenticated = True
            self.state = SessionState.GUEST_OR_AUTHENTICATED
            logger.info("Restored stored session for %s", identifier)
            return True

    def login(self, identifier: str, secret: str) -> bool:
        """Logs in with an email and password.

        Returns:
            bool: True once the session is authenticated. False if the server asked for
                registration completion and that step did not complete.

        Raises:
            InvalidCredentials: The server rejected the credentials.
            UnknownAuthError: Any other failure, including network errors.
        """
        payload = {"email": identifier, "password": secret, "metod": METHOD_LOGIN}
        return self._authenticate(payload, identifier, secret, InvalidCredentials)

    def register(self, identifier: str, phone: str, secret: str) -> bool:
        """Registers a new account and logs in with it.

        Raises:
            UserExists: The server already has an account for this email.
            UnknownAuthError: Any other failure, including network errors.
        """
        payload = {"email": identifier, "password": secret, "metod": METHOD_REGISTRATION}
        if phone:
            payload["phone"] = phone
        return self._authenticate(payload, identifier, secret, UserExists)

    def _authenticate(self, payload: Dict[str, Any], identifier: str, secret: str,
                      rejection: Type[AuthError]) -> bool:
        response = self._client.post_credentials(payload)
        if response.status_code == 200 and response.error is not None:
            logger.info("Server rejected %s for %s: %s", payload["metod"], identifier, response.error)
            raise rejection(response.error)
        if not response.ok:
            logger.warning("Unexpected %s response for %s: status %s, error %r", payload["metod"], identifier,
                           response.status_code, response.error)
            raise UnknownAuthError()

        if response.service_link:
            logger.info("Server requested registration completion")
            return self.check_registration_fill(response.service_link, identifier, secret)

        with self._lock:
            self._complete_login(identifier, secret)
        return True

    def _complete_login(self, identifier: str, secret: str) -> None:
        self._prefs.update({
            prefs_keys.STORED_EMAIL: identifier,
            prefs_keys.STORED_PASSWORD: secret,
        })
        self.credential_identifier = identifier
        self.credential_secret = secret
        self.authenticated = True
        self.state = SessionState.GUEST_OR_AUTHENTICATED

    def _fail_to_unauthenticated(self) -> None:
        self.authenticated = False
        self.state = SessionState.UNAUTHENTICATED

    def check_registration_fill(self, link: str, identifier: Optional[str] = None,
                                secret: Optional[str] = None) -> bool:
        """Completes registration through the server-issued service link.

        Failures are logged and leave the session unauthenticated; nothing is raised.

        Returns:
            bool: True if the server confirmed the registration.
        """
        with self._lock:
            self.state = SessionState.AWAITING_REGISTRATION_CALLBACK
            if identifier is None:
                identifier = self.credential_identifier
                secret = self.credential_secret
            push_id = self._prefs.get_string(prefs_keys.PUSH_ID)
            params = {"apns_push_token": self.push_token or ""}
            client_id = self._prefs.get_string(prefs_keys.CLIENT_ID)
            if client_id:
                params["client_id"] = client_id
            if push_id:
                params["push_id"] = push_id
            if self.deferred_deep_link:
                params["exp_1"] = "true"
            envelope = dict(self.attribution_payload or {})
            if self.deferred_deep_link:
                envelope["deep_link"] = self.deferred_deep_link

        try:
            fill = self._client.post_registration_fill(link, params, envelope)
        except UnknownAuthError as e:
            logger.warning("Registration completion failed: %s", e)
            with self._lock:
                self._fail_to_unauthenticated()
            return False

        with self._lock:
            try:
                if push_id:
                    self._prefs.remove(prefs_keys.PUSH_ID)
                self._prefs.set(prefs_keys.CLIENT_ID, fill.client_id)
                if fill.status:
                    self._complete_login(identifier or "", secret or "")
                    self.registration_complete = True
                    return True
                self._prefs.set(prefs_keys.AUTO_LOGIN_DISABLED, True)
            except PersistenceError:
                logger.exception("Could not store registration result")
            self._fail_to_unauthenticated()
            return False

    def attempt_automatic_login(self) -> bool:
        """Runs the login attempt made once at launch.

        Uses the stored credentials when there are any, otherwise an anonymous
        attempt with empty credentials. A rejection resolves the session to
        unauthenticated unless the user entered the app in the meantime.

        Raises:
            UnknownAuthError: If the attempt could not be completed; the caller may retry.
        """
        with self._lock:
            identifier = self._prefs.get_string(prefs_keys.STORED_EMAIL) or ""
            secret = self._prefs.get_string(prefs_keys.STORED_PASSWORD) or ""
        try:
            return self.login(identifier, secret)
        except InvalidCredentials:
            self.resolve_unauthenticated()
            return False

    def logout(self) -> None:
        """Forgets the stored login. No request is sent."""
        with self._lock:
            self._prefs.remove(prefs_keys.STORED_EMAIL, prefs_keys.STORED_PASSWORD)
            self.credential_identifier = None
            self.credential_secret = None
            self.registration_complete = False
            self._fail_to_unauthenticated()

    def visit_as_guest(self) -> None:
        """Enters the app as a guest without contacting the server."""
        with self._lock:
            self._prefs.set(prefs_keys.STORED_EMAIL, GUEST_IDENTIFIER)
            self.credential_identifier = GUEST_IDENTIFIER
            self.credential_secret = None
            self.authenticated = True
            self.state = SessionState.GUEST_OR_AUTHENTICATED

    def resolve_unauthenticated(self) -> None:
        """Leaves the loading state for the login screen unless already resolved."""
        with self._lock:
            if self.state in (SessionState.LOADING, SessionState.AWAITING_REGISTRATION_CALLBACK):
                self._fail_to_unauthenticated()

    def is_auto_login_disabled(self) -> bool:
        with self._lock:
            return self._prefs.get_bool(prefs_keys.AUTO_LOGIN_DISABLED)

    # Event intake

    def record_push_token(self, token: str) -> None:
        with self._lock:
            self.push_token = token

    def record_attribution(self, payload: Mapping[str, Any]) -> None:
        with self._lock:
            self.attribution_payload = dict(payload)

    def record_deep_link(self, link: str) -> None:
        with self._lock:
            if self.deferred_deep_link is None:
                self.deferred_deep_link = link

    def record_push_id(self, push_id: str) -> None:
        """Stores the id of an opened notification for the next registration request."""
        with self._lock:
            self._prefs.set(prefs_keys.PUSH_ID, push_id)
