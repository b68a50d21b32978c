"""
HTTP client for the remote authentication service.

Two endpoints are used:
- The auth endpoint receives login and registration requests as JSON and answers
  with `{"success": "..."}` or `{"error": "..."}`. A `service-link` response header
  asks the app to complete registration with a second request.
- The registration-callback endpoint (the `service-link` URL) receives the push
  token and attribution data and answers with `{"client_id": "...", "response": "..."}`.

Each response is decoded by a strict per-endpoint decoder that raises `ParseError`
instead of guessing at missing or mistyped fields.
"""
# fishinghit/auth_client.py

from __future__ import annotations

from typing import Any, Dict, NamedTuple, Optional

import requests

from fishinghit.errors import ParseError, UnknownAuthError
from fishinghit.logging_config import get_logger

logger = get_logger(__name__)

METHOD_LOGIN = "autorization"
METHOD_REGISTRATION = "registration"
SERVICE_LINK_HEADER = "service-link"


class AuthResponse(NamedTuple):
    status_code: int
    message: Optional[str]
    error: Optional[str]
    service_link: Optional[str]

    @property
    def ok(self) -> bool:
        return self.status_code == 200 and self.error is None and self.message is not None


class RegistrationFill(NamedTuple):
    client_id: str
    status: Optional[str]


def _json_object(response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError as e:
        raise ParseError() from e
    if not isinstance(body, dict):
        raise ParseError()
    return body


def _optional_string(body: Dict[str, Any], key: str) -> Optional[str]:
    value = body.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ParseError(f"Field '{key}' must be a string")
    return value


def decode_auth_response(response) -> AuthResponse:
    """Decodes a response from the auth endpoint.

    A body with neither `success` nor `error` is only accepted for non-200
    statuses, where the status code alone decides the outcome.

    Raises:
        ParseError: If the body is not a JSON object or a field has the wrong type.
    """
    service_link = response.headers.get(SERVICE_LINK_HEADER) or None
    try:
        body = _json_object(response)
    except ParseError:
        if response.status_code != 200:
            return AuthResponse(response.status_code, None, None, service_link)
        raise
    message = _optional_string(body, "success")
    error = _optional_string(body, "error")
    if response.status_code == 200 and message is None and error is None:
        raise ParseError("Response has neither 'success' nor 'error'")
    return AuthResponse(response.status_code, message, error, service_link)


def decode_registration_fill(response) -> RegistrationFill:
    """Decodes a response from the registration-callback endpoint.

    Raises:
        ParseError: If `client_id` is missing or any field has the wrong type.
        UnknownAuthError: If the status code is not 200.
    """
    if response.status_code != 200:
        raise UnknownAuthError(f"Registration callback failed with status {response.status_code}")
    body = _json_object(response)
    client_id = body.get("client_id")
    if client_id is None:
        raise ParseError("Response is missing 'client_id'")
    if isinstance(client_id, int) and not isinstance(client_id, bool):
        client_id = str(client_id)
    if not isinstance(client_id, str):
        raise ParseError("Field 'client_id' must be a string")
    return RegistrationFill(client_id, _optional_string(body, "response"))


class AuthClient:
    """Sends requests to the auth and registration-callback endpoints."""

    def __init__(self, endpoint: str, timeout: float = 15.0, http: Optional[requests.Session] = None):
        self.endpoint = endpoint
        self.timeout = timeout
        self._http = http or requests.Session()

    def post_credentials(self, payload: Dict[str, Any]) -> AuthResponse:
        """POSTs a login or registration payload.

        Raises:
            UnknownAuthError: On a network failure.
            ParseError: If the response cannot be decoded.
        """
        logger.debug("Posting %s request to %s", payload.get("metod"), self.endpoint)
        try:
            response = self._http.post(self.endpoint, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("Auth request failed: %s", e)
            raise UnknownAuthError() from e
        return decode_auth_response(response)

    def post_registration_fill(self, url: str, params: Dict[str, str], envelope: Dict[str, Any]) -> RegistrationFill:
        """POSTs the registration-completion request to the service link.

        Raises:
            UnknownAuthError: On a network failure or a non-200 status.
            ParseError: If the response cannot be decoded.
        """
        try:
            response = self._http.post(url, params=params, json=envelope, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("Registration callback request failed: %s", e)
            raise UnknownAuthError() from e
        return decode_registration_fill(response)
