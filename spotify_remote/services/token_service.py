"""Refresh-grant token exchange and the background refresh loop."""

import base64
import binascii
import threading
from collections.abc import Callable
from dataclasses import dataclass
from urllib.parse import urlencode

from spotify_remote.config import Settings
from spotify_remote.exceptions import (
    MalformedResponseException,
    StatusException,
    TransportException,
)
from spotify_remote.http import StreamingHttpClient
from spotify_remote.json_access import optional, parse_json, require
from spotify_remote.logging_config import get_logger, log_with_context
from spotify_remote.models.playback import StatusCode

logger = get_logger(__name__)

TOKEN_ACCEPTED_STATUSES = frozenset({StatusCode.OK})


@dataclass(frozen=True)
class TokenGrant:
    """Tokens returned by the token endpoint."""

    access_token: str
    refresh_token: str | None = None


def build_token_request_body(refresh_token: str) -> str:
    """Form-encoded body for the refresh grant."""
    return urlencode({"grant_type": "refresh_token", "refresh_token": refresh_token})


def encode_basic_auth(client_id: str, client_secret: str) -> str:
    """Authorization header value for the client credentials."""
    credentials = f"{client_id}:{client_secret}".encode()
    return f"Basic {base64.b64encode(credentials).decode('ascii')}"


def decode_basic_auth(header: str) -> tuple[str, str]:
    """Recover ``(client_id, client_secret)`` from a Basic Authorization value.

    Raises:
        ValueError: If the header is not a well-formed Basic credential.
    """
    scheme, _, encoded = header.partition(" ")
    if scheme.lower() != "basic" or not encoded:
        raise ValueError("Not a Basic authorization header")
    try:
        decoded = base64.b64decode(encoded, validate=True).decode()
    except (binascii.Error, UnicodeDecodeError) as e:
        raise ValueError(f"Invalid Basic credentials: {e}") from e
    client_id, sep, client_secret = decoded.partition(":")
    if not sep:
        raise ValueError("Basic credentials lack a ':' separator")
    return client_id, client_secret


def configure_token_client(client: StreamingHttpClient, settings: Settings) -> bool:
    """Install the fixed token-endpoint headers on ``client``."""
    content_type_ok = client.set_header("Content-Type", "application/x-www-form-urlencoded")
    auth_ok = client.set_header(
        "Authorization",
        encode_basic_auth(settings.spotify_client_id, settings.spotify_client_secret),
    )
    return content_type_ok and auth_ok


def exchange_refresh_token(client: StreamingHttpClient, settings: Settings, refresh_token: str) -> TokenGrant:
    """Exchange the refresh token for a new access token.

    Args:
        client: Token-endpoint client already configured with configure_token_client
        settings: Settings instance
        refresh_token: Current refresh token

    Returns:
        TokenGrant with the new access token (and a rotated refresh token, if issued)

    Raises:
        TransportException: If the request could not be completed
        StatusException: If the endpoint rejected the grant
        MalformedResponseException: If the body lacks a usable access_token
    """
    response = client.post(
        settings.spotify_token_url,
        build_token_request_body(refresh_token),
        accepted_statuses=TOKEN_ACCEPTED_STATUSES,
    )
    if not response.ok:
        if response.status_code is not None and response.status_code not in TOKEN_ACCEPTED_STATUSES:
            raise StatusException(
                "Token endpoint rejected the refresh grant",
                status_code=response.status_code,
            )
        raise TransportException("Token request failed")

    data = parse_json(response.body)
    access_token = require(data, "access_token", expected=str)
    if not access_token:
        raise MalformedResponseException("Token response has an empty access_token")
    if not access_token.isascii():
        # Could never be sent in a Bearer header
        raise MalformedResponseException("Token response has a non-ASCII access_token")
    rotated = optional(data, "refresh_token")
    return TokenGrant(access_token=access_token, refresh_token=rotated if isinstance(rotated, str) and rotated else None)


class TokenRefresher:
    """Daemon thread that calls ``refresh`` every ``interval`` seconds.

    The thread sleeps on an event, so :meth:`stop` wakes it immediately.
    ``refresh`` must handle its own failures and report them as False.
    """

    def __init__(self, refresh: Callable[[], bool], interval: float):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._refresh = refresh
        self._interval = interval
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="token-refresher", daemon=True)
        self._thread.start()
        log_with_context(
            logger,
            "info",
            "Token refresher started",
            interval=self._interval,
            event_type="token_refresher_started",
        )

    def stop(self, timeout: float | None = None) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            self._refresh()
        log_with_context(logger, "info", "Token refresher stopped", event_type="token_refresher_stopped")
