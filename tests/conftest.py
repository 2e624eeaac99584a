"""Pytest configuration and shared fixtures."""

import threading
from collections.abc import Callable

import httpx
import pytest

from spotify_remote.config import Settings


@pytest.fixture
def mock_settings():
    """Settings instance with test credentials and short timeouts."""
    return Settings(
        spotify_client_id="test-client-id",
        spotify_client_secret="test-client-secret",
        spotify_refresh_token="test-refresh-token",
        spotify_token_url="https://accounts.example.test/api/token",
        spotify_api_base_url="https://api.example.test/v1",
        token_refresh_interval=3500,
        inactivity_timeout=0.5,
        connect_timeout=1.0,
        response_timeout=2.0,
    )


@pytest.fixture
def mock_currently_playing_response():
    """Currently-playing body as returned by the player API."""
    return {
        "timestamp": 1700000000000,
        "progress_ms": 60000,
        "is_playing": True,
        "currently_playing_type": "track",
        "item": {
            "name": "Test Song",
            "uri": "spotify:track:test123",
            "duration_ms": 240000,
            "artists": [{"name": "Test Artist"}, {"name": "Featured Artist"}],
            "album": {
                "name": "Test Album",
                "images": [
                    {"url": "https://example.com/640.jpg", "width": 640},
                    {"url": "https://example.com/300.jpg", "width": 300},
                    {"url": "https://example.com/64.jpg", "width": 64},
                ],
            },
        },
    }


class FakeSpotify:
    """httpx MockTransport handler standing in for the token and player APIs.

    Routes are keyed by ``(method, path)`` and map to a handler building a
    fresh response for each request. Every request is recorded in
    ``requests``.
    """

    def __init__(self, access_token: str = "abc123"):
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.token_calls = 0
        self._lock = threading.Lock()
        self.set_token(access_token)

    def set_token(self, access_token: str, status_code: int = 200, **extra) -> None:
        def token_route(request: httpx.Request) -> httpx.Response:
            with self._lock:
                self.token_calls += 1
            return httpx.Response(status_code, json={"access_token": access_token, "token_type": "Bearer", **extra})

        self.routes[("POST", "/api/token")] = token_route

    def route(self, method: str, path: str, status_code: int = 204, json: dict | None = None) -> None:
        self.routes[(method, path)] = lambda request: httpx.Response(status_code, json=json)

    def route_handler(self, method: str, path: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[(method, path)] = handler

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"error": {"status": 404, "message": "Service not found"}})
        return handler(request)


@pytest.fixture
def fake_spotify():
    """Fake token and player API."""
    return FakeSpotify()


@pytest.fixture
def mock_transport(fake_spotify):
    """httpx transport serving the fake API."""
    return httpx.MockTransport(fake_spotify)

