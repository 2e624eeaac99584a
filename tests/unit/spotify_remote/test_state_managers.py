"""Unit tests for state managers."""

import threading

from spotify_remote.state_managers import SpotifyTokenManager, StateManager


def test_token_manager_starts_without_token():
    """Test the manager has no access token before the first exchange."""
    manager = SpotifyTokenManager("refresh")
    manager.initialize()

    assert manager.get_token() is None
    assert manager.token_age() is None


def test_token_manager_set_and_get_token():
    """Test setting and getting the access token."""
    manager = SpotifyTokenManager("refresh")
    manager.set_token("abc123")

    assert manager.get_token() == "abc123"
    assert manager.token_age() >= 0


def test_token_manager_replaces_token():
    manager = SpotifyTokenManager("refresh")
    manager.set_token("first")
    manager.set_token("second")

    assert manager.get_token() == "second"


def test_token_manager_cleanup():
    """Test cleanup clears the access token but keeps the refresh token."""
    manager = SpotifyTokenManager("refresh")
    manager.set_token("abc123")

    manager.cleanup()

    assert manager.get_token() is None
    assert manager.get_refresh_token() == "refresh"


def test_token_manager_rotates_refresh_token():
    """Test a rotated refresh token replaces the configured one."""
    manager = SpotifyTokenManager("original")
    manager.rotate_refresh_token("rotated")

    assert manager.get_refresh_token() == "rotated"


def test_token_manager_concurrent_access():
    """Test concurrent readers only ever observe complete tokens."""
    manager = SpotifyTokenManager("refresh")
    tokens = {f"token-{i:04d}" for i in range(200)}
    manager.set_token("token-0000")
    seen: set[str] = set()
    stop = threading.Event()

    def reader():
        while not stop.is_set():
            seen.add(manager.get_token())

    readers = [threading.Thread(target=reader) for _ in range(4)]
    for thread in readers:
        thread.start()
    for token in sorted(tokens):
        manager.set_token(token)
    stop.set()
    for thread in readers:
        thread.join(1)

    assert seen <= tokens
    assert manager.get_token() == "token-0199"


def test_token_manager_is_state_manager():
    assert isinstance(SpotifyTokenManager("refresh"), StateManager)
