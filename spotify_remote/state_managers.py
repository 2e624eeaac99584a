"""State managers for handling session-wide mutable state.

This module provides thread-safe state management using threading.Lock,
since the token is written by a background thread and read by callers
on any thread. All state managers inherit from StateManager ABC.
"""

import threading
import time
from abc import ABC, abstractmethod


class StateManager(ABC):
    """Base class for all state managers.

    State managers provide thread-safe access to mutable session state.
    All subclasses must implement lifecycle methods.
    """

    @abstractmethod
    def initialize(self) -> None:
        """Initialize the state manager (called when the session starts)."""
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """Cleanup resources (called when the session closes)."""
        pass


class SpotifyTokenManager(StateManager):
    """Holds the current access token and the refresh token used to renew it.

    Every read and write of either token goes through the same lock, and
    the lock is only held for the copy, never across a network call.
    """

    def __init__(self, refresh_token: str):
        """Initialize the token manager.

        Args:
            refresh_token: Long-lived refresh token from configuration
        """
        self._access_token: str | None = None
        self._acquired_at: float | None = None
        self._refresh_token = refresh_token
        self._lock = threading.Lock()

    def initialize(self) -> None:
        """Initialize the token manager."""
        # No initialization needed for now
        pass

    def cleanup(self) -> None:
        """Clear the access token on shutdown."""
        with self._lock:
            self._access_token = None
            self._acquired_at = None

    def get_token(self) -> str | None:
        """Get the current access token, or None if none was obtained yet."""
        with self._lock:
            return self._access_token

    def set_token(self, token: str) -> None:
        """Replace the access token.

        Args:
            token: The new access token string
        """
        with self._lock:
            self._access_token = token
            self._acquired_at = time.monotonic()

    def token_age(self) -> float | None:
        """Seconds since the current token was stored, or None."""
        with self._lock:
            if self._acquired_at is None:
                return None
            return time.monotonic() - self._acquired_at

    def get_refresh_token(self) -> str:
        with self._lock:
            return self._refresh_token

    def rotate_refresh_token(self, refresh_token: str) -> None:
        """Use a refresh token issued by the token endpoint from now on (memory only)."""
        with self._lock:
            self._refresh_token = refresh_token
