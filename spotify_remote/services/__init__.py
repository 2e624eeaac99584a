"""Spotify remote services"""

from spotify_remote.services.playback_session import PlaybackSession

__all__ = ["PlaybackSession"]
