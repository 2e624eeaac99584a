"""Spotify remote models"""

from spotify_remote.models.playback import (
    Availability,
    Command,
    PlayState,
    RepeatState,
    ShuffleState,
    StatusCode,
)
from spotify_remote.models.track import CommandResult, NowPlaying, Track

__all__ = [
    "Availability",
    "Command",
    "CommandResult",
    "NowPlaying",
    "PlayState",
    "RepeatState",
    "ShuffleState",
    "StatusCode",
    "Track",
]
