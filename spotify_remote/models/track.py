"""Pydantic models for session results."""

from pydantic import BaseModel, ConfigDict, Field

from spotify_remote.exceptions import ErrorCode
from spotify_remote.models.playback import Availability, Command


class Track(BaseModel):
    """Immutable snapshot of the currently playing item."""

    model_config = ConfigDict(frozen=True)

    name: str
    album_name: str
    album_art_url: str = ""
    artists: tuple[str, ...] = ()
    duration_ms: int = Field(ge=0)
    progress_ms: int = Field(ge=0)
    uri: str = ""
    response_code: int


class NowPlaying(BaseModel):
    """Currently-playing lookup result.

    ``availability`` separates a failed lookup from an idle player; only
    PLAYING_ITEM carries a track.
    """

    model_config = ConfigDict(frozen=True)

    availability: Availability
    track: Track | None = None
    is_playing: bool = False
    status_code: int | None = None
    error: ErrorCode | None = None
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.availability is not Availability.UNAVAILABLE


class CommandResult(BaseModel):
    """Outcome of a single player command."""

    model_config = ConfigDict(frozen=True)

    command: Command
    ok: bool
    status_code: int | None = None
    error: ErrorCode | None = None
    message: str | None = None

    def __bool__(self) -> bool:
        return self.ok
