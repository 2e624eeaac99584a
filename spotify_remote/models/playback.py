"""Player state enums and the closed command set."""

from enum import Enum, IntEnum


class StatusCode(IntEnum):
    """HTTP status codes returned by the Web API."""

    OK = 200
    CREATED = 201
    ACCEPTED = 202
    NO_CONTENT = 204
    NOT_MODIFIED = 304
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404
    TOO_MANY_REQUESTS = 429
    INTERNAL_SERVER_ERROR = 500
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503
    GATEWAY_TIMEOUT = 504


class PlayState(str, Enum):
    PLAYING = "playing"
    PAUSED = "paused"


class ShuffleState(str, Enum):
    ON = "on"
    OFF = "off"


class RepeatState(str, Enum):
    """Repeat mode, named after the API's ``state`` query values."""

    OFF = "off"
    TRACK = "track"
    CONTEXT = "context"


class Command(str, Enum):
    """Remote-control commands understood by the session."""

    PLAY = "play"
    PAUSE = "pause"
    SKIP_NEXT = "skip_next"
    SKIP_PREV = "skip_prev"
    SHUFFLE_ON = "shuffle_on"
    SHUFFLE_OFF = "shuffle_off"
    REPEAT_CONTEXT = "repeat_context"
    REPEAT_TRACK = "repeat_track"
    REPEAT_OFF = "repeat_off"


class Availability(str, Enum):
    """Outcome of a currently-playing lookup."""

    PLAYING_ITEM = "playing_item"
    NOTHING_PLAYING = "nothing_playing"
    UNAVAILABLE = "unavailable"
