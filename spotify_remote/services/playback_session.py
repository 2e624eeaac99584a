"""Token-holding playback session over the Spotify player API."""

import threading
from dataclasses import dataclass
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from spotify_remote.config import Settings, get_settings
from spotify_remote.exceptions import (
    AuthNotReadyException,
    ConfigurationException,
    MalformedResponseException,
    SpotifyRemoteException,
)
from spotify_remote.http import HttpResponse, StreamingHttpClient
from spotify_remote.json_access import optional, parse_json, require
from spotify_remote.logging_config import get_logger, log_with_context
from spotify_remote.models import (
    Availability,
    Command,
    CommandResult,
    NowPlaying,
    PlayState,
    RepeatState,
    ShuffleState,
    StatusCode,
    Track,
)
from spotify_remote.services.token_service import (
    TokenRefresher,
    configure_token_client,
    exchange_refresh_token,
)
from spotify_remote.state_managers import SpotifyTokenManager

logger = get_logger(__name__)

COMMAND_ACCEPTED_STATUSES = frozenset({StatusCode.OK, StatusCode.ACCEPTED, StatusCode.NO_CONTENT})
CURRENTLY_PLAYING_ACCEPTED_STATUSES = frozenset({StatusCode.OK, StatusCode.NO_CONTENT})


@dataclass(frozen=True)
class CommandSpec:
    """HTTP verb, player endpoint and optional ``state`` query for a command."""

    method: str
    path: str
    state: str | None = None

    def url(self, player_url: str) -> str:
        url = f"{player_url}{self.path}"
        if self.state is not None:
            url = f"{url}?{urlencode({'state': self.state})}"
        return url


COMMANDS: dict[Command, CommandSpec] = {
    Command.PLAY: CommandSpec("POST", "/play"),
    Command.PAUSE: CommandSpec("POST", "/pause"),
    Command.SKIP_NEXT: CommandSpec("POST", "/next"),
    Command.SKIP_PREV: CommandSpec("POST", "/previous"),
    Command.SHUFFLE_ON: CommandSpec("PUT", "/shuffle", "true"),
    Command.SHUFFLE_OFF: CommandSpec("PUT", "/shuffle", "false"),
    Command.REPEAT_CONTEXT: CommandSpec("PUT", "/repeat", "context"),
    Command.REPEAT_TRACK: CommandSpec("PUT", "/repeat", "track"),
    Command.REPEAT_OFF: CommandSpec("PUT", "/repeat", "off"),
}

# Mirrored state written by a successful command; skips change nothing
_STATE_UPDATES: dict[Command, PlayState | ShuffleState | RepeatState] = {
    Command.PLAY: PlayState.PLAYING,
    Command.PAUSE: PlayState.PAUSED,
    Command.SHUFFLE_ON: ShuffleState.ON,
    Command.SHUFFLE_OFF: ShuffleState.OFF,
    Command.REPEAT_CONTEXT: RepeatState.CONTEXT,
    Command.REPEAT_TRACK: RepeatState.TRACK,
    Command.REPEAT_OFF: RepeatState.OFF,
}

REPEAT_CYCLE: dict[RepeatState, Command] = {
    RepeatState.OFF: Command.REPEAT_CONTEXT,
    RepeatState.CONTEXT: Command.REPEAT_TRACK,
    RepeatState.TRACK: Command.REPEAT_OFF,
}


def parse_currently_playing(data: dict, status_code: int) -> tuple[Track | None, bool]:
    """Extract the track and ``is_playing`` flag from a currently-playing body.

    Returns:
        ``(track, is_playing)``; track is None when ``item`` is explicitly null.

    Raises:
        MalformedResponseException: If a required field is missing or mistyped.
    """
    is_playing = require(data, "is_playing", expected=bool)
    if isinstance(data, dict) and "item" in data and data["item"] is None:
        return None, is_playing

    artists = require(data, "item", "artists", expected=list)
    album_art_url = optional(data, "item", "album", "images", 1, "url", default="")
    uri = optional(data, "item", "uri", default="")

    try:
        track = Track(
            name=require(data, "item", "name", expected=str),
            album_name=require(data, "item", "album", "name", expected=str),
            album_art_url=album_art_url if isinstance(album_art_url, str) else "",
            artists=tuple(require(data, "item", "artists", i, "name", expected=str) for i in range(len(artists))),
            duration_ms=int(require(data, "item", "duration_ms", expected=(int, float))),
            progress_ms=int(require(data, "progress_ms", expected=(int, float))),
            uri=uri if isinstance(uri, str) else "",
            response_code=status_code,
        )
    except ValidationError as e:
        raise MalformedResponseException(
            "Currently playing fields out of range",
            details={"errors": e.error_count()},
        ) from e
    except (ValueError, OverflowError) as e:
        raise MalformedResponseException(
            "Currently playing timing fields are not integral",
            details={"error": str(e)},
        ) from e
    return track, is_playing


class PlaybackSession:
    """Remote control for one Spotify account.

    The session exchanges the configured refresh token for an access token
    on construction and renews it on a background thread every
    ``token_refresh_interval`` seconds. Player commands attach the current
    token and, when the API accepts them, update the locally mirrored
    play/shuffle/repeat state.

    Mirrored state reflects the last command this session saw succeed. It
    starts as paused, shuffle off, repeat off, and is only corrected from
    the server by :meth:`get_currently_playing` (play state only). Changes
    made by other clients are not observed, so the toggles can act on a
    stale view.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
        auto_refresh: bool = True,
    ):
        """Create the session and perform the initial token exchange.

        A failed exchange is logged and leaves the session unauthenticated;
        call :meth:`authenticate` to try again.

        Args:
            settings: Settings instance (defaults to singleton)
            transport: httpx transport shared by both clients (for tests or custom networking)
            auto_refresh: Start the background token refresher after authenticating

        Raises:
            ConfigurationException: If settings are not given and cannot be loaded
        """
        if settings is None:
            try:
                settings = get_settings()
            except ValidationError as e:
                raise ConfigurationException(
                    "Spotify credentials are missing or invalid",
                    details={"errors": e.error_count()},
                ) from e

        self._settings = settings
        self._auto_refresh = auto_refresh
        self._token_manager = SpotifyTokenManager(settings.spotify_refresh_token)
        self._token_manager.initialize()
        self._token_client = StreamingHttpClient.from_settings(settings, transport=transport)
        self._api_client = StreamingHttpClient.from_settings(settings, transport=transport)
        self._refresher = TokenRefresher(self.refresh_access_token, settings.token_refresh_interval)

        self._state_lock = threading.Lock()
        self._toggle_lock = threading.Lock()
        self._play_state = PlayState.PAUSED
        self._shuffle_state = ShuffleState.OFF
        self._repeat_state = RepeatState.OFF

        if not configure_token_client(self._token_client, settings):
            log_with_context(
                logger,
                "error",
                "Could not install token endpoint headers",
                event_type="token_client_config_failed",
            )

        self.authenticate()

    def __enter__(self) -> "PlaybackSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Stop the refresher and release both HTTP clients."""
        self._refresher.stop(timeout=self._settings.connect_timeout + self._settings.response_timeout)
        self._token_manager.cleanup()
        self._token_client.close()
        self._api_client.close()
        log_with_context(logger, "info", "Playback session closed", event_type="session_closed")

    # Authentication

    @property
    def is_authenticated(self) -> bool:
        return self._token_manager.get_token() is not None

    @property
    def refresher_running(self) -> bool:
        return self._refresher.running

    def authenticate(self) -> bool:
        """Fetch a fresh access token now and start the refresher if needed.

        Returns:
            True if a token was obtained
        """
        success = self.refresh_access_token()
        if success and self._auto_refresh:
            self._refresher.start()
        return success

    def refresh_access_token(self) -> bool:
        """Run one refresh-grant exchange.

        On failure the previous token, if any, stays in place.

        Returns:
            True if the stored token was replaced
        """
        try:
            grant = exchange_refresh_token(
                self._token_client,
                self._settings,
                self._token_manager.get_refresh_token(),
            )
        except SpotifyRemoteException as e:
            log_with_context(
                logger,
                "error",
                "HTTP POST for access token failed",
                error=e.message,
                error_code=e.code.value,
                status_code=e.status_code,
                kept_previous_token=self.is_authenticated,
                token_age=self._token_manager.token_age(),
                event_type="token_refresh_failed",
            )
            return False

        self._token_manager.set_token(grant.access_token)
        if grant.refresh_token:
            self._token_manager.rotate_refresh_token(grant.refresh_token)
        log_with_context(
            logger,
            "info",
            "Grabbed access token",
            refresh_token_rotated=grant.refresh_token is not None,
            event_type="token_refreshed",
        )
        return True

    def get_access_token(self) -> str | None:
        return self._token_manager.get_token()

    def _bearer_headers(self) -> dict[str, str]:
        token = self._token_manager.get_token()
        if token is None:
            raise AuthNotReadyException()
        return {"Authorization": f"Bearer {token}"}

    # Currently playing

    def get_currently_playing(self) -> NowPlaying:
        """Fetch the currently playing item and sync the play state from it.

        Returns:
            NowPlaying whose availability is PLAYING_ITEM with a track,
            NOTHING_PLAYING when the player is idle, or UNAVAILABLE with an
            error code when the lookup failed.
        """
        try:
            headers = self._bearer_headers()
        except AuthNotReadyException as e:
            log_with_context(logger, "warning", e.message, event_type="currently_playing_no_token")
            return NowPlaying(availability=Availability.UNAVAILABLE, error=e.code, message=e.message)

        response = self._api_client.get(
            f"{self._settings.player_url}/currently-playing",
            accepted_statuses=CURRENTLY_PLAYING_ACCEPTED_STATUSES,
            headers=headers,
        )
        if not response.ok:
            log_with_context(
                logger,
                "error",
                "HTTP GET for current play failed",
                status_code=response.status_code,
                error_code=response.error.value if response.error else None,
                event_type="currently_playing_failed",
            )
            return NowPlaying(
                availability=Availability.UNAVAILABLE,
                status_code=response.status_code,
                error=response.error,
                message="Currently playing request failed",
            )

        if response.status_code == StatusCode.NO_CONTENT:
            return NowPlaying(availability=Availability.NOTHING_PLAYING, status_code=response.status_code)

        try:
            track, is_playing = parse_currently_playing(parse_json(response.body), response.status_code)
        except MalformedResponseException as e:
            log_with_context(
                logger,
                "error",
                "Malformed currently playing response",
                error=e.message,
                body_size=len(response.body),
                event_type="currently_playing_malformed",
            )
            return NowPlaying(
                availability=Availability.UNAVAILABLE,
                status_code=response.status_code,
                error=e.code,
                message=e.message,
            )

        with self._state_lock:
            self._play_state = PlayState.PLAYING if is_playing else PlayState.PAUSED

        if track is None:
            return NowPlaying(
                availability=Availability.NOTHING_PLAYING,
                is_playing=is_playing,
                status_code=response.status_code,
            )
        return NowPlaying(
            availability=Availability.PLAYING_ITEM,
            track=track,
            is_playing=is_playing,
            status_code=response.status_code,
        )

    # Commands

    def execute_command(self, cmd: Command) -> CommandResult:
        """Send one player command and mirror its effect on success."""
        spec = COMMANDS[cmd]
        try:
            headers = self._bearer_headers()
        except AuthNotReadyException as e:
            log_with_context(logger, "warning", e.message, command=cmd.value, event_type="command_no_token")
            return CommandResult(command=cmd, ok=False, error=e.code, message=e.message)

        url = spec.url(self._settings.player_url)
        response: HttpResponse
        if spec.method == "POST":
            response = self._api_client.post(url, accepted_statuses=COMMAND_ACCEPTED_STATUSES, headers=headers)
        else:
            response = self._api_client.put(url, accepted_statuses=COMMAND_ACCEPTED_STATUSES, headers=headers)

        if response.ok:
            self._apply_state(cmd)
            log_with_context(
                logger,
                "info",
                "Player command sent",
                command=cmd.value,
                status_code=response.status_code,
                event_type="command_sent",
            )
        else:
            log_with_context(
                logger,
                "error",
                "Player command failed",
                command=cmd.value,
                status_code=response.status_code,
                error_code=response.error.value if response.error else None,
                event_type="command_failed",
            )
        return CommandResult(
            command=cmd,
            ok=response.ok,
            status_code=response.status_code,
            error=response.error,
        )

    def send_player_command(self, cmd: Command) -> bool:
        """Send a command to the player.

        Returns:
            True if the API accepted the command
        """
        return self.execute_command(cmd).ok

    def _apply_state(self, cmd: Command) -> None:
        new_state = _STATE_UPDATES.get(cmd)
        if new_state is None:
            return
        with self._state_lock:
            if isinstance(new_state, PlayState):
                self._play_state = new_state
            elif isinstance(new_state, ShuffleState):
                self._shuffle_state = new_state
            else:
                self._repeat_state = new_state

    def play(self) -> bool:
        return self.send_player_command(Command.PLAY)

    def pause(self) -> bool:
        return self.send_player_command(Command.PAUSE)

    def skip_to_next_song(self) -> bool:
        return self.send_player_command(Command.SKIP_NEXT)

    def skip_to_prev_song(self) -> bool:
        return self.send_player_command(Command.SKIP_PREV)

    def toggle_shuffle(self) -> bool:
        """Flip shuffle based on the mirrored state."""
        with self._toggle_lock:
            if self.get_shuffle_state() is ShuffleState.ON:
                return self.send_player_command(Command.SHUFFLE_OFF)
            return self.send_player_command(Command.SHUFFLE_ON)

    def toggle_repeat(self) -> bool:
        """Advance repeat Off -> Context -> Track -> Off based on the mirrored state."""
        with self._toggle_lock:
            return self.send_player_command(REPEAT_CYCLE[self.get_repeat_state()])

    # Mirrored state

    def get_play_state(self) -> PlayState:
        with self._state_lock:
            return self._play_state

    def get_shuffle_state(self) -> ShuffleState:
        with self._state_lock:
            return self._shuffle_state

    def get_repeat_state(self) -> RepeatState:
        with self._state_lock:
            return self._repeat_state
