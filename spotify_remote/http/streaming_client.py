"""Blocking HTTP client that captures streamed bodies through a ResponseBuffer."""

import re
import threading
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass

import httpx

from spotify_remote.config import Settings
from spotify_remote.exceptions import ErrorCode
from spotify_remote.http.response_buffer import ResponseBuffer
from spotify_remote.logging_config import get_logger, log_with_context, redact_sensitive_data
from spotify_remote.models.playback import StatusCode

logger = get_logger(__name__)

DEFAULT_ACCEPTED_STATUSES = frozenset({StatusCode.OK})

# RFC 9110 token characters
_HEADER_NAME = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


@dataclass(frozen=True)
class HttpResponse:
    """Result of one request. Unpacks as ``(body, ok)``."""

    body: bytes
    ok: bool
    status_code: int | None = None
    error: ErrorCode | None = None

    def __iter__(self) -> Iterator:
        return iter((self.body, self.ok))


class _Exchange:
    """Hand-off state between the producer thread and the waiting caller."""

    def __init__(self, buffer: ResponseBuffer):
        self.buffer = buffer
        self.responded = threading.Event()
        self.status_code: int | None = None
        self.error: Exception | None = None

    def respond(self, status_code: int) -> None:
        self.status_code = status_code
        self.responded.set()

    def fail(self, error: Exception) -> None:
        self.error = error
        self.responded.set()


def log_request(request: httpx.Request) -> None:
    """Event hook to log requests with redacted sensitive data."""
    log_with_context(
        logger,
        "debug",
        "HTTP Request",
        method=request.method,
        url=redact_sensitive_data(str(request.url)),
        event_type="http_request",
    )


def log_response(response: httpx.Response) -> None:
    """Event hook to log response headers; the body is still streaming."""
    log_with_context(
        logger,
        "debug",
        "HTTP Response",
        status_code=response.status_code,
        url=redact_sensitive_data(str(response.request.url)),
        chunked=response.headers.get("transfer-encoding") == "chunked",
        event_type="http_response",
    )


class StreamingHttpClient:
    """Performs one HTTP request at a time and returns the full body.

    The request runs on a producer thread that streams body chunks into a
    :class:`ResponseBuffer`; the calling thread blocks until the stream
    completes or the inactivity timeout elapses. Calls on one instance are
    serialized by a lock, so only a single request is ever in flight.
    """

    def __init__(
        self,
        *,
        inactivity_timeout: float = 1.0,
        connect_timeout: float = 5.0,
        response_timeout: float = 10.0,
        max_chunks: int = 64,
        transport: httpx.BaseTransport | None = None,
    ):
        self._inactivity_timeout = inactivity_timeout
        self._connect_timeout = connect_timeout
        self._response_timeout = response_timeout
        self._max_chunks = max_chunks
        self._request_lock = threading.Lock()
        self._client = httpx.Client(
            timeout=httpx.Timeout(
                connect=connect_timeout,
                read=response_timeout,
                write=connect_timeout,
                pool=connect_timeout,
            ),
            follow_redirects=True,
            transport=transport,
            event_hooks={"request": [log_request], "response": [log_response]},
        )

    @classmethod
    def from_settings(cls, settings: Settings, transport: httpx.BaseTransport | None = None) -> "StreamingHttpClient":
        """Build a client using the timeouts and buffer size from settings."""
        return cls(
            inactivity_timeout=settings.inactivity_timeout,
            connect_timeout=settings.connect_timeout,
            response_timeout=settings.response_timeout,
            max_chunks=settings.response_buffer_chunks,
            transport=transport,
        )

    def __enter__(self) -> "StreamingHttpClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying transport."""
        self._client.close()

    # Headers

    def set_header(self, key: str, value: str) -> bool:
        """Set a header sent with every request, creating it if needed.

        Returns:
            False if the name or value is not a legal header.
        """
        if not isinstance(key, str) or not _HEADER_NAME.match(key):
            log_with_context(logger, "error", "Rejected header name", header=repr(key), event_type="header_rejected")
            return False
        if not isinstance(value, str) or any(c in value for c in "\r\n\0"):
            log_with_context(logger, "error", "Rejected header value", header=key, event_type="header_rejected")
            return False
        try:
            value.encode("ascii")
        except UnicodeEncodeError:
            log_with_context(logger, "error", "Header value is not ASCII", header=key, event_type="header_rejected")
            return False
        self._client.headers[key] = value
        return True

    def delete_header(self, key: str) -> bool:
        """Remove a header. Returns False if it was not set."""
        if key not in self._client.headers:
            return False
        del self._client.headers[key]
        return True

    def get_header(self, key: str) -> str:
        """Return a header value, or an empty string if it is not set."""
        return self._client.headers.get(key, "")

    # Requests

    def get(
        self,
        url: str,
        *,
        accepted_statuses: Iterable[int] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpResponse:
        return self._perform("GET", url, None, accepted_statuses, headers)

    def post(
        self,
        url: str,
        body: str | bytes = b"",
        *,
        accepted_statuses: Iterable[int] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpResponse:
        return self._perform("POST", url, body, accepted_statuses, headers)

    def put(
        self,
        url: str,
        *,
        accepted_statuses: Iterable[int] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HttpResponse:
        return self._perform("PUT", url, None, accepted_statuses, headers)

    def _perform(
        self,
        method: str,
        url: str,
        content: str | bytes | None,
        accepted_statuses: Iterable[int] | None,
        headers: Mapping[str, str] | None,
    ) -> HttpResponse:
        accepted = DEFAULT_ACCEPTED_STATUSES if accepted_statuses is None else frozenset(accepted_statuses)
        redacted_url = redact_sensitive_data(url)

        with self._request_lock:
            exchange = _Exchange(ResponseBuffer(self._max_chunks, self._inactivity_timeout))
            producer = threading.Thread(
                target=self._deliver,
                args=(exchange, method, url, content, headers, accepted),
                name=f"http-{method.lower()}",
                daemon=True,
            )
            producer.start()

            if not exchange.responded.wait(self._connect_timeout + self._response_timeout):
                exchange.buffer.close()
                log_with_context(
                    logger,
                    "error",
                    f"HTTP {method} request timed out waiting for a response",
                    url=redacted_url,
                    event_type="http_timeout",
                )
                return HttpResponse(b"", False, error=ErrorCode.TRANSPORT_ERROR)

            if exchange.error is not None:
                return self._transport_failure(method, redacted_url, exchange)

            if exchange.status_code not in accepted:
                log_with_context(
                    logger,
                    "error",
                    "HTTP status error",
                    method=method,
                    url=redacted_url,
                    status_code=exchange.status_code,
                    event_type="http_status_error",
                )
                return HttpResponse(b"", False, exchange.status_code, ErrorCode.STATUS_ERROR)

            body = exchange.buffer.drain()

            # The stream broke after the status line
            if exchange.error is not None:
                return self._transport_failure(method, redacted_url, exchange)

            log_with_context(
                logger,
                "debug",
                "Response body received",
                method=method,
                url=redacted_url,
                status_code=exchange.status_code,
                body_size=len(body),
                truncated_by_timeout=exchange.buffer.timed_out,
                event_type="http_body_received",
            )
            return HttpResponse(body, True, exchange.status_code)

    def _transport_failure(self, method: str, redacted_url: str, exchange: _Exchange) -> HttpResponse:
        log_with_context(
            logger,
            "error",
            f"HTTP {method} request failed",
            url=redacted_url,
            error=redact_sensitive_data(str(exchange.error)),
            error_type=type(exchange.error).__name__,
            event_type="http_transport_error",
        )
        return HttpResponse(b"", False, exchange.status_code, ErrorCode.TRANSPORT_ERROR)

    def _deliver(
        self,
        exchange: _Exchange,
        method: str,
        url: str,
        content: str | bytes | None,
        headers: Mapping[str, str] | None,
        accepted: frozenset[int],
    ) -> None:
        """Producer side: stream the response into the exchange buffer."""
        try:
            with self._client.stream(method, url, content=content, headers=headers) as response:
                exchange.respond(response.status_code)
                if response.status_code not in accepted:
                    return
                for chunk in response.iter_bytes():
                    if not exchange.buffer.put(chunk):
                        break
        except Exception as e:
            # Transport errors, and request build errors such as a non-ASCII header value
            exchange.fail(e)
        finally:
            exchange.buffer.finish()
