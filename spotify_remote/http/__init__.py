"""Blocking HTTP transport built on streamed httpx responses"""

from spotify_remote.http.response_buffer import ResponseBuffer
from spotify_remote.http.streaming_client import HttpResponse, StreamingHttpClient

__all__ = ["HttpResponse", "ResponseBuffer", "StreamingHttpClient"]
