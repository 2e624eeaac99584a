"""Spotify remote playback session"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("spotify-remote")
except PackageNotFoundError:
    __version__ = "dev"
