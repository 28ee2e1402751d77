"""Spotify playlist comments: API server and extension client library."""

__version__ = "1.0.0"
