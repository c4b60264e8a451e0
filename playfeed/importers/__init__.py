"""Playlist importers for PlayFeed."""

from playfeed.importers.playlist_file import (
    Playlist,
    PlaylistEntry,
    PlaylistFileSource,
    load_playlist_file,
    parse_playlist_text,
)

__all__ = [
    "Playlist",
    "PlaylistEntry",
    "PlaylistFileSource",
    "load_playlist_file",
    "parse_playlist_text",
]
