"""Playlist file parsing for M3U and plain-text playlists"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

URI_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
EXTINF_PATTERN = re.compile(r"#EXTINF:\s*(-?\d+(?:\.\d+)?)?[^,]*,\s*(.*)$")


@dataclass
class PlaylistEntry:
    """A single playlist entry"""

    candidate: str
    title: Optional[str] = None
    duration: Optional[float] = None  # None for unknown or live


@dataclass
class Playlist:
    """Parsed playlist"""

    entries: list[PlaylistEntry] = field(default_factory=list)
    source: Optional[str] = None

    @property
    def candidates(self) -> list[str]:
        return [entry.candidate for entry in self.entries]

    def __len__(self) -> int:
        return len(self.entries)


def _resolve_entry(location: str, base_dir: Optional[Path]) -> str:
    """Make relative file entries absolute against the playlist directory."""
    if URI_PATTERN.match(location) or base_dir is None:
        return location
    if os.path.isabs(location):
        return location
    return str((base_dir / location).resolve())


def parse_playlist_text(text: str, base_dir: Optional[Path] = None) -> Playlist:
    """
    Parse playlist text.

    Supports extended M3U (#EXTM3U / #EXTINF titles and durations) and plain
    lists with one candidate per line. Blank lines and other `#` lines are
    ignored.

    Args:
        text: Playlist contents
        base_dir: Directory relative file entries are resolved against
    """
    playlist = Playlist()
    pending_title: Optional[str] = None
    pending_duration: Optional[float] = None

    for raw_line in text.splitlines():
        line = raw_line.strip().lstrip("\ufeff")
        if not line:
            continue

        if line.upper().startswith("#EXTINF"):
            match = EXTINF_PATTERN.match(line)
            if match:
                duration = match.group(1)
                pending_duration = float(duration) if duration and float(duration) > 0 else None
                pending_title = match.group(2).strip() or None
            continue

        if line.startswith("#"):
            continue

        playlist.entries.append(
            PlaylistEntry(
                candidate=_resolve_entry(line, base_dir),
                title=pending_title,
                duration=pending_duration,
            )
        )
        pending_title = None
        pending_duration = None

    return playlist


def load_playlist_file(path: str | Path) -> Playlist:
    """
    Load a playlist file.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8", errors="replace")
    playlist = parse_playlist_text(text, base_dir=path.parent.resolve())
    playlist.source = str(path)
    logger.info(f"Loaded {len(playlist)} entries from {path}")
    return playlist


class PlaylistFileSource:
    """
    A playlist file watched for changes.

    Hosts call check() periodically and reload the scheduler when it
    returns a new playlist.

    Usage:
        source = PlaylistFileSource("radio.m3u")
        await scheduler.reload(source.read().candidates)
        ...
        changed = source.check()
        if changed is not None:
            await scheduler.reload(changed.candidates)
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._mtime: Optional[float] = None

    def read(self) -> Playlist:
        """Read the file unconditionally and remember its modification time."""
        mtime = self.path.stat().st_mtime
        playlist = load_playlist_file(self.path)
        self._mtime = mtime
        return playlist

    def check(self) -> Optional[Playlist]:
        """
        Re-read the file if it changed since the last read.

        Returns:
            The new playlist, or None when unchanged or unreadable.
        """
        try:
            mtime = self.path.stat().st_mtime
        except OSError as e:
            logger.warning(f"Cannot stat playlist {self.path}: {e}")
            return None
        if self._mtime is not None and mtime == self._mtime:
            return None
        try:
            return self.read()
        except OSError as e:
            logger.warning(f"Cannot read playlist {self.path}: {e}")
            return None
