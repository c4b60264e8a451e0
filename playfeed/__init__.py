"""
PlayFeed - Dynamic Playlist Scheduler

Feeds a downstream media pipeline with resolved, playable items:
- Ordered, shuffled and random selection modes
- Pluggable resolvers (local files, HTTP sources)
- Failure cooldown with fallback playlists
- Safe playlist reloads while playback continues
"""

__version__ = "1.0.0"
__author__ = "PlayFeed Contributors"
__license__ = "MIT"

from playfeed.config import get_config, load_config

__all__ = [
    "__version__",
    "get_config",
    "load_config",
]
