"""
PlayFeed command line preview.

Loads a playlist, runs it through the scheduler and prints what would be
handed to the media pipeline.

Usage:
    python -m playfeed radio.m3u --count 10 --mode shuffle
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from playfeed.config import ConfigurationError, load_config
from playfeed.importers.playlist_file import load_playlist_file
from playfeed.playout.scheduler import PlaylistScheduler
from playfeed.streaming.gateway import ResolverGateway
from playfeed.utils.logging_setup import setup_logging_from_config

logger = logging.getLogger(__name__)


async def preview(scheduler: PlaylistScheduler, count: int) -> int:
    """
    Pull up to `count` items and print them.

    Returns:
        Number of items delivered.
    """
    delivered = 0
    try:
        for _ in range(count):
            item = await scheduler.next()
            if item is None:
                if scheduler.is_stopped:
                    break
                wait = scheduler.governor.cooldown_remaining()
                if wait <= 0:
                    break
                await asyncio.sleep(wait)
                continue
            delivered += 1
            print(f"{delivered:4d}  {item.label}  ->  {item.url}")
            item.release()
    finally:
        await scheduler.aclose()
        await scheduler.gateway.aclose()
    return delivered


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Preview a PlayFeed playlist")
    parser.add_argument("playlist", nargs="?", help="M3U or plain-text playlist file")
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument("--count", type=int, default=10, help="Items to pull (default 10)")
    parser.add_argument("--mode", help="Override scheduler mode (ordered, shuffle, random)")
    parser.add_argument("--no-loop", action="store_true", help="Stop after one pass")

    args = parser.parse_args(argv)

    try:
        app_config = load_config(args.config)
        setup_logging_from_config(app_config.logging)

        playlist_path = args.playlist or app_config.playlist
        if not playlist_path:
            parser.error("no playlist given and none configured")

        overrides = {}
        if args.mode:
            overrides["mode"] = args.mode
        if args.no_loop:
            overrides["loop"] = False

        playlist = load_playlist_file(playlist_path)
        scheduler = PlaylistScheduler(
            playlist.candidates,
            gateway=ResolverGateway.from_config(app_config.resolvers),
            config=app_config.scheduler,
            **overrides,
        )
        delivered = asyncio.run(preview(scheduler, args.count))
        logger.info(f"Delivered {delivered} items")

    except ConfigurationError as e:
        logger.error(str(e))
        sys.exit(2)
    except FileNotFoundError as e:
        logger.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
