"""
Resolvers for different candidate sources.

Turn candidate descriptors into playable items.
"""

from playfeed.streaming.resolvers.base import (
    BaseResolver,
    ResolvedItem,
    ResolverError,
    SourceType,
)
from playfeed.streaming.resolvers.http import HTTPResolver
from playfeed.streaming.resolvers.local import LocalFileResolver

__all__ = [
    # Base
    "BaseResolver",
    "ResolvedItem",
    "ResolverError",
    "SourceType",
    # Resolvers
    "HTTPResolver",
    "LocalFileResolver",
]
