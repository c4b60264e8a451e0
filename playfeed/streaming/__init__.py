"""
PlayFeed resolution layer.

Turns candidate descriptors into playable items:
- ResolverGateway: routing, timeout, tagged outcomes
- Resolvers: local files, HTTP sources
- ErrorHandler: classification of failed resolutions
"""

from playfeed.streaming.error_handler import (
    ErrorClassifier,
    ErrorHandler,
    ErrorSeverity,
    ErrorType,
    StreamError,
)
from playfeed.streaming.gateway import ResolveOutcome, ResolverGateway, ResolveStatus
from playfeed.streaming.resolvers import (
    BaseResolver,
    HTTPResolver,
    LocalFileResolver,
    ResolvedItem,
    ResolverError,
    SourceType,
)

__all__ = [
    # Errors
    "ErrorClassifier",
    "ErrorHandler",
    "ErrorSeverity",
    "ErrorType",
    "StreamError",
    # Gateway
    "ResolveOutcome",
    "ResolverGateway",
    "ResolveStatus",
    # Resolvers
    "BaseResolver",
    "HTTPResolver",
    "LocalFileResolver",
    "ResolvedItem",
    "ResolverError",
    "SourceType",
]
