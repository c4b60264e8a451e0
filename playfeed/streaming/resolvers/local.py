"""
Local File Resolver.

Resolves local file paths to verified, playable paths.
"""

import logging
import os
from pathlib import Path
from typing import Optional
from urllib.parse import unquote

from playfeed.streaming.resolvers.base import (
    BaseResolver,
    ResolvedItem,
    ResolverError,
    SourceType,
)

logger = logging.getLogger(__name__)


class LocalFileResolver(BaseResolver):
    """
    Local file resolver.

    Validates that local file paths exist and are readable,
    then returns the path for the media pipeline to open directly.

    Features:
    - Path existence validation
    - File accessibility check
    - file:// URL support
    - Optional allowed base paths
    """

    source_type = SourceType.LOCAL

    def __init__(self, allowed_paths: Optional[list[str]] = None):
        """
        Initialize local file resolver.

        Args:
            allowed_paths: Optional list of allowed base paths.
                          If None, all paths are allowed.
        """
        self.allowed_paths = allowed_paths

    def can_handle(self, candidate: str) -> bool:
        """Check if this resolver can handle the candidate."""
        if candidate.startswith("file://") or candidate.startswith("/"):
            return True
        # Windows paths
        if len(candidate) > 2 and candidate[1] == ":":
            return True
        # Relative paths without a URI scheme
        return "://" not in candidate

    def _normalize_path(self, path: str) -> str:
        """
        Normalize path, handling file:// URLs.

        Examples:
        - file:///path/to/file.mp3 -> /path/to/file.mp3
        - /path/to/file.mp3 -> /path/to/file.mp3
        """
        if path.startswith("file://"):
            path = unquote(path[7:])
        return os.path.normpath(path)

    def _is_path_allowed(self, path: str) -> bool:
        """Check if path is within allowed directories."""
        if self.allowed_paths is None:
            return True

        resolved_path = Path(path).resolve()

        for allowed in self.allowed_paths:
            allowed_path = Path(allowed).resolve()
            try:
                resolved_path.relative_to(allowed_path)
                return True
            except ValueError:
                continue

        return False

    def _check(self, path: str) -> Optional[str]:
        """Return the reason a path cannot be played, or None if it can."""
        if not self._is_path_allowed(path):
            return f"Path not in allowed directories: {path}"
        if not os.path.exists(path):
            return f"File not found: {path}"
        if not os.path.isfile(path):
            return f"Path is not a file: {path}"
        if not os.access(path, os.R_OK):
            return f"File not readable: {path}"
        return None

    async def resolve(self, candidate: str) -> ResolvedItem:
        """
        Resolve a local file candidate to a verified path.

        Raises:
            ResolverError: If the file doesn't exist or isn't accessible
        """
        if not candidate:
            raise ResolverError("Empty candidate", source_type=SourceType.LOCAL, is_retryable=False)

        path = self._normalize_path(candidate)
        problem = self._check(path)
        if problem:
            raise ResolverError(problem, source_type=SourceType.LOCAL, is_retryable=False)

        file_size = os.stat(path).st_size
        logger.debug(f"Resolved local file: {path} ({file_size} bytes)")

        return ResolvedItem(
            candidate=candidate,
            url=path,
            source_type=SourceType.LOCAL,
            label=os.path.basename(path),
            metadata={
                "file_size": file_size,
                "extension": os.path.splitext(path)[1].lower(),
            },
        )
