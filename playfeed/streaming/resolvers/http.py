"""
HTTP Resolver.

Probes http(s) candidates and returns the final, reachable URL.
"""

import logging
from typing import Optional

import httpx

from playfeed.constants import DEFAULT_TIMEOUT_SECONDS
from playfeed.streaming.resolvers.base import (
    BaseResolver,
    ResolvedItem,
    ResolverError,
    SourceType,
)

logger = logging.getLogger(__name__)


class HTTPResolver(BaseResolver):
    """
    HTTP(S) resolver.

    Sends a HEAD request (GET when the server refuses HEAD) and treats any
    status >= 400 as a failed resolution. Redirects are followed so the
    pipeline receives the final location.
    """

    source_type = SourceType.HTTP

    SCHEMES = ("http://", "https://")

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        follow_redirects: bool = True,
        user_agent: str = "PlayFeed/1.0",
    ):
        """
        Initialize HTTP resolver.

        Args:
            client: Shared client; one is created lazily when omitted
            follow_redirects: Follow redirects to the final URL
            user_agent: User-Agent header sent with reachability checks
        """
        self._http_client = client
        self._owns_client = client is None
        self.follow_redirects = follow_redirects
        self.user_agent = user_agent

    def can_handle(self, candidate: str) -> bool:
        """Check if this resolver can handle the candidate."""
        return candidate.lower().startswith(self.SCHEMES)

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure HTTP client is initialized."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(DEFAULT_TIMEOUT_SECONDS),
                follow_redirects=self.follow_redirects,
            )
        return self._http_client

    async def resolve(self, candidate: str) -> ResolvedItem:
        """
        Probe an HTTP candidate.

        Raises:
            ResolverError: On transport errors or error status codes
        """
        client = await self._ensure_client()
        headers = {"User-Agent": self.user_agent}

        try:
            response = await client.head(candidate, headers=headers)
            if response.status_code == 405:
                # Some servers refuse HEAD; a streamed GET only reads headers
                async with client.stream("GET", candidate, headers=headers) as streamed:
                    response = streamed
        except httpx.HTTPError as e:
            raise ResolverError(
                f"HTTP check failed for {candidate}: {e}",
                source_type=SourceType.HTTP,
                original_error=e,
            ) from e

        if response.status_code >= 400:
            raise ResolverError(
                f"HTTP {response.status_code} for {candidate}",
                source_type=SourceType.HTTP,
                is_retryable=response.status_code >= 500,
            )

        content_length = response.headers.get("content-length")
        resolved = ResolvedItem(
            candidate=candidate,
            url=str(response.url),
            source_type=SourceType.HTTP,
            metadata={
                "status_code": response.status_code,
                "content_type": response.headers.get("content-type"),
                "content_length": int(content_length) if content_length and content_length.isdigit() else None,
            },
        )

        logger.debug(f"Resolved HTTP candidate: {candidate} -> {resolved.url}")
        return resolved

    async def aclose(self) -> None:
        """Close the HTTP client if this resolver created it."""
        if self._http_client is not None and self._owns_client:
            await self._http_client.aclose()
            self._http_client = None
