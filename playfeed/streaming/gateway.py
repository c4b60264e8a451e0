"""
Resolver Gateway.

Routes candidates to the appropriate resolver and converts every outcome,
including timeouts and unexpected exceptions, into a tagged result.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from playfeed.config import ResolverConfig
from playfeed.streaming.error_handler import ErrorHandler, StreamError
from playfeed.streaming.resolvers.base import BaseResolver, ResolvedItem, ResolverError
from playfeed.streaming.resolvers.http import HTTPResolver
from playfeed.streaming.resolvers.local import LocalFileResolver

logger = logging.getLogger(__name__)


class ResolveStatus(str, Enum):
    """Outcome of a single resolution attempt."""

    RESOLVED = "resolved"
    FAILED = "failed"


@dataclass
class ResolveOutcome:
    """Tagged result of ResolverGateway.resolve."""

    candidate: str
    status: ResolveStatus
    item: Optional[ResolvedItem] = None
    error: Optional[StreamError] = None
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status == ResolveStatus.RESOLVED

    @classmethod
    def resolved(cls, candidate: str, item: ResolvedItem, elapsed: float = 0.0) -> "ResolveOutcome":
        return cls(candidate=candidate, status=ResolveStatus.RESOLVED, item=item, elapsed=elapsed)

    @classmethod
    def failed(cls, candidate: str, error: StreamError, elapsed: float = 0.0) -> "ResolveOutcome":
        return cls(candidate=candidate, status=ResolveStatus.FAILED, error=error, elapsed=elapsed)


class ResolverGateway:
    """
    Call boundary to the resolution backends.

    One attempt per candidate, bounded by a timeout, no internal retry.
    resolve() never raises; only task cancellation propagates.

    Usage:
        gateway = ResolverGateway.from_config(config.resolvers)
        outcome = await gateway.resolve("/media/song.mp3", timeout=5.0)
        if outcome.ok:
            play(outcome.item.url)
    """

    def __init__(
        self,
        resolvers: Optional[list[BaseResolver]] = None,
        error_handler: Optional[ErrorHandler] = None,
    ):
        """
        Initialize the gateway.

        Args:
            resolvers: Resolvers consulted in order; the first whose
                can_handle() accepts a candidate resolves it.
            error_handler: Classifier/recorder for failures.
        """
        self._resolvers: list[BaseResolver] = list(resolvers or [])
        self.error_handler = error_handler or ErrorHandler()

    @classmethod
    def from_config(cls, resolver_config: Optional[ResolverConfig] = None) -> "ResolverGateway":
        """Build a gateway with the built-in resolvers enabled in configuration."""
        resolver_config = resolver_config or ResolverConfig()
        resolvers: list[BaseResolver] = []

        # HTTP first: the local resolver accepts any scheme-less string
        if resolver_config.http_enabled:
            resolvers.append(
                HTTPResolver(
                    follow_redirects=resolver_config.http_follow_redirects,
                    user_agent=resolver_config.http_user_agent,
                )
            )
        if resolver_config.local_enabled:
            resolvers.append(LocalFileResolver(allowed_paths=resolver_config.allowed_paths))

        logger.info(f"ResolverGateway initialized with {len(resolvers)} resolvers")
        return cls(resolvers)

    @property
    def resolvers(self) -> list[BaseResolver]:
        return list(self._resolvers)

    def register_resolver(self, resolver: BaseResolver, first: bool = False) -> None:
        """
        Register a custom resolver.

        Args:
            resolver: The resolver instance
            first: Consult it before the already registered resolvers
        """
        if first:
            self._resolvers.insert(0, resolver)
        else:
            self._resolvers.append(resolver)
        logger.info(f"Registered resolver {type(resolver).__name__}")

    def _find_resolver(self, candidate: str) -> Optional[BaseResolver]:
        for resolver in self._resolvers:
            if resolver.can_handle(candidate):
                return resolver
        return None

    async def resolve(self, candidate: str, timeout: Optional[float]) -> ResolveOutcome:
        """
        Resolve a candidate with a single, time-bounded attempt.

        Args:
            candidate: Candidate descriptor
            timeout: Seconds the attempt may run; None means unbounded

        Returns:
            ResolveOutcome tagged RESOLVED or FAILED
        """
        started = time.monotonic()
        context = {"candidate": candidate}

        try:
            resolver = self._find_resolver(candidate)
        except Exception as e:
            logger.warning(f"Resolver lookup failed for {candidate}: {e}")
            return ResolveOutcome.failed(candidate, self.error_handler.handle_error(e, context))

        if resolver is None:
            error = ResolverError(f"No resolver accepts candidate: {candidate}", is_retryable=False)
            return ResolveOutcome.failed(candidate, self.error_handler.handle_error(error, context))

        context["resolver"] = type(resolver).__name__

        try:
            item = await asyncio.wait_for(resolver.resolve(candidate), timeout=timeout)
        except asyncio.TimeoutError as e:
            elapsed = time.monotonic() - started
            logger.warning(f"Resolution of {candidate} timed out after {elapsed:.2f}s")
            context["timeout"] = timeout
            return ResolveOutcome.failed(candidate, self.error_handler.handle_error(e, context), elapsed)
        except ResolverError as e:
            elapsed = time.monotonic() - started
            logger.info(f"Resolution of {candidate} failed: {e}")
            return ResolveOutcome.failed(candidate, self.error_handler.handle_error(e, context), elapsed)
        except Exception as e:
            elapsed = time.monotonic() - started
            logger.exception(f"Unexpected error resolving {candidate}: {e}")
            return ResolveOutcome.failed(candidate, self.error_handler.handle_error(e, context), elapsed)

        elapsed = time.monotonic() - started
        if item is None:
            error = ResolverError(f"Resolver returned nothing for {candidate}")
            return ResolveOutcome.failed(candidate, self.error_handler.handle_error(error, context), elapsed)

        logger.debug(f"Resolved {candidate} in {elapsed:.3f}s")
        return ResolveOutcome.resolved(candidate, item, elapsed)

    async def aclose(self) -> None:
        """Close all registered resolvers."""
        for resolver in self._resolvers:
            try:
                await resolver.aclose()
            except Exception as e:
                logger.warning(f"Error closing {type(resolver).__name__}: {e}")
