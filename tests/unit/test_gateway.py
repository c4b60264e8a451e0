"""
Unit tests for the resolver gateway and error classification.
"""

import asyncio

import pytest

from playfeed.config import ResolverConfig
from playfeed.streaming.error_handler import (
    ErrorClassifier,
    ErrorHandler,
    ErrorSeverity,
    ErrorType,
)
from playfeed.streaming.gateway import ResolverGateway, ResolveStatus
from playfeed.streaming.resolvers import HTTPResolver, LocalFileResolver
from playfeed.streaming.resolvers.base import BaseResolver, ResolvedItem
from tests.fixtures.factories import FakeResolver


class ExplodingResolver(BaseResolver):
    """Resolver raising a non-resolver exception."""

    def can_handle(self, candidate: str) -> bool:
        return True

    async def resolve(self, candidate: str) -> ResolvedItem:
        raise KeyError("unexpected")


class EmptyResolver(BaseResolver):
    """Resolver returning nothing."""

    def can_handle(self, candidate: str) -> bool:
        return True

    async def resolve(self, candidate: str):
        return None


class PrefixResolver(FakeResolver):
    """Fake resolver limited to candidates with a prefix."""

    def __init__(self, prefix: str):
        super().__init__()
        self.prefix = prefix

    def can_handle(self, candidate: str) -> bool:
        return candidate.startswith(self.prefix)


@pytest.mark.unit
class TestResolverGateway:
    """Tests for ResolverGateway.resolve."""

    @pytest.mark.asyncio
    async def test_resolved_outcome(self, gateway):
        """A successful resolution is tagged RESOLVED."""
        outcome = await gateway.resolve("song", timeout=1.0)

        assert outcome.ok
        assert outcome.status == ResolveStatus.RESOLVED
        assert outcome.item.url == "resolved://song"
        assert outcome.error is None

    @pytest.mark.asyncio
    async def test_resolver_error(self):
        """ResolverError becomes a FAILED outcome."""
        gateway = ResolverGateway([FakeResolver(fail={"song"})])

        outcome = await gateway.resolve("song", timeout=1.0)

        assert not outcome.ok
        assert outcome.status == ResolveStatus.FAILED
        assert outcome.error.error_type == ErrorType.NOT_FOUND

    @pytest.mark.asyncio
    async def test_timeout(self):
        """A resolution exceeding the timeout fails as TIMEOUT."""
        resolver = FakeResolver()
        resolver.block("slow")
        gateway = ResolverGateway([resolver])

        outcome = await gateway.resolve("slow", timeout=0.01)

        assert not outcome.ok
        assert outcome.error.error_type == ErrorType.TIMEOUT
        assert outcome.error.context["timeout"] == 0.01

    @pytest.mark.asyncio
    async def test_no_resolver(self):
        """Candidates nobody accepts fail as NO_RESOLVER."""
        gateway = ResolverGateway([PrefixResolver("mem:")])

        outcome = await gateway.resolve("ftp://host/file", timeout=1.0)

        assert outcome.error.error_type == ErrorType.NO_RESOLVER

    @pytest.mark.asyncio
    async def test_unexpected_exception(self):
        """Unexpected exceptions are contained."""
        gateway = ResolverGateway([ExplodingResolver()])

        outcome = await gateway.resolve("song", timeout=1.0)

        assert not outcome.ok
        assert outcome.error.error_type == ErrorType.UNKNOWN
        assert isinstance(outcome.error.original_exception, KeyError)

    @pytest.mark.asyncio
    async def test_none_result(self):
        """A resolver returning None is a failure."""
        gateway = ResolverGateway([EmptyResolver()])

        outcome = await gateway.resolve("song", timeout=1.0)

        assert not outcome.ok

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        """Task cancellation is not turned into an outcome."""
        resolver = FakeResolver()
        resolver.block("song")
        gateway = ResolverGateway([resolver])

        task = asyncio.create_task(gateway.resolve("song", timeout=None))
        await asyncio.sleep(0)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

    @pytest.mark.asyncio
    async def test_first_matching_resolver_wins(self):
        """Resolvers are consulted in registration order."""
        special = PrefixResolver("mem:")
        fallback = FakeResolver()
        gateway = ResolverGateway([fallback])
        gateway.register_resolver(special, first=True)

        await gateway.resolve("mem:1", timeout=1.0)
        await gateway.resolve("other", timeout=1.0)

        assert special.calls == ["mem:1"]
        assert fallback.calls == ["other"]

    @pytest.mark.asyncio
    async def test_errors_recorded(self):
        """Failures are recorded in the error handler."""
        gateway = ResolverGateway([FakeResolver(fail_all=True)])

        await gateway.resolve("a", timeout=1.0)
        await gateway.resolve("b", timeout=1.0)

        assert gateway.error_handler.get_error_counts() == {"not_found": 2}

    def test_from_config(self):
        """Built-in resolvers follow the configuration."""
        gateway = ResolverGateway.from_config(ResolverConfig())
        types = [type(resolver) for resolver in gateway.resolvers]

        assert types == [HTTPResolver, LocalFileResolver]

    def test_from_config_without_http(self):
        """Disabled resolvers are not registered."""
        gateway = ResolverGateway.from_config(ResolverConfig(http_enabled=False))

        assert [type(resolver) for resolver in gateway.resolvers] == [LocalFileResolver]


@pytest.mark.unit
class TestErrorClassifier:
    """Tests for ErrorClassifier."""

    @pytest.mark.parametrize(
        "error,expected_type",
        [
            (asyncio.TimeoutError(), ErrorType.TIMEOUT),
            (Exception("File not found: /a.mp3"), ErrorType.NOT_FOUND),
            (Exception("HTTP 404 for http://x"), ErrorType.NOT_FOUND),
            (Exception("Path not in allowed directories: /etc"), ErrorType.PERMISSION_ERROR),
            (Exception("HTTP 403 for http://x"), ErrorType.PERMISSION_ERROR),
            (Exception("HTTP 429 for http://x"), ErrorType.RATE_LIMIT_ERROR),
            (Exception("HTTP 500 for http://x"), ErrorType.HTTP_500),
            (Exception("HTTP 503 for http://x"), ErrorType.HTTP_OTHER),
            (Exception("Connection refused"), ErrorType.NETWORK_ERROR),
            (Exception("Path is not a file: /tmp"), ErrorType.FORMAT_ERROR),
            (Exception("No resolver accepts candidate: x"), ErrorType.NO_RESOLVER),
            (Exception("something odd"), ErrorType.UNKNOWN),
        ],
    )
    def test_classification(self, error, expected_type):
        """Messages map to error types."""
        assert ErrorClassifier.classify(error).error_type == expected_type

    def test_status_code_context_wins(self):
        """An HTTP status in the context overrides the message."""
        error = ErrorClassifier.classify(Exception("request failed"), {"http_status_code": 401})

        assert error.error_type == ErrorType.PERMISSION_ERROR
        assert error.severity == ErrorSeverity.HIGH

    def test_empty_message_uses_class_name(self):
        """Exceptions without a message are named by class."""
        assert ErrorClassifier.classify(KeyError()).message == "KeyError"


@pytest.mark.unit
class TestErrorHandler:
    """Tests for ErrorHandler."""

    def test_history_limit(self):
        """History keeps only the most recent errors."""
        handler = ErrorHandler(history_limit=3)
        for i in range(5):
            handler.handle_error(Exception(f"File not found: {i}"))

        assert len(handler.error_history) == 3
        assert handler.error_history[-1].message == "File not found: 4"

    def test_recent_errors_filter(self):
        """get_recent_errors filters by type."""
        handler = ErrorHandler()
        handler.handle_error(Exception("File not found: a"))
        handler.handle_error(asyncio.TimeoutError())

        recent = handler.get_recent_errors(error_type=ErrorType.TIMEOUT)

        assert [e.error_type for e in recent] == [ErrorType.TIMEOUT]

    def test_clear(self):
        """clear() forgets recorded errors."""
        handler = ErrorHandler()
        handler.handle_error(Exception("boom"))
        handler.clear()

        assert handler.get_error_counts() == {}
