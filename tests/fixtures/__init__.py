"""
Test Fixtures

Fake resolvers, clocks and candidate lists.
"""

from .factories import FakeClock, FakeResolver, make_candidates

__all__ = [
    "FakeClock",
    "FakeResolver",
    "make_candidates",
]
