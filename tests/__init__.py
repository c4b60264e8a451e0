"""
PlayFeed Test Suite

Test Categories:
- unit/: Fast, isolated unit tests
- integration/: Scheduler behaviour across reloads, prefetch and shutdown
- fixtures/: Fake resolvers and clocks
"""
