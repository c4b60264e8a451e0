"""
PlayFeed Test Configuration

Shared fixtures and configuration for all tests.
"""

import os
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import playfeed.config as config_module
from playfeed.streaming.gateway import ResolverGateway
from tests.fixtures.factories import FakeClock, FakeResolver


# ============ Resolver Fixtures ============


@pytest.fixture
def fake_resolver() -> FakeResolver:
    """Resolver that succeeds for every candidate unless told otherwise."""
    return FakeResolver()


@pytest.fixture
def gateway(fake_resolver: FakeResolver) -> ResolverGateway:
    """Gateway routing everything to the fake resolver."""
    return ResolverGateway([fake_resolver])


@pytest.fixture
def clock() -> FakeClock:
    """Manually advanced clock for cooldown tests."""
    return FakeClock()


# ============ Temporary File Fixtures ============


@pytest.fixture(scope="function")
def temp_dir(tmp_path: Path) -> Path:
    """Temporary directory for test files."""
    return tmp_path


@pytest.fixture(scope="function")
def temp_media_file(temp_dir: Path) -> Path:
    """Create a temporary media file for testing."""
    media_file = temp_dir / "test_track.mp3"
    media_file.write_bytes(b"\x00" * 1024)
    return media_file


@pytest.fixture(scope="function")
def temp_config_file(temp_dir: Path) -> Path:
    """Create a temporary config file."""
    config_file = temp_dir / "config.yaml"
    config_content = """
scheduler:
  mode: shuffle
  loop: false
  max_fail: 3
  prefetch_depth: 2
  resolve_timeout: 5

resolvers:
  http_enabled: false

logging:
  level: "DEBUG"
"""
    config_file.write_text(config_content)
    return config_file


# ============ Environment Fixtures ============


@pytest.fixture(autouse=True)
def clean_environment():
    """Clean environment variables and cached config for each test."""
    original_env = os.environ.copy()

    for key in list(os.environ.keys()):
        if key.startswith("PLAYFEED_"):
            del os.environ[key]
    config_module._config = None

    yield

    os.environ.clear()
    os.environ.update(original_env)
    config_module._config = None


@pytest.fixture
def mock_env_vars():
    """Set up mock environment variables."""
    env_vars = {
        "PLAYFEED_MODE": "random",
        "PLAYFEED_LOOP": "false",
        "PLAYFEED_MAX_FAIL": "4",
    }
    with patch.dict(os.environ, env_vars):
        yield env_vars


# ============ Markers ============


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
    config.addinivalue_line("markers", "network: Network access required")
