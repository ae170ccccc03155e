"""
Integration test fixtures and configuration

These tests talk to a real Firestore project and optionally Redis.
They are slower and require credentials and network access.

Run integration tests with: pytest tests/integration -m integration
Skip integration tests with: pytest -m "not integration"
"""

import pytest
from pathlib import Path

# Add backend to path for imports
import sys
backend_dir = Path(__file__).parent.parent.parent
sys.path.insert(0, str(backend_dir))


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (may be slow, requires network)"
    )
    config.addinivalue_line(
        "markers", "firebase: marks tests that require Firebase connection"
    )
    config.addinivalue_line(
        "markers", "redis: marks tests that require a Redis server"
    )


@pytest.fixture
def test_student_id():
    """Student id used for integration writes; cleaned up by the tests"""
    return "integration_test_student"
