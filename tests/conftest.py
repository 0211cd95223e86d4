"""
Root test configuration and fixtures for the leave import project.

This conftest.py provides common fixtures for all tests under unit/.

Note: sys.path manipulation is handled here to ensure imports work correctly.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

# Add project root to path to allow imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
# Shared builders in tests/factories.py
sys.path.insert(0, str(Path(__file__).parent))

from union_leave.config import ConfigLoader  # noqa: E402
from union_leave.ical_import.data.connection_manager import ConnectionManager  # noqa: E402
from union_leave.settings import get_settings  # noqa: E402


def create_mock_pocketbase():
    """Create a mock PocketBase instance with empty collections."""
    mock_pb = Mock()

    mock_collection = Mock()
    mock_collection.auth_with_password = Mock(return_value=True)

    mock_list_response = Mock()
    mock_list_response.items = []
    mock_list_response.total_items = 0
    mock_list_response.total_pages = 1
    mock_list_response.page = 1
    mock_list_response.per_page = 30

    mock_collection.get_full_list = Mock(return_value=[])
    mock_collection.get_list = Mock(return_value=mock_list_response)
    mock_collection.get_one = Mock()

    # Config lookups miss, so schema defaults apply
    mock_collection.get_first_list_item = Mock(side_effect=Exception("The requested resource wasn't found."))
    mock_collection.create = Mock(return_value=Mock(id="mock-id"))
    mock_collection.update = Mock()
    mock_collection.delete = Mock()

    mock_pb.collection = Mock(return_value=mock_collection)
    mock_pb.batch = Mock(return_value=[])

    mock_pb.auth_store = Mock()
    mock_pb.auth_store.base_token = "mock-token"
    mock_pb.auth_store.base_model = Mock()

    return mock_pb


@pytest.fixture
def mock_pocketbase():
    """Create a mock PocketBase instance for tests that need it."""
    return create_mock_pocketbase()


@pytest.fixture(autouse=True)
def mock_all_external_services():
    """Keep every test away from a real PocketBase and reset shared singletons."""
    if os.environ.get("SKIP_MOCKING") == "true":
        yield {}
        return

    mock_pb = create_mock_pocketbase()
    ConfigLoader.reset()
    ConnectionManager.reset()
    get_settings.cache_clear()

    with (
        patch("union_leave.config.loader.PocketBase", return_value=mock_pb),
        patch("union_leave.ical_import.data.connection_manager.PocketBase", return_value=mock_pb),
    ):
        ConfigLoader.initialize(mock_pb)
        yield {"pocketbase": mock_pb}

    ConfigLoader.reset()
    ConnectionManager.reset()
    get_settings.cache_clear()

