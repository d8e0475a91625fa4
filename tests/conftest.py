"""Shared pytest fixtures and configuration."""

import os
import pytest
from unittest.mock import Mock

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("TASKBOARD_SESSION_SECRET", "test-session-secret")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from taskboard.models.user import Role, UserRef
from taskboard.services.task_store import JsonTaskStore
from taskboard.services.user_directory import JsonUserDirectory


@pytest.fixture
def mock_supabase_client():
    """Mock Supabase client for testing."""
    client = Mock()
    client.table = Mock(return_value=Mock())
    return client


@pytest.fixture
def manager():
    """Seed manager (u-mgr)."""
    return UserRef(id="u-mgr", name="Morgan Manager", role=Role.MANAGER, department="Ops")


@pytest.fixture
def staff_user():
    """Seed staff member reporting to u-mgr."""
    return UserRef(id="u-stf-1", name="Sam Staff", role=Role.STAFF, department="Ops", manager_id="u-mgr")


@pytest.fixture
def other_staff():
    """Second seed staff member reporting to u-mgr."""
    return UserRef(id="u-stf-2", name="Casey Staff", role=Role.STAFF, department="Finance", manager_id="u-mgr")


@pytest.fixture
def user_directory(tmp_path):
    """JSON directory seeded with the demo users on first read."""
    return JsonUserDirectory(tmp_path)


@pytest.fixture
def task_store(tmp_path):
    """Empty JSON task store."""
    return JsonTaskStore(tmp_path)


@pytest.fixture
def json_backend(tmp_path, monkeypatch):
    """Point the API handlers at JSON stores under tmp_path with signed sessions."""
    monkeypatch.setenv("TASKBOARD_STORE", "json")
    monkeypatch.setenv("TASKBOARD_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("TASKBOARD_SESSION_SECRET", "test-session-secret")
    monkeypatch.delenv("AUTH_BYPASS_VERIFY", raising=False)
    return tmp_path
