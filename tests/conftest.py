"""Pytest configuration and fixtures."""
import os

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

os.environ.setdefault("BACKEND_MODE", "stub")
os.environ.setdefault("LOG_FORMAT", "text")

from taskboard.config import Settings  # noqa: E402
from taskboard.integrations.realtime import LocalChangeFeed  # noqa: E402
from taskboard.integrations.supabase import SupabaseGateway  # noqa: E402
from taskboard.main import app  # noqa: E402
from taskboard.services.task_store import TaskDataStore  # noqa: E402

COLUMNS = [
    {"id": "col-todo", "title": "Por hacer", "position": 0},
    {"id": "col-doing", "title": "En progreso", "position": 1},
    {"id": "col-done", "title": "Terminado", "position": 2},
]

TASKS = [
    {
        "id": "task-1",
        "title": "Fix urgent bug",
        "description": None,
        "column_id": "col-todo",
        "priority": "critical",
        "assignee_id": "U1",
        "due_date": "2025-03-10",
        "created_at": "2025-03-01T09:00:00+00:00",
    },
    {
        "id": "task-2",
        "title": "Other",
        "description": "not urgent at all",
        "column_id": "col-doing",
        "priority": "low",
        "assignee_id": "U2",
        "due_date": None,
        "created_at": "2025-03-02T09:00:00+00:00",
    },
    {
        "id": "task-3",
        "title": "Replace pump seal",
        "description": "Line 3",
        "column_id": "col-done",
        "priority": "high",
        "assignee_id": None,
        "due_date": "2025-03-20",
        "created_at": "2025-03-03T09:00:00+00:00",
    },
]

PROFILES = [
    {"id": "U1", "full_name": "Ana Ruiz", "avatar_url": None, "role": "manager"},
    {"id": "U2", "full_name": "Luis Gil", "avatar_url": None, "role": "technician"},
]


@pytest.fixture
def config():
    """Stub-mode settings independent of the environment."""
    return Settings(BACKEND_MODE="stub", LOG_FORMAT="text")


@pytest.fixture
def feed():
    return LocalChangeFeed()


@pytest.fixture
def gateway(config, feed):
    """Stub gateway seeded with a small board."""
    gateway = SupabaseGateway(config, feed=feed)
    gateway.seed(config.COLUMNS_TABLE, COLUMNS)
    gateway.seed(config.TASKS_TABLE, TASKS)
    gateway.seed(config.PROFILES_TABLE, PROFILES)
    return gateway


@pytest_asyncio.fixture
async def store(gateway, feed, config):
    """Opened store; torn down after the test."""
    async with TaskDataStore(gateway, feed, config) as opened:
        yield opened


@pytest.fixture(scope="function")
def client():
    """Test client running the app lifespan against stub gateways."""
    with TestClient(app) as test_client:
        services = app.state.services
        default_columns = {"col-todo": "col-0", "col-doing": "col-1", "col-done": "col-2"}
        services.gateway.seed(
            services.config.TASKS_TABLE,
            [{**task, "column_id": default_columns[task["column_id"]]} for task in TASKS],
        )
        services.gateway.seed(services.config.PROFILES_TABLE, PROFILES)
        test_client.portal.call(services.store.initialize)
        yield test_client


@pytest.fixture
def auth_headers():
    """Stub auth accepts the user id as bearer token."""
    return {"Authorization": "Bearer U1"}


def drain(test_client: TestClient) -> None:
    """Let the store apply every change event queued so far."""
    test_client.portal.call(app.state.services.store.drain)
