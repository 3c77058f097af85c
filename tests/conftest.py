"""
Global test configuration and shared doubles.
"""

from datetime import datetime
import logging
import os

import pytest

from estimate_tracker.projects import ProjectRecord
from tests.helpers import FakeClock, ProjectList, RecordingSleep


# --- Environment Isolation (Autouse) ---
@pytest.fixture(autouse=True)
def isolate_tracker_env(request, monkeypatch, tmp_path):
    """Ensure a clean ESTIMATE_TRACKER_* environment for each test.

    Also points pyproject discovery at an empty temp path so a developer's
    real project file is never read.

    Escape hatch: @pytest.mark.allow_env_pollution keeps the environment.
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return
    for key in list(os.environ.keys()):
        if key.startswith("ESTIMATE_TRACKER_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv(
        "ESTIMATE_TRACKER_PYPROJECT_PATH", str(tmp_path / "missing" / "pyproject.toml")
    )


# --- Test Environment Markers ---
def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "integration: Component integration tests with fake delete operations",
        "allow_env_pollution: Keep ESTIMATE_TRACKER_* variables for this test",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep(fake_clock) -> RecordingSleep:
    return RecordingSleep(fake_clock)


@pytest.fixture
def roof_repair() -> ProjectRecord:
    return ProjectRecord(
        id="p1",
        title="Roof Repair",
        client="Aoki Construction",
        net_amount=100000,
        customer_amount=120000,
        submission_date="2026-10-01",
        created_at=datetime(2026, 10, 2, 9, 0),
    )


@pytest.fixture
def sample_projects(roof_repair) -> list[ProjectRecord]:
    """Three projects, newest first."""
    return [
        ProjectRecord(
            id="p3",
            title="Facade Painting",
            client="Sato Homes",
            net_amount=200000,
            customer_amount=230000,
            created_at=datetime(2026, 10, 5, 9, 0),
        ),
        ProjectRecord(
            id="p2",
            title="Deck Extension",
            client="Aoki Construction",
            net_amount=50000,
            customer_amount=55000,
            created_at=datetime(2026, 10, 3, 9, 0),
        ),
        roof_repair,
    ]


@pytest.fixture
def project_list(sample_projects) -> ProjectList:
    return ProjectList(sample_projects)


# --- Logging Fixtures ---
@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Sets the log level for noisy external libraries to WARNING."""
    logging.getLogger("asyncio").setLevel(logging.WARNING)
