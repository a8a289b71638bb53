"""Shared pytest fixtures for CadenceIQ tests.

Fixtures:
    - temp_db: Fresh file-backed snapshot database
    - memory_db: In-memory SQLite snapshot database
    - snapshots: Dict-backed snapshot store
    - fixed_now: Fixed "now" for date math
    - clock: Callable returning fixed_now
    - store: Empty ContactStore on the dict-backed store
    - contact_fields: Valid creation fields for one contact
    - mock_config: Test configuration with temp paths
"""

from datetime import datetime
from pathlib import Path
from typing import Callable, Generator

import pytest

from cadenceiq.core.config import Config, reset_config
from cadenceiq.db.database import Database, MemorySnapshotStore
from cadenceiq.engine.contacts import ContactStore


@pytest.fixture(autouse=True)
def _fresh_config() -> Generator[None, None, None]:
    """Never leak the config singleton between tests."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def temp_db(tmp_path: Path) -> Generator[Database, None, None]:
    """Create a temporary database for testing.

    Yields:
        Database connected to temp file, cleaned up after test
    """
    db = Database(str(tmp_path / "test.db"))
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def memory_db() -> Generator[Database, None, None]:
    """Create an in-memory database for fast tests."""
    db = Database(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def snapshots() -> MemorySnapshotStore:
    return MemorySnapshotStore()


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 2, 9, 30)


@pytest.fixture
def clock(fixed_now: datetime) -> Callable[[], datetime]:
    return lambda: fixed_now


@pytest.fixture
def store(snapshots: MemorySnapshotStore, clock: Callable[[], datetime]) -> ContactStore:
    """Empty contact store writing to the dict-backed snapshots."""
    return ContactStore(snapshots, clock=clock)


@pytest.fixture
def contact_fields() -> dict[str, str]:
    """Valid creation fields for Acme / Jane Doe."""
    return {
        "entity_name": "Acme Corp",
        "primary_contact": "Jane Doe",
        "email_address": "jane@acme.com",
        "phone_number": "555-0100",
        "company_linkedin": "https://linkedin.com/company/acme",
        "contact_linkedin": "https://linkedin.com/in/janedoe",
        "contact_facebook": "",
        "notes": "Met at trade show",
        "day": "Monday",
    }


@pytest.fixture
def mock_config(tmp_path: Path) -> Config:
    """Test configuration with temp paths."""
    return Config(
        db_path=tmp_path / "cadenceiq.db",
        log_path=tmp_path / "logs",
        debug=True,
    )
