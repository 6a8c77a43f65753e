import os
import sys
from datetime import datetime, timedelta, timezone

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from hvac_pricing.config.settings import Settings
from hvac_pricing.data.seed import seed_database
from hvac_pricing.engine.capabilities import grant
from hvac_pricing.services.catalog_service import CatalogService
from hvac_pricing.services.project_service import ProjectService
from hvac_pricing.store.db import build_engine, build_session_factory, init_db


class StepClock:
    """Deterministic clock: each call is one second after the previous."""

    def __init__(self, start=datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self):
        self.current = self.current + timedelta(seconds=1)
        return self.current


@pytest.fixture
def settings(tmp_path):
    return Settings.load(project_root=tmp_path, env={
        'HVAC_DATABASE_URL': 'sqlite://',
        'HVAC_IMPORT_REPORT': str(tmp_path / 'import_report.json'),
    })


@pytest.fixture
def session_factory(settings):
    """Fresh in-memory store per test."""
    engine = build_engine(settings)
    init_db(engine)
    yield build_session_factory(engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def admin():
    return grant("admin-1", "admin", full_name="Ada Admin")


@pytest.fixture
def employee():
    return grant("employee-1", "employee", full_name="Emil Employee")


@pytest.fixture
def seeded(db, admin):
    """Starter catalog plus the default parameter set."""
    return seed_database(db, admin)


@pytest.fixture
def vrf_outdoor(db, seeded):
    """The 15000 / 2.5 / 400 device from the starter catalog."""
    return next(d for d in CatalogService(db).list_devices() if d.model_name == 'VRF-Outdoor-20HP')


@pytest.fixture
def project(db, employee, clock):
    return ProjectService(db, clock=clock).create_project(employee.user_id, "Hospital Retrofit")
