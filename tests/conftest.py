"""
Shared pytest fixtures.

Every test runs against a fresh InMemoryPharmacyStore with a ticking clock,
so createdAt ordering is deterministic.
"""
import itertools
from datetime import datetime, timedelta, timezone

import pytest

from pharmacy_directory import create_app
from pharmacy_directory.config import PharmacyConfig
from pharmacy_directory.memory_store import InMemoryPharmacyStore


class MemoryConfig(PharmacyConfig):
    STORE_BACKEND = 'memory'
    DB_SCHEMA = 'public'
    LOG_LEVEL = 'WARNING'
    PROXIMITY_RADIUS_M = 1000
    DEFAULT_PAGE_LIMIT = 10
    SEARCH_RESULT_LIMIT = 20


def make_payload(n=0, **overrides):
    """A valid create payload; different n never collide (unique keys, ~11km apart)."""
    payload = {
        'name': f"Pharmacy {n}",
        'district': 'Colombo',
        'location': {'type': 'Point', 'coordinates': [79.0 + n * 0.1, 7.0]},
        'contactNumber': f"07{n:08d}",
        'email': f"pharmacy{n}@example.com",
        'operatingHours': {'open': '08:00', 'close': '22:00'},
        'pharmacistName': f"Pharmacist {n}",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def clock():
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    ticks = itertools.count()
    return lambda: start + timedelta(seconds=next(ticks))


@pytest.fixture
def store(clock):
    return InMemoryPharmacyStore(clock=clock)


@pytest.fixture
def app(store):
    app = create_app(config=MemoryConfig(), store=store)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def payload():
    return make_payload


@pytest.fixture
def create_pharmacy(client):
    """POST a pharmacy and return the stored document."""
    def _create(n=0, **overrides):
        response = client.post('/api/pharmacies', json=make_payload(n, **overrides))
        assert response.status_code == 201, response.get_json()
        return response.get_json()['data']['pharmacy']
    return _create
