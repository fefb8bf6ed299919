"""Tests for InMemoryPharmacyStore."""
import threading

import pytest

from pharmacy_directory.errors import ErrorKind, InvalidIdentifierError, UniquenessConflict
from pharmacy_directory.schemas import validate_create
from pharmacy_directory.store import NearQuery, StoreQuery, TextMatch
from tests.conftest import make_payload


def add(store, n, **overrides):
    return store.create(validate_create(make_payload(n, **overrides)))


class TestCreate:

    def test_assigns_id_and_timestamps(self, store):
        pharmacy = add(store, 1)

        assert pharmacy['id']
        assert pharmacy['createdAt'] == '2024-01-01T00:00:00+00:00'
        assert pharmacy['createdAt'] == pharmacy['updatedAt']
        assert store.get(pharmacy['id']) == pharmacy

    @pytest.mark.parametrize('field, value', [
        ('name', 'Pharmacy 1'),
        ('contactNumber', '0700000001'),
        ('email', 'pharmacy1@example.com'),
    ])
    def test_duplicate_unique_field(self, store, field, value):
        add(store, 1)

        with pytest.raises(UniquenessConflict) as exc_info:
            add(store, 2, **{field: value})

        assert exc_info.value.field == field
        assert exc_info.value.kind == ErrorKind.UNIQUENESS_CONFLICT
        assert exc_info.value.status_code == 409
        assert exc_info.value.message == f"{field} already exists. Please use a different {field}"

    def test_returned_document_is_a_copy(self, store):
        pharmacy = add(store, 1)
        pharmacy['name'] = 'Changed'
        assert store.get(pharmacy['id'])['name'] == 'Pharmacy 1'


class TestUpdate:

    def test_merges_changes_and_touches_updated_at(self, store):
        pharmacy = add(store, 1)
        updated = store.update(pharmacy['id'], {'pharmacistName': 'B. Silva'})

        assert updated['pharmacistName'] == 'B. Silva'
        assert updated['name'] == 'Pharmacy 1'
        assert updated['updatedAt'] > pharmacy['updatedAt']
        assert updated['createdAt'] == pharmacy['createdAt']

    def test_keeping_own_unique_values_is_allowed(self, store):
        pharmacy = add(store, 1)
        updated = store.update(pharmacy['id'], {'name': 'Pharmacy 1'})
        assert updated['name'] == 'Pharmacy 1'

    def test_taking_another_records_value_conflicts(self, store):
        add(store, 1)
        other = add(store, 2)
        with pytest.raises(UniquenessConflict, match='email'):
            store.update(other['id'], {'email': 'pharmacy1@example.com'})

    def test_missing_record(self, store):
        assert store.update('00000000-0000-0000-0000-000000000000', {'name': 'Nope'}) is None

    def test_malformed_id(self, store):
        with pytest.raises(InvalidIdentifierError):
            store.update('not-an-id', {'name': 'Nope'})


class TestFind:

    def test_equality_filters(self, store):
        add(store, 1, district='Kandy')
        add(store, 2, district='Galle')
        add(store, 3, district='Kandy', isActive=False)

        names = [p['name'] for p in store.find(StoreQuery(filters={'district': 'Kandy', 'isActive': True}))]
        assert names == ['Pharmacy 1']

    def test_sort_skip_limit(self, store):
        for n in range(5):
            add(store, n)

        query = StoreQuery(sort=[('createdAt', True)], skip=1, limit=2)
        assert [p['name'] for p in store.find(query)] == ['Pharmacy 3', 'Pharmacy 2']
        assert store.count(query) == 5

    def test_text_match_is_case_insensitive_over_either_field(self, store):
        add(store, 1, name='Union Chemists')
        add(store, 2, pharmacistName='Nimal UNION')
        add(store, 3)

        query = StoreQuery(text=TextMatch(needle='union'), sort=[('createdAt', False)])
        assert [p['contactNumber'] for p in store.find(query)] == ['0700000001', '0700000002']

    def test_near_returns_nearest_first_and_honours_exclude(self, store):
        far = add(store, 1, location={'type': 'Point', 'coordinates': [79.868, 6.93]})
        near = add(store, 2, location={'type': 'Point', 'coordinates': [79.861, 6.93]})

        query = StoreQuery(near=NearQuery(coordinates=[79.86, 6.93], max_distance_m=1000))
        assert [p['id'] for p in store.find(query)] == [near['id'], far['id']]

        query.near.exclude_id = near['id']
        assert store.find_one(query)['id'] == far['id']


class TestDelete:

    def test_reports_removed_count(self, store):
        first = add(store, 1)
        add(store, 2)

        missing = '00000000-0000-0000-0000-000000000000'
        assert store.delete([first['id'], missing]) == 1
        assert store.get(first['id']) is None
        assert store.count(StoreQuery()) == 1

    def test_malformed_id_deletes_nothing(self, store):
        pharmacy = add(store, 1)
        with pytest.raises(InvalidIdentifierError):
            store.delete([pharmacy['id'], 'bogus'])
        assert store.get(pharmacy['id']) is not None


def test_health(store):
    add(store, 1)
    assert store.health() == {'status': 'connected', 'backend': 'memory', 'records': 1}


def test_reads_survive_concurrent_writes(store):
    """Listing and counting while other requests create and delete records."""

    errors = []
    stop = threading.Event()

    def writer():
        try:
            for n in range(300):
                pharmacy = add(store, n)
                store.update(pharmacy['id'], {'extraField': n})
                if n % 3 == 0:
                    store.delete([pharmacy['id']])
        except Exception as exc:  # noqa: BLE001
            errors.append(exc)
        finally:
            stop.set()

    def reader():
        try:
            while not stop.is_set():
                store.count(StoreQuery(filters={'isActive': True}))
                store.find(StoreQuery(sort=[('createdAt', True)], limit=5))
        except Exception as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=writer)] + [threading.Thread(target=reader) for _ in range(3)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)

    assert errors == []
    assert store.count(StoreQuery()) == 200
