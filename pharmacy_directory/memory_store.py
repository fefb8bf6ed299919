"""
In-Memory Pharmacy Store
========================
Dict-backed PharmacyStore used by the test-suite and by STORE_BACKEND=memory
for local runs without PostgreSQL. Unique keys and distance checks behave
like the PostGIS store; distance uses the haversine formula.
"""
import copy
from datetime import datetime, timezone

from .errors import UniquenessConflict
from .store import PharmacyStore, StoreQuery, coerce_id, haversine_m, new_id

UNIQUE_FIELDS = ('name', 'contactNumber', 'email')


def _utcnow():
    return datetime.now(timezone.utc)


def _sort_key(value):
    # None sorts last, mixed types compare by their string form
    if value is None:
        return (1, 0, '')
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return (0, 0, value)
    return (0, 1, str(value))


class InMemoryPharmacyStore(PharmacyStore):

    def __init__(self, clock=None):
        self._records = {}
        self._clock = clock or _utcnow

    def _timestamp(self):
        return self._clock().isoformat()

    def _check_unique(self, document, exclude_id=None):
        for key in UNIQUE_FIELDS:
            if key not in document:
                continue
            for record_id, record in list(self._records.items()):
                if record_id != exclude_id and record.get(key) == document[key]:
                    raise UniquenessConflict(key)

    def _distance(self, record, coordinates):
        location = record.get('location') or {}
        coords = location.get('coordinates')
        if not coords or len(coords) != 2:
            return None
        return haversine_m(coords[0], coords[1], coordinates[0], coordinates[1])

    def _matches(self, record, query):
        for key, value in query.filters.items():
            if record.get(key) != value:
                return False
        if query.text is not None:
            needle = query.text.needle.lower()
            if not any(needle in str(record.get(f) or '').lower() for f in query.text.fields):
                return False
        if query.near is not None:
            if query.near.exclude_id and record['id'] == query.near.exclude_id:
                return False
            distance = self._distance(record, query.near.coordinates)
            if distance is None or distance > query.near.max_distance_m:
                return False
        return True

    def _select(self, query):
        return [r for r in list(self._records.values()) if self._matches(r, query)]

    def find(self, query):
        results = self._select(query)
        if query.sort:
            # stable sort: apply keys last to first
            for key, descending in reversed(query.sort):
                results.sort(key=lambda r: _sort_key(r.get(key)), reverse=descending)
        elif query.near is not None:
            results.sort(key=lambda r: self._distance(r, query.near.coordinates))
        end = None if query.limit is None else query.skip + query.limit
        return [copy.deepcopy(r) for r in results[query.skip:end]]

    def get(self, pharmacy_id):
        record = self._records.get(coerce_id(pharmacy_id))
        return copy.deepcopy(record) if record else None

    def create(self, document):
        self._check_unique(document)
        now = self._timestamp()
        record = copy.deepcopy(document)
        record.update({'id': new_id(), 'createdAt': now, 'updatedAt': now})
        self._records[record['id']] = record
        return copy.deepcopy(record)

    def update(self, pharmacy_id, changes):
        pharmacy_id = coerce_id(pharmacy_id)
        record = self._records.get(pharmacy_id)
        if record is None:
            return None
        self._check_unique(changes, exclude_id=pharmacy_id)
        # swap in a new dict, never mutate one a reader may be walking
        record = {**record, **copy.deepcopy(changes), 'updatedAt': self._timestamp()}
        self._records[pharmacy_id] = record
        return copy.deepcopy(record)

    def delete(self, ids):
        removed = 0
        for pharmacy_id in [coerce_id(i) for i in ids]:
            if self._records.pop(pharmacy_id, None) is not None:
                removed += 1
        return removed

    def count(self, query):
        return len(self._select(query))

    def health(self):
        return {'status': 'connected', 'backend': 'memory', 'records': len(self._records)}
