"""
Pharmacy Store Interface
========================
The app never talks to a database handle directly. Handlers receive a
PharmacyStore (see get_pharmacy_store()) and describe reads with a
StoreQuery, so the PostGIS store and the in-memory store are
interchangeable.
"""
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from math import asin, cos, radians, sin, sqrt
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .errors import InvalidIdentifierError

EARTH_RADIUS_M = 6371000


@dataclass
class TextMatch:
    """Case-insensitive substring match over any of `fields`."""
    needle: str
    fields: Tuple[str, ...] = ('name', 'pharmacistName')


@dataclass
class NearQuery:
    """Records within `max_distance_m` of `coordinates` ([lng, lat])."""
    coordinates: Sequence[float]
    max_distance_m: float
    exclude_id: Optional[str] = None


@dataclass
class StoreQuery:
    filters: Dict[str, Any] = field(default_factory=dict)
    text: Optional[TextMatch] = None
    near: Optional[NearQuery] = None
    # (field, descending) pairs, applied in order
    sort: List[Tuple[str, bool]] = field(default_factory=list)
    skip: int = 0
    limit: Optional[int] = None


def coerce_id(value):
    """
    Normalize a pharmacy identifier to its canonical string form.

    Raises:
        InvalidIdentifierError: if value is not a UUID.
    """
    try:
        return str(uuid.UUID(str(value)))
    except (TypeError, ValueError, AttributeError):
        raise InvalidIdentifierError(value) from None


def new_id():
    return str(uuid.uuid4())


def haversine_m(lon1, lat1, lon2, lat2):
    """Great-circle distance in meters."""
    d_lat = radians(lat2 - lat1)
    d_lon = radians(lon2 - lon1)
    a = sin(d_lat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(d_lon / 2) ** 2
    return 2 * EARTH_RADIUS_M * asin(sqrt(a))


class PharmacyStore(ABC):
    """
    Storage backend for pharmacy documents.

    Documents are plain dicts using the API's camelCase field names, with
    `id`, `createdAt` and `updatedAt` filled in by the store.
    """

    @abstractmethod
    def find(self, query: StoreQuery) -> List[dict]:
        ...

    def find_one(self, query: StoreQuery) -> Optional[dict]:
        single = StoreQuery(filters=query.filters, text=query.text, near=query.near,
                            sort=query.sort, skip=query.skip, limit=1)
        results = self.find(single)
        return results[0] if results else None

    @abstractmethod
    def get(self, pharmacy_id: str) -> Optional[dict]:
        ...

    @abstractmethod
    def create(self, document: dict) -> dict:
        """Insert a document. Raises UniquenessConflict on duplicate keys."""

    @abstractmethod
    def update(self, pharmacy_id: str, changes: dict) -> Optional[dict]:
        """Shallow-merge `changes` into the document. Returns None if absent."""

    @abstractmethod
    def delete(self, ids: Sequence[str]) -> int:
        """Remove the given records and return how many were removed."""

    @abstractmethod
    def count(self, query: StoreQuery) -> int:
        ...

    def health(self) -> dict:
        return {'status': 'connected', 'backend': type(self).__name__}
