"""
Proximity Guard
===============
Pharmacies must be at least PROXIMITY_RADIUS_M apart. The check runs before
every write that sets a location.

The check and the following write are two separate store calls, so two
concurrent writes at the same spot can both pass. Nothing here serializes
them.
"""
import logging

from .errors import ProximityConflict
from .store import NearQuery, StoreQuery

logger = logging.getLogger(__name__)

DEFAULT_RADIUS_M = 1000


def find_nearby_pharmacy(store, coordinates, exclude_id=None, radius_m=DEFAULT_RADIUS_M):
    """Return the nearest pharmacy within radius_m of coordinates, or None."""
    query = StoreQuery(near=NearQuery(coordinates=list(coordinates),
                                      max_distance_m=radius_m,
                                      exclude_id=exclude_id))
    return store.find_one(query)


def ensure_no_pharmacy_nearby(store, coordinates, exclude_id=None, radius_m=DEFAULT_RADIUS_M):
    """
    Reject a location that is too close to an existing pharmacy.

    Args:
        store: PharmacyStore to query.
        coordinates: [longitude, latitude] of the candidate location.
        exclude_id: Record to ignore (the pharmacy being updated).
        radius_m: Minimum allowed distance in meters.

    Raises:
        ProximityConflict: if any pharmacy (active or not) lies within radius_m.
    """
    existing = find_nearby_pharmacy(store, coordinates, exclude_id=exclude_id, radius_m=radius_m)
    if existing is not None:
        logger.info("Location %s rejected, %s (%s) is within %sm",
                    coordinates, existing.get('name'), existing['id'], radius_m)
        raise ProximityConflict(radius_m)
