"""
Seed Import
===========
Bulk-load pharmacy records (e.g. from a JSON export) through the same
validation, uniqueness and proximity rules as the create endpoint.
A bad record is skipped and reported; it never aborts the batch.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import List, Tuple

from .errors import PharmacyError
from .proximity import DEFAULT_RADIUS_M, ensure_no_pharmacy_nearby
from .schemas import validate_create

logger = logging.getLogger(__name__)


@dataclass
class ImportReport:
    created: int = 0
    # (record index, record name, reason)
    skipped: List[Tuple[int, str, str]] = field(default_factory=list)

    @property
    def total(self):
        return self.created + len(self.skipped)


def load_records(path):
    """Read a JSON file holding a list of pharmacy objects."""
    with open(path, encoding='utf-8') as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get('pharmacies', [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON array of pharmacies")
    return data


def import_records(store, records, radius_m=DEFAULT_RADIUS_M):
    report = ImportReport()

    for index, raw in enumerate(records):
        name = raw.get('name', '?') if isinstance(raw, dict) else '?'
        try:
            document = validate_create(raw)
            ensure_no_pharmacy_nearby(store, document['location']['coordinates'], radius_m=radius_m)
            store.create(document)
        except PharmacyError as exc:
            logger.warning("Skipping record %d (%s): %s", index, name, exc.message)
            report.skipped.append((index, name, exc.message))
            continue
        report.created += 1

    logger.info("Import finished: %d created, %d skipped", report.created, len(report.skipped))
    return report
