"""
Import Pharmacies from a JSON File
----------------------------------
Expected format: a JSON array of pharmacy objects, the same shape the
POST /api/pharmacies endpoint accepts:

    [{"name": "City Pharmacy", "district": "Colombo",
      "location": {"type": "Point", "coordinates": [79.86, 6.93]},
      "contactNumber": "0112345678", "email": "city@example.com",
      "operatingHours": {"open": "08:00", "close": "22:00"},
      "pharmacistName": "A. Perera"}]

Usage:
    python scripts/import_pharmacies.py data/pharmacies.json            # preview
    python scripts/import_pharmacies.py data/pharmacies.json --import   # write
"""
import os
import sys

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from pharmacy_directory import build_store, configure_logging, ensure_tables_exist, get_module_config  # noqa: E402
from pharmacy_directory.seed import import_records, load_records  # noqa: E402


def main():
    print("=" * 50)
    print("Pharmacy JSON Importer")
    print("=" * 50)

    args = [a for a in sys.argv[1:] if not a.startswith('--')]
    if not args:
        print(__doc__)
        return 1

    path = args[0]
    if not os.path.exists(path):
        print(f"File not found: {path}")
        return 1

    config = get_module_config()
    configure_logging(config.LOG_LEVEL)

    records = load_records(path)
    print(f"Found {len(records)} pharmacies in {path}")

    print("\n--- Sample pharmacies ---")
    for p in records[:3]:
        print(f"  {p.get('name')}: {p.get('district')} {(p.get('location') or {}).get('coordinates')}")

    if '--import' not in sys.argv:
        print("\nRun with --import flag to import to the store")
        return 0

    if config.STORE_BACKEND == 'postgres':
        ensure_tables_exist(schema=config.DB_SCHEMA)

    report = import_records(build_store(config), records, radius_m=config.PROXIMITY_RADIUS_M)

    print(f"\nImport complete: {report.created} created, {len(report.skipped)} skipped")
    for index, name, reason in report.skipped:
        print(f"  ✗ #{index} {name}: {reason}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
