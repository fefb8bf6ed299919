"""
PostGIS Pharmacy Store
======================
Each pharmacy is one row: the document as JSONB plus a PostGIS point for
distance queries. Uniqueness of name / contactNumber / email is enforced by
expression indexes; the index name identifies the offending field.

Table layout is created by ensure_tables_exist().
"""
import logging

from psycopg2 import errors
from psycopg2.extras import Json

from .database import check_connection, get_db_cursor, qualified_table
from .errors import UniquenessConflict
from .store import PharmacyStore, coerce_id, new_id

logger = logging.getLogger(__name__)

# Unique index name -> document field
UNIQUE_INDEXES = {
    'pharmacies_name_key': 'name',
    'pharmacies_contact_number_key': 'contactNumber',
    'pharmacies_email_key': 'email',
}

# Document keys that live in real columns rather than in the JSONB doc
COLUMN_FIELDS = {
    'id': 'id',
    'createdAt': 'created_at',
    'updatedAt': 'updated_at',
}

RETURNING = "id, doc, created_at, updated_at"

USER_POINT = "ST_SetSRID(ST_MakePoint(%s, %s), 4326)::geography"


def _escape_like(value):
    return value.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')


def build_where(query):
    """
    Translate a StoreQuery's filters into a WHERE clause.

    Returns:
        tuple: (sql, params); sql is '' when nothing is filtered.
    """
    clauses = []
    params = []

    doc_filters = {}
    for key, value in query.filters.items():
        if key == 'id':
            clauses.append("id = %s")
            params.append(coerce_id(value))
        elif key in COLUMN_FIELDS:
            clauses.append(f"{COLUMN_FIELDS[key]} = %s")
            params.append(value)
        else:
            doc_filters[key] = value
    if doc_filters:
        clauses.append("doc @> %s::jsonb")
        params.append(Json(doc_filters))

    if query.text is not None:
        pattern = f"%{_escape_like(query.text.needle)}%"
        matches = []
        for field in query.text.fields:
            matches.append("doc->>%s ILIKE %s")
            params.extend([field, pattern])
        clauses.append("(" + " OR ".join(matches) + ")")

    if query.near is not None:
        lon, lat = query.near.coordinates
        clauses.append(f"ST_DWithin(geom::geography, {USER_POINT}, %s)")
        params.extend([lon, lat, query.near.max_distance_m])
        if query.near.exclude_id:
            clauses.append("id <> %s")
            params.append(query.near.exclude_id)

    if not clauses:
        return '', params
    return "WHERE " + " AND ".join(clauses), params


def build_order_by(query):
    """ORDER BY for the query's sort keys, or nearest-first for near queries."""
    params = []
    if query.sort:
        terms = []
        for field, descending in query.sort:
            direction = "DESC" if descending else "ASC"
            if field in COLUMN_FIELDS:
                terms.append(f"{COLUMN_FIELDS[field]} {direction}")
            else:
                terms.append(f"doc->%s {direction}")
                params.append(field)
        return "ORDER BY " + ", ".join(terms), params
    if query.near is not None:
        lon, lat = query.near.coordinates
        return f"ORDER BY ST_Distance(geom::geography, {USER_POINT})", [lon, lat]
    return '', params


def row_to_document(row):
    document = dict(row['doc'])
    document['id'] = str(row['id'])
    document['createdAt'] = row['created_at'].isoformat()
    document['updatedAt'] = row['updated_at'].isoformat()
    return document


def _strip_columns(document):
    return {key: value for key, value in document.items() if key not in COLUMN_FIELDS}


def _unique_conflict(exc):
    constraint = exc.diag.constraint_name
    field = UNIQUE_INDEXES.get(constraint)
    if field is None:
        logger.error("Unexpected unique violation on %s", constraint)
        field = 'value'
    return UniquenessConflict(field)


class PostgresPharmacyStore(PharmacyStore):

    def __init__(self, table='pharmacies'):
        self.table = table

    @property
    def _table(self):
        return qualified_table(self.table)

    def find(self, query):
        where, params = build_where(query)
        order_by, order_params = build_order_by(query)
        sql = f"SELECT {RETURNING} FROM {self._table} {where} {order_by}"
        params = params + order_params
        if query.limit is not None:
            sql += " LIMIT %s"
            params.append(query.limit)
        if query.skip:
            sql += " OFFSET %s"
            params.append(query.skip)

        with get_db_cursor() as cursor:
            cursor.execute(sql, params)
            return [row_to_document(row) for row in cursor.fetchall()]

    def get(self, pharmacy_id):
        pharmacy_id = coerce_id(pharmacy_id)
        with get_db_cursor() as cursor:
            cursor.execute(f"SELECT {RETURNING} FROM {self._table} WHERE id = %s", (pharmacy_id,))
            row = cursor.fetchone()
        return row_to_document(row) if row else None

    def create(self, document):
        lon, lat = document['location']['coordinates']
        sql = f"""
            INSERT INTO {self._table} (id, doc, geom)
            VALUES (%s, %s, ST_SetSRID(ST_MakePoint(%s, %s), 4326))
            RETURNING {RETURNING}
        """
        try:
            with get_db_cursor(commit=True) as cursor:
                cursor.execute(sql, (new_id(), Json(_strip_columns(document)), lon, lat))
                row = cursor.fetchone()
        except errors.UniqueViolation as exc:
            raise _unique_conflict(exc) from exc
        return row_to_document(row)

    def update(self, pharmacy_id, changes):
        pharmacy_id = coerce_id(pharmacy_id)
        changes = _strip_columns(changes)

        assignments = ["doc = doc || %s::jsonb", "updated_at = now()"]
        params = [Json(changes)]
        location = changes.get('location')
        if location:
            assignments.append("geom = ST_SetSRID(ST_MakePoint(%s, %s), 4326)")
            params.extend(location['coordinates'])
        params.append(pharmacy_id)

        sql = f"""
            UPDATE {self._table}
            SET {', '.join(assignments)}
            WHERE id = %s
            RETURNING {RETURNING}
        """
        try:
            with get_db_cursor(commit=True) as cursor:
                cursor.execute(sql, params)
                row = cursor.fetchone()
        except errors.UniqueViolation as exc:
            raise _unique_conflict(exc) from exc
        return row_to_document(row) if row else None

    def delete(self, ids):
        ids = [coerce_id(i) for i in ids]
        if not ids:
            return 0
        with get_db_cursor(commit=True) as cursor:
            cursor.execute(f"DELETE FROM {self._table} WHERE id = ANY(%s::uuid[])", (ids,))
            return cursor.rowcount

    def count(self, query):
        where, params = build_where(query)
        with get_db_cursor() as cursor:
            cursor.execute(f"SELECT COUNT(*) FROM {self._table} {where}", params)
            return cursor.fetchone()[0]

    def health(self):
        status = check_connection()
        status['backend'] = 'postgres'
        return status
