"""
Query Builder
=============
Turns query-string style arguments into StoreQuery objects plus the
pagination metadata returned by list endpoints.

    GET /api/pharmacies?district=Kandy&page=2&limit=5&sort=-name&fields=name,email
"""
import math
import re
from dataclasses import dataclass
from typing import List, Optional

from .errors import ValidationFailure
from .store import StoreQuery, TextMatch

# Keys that control the listing rather than filter it
RESERVED_KEYS = ('page', 'limit', 'sort', 'fields')

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
DEFAULT_SORT = '-createdAt'
SEARCH_LIMIT = 20

FIELD_NAME = re.compile(r'^[A-Za-z_][A-Za-z0-9_]*$')


@dataclass
class ListQuery:
    store_query: StoreQuery
    page: int
    limit: int
    fields: Optional[List[str]] = None


def parse_positive_int(value, name, default):
    if value is None or value == '':
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationFailure(f"{name} must be a positive integer") from None
    if number < 1:
        raise ValidationFailure(f"{name} must be a positive integer")
    return number


def parse_bool(value, name):
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered == 'true':
        return True
    if lowered == 'false':
        return False
    raise ValidationFailure(f"{name} must be true or false")


def parse_sort(value):
    """'-createdAt,name' -> [('createdAt', True), ('name', False)]"""
    sort = []
    for token in re.split(r'[\s,]+', (value or DEFAULT_SORT).strip()):
        if not token:
            continue
        descending = token.startswith('-')
        name = token.lstrip('+-')
        if not FIELD_NAME.match(name):
            raise ValidationFailure(f"Invalid sort field: {token}")
        sort.append((name, descending))
    return sort or parse_sort(DEFAULT_SORT)


def parse_fields(value):
    if not value:
        return None
    fields = [f.strip() for f in value.split(',') if f.strip()]
    return fields or None


def build_list_query(args, default_limit=DEFAULT_LIMIT):
    """
    Build the listing query from request arguments.

    Every non-reserved key becomes an equality filter. Soft-deleted
    pharmacies are hidden unless isActive is passed explicitly.
    """
    args = dict(args.items())

    page = parse_positive_int(args.get('page'), 'page', DEFAULT_PAGE)
    limit = parse_positive_int(args.get('limit'), 'limit', default_limit)

    filters = {key: value for key, value in args.items() if key not in RESERVED_KEYS}
    if 'isActive' in filters:
        filters['isActive'] = parse_bool(filters['isActive'], 'isActive')
    else:
        filters['isActive'] = True

    store_query = StoreQuery(
        filters=filters,
        sort=parse_sort(args.get('sort')),
        skip=(page - 1) * limit,
        limit=limit,
    )
    return ListQuery(store_query=store_query, page=page, limit=limit,
                     fields=parse_fields(args.get('fields')))


def build_search_query(text, district=None, limit=SEARCH_LIMIT):
    """Case-insensitive match on name or pharmacist name, newest first."""
    text = (text or '').strip()
    if not text and not district:
        raise ValidationFailure('Please provide a search query or district')

    filters = {'district': district} if district else {}
    return StoreQuery(
        filters=filters,
        text=TextMatch(needle=text) if text else None,
        sort=parse_sort(DEFAULT_SORT),
        limit=limit,
    )


def pagination(page, limit, total):
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        'currentPage': page,
        'totalPages': total_pages,
        'totalItems': total,
        'itemsPerPage': limit,
        'hasNext': page < total_pages,
        'hasPrev': page > 1,
    }


def select_fields(document, fields):
    """Project a document onto the requested fields; id is always kept."""
    if not fields:
        return document
    return {key: value for key, value in document.items() if key == 'id' or key in fields}
