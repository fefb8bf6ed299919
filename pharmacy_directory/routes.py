"""
API Routes - Pharmacy Endpoints
================================
CRUD, search and soft-delete endpoints mounted under /api/pharmacies.

Every failure is raised as a PharmacyError and turned into the JSON envelope
by the blueprint error handlers:

    {"status": "success" | "fail" | "error", "data": ..., "message": ...}
"""
import logging

from flask import Blueprint, jsonify, request
from werkzeug.exceptions import HTTPException

from . import get_module_config, get_pharmacy_store
from .errors import (
    AlreadyInDesiredState,
    InternalFailure,
    NotFoundError,
    PharmacyError,
    ValidationFailure,
)
from .proximity import ensure_no_pharmacy_nearby
from .query import build_list_query, build_search_query, pagination, select_fields
from .schemas import validate_create, validate_patch, validate_update
from .store import coerce_id

logger = logging.getLogger(__name__)

api_bp = Blueprint('pharmacy_api', __name__)


@api_bp.before_request
def log_request():
    logger.info("Pharmacy route: %s %s", request.method, request.full_path.rstrip('?'))


@api_bp.errorhandler(PharmacyError)
def handle_pharmacy_error(error):
    if error.status_code >= 500:
        logger.error("%s: %s", error.kind.value, error.message)
    else:
        logger.info("Request failed (%s): %s", error.kind.value, error.message)
    return jsonify(error.to_dict()), error.status_code


def handle_http_error(error):
    """Routing and protocol errors (unknown URL, wrong method, ...) in the JSON envelope."""
    body = {'status': 'fail' if error.code < 500 else 'error', 'message': error.description}
    response = jsonify(body)
    response.status_code = error.code
    if error.code == 405 and error.valid_methods:
        response.headers['Allow'] = ', '.join(error.valid_methods)
    return response


@api_bp.errorhandler(Exception)
def handle_unexpected_error(error):
    if isinstance(error, HTTPException):
        return handle_http_error(error)
    logger.exception("Unhandled error on %s %s", request.method, request.path)
    failure = InternalFailure(str(error) or InternalFailure().message)
    return jsonify(failure.to_dict()), failure.status_code


def _get_or_404(store, pharmacy_id):
    pharmacy = store.get(pharmacy_id)
    if pharmacy is None:
        raise NotFoundError()
    return pharmacy


def _list_response(store, listing):
    pharmacies = store.find(listing.store_query)
    total = store.count(listing.store_query)
    return jsonify({
        'status': 'success',
        'results': len(pharmacies),
        'pagination': pagination(listing.page, listing.limit, total),
        'data': {
            'pharmacies': [select_fields(p, listing.fields) for p in pharmacies]
        }
    })


def _guard_location(store, changes, exclude_id=None):
    location = changes.get('location')
    if location:
        ensure_no_pharmacy_nearby(store, location['coordinates'], exclude_id=exclude_id,
                                  radius_m=get_module_config().PROXIMITY_RADIUS_M)


def _apply_update(store, pharmacy_id, changes):
    pharmacy_id = coerce_id(pharmacy_id)
    _get_or_404(store, pharmacy_id)
    _guard_location(store, changes, exclude_id=pharmacy_id)

    pharmacy = store.update(pharmacy_id, changes)
    if pharmacy is None:
        raise NotFoundError()
    logger.info("Updated pharmacy %s fields=%s", pharmacy_id, sorted(changes))
    return pharmacy


def _set_active(store, pharmacy_id, active):
    pharmacy = store.update(pharmacy_id, {'isActive': active})
    if pharmacy is None:
        raise NotFoundError()
    return pharmacy


@api_bp.route('/health', methods=['GET'])
def health_check():
    """Check API and store health."""
    return jsonify({
        'api': 'ok',
        'store': get_pharmacy_store().health()
    })


# ============= READ ROUTES =============

@api_bp.route('/pharmacies', methods=['GET'])
def get_all_pharmacies():
    """
    List pharmacies with filters, pagination and sorting.

    Query Parameters:
        page (int): Page number (default: 1)
        limit (int): Items per page (default: 10)
        sort (str): Comma separated fields, '-' prefix for descending (default: -createdAt)
        fields (str): Comma separated fields to return
        isActive (bool): Defaults to true, so soft-deleted pharmacies are hidden
        <any other field>: Exact match filter, e.g. district=Kandy
    """
    listing = build_list_query(request.args, default_limit=get_module_config().DEFAULT_PAGE_LIMIT)
    return _list_response(get_pharmacy_store(), listing)


@api_bp.route('/pharmacies/search', methods=['GET'])
def search_pharmacies():
    """
    Search by name or pharmacist name.

    Query Parameters:
        query (str): Case-insensitive text to look for
        district (str): Restrict results to one district (optional)
    """
    store_query = build_search_query(request.args.get('query'),
                                     district=request.args.get('district'),
                                     limit=get_module_config().SEARCH_RESULT_LIMIT)
    pharmacies = get_pharmacy_store().find(store_query)
    return jsonify({
        'status': 'success',
        'results': len(pharmacies),
        'data': {'pharmacies': pharmacies}
    })


@api_bp.route('/pharmacies/district/<district>', methods=['GET'])
def get_pharmacies_by_district(district):
    """List pharmacies of one district; accepts the same options as the list endpoint."""
    args = request.args.to_dict()
    args['district'] = district
    listing = build_list_query(args, default_limit=get_module_config().DEFAULT_PAGE_LIMIT)
    return _list_response(get_pharmacy_store(), listing)


@api_bp.route('/pharmacies/<pharmacy_id>', methods=['GET'])
def get_pharmacy_by_id(pharmacy_id):
    pharmacy = _get_or_404(get_pharmacy_store(), pharmacy_id)
    return jsonify({'status': 'success', 'data': {'pharmacy': pharmacy}})


# ============= CREATE ROUTE =============

@api_bp.route('/pharmacies', methods=['POST'])
def create_pharmacy():
    """Create a pharmacy at least PROXIMITY_RADIUS_M away from every other one."""
    store = get_pharmacy_store()
    document = validate_create(request.get_json(silent=True))
    _guard_location(store, document)

    pharmacy = store.create(document)
    logger.info("Created pharmacy %s (%s)", pharmacy['id'], pharmacy['name'])
    return jsonify({'status': 'success', 'data': {'pharmacy': pharmacy}}), 201


# ============= UPDATE ROUTES =============

@api_bp.route('/pharmacies/<pharmacy_id>', methods=['PUT'])
def update_pharmacy(pharmacy_id):
    """Full update. Only the editable fields are applied; anything else is dropped."""
    changes = validate_update(request.get_json(silent=True))
    pharmacy = _apply_update(get_pharmacy_store(), pharmacy_id, changes)
    return jsonify({'status': 'success', 'data': {'pharmacy': pharmacy}})


@api_bp.route('/pharmacies/<pharmacy_id>', methods=['PATCH'])
def partially_update_pharmacy(pharmacy_id):
    """Partial update. Every submitted field is applied as given."""
    changes = validate_patch(request.get_json(silent=True))
    pharmacy = _apply_update(get_pharmacy_store(), pharmacy_id, changes)
    return jsonify({'status': 'success', 'data': {'pharmacy': pharmacy}})


@api_bp.route('/pharmacies/<pharmacy_id>/toggle-status', methods=['PATCH'])
def toggle_pharmacy_status(pharmacy_id):
    store = get_pharmacy_store()
    current = _get_or_404(store, pharmacy_id)
    pharmacy = _set_active(store, current['id'], not current.get('isActive', True))

    state = 'activated' if pharmacy['isActive'] else 'deactivated'
    return jsonify({
        'status': 'success',
        'message': f"Pharmacy {state} successfully",
        'data': {'pharmacy': pharmacy}
    })


@api_bp.route('/pharmacies/<pharmacy_id>/restore', methods=['PATCH'])
def restore_pharmacy(pharmacy_id):
    store = get_pharmacy_store()
    current = _get_or_404(store, pharmacy_id)
    if current.get('isActive', True):
        raise AlreadyInDesiredState('Pharmacy is already active')

    pharmacy = _set_active(store, current['id'], True)
    return jsonify({
        'status': 'success',
        'message': 'Pharmacy restored successfully',
        'data': {'pharmacy': pharmacy}
    })


# ============= DELETE ROUTES =============

@api_bp.route('/pharmacies/<pharmacy_id>', methods=['DELETE'])
def delete_pharmacy_permanently(pharmacy_id):
    deleted = get_pharmacy_store().delete([coerce_id(pharmacy_id)])
    if not deleted:
        raise NotFoundError()
    logger.info("Permanently deleted pharmacy %s", pharmacy_id)
    return jsonify({
        'status': 'success',
        'message': 'Pharmacy permanently deleted',
        'data': None
    })


@api_bp.route('/pharmacies/<pharmacy_id>/soft', methods=['DELETE'])
def soft_delete_pharmacy(pharmacy_id):
    store = get_pharmacy_store()
    current = _get_or_404(store, pharmacy_id)
    if not current.get('isActive', True):
        raise AlreadyInDesiredState('Pharmacy is already inactive')

    pharmacy = _set_active(store, current['id'], False)
    return jsonify({
        'status': 'success',
        'message': 'Pharmacy deactivated successfully',
        'data': {'pharmacy': pharmacy}
    })


@api_bp.route('/pharmacies/bulk-delete', methods=['POST'])
def bulk_delete_pharmacies():
    """Permanently delete several pharmacies. Body: {"ids": [...]}"""
    body = request.get_json(silent=True)
    ids = body.get('ids') if isinstance(body, dict) else None
    if not isinstance(ids, list) or not ids:
        raise ValidationFailure('Please provide an array of pharmacy IDs')

    deleted = get_pharmacy_store().delete(ids)
    if not deleted:
        raise NotFoundError('No pharmacies found with the provided IDs')

    logger.info("Bulk deleted %d of %d pharmacies", deleted, len(ids))
    return jsonify({
        'status': 'success',
        'message': f"{deleted} pharmacies deleted successfully",
        'data': {'deletedCount': deleted}
    })
