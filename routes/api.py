"""
routes/api.py — JSON CRUD API for every resource in models.RESOURCES.

Provides, for each resource path (e.g. `medicinal`, `garden/plots`):
- GET /api/<path> — List all rows (joined with the parent's display name)
- POST /api/<path> — Create a row
- GET /api/<path>/<id> — Get one row
- PUT /api/<path>/<id> — Update the supplied fields
- DELETE /api/<path>/<id> — Delete a row

Errors are returned as {"error": <message>} with the status carried by the
error class (400 validation/conflict, 404 not found, 500 persistence).
"""

from flask import Blueprint, current_app, jsonify, request

from database import get_database
from errors import AdminError, PersistenceError, ValidationError
from models import RESOURCES
from repository import get_repository, serialize
from utils.form_binder import bind_json
from utils.validators import parse_id

api_bp = Blueprint('api', __name__, url_prefix='/api')


def error_response(error: AdminError):
    """JSON error body with the error's status code."""
    if isinstance(error, PersistenceError):
        current_app.logger.error("API request %s %s failed: %s", request.method, request.path, error)
    return jsonify(error.to_dict()), error.status_code


def json_body():
    """Decoded JSON request body; ValidationError if absent or malformed."""
    data = request.get_json(silent=True)
    if data is None:
        raise ValidationError("Request body must be valid JSON.")
    return data


def resource_collection(resource):
    """GET list / POST create."""
    repo = get_repository(get_database(), resource)
    try:
        if request.method == 'POST':
            data = bind_json(json_body(), repo.resource.fields)
            row = repo.create(data)
            return jsonify(serialize(row)), 201
        return jsonify([serialize(row) for row in repo.list_all()])
    except AdminError as e:
        return error_response(e)


def resource_item(resource, item_id):
    """GET one / PUT update / DELETE."""
    repo = get_repository(get_database(), resource)
    try:
        item_id = parse_id(item_id, f"{repo.resource.singular} ID")
        if request.method == 'PUT':
            data = bind_json(json_body(), repo.resource.fields)
            return jsonify(serialize(repo.update(item_id, data)))
        if request.method == 'DELETE':
            repo.delete(item_id)
            return jsonify({'success': True})
        return jsonify(serialize(repo.get(item_id)))
    except AdminError as e:
        return error_response(e)


for _resource in RESOURCES.values():
    api_bp.add_url_rule(
        f'/{_resource.path}',
        endpoint=f'{_resource.name}_collection',
        view_func=resource_collection,
        methods=['GET', 'POST'],
        defaults={'resource': _resource.name},
    )
    api_bp.add_url_rule(
        f'/{_resource.path}/<item_id>',
        endpoint=f'{_resource.name}_item',
        view_func=resource_item,
        methods=['GET', 'PUT', 'DELETE'],
        defaults={'resource': _resource.name},
    )
