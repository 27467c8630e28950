"""
routes/plantings.py — Plantings with their companion plants.

Provides (JSON, CSRF-exempt):
- GET /api/garden/plantings — List all plantings
- POST /api/garden/plantings — Create a planting with `companionPlants`
- GET /api/garden/plantings/<id> — Planting with its `companionPlants`
- PUT /api/garden/plantings/<id> — Update; a `companionPlants` key replaces the set
- DELETE /api/garden/plantings/<id> — Delete the planting and its companions

Provides (HTML):
- GET /admin/garden/plantings — List page
- GET/POST /admin/garden/plantings/new — Create form with companion rows
- GET /admin/garden/plantings/<id> — Detail page
- GET/POST /admin/garden/plantings/edit/<id> — Edit form
- POST /admin/garden/plantings/delete/<id> — Delete
"""

from flask import Blueprint, current_app, flash, jsonify, redirect, render_template, request

from database import get_database
from errors import AdminError, ValidationError
from models import COMPANION_FIELDS, PLANTINGS
from plantings import PlantingRepository
from repository import serialize
from routes.admin import admin_url, load_choices
from routes.api import error_response, json_body
from utils.form_binder import bind_form, bind_form_rows, bind_json, submitted_values, to_form_values
from utils.validators import parse_id

plantings_api_bp = Blueprint('plantings_api', __name__)
plantings_admin_bp = Blueprint('plantings_admin', __name__)

COMPANION_PREFIX = 'companion'

# Blank companion rows offered on the form besides the existing ones
EMPTY_COMPANION_ROWS = 1


def bind_planting_json(payload):
    """Split a JSON body into (planting columns, companion list or None)."""
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object.")

    data = bind_json(payload, PLANTINGS.fields)
    raw = payload.get('companionPlants', payload.get('companion_plants'))
    if raw is None:
        return data, None
    if not isinstance(raw, list):
        raise ValidationError("companionPlants must be a list.", field='companionPlants')

    companions = []
    for index, entry in enumerate(raw, start=1):
        if not isinstance(entry, dict):
            raise ValidationError(f"Companion plant #{index} must be an object.", field='companionPlants')
        companions.append(bind_json(entry, COMPANION_FIELDS))
    return data, companions


# ========================================
# JSON API
# ========================================

@plantings_api_bp.route('/api/garden/plantings', methods=['GET', 'POST'])
def api_plantings():
    """GET list / POST create."""
    repo = PlantingRepository(get_database())
    try:
        if request.method == 'POST':
            data, companions = bind_planting_json(json_body())
            planting = repo.create(data, companions or [])
            return jsonify(serialize(planting)), 201
        return jsonify([serialize(p) for p in repo.list_all()])
    except AdminError as e:
        return error_response(e)


@plantings_api_bp.route('/api/garden/plantings/<planting_id>', methods=['GET', 'PUT', 'DELETE'])
def api_planting(planting_id):
    """GET one / PUT update / DELETE."""
    repo = PlantingRepository(get_database())
    try:
        planting_id = parse_id(planting_id, "planting ID")
        if request.method == 'PUT':
            data, companions = bind_planting_json(json_body())
            return jsonify(serialize(repo.update(planting_id, data, companions)))
        if request.method == 'DELETE':
            repo.delete(planting_id)
            return jsonify({'success': True})
        return jsonify(serialize(repo.get(planting_id)))
    except AdminError as e:
        return error_response(e)


# ========================================
# HTML pages
# ========================================

def companion_form_rows(companions):
    """Form rows for existing companions plus blank rows for new ones."""
    rows = [to_form_values(c, COMPANION_FIELDS) for c in companions]
    rows.extend(to_form_values({}, COMPANION_FIELDS) for _ in range(EMPTY_COMPANION_ROWS))
    return rows


def submitted_companion_rows():
    """Raw companion inputs as submitted, for re-rendering after an error."""
    columns = {
        field.key: request.form.getlist(COMPANION_PREFIX + field.key[0].upper() + field.key[1:])
        for field in COMPANION_FIELDS
    }
    count = max((len(v) for v in columns.values()), default=0)
    return [
        {key: values[i] if i < len(values) else '' for key, values in columns.items()}
        for i in range(count)
    ]


def render_planting_form(values, companions, planting_id=None, error=None, status=200):
    db = get_database()
    choices = load_choices(db, PLANTINGS.fields)
    return render_template(
        'plantings/form.html',
        resource=PLANTINGS,
        companion_fields=COMPANION_FIELDS,
        companion_prefix=COMPANION_PREFIX,
        values=values,
        companions=companions,
        planting_id=planting_id,
        choices=choices,
        error=error,
    ), status


def bind_planting_form():
    data = bind_form(request.form, PLANTINGS.fields)
    companions = bind_form_rows(request.form, COMPANION_FIELDS, COMPANION_PREFIX)
    return data, companions


@plantings_admin_bp.route('/admin/garden/plantings', endpoint='plantings_list')
def planting_list():
    try:
        plantings = PlantingRepository(get_database()).list_all()
    except AdminError as e:
        current_app.logger.error("Could not list plantings: %s", e)
        flash(e.message, 'error')
        plantings = []
    return render_template('plantings/list.html', resource=PLANTINGS, plantings=plantings)


@plantings_admin_bp.route('/admin/garden/plantings/new', methods=['GET', 'POST'], endpoint='plantings_new')
def planting_new():
    """Create a planting and its companion rows in one submit."""
    if request.method == 'POST':
        try:
            data, companions = bind_planting_form()
            planting = PlantingRepository(get_database()).create(data, companions)
        except AdminError as e:
            return render_planting_form(submitted_values(request.form, PLANTINGS.fields),
                                        submitted_companion_rows(), error=e, status=e.status_code)
        flash("Planting created.", 'success')
        return redirect(admin_url('plantings', 'detail', item_id=planting['planting_id']))

    values = to_form_values({}, PLANTINGS.fields)
    for field in PLANTINGS.fields:
        if field.key in request.args:
            values[field.key] = request.args[field.key]
    return render_planting_form(values, companion_form_rows([]))


@plantings_admin_bp.route('/admin/garden/plantings/<item_id>', endpoint='plantings_detail')
def planting_detail(item_id):
    db = get_database()
    try:
        planting_id = parse_id(item_id, "planting ID")
        planting = PlantingRepository(db).get(planting_id)
        choices = load_choices(db, PLANTINGS.fields)
    except AdminError as e:
        flash(e.message, 'error')
        return redirect(admin_url('plantings'))
    return render_template(
        'plantings/detail.html',
        resource=PLANTINGS,
        companion_fields=COMPANION_FIELDS,
        planting=planting,
        choices=choices,
    )


@plantings_admin_bp.route('/admin/garden/plantings/edit/<item_id>', methods=['GET', 'POST'],
                          endpoint='plantings_edit')
def planting_edit(item_id):
    """Edit a planting; the submitted companion rows replace the existing ones."""
    repo = PlantingRepository(get_database())
    try:
        planting_id = parse_id(item_id, "planting ID")
        if request.method == 'GET':
            planting = repo.get(planting_id)
    except AdminError as e:
        flash(e.message, 'error')
        return redirect(admin_url('plantings'))

    if request.method == 'POST':
        try:
            data, companions = bind_planting_form()
            repo.update(planting_id, data, companions)
        except AdminError as e:
            return render_planting_form(submitted_values(request.form, PLANTINGS.fields),
                                        submitted_companion_rows(), planting_id=planting_id,
                                        error=e, status=e.status_code)
        flash("Planting updated.", 'success')
        return redirect(admin_url('plantings', 'detail', item_id=planting_id))

    return render_planting_form(
        to_form_values(planting, PLANTINGS.fields),
        companion_form_rows(planting['companion_plants']),
        planting_id=planting_id,
    )


@plantings_admin_bp.route('/admin/garden/plantings/delete/<item_id>', methods=['POST'],
                          endpoint='plantings_delete')
def planting_delete(item_id):
    try:
        planting_id = parse_id(item_id, "planting ID")
        PlantingRepository(get_database()).delete(planting_id)
    except AdminError as e:
        flash(e.message, 'error')
        return redirect(admin_url('plantings'))
    flash("Planting deleted.", 'success')
    return redirect(admin_url('plantings'))
