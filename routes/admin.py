"""
routes/admin.py — HTML admin pages for every resource in models.RESOURCES.

Provides, for each resource path (e.g. `plants`, `garden/beds`):
- GET /admin/<path> — List page
- GET/POST /admin/<path>/new — Create form
- GET /admin/<path>/<id> — Detail page, with owned rows (a plant's parts,
  recipes, ...; a plot's beds)
- GET/POST /admin/<path>/edit/<id> — Edit form
- POST /admin/<path>/delete/<id> — Delete, then back to the list

A failed submission re-renders the form with the error and the values the
user entered; other failures are flashed.
"""

from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for

from database import get_database
from errors import AdminError, ConflictError
from models import RESOURCES, child_resources
from repository import get_repository
from utils.form_binder import bind_form, submitted_values, to_form_values
from utils.validators import parse_id

admin_bp = Blueprint('admin', __name__, url_prefix='/admin')

# Foreign-key columns rendered as a <select> over another resource
CHOICE_SOURCES = {
    'plant_id': 'plants',
    'action_id': 'herbal_actions',
    'part_id': 'parts',
    'area_id': 'garden_areas',
    'plot_id': 'plots',
    'bed_id': 'garden_beds',
}

# Endpoint prefix per resource when it is not served by admin_bp
ENDPOINT_PREFIXES = {
    'plantings': 'plantings_admin.plantings',
}


@admin_bp.app_template_global()
def admin_url(resource_name, action='list', **values):
    """URL of an admin page, e.g. admin_url('plants', 'detail', item_id=3)."""
    prefix = ENDPOINT_PREFIXES.get(resource_name, f'admin.{resource_name}')
    return url_for(f'{prefix}_{action}', **values)


def row_label(resource, row):
    """Human-readable name of a row, used in selects and links."""
    value = row.get(resource.display_field) if resource.display_field else None
    if not value:
        return f"{resource.singular} #{row[resource.primary_key]}"
    if resource.parent and row.get(resource.parent.alias):
        return f"{value} ({row[resource.parent.alias]})"
    return str(value)


def load_choices(db, fields):
    """{column: [(id, label), ...]} for every foreign-key field in `fields`."""
    choices = {}
    for field in fields:
        source = CHOICE_SOURCES.get(field.name)
        if source is None:
            continue
        resource = RESOURCES[source]
        choices[field.name] = [
            (row[resource.primary_key], row_label(resource, row))
            for row in get_repository(db, source).list_all()
        ]
    return choices


def render_resource_form(resource, values, item_id=None, error=None, status=200):
    choices = load_choices(get_database(), resource.fields)
    return render_template(
        'resources/form.html',
        resource=resource,
        values=values,
        item_id=item_id,
        choices=choices,
        error=error,
    ), status


# ========================================
# List and Details
# ========================================

def resource_list(resource):
    """List page with the parent's display name on each row."""
    r = RESOURCES[resource]
    try:
        rows = get_repository(get_database(), resource).list_all()
    except AdminError as e:
        current_app.logger.error("Could not list %s: %s", resource, e)
        flash(e.message, 'error')
        rows = []
    return render_template('resources/list.html', resource=r, rows=rows)


def resource_detail(resource, item_id):
    """Detail page; owned rows are listed in one section per child resource."""
    r = RESOURCES[resource]
    db = get_database()
    try:
        item_id = parse_id(item_id, f"{r.singular} ID")
        row = get_repository(db, resource).get(item_id)
        children = [
            (child, get_repository(db, child.name).list_by_parent(item_id))
            for child in child_resources(resource)
        ]
        choices = load_choices(db, r.fields)
    except AdminError as e:
        flash(e.message, 'error')
        return redirect(admin_url(resource))

    return render_template(
        'resources/detail.html',
        resource=r,
        row=row,
        item_id=item_id,
        children=children,
        choices=choices,
    )


# ========================================
# Create, Edit, Delete
# ========================================

def resource_new(resource):
    """Create form; ?plantId=3 style query args prefill the form."""
    r = RESOURCES[resource]
    repo = get_repository(get_database(), resource)

    if request.method == 'POST':
        try:
            row = repo.create(bind_form(request.form, r.fields))
        except AdminError as e:
            return render_resource_form(r, submitted_values(request.form, r.fields),
                                        error=e, status=e.status_code)
        flash(f"{r.singular} created.", 'success')
        return redirect(admin_url(resource, 'detail', item_id=row[r.primary_key]))

    defaults = {f.name: f.default for f in r.fields if f.default is not None}
    values = to_form_values(defaults, r.fields)
    for field in r.fields:
        if field.key in request.args:
            values[field.key] = request.args[field.key]
    if resource == 'plots' and not values.get('plotCode'):
        try:
            values['plotCode'] = repo.next_plot_code()
        except AdminError as e:
            current_app.logger.warning("Could not suggest a plot code: %s", e)
    return render_resource_form(r, values)


def resource_edit(resource, item_id):
    """Edit form; every field is written on submit."""
    r = RESOURCES[resource]
    repo = get_repository(get_database(), resource)
    try:
        item_id = parse_id(item_id, f"{r.singular} ID")
        if request.method == 'GET':
            row = repo.get(item_id)
    except AdminError as e:
        flash(e.message, 'error')
        return redirect(admin_url(resource))

    if request.method == 'POST':
        try:
            repo.update(item_id, bind_form(request.form, r.fields))
        except AdminError as e:
            return render_resource_form(r, submitted_values(request.form, r.fields),
                                        item_id=item_id, error=e, status=e.status_code)
        flash(f"{r.singular} updated.", 'success')
        return redirect(admin_url(resource, 'detail', item_id=item_id))

    return render_resource_form(r, to_form_values(row, r.fields), item_id=item_id)


def resource_delete(resource, item_id):
    """Delete a row; a refused delete (e.g. plot with beds) returns to the detail page."""
    r = RESOURCES[resource]
    try:
        item_id = parse_id(item_id, f"{r.singular} ID")
        get_repository(get_database(), resource).delete(item_id)
    except ConflictError as e:
        flash(e.message, 'error')
        return redirect(admin_url(resource, 'detail', item_id=item_id))
    except AdminError as e:
        flash(e.message, 'error')
        return redirect(admin_url(resource))

    flash(f"{r.singular} deleted.", 'success')
    return redirect(admin_url(resource))


for _resource in RESOURCES.values():
    _rules = [
        ('', 'list', resource_list, ['GET']),
        ('/new', 'new', resource_new, ['GET', 'POST']),
        ('/<item_id>', 'detail', resource_detail, ['GET']),
        ('/edit/<item_id>', 'edit', resource_edit, ['GET', 'POST']),
        ('/delete/<item_id>', 'delete', resource_delete, ['POST']),
    ]
    for _suffix, _action, _view, _methods in _rules:
        admin_bp.add_url_rule(
            f'/{_resource.path}{_suffix}',
            endpoint=f'{_resource.name}_{_action}',
            view_func=_view,
            methods=_methods,
            defaults={'resource': _resource.name},
        )
