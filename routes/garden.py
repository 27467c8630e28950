"""
routes/garden.py — Garden helper endpoints used by the plot and bed forms.

Provides:
- GET /api/garden/plots/next-code — Next free PLOT-<n> code
- GET /api/garden/beds/by-plot/<plot_id> — Beds of one plot
"""

from flask import Blueprint, jsonify

from database import get_database
from errors import AdminError
from repository import get_repository, serialize
from routes.api import error_response
from utils.validators import parse_id

garden_api_bp = Blueprint('garden_api', __name__, url_prefix='/api/garden')


@garden_api_bp.route('/plots/next-code')
def next_plot_code():
    """Suggest the next code in the PLOT-<n> sequence."""
    try:
        code = get_repository(get_database(), 'plots').next_plot_code()
        return jsonify({'plotCode': code})
    except AdminError as e:
        return error_response(e)


@garden_api_bp.route('/beds/by-plot/<plot_id>')
def beds_by_plot(plot_id):
    """All garden beds of a plot (404 if the plot does not exist)."""
    db = get_database()
    try:
        plot_id = parse_id(plot_id, "plot ID")
        get_repository(db, 'plots').get(plot_id)
        beds = get_repository(db, 'garden_beds').list_by_parent(plot_id)
        return jsonify([serialize(bed) for bed in beds])
    except AdminError as e:
        return error_response(e)
