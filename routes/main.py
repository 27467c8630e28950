"""
routes/main.py — Dashboard.

Provides:
- GET / — Record counts per resource section, planting count, database status
"""

from flask import Blueprint, render_template

from database import get_database
from errors import AdminError
from models import RESOURCE_GROUPS, RESOURCES
from plantings import PlantingRepository
from repository import get_repository

main_bp = Blueprint('main', __name__)


@main_bp.route('/')
def index():
    """Dashboard — one card per resource group with row counts."""
    db = get_database()
    healthy, status_message = db.check_health()

    groups = []
    planting_count = None
    if healthy:
        try:
            for title, names in RESOURCE_GROUPS:
                groups.append({
                    'title': title,
                    'resources': [
                        {'resource': RESOURCES[name], 'count': get_repository(db, name).count()}
                        for name in names
                    ],
                })
            planting_count = PlantingRepository(db).count()
        except AdminError as e:
            healthy, status_message = False, e.message

    return render_template(
        'index.html',
        groups=groups,
        planting_count=planting_count,
        db_healthy=healthy,
        db_status=status_message,
    )
