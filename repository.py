"""
repository.py — Generic single-table CRUD over the resources in models.py.

Each ResourceRepository validates required fields before touching the
database, stamps created_at/updated_at, encodes array fields as JSON text and
reports failures through the error taxonomy in errors.py.

PlotRepository adds the bed guard on delete and the next plot code helper.
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from database import Database, translate_errors, utcnow
from errors import ConflictError, NotFoundError, ValidationError
from models import RESOURCES, Resource, to_camel

logger = logging.getLogger(__name__)

PLOT_CODE_PATTERN = re.compile(r'^PLOT-(\d+)$')


def serialize(row: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Column-keyed row -> camelCase JSON object (nested lists serialized too)."""
    if row is None:
        return None
    result = {}
    for key, value in row.items():
        if isinstance(value, list) and value and isinstance(value[0], dict):
            value = [serialize(item) for item in value]
        result[to_camel(key)] = value
    return result


def is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def check_required(fields, data, partial=False):
    """Raise ValidationError for the first required field that is missing."""
    for field in fields:
        if not field.required:
            continue
        if partial and field.name not in data:
            continue
        if is_blank(data.get(field.name)):
            raise ValidationError(f"{field.display_label} is required.", field=field.key)


def encode_values(fields, data) -> Dict[str, Any]:
    """Python values -> SQLite column values."""
    encoded = {}
    for field in fields:
        if field.name not in data:
            continue
        value = data[field.name]
        if field.type in ('array', 'id_array') and value is not None:
            value = json.dumps(list(value))
        elif field.type == 'boolean' and value is not None:
            value = 1 if value else 0
        encoded[field.name] = value
    return encoded


def decode_row(fields, row) -> Dict[str, Any]:
    """sqlite3.Row -> dict with arrays and booleans restored."""
    result = dict(row)
    for field in fields:
        if field.name not in result or result[field.name] is None:
            continue
        if field.type in ('array', 'id_array'):
            result[field.name] = json.loads(result[field.name])
        elif field.type == 'boolean':
            result[field.name] = bool(result[field.name])
    return result


class ResourceRepository:
    """List, get, create, update and delete rows of one resource table."""

    def __init__(self, db: Database, resource: Resource):
        self.db = db
        self.resource = resource

    # ----- queries -----

    def _select(self) -> str:
        r = self.resource
        if r.parent:
            p = r.parent
            return (
                f"SELECT t.*, p.{p.display} AS {p.alias} FROM {r.table} t "
                f"LEFT JOIN {p.table} p ON t.{p.column} = p.{p.key}"
            )
        return f"SELECT t.* FROM {r.table} t"

    def _order(self) -> str:
        return f"t.{self.resource.order_by or self.resource.primary_key}"

    def _fetch(self, conn, item_id):
        row = conn.execute(
            f"{self._select()} WHERE t.{self.resource.primary_key} = ?", (item_id,)
        ).fetchone()
        return decode_row(self.resource.fields, row) if row else None

    def list_all(self) -> List[Dict[str, Any]]:
        """All rows, joined with the parent's display name."""
        with translate_errors(f"listing {self.resource.title.lower()}"), self.db.connection() as conn:
            rows = conn.execute(f"{self._select()} ORDER BY {self._order()}").fetchall()
        return [decode_row(self.resource.fields, row) for row in rows]

    def list_by_parent(self, parent_id: int) -> List[Dict[str, Any]]:
        """Rows owned by one parent (e.g. the parts of a plant, the beds of a plot)."""
        parent = self.resource.parent
        if parent is None:
            raise ValueError(f"{self.resource.name} has no parent")
        with translate_errors(f"listing {self.resource.title.lower()}"), self.db.connection() as conn:
            rows = conn.execute(
                f"{self._select()} WHERE t.{parent.column} = ? ORDER BY {self._order()}",
                (parent_id,)
            ).fetchall()
        return [decode_row(self.resource.fields, row) for row in rows]

    def get(self, item_id: int) -> Dict[str, Any]:
        with translate_errors(f"loading {self.resource.singular.lower()}"), self.db.connection() as conn:
            row = self._fetch(conn, item_id)
        if row is None:
            raise NotFoundError(f"{self.resource.singular} not found.")
        return row

    def count(self) -> int:
        with translate_errors(f"counting {self.resource.title.lower()}"), self.db.connection() as conn:
            return conn.execute(f"SELECT COUNT(*) FROM {self.resource.table}").fetchone()[0]

    # ----- writes -----

    def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a row; returns it as read back from the database."""
        r = self.resource
        check_required(r.fields, data)

        values = {}
        for field in r.fields:
            if field.name in data:
                values[field.name] = data[field.name]
            elif field.default is not None:
                values[field.name] = list(field.default) if isinstance(field.default, list) else field.default
        values = encode_values(r.fields, values)
        now = utcnow()
        values['created_at'] = now
        values['updated_at'] = now

        columns = ', '.join(values)
        placeholders = ', '.join('?' for _ in values)
        with translate_errors(f"creating {r.singular.lower()}"), self.db.transaction() as conn:
            cursor = conn.execute(
                f"INSERT INTO {r.table} ({columns}) VALUES ({placeholders})",
                list(values.values())
            )
            row = self._fetch(conn, cursor.lastrowid)

        logger.info("Created %s %s", r.name, row[r.primary_key])
        return row

    def update(self, item_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """Update the supplied fields of a row; returns the row after the update."""
        r = self.resource
        check_required(r.fields, data, partial=True)

        values = encode_values(r.fields, data)
        values['updated_at'] = utcnow()

        assignments = ', '.join(f"{column} = ?" for column in values)
        with translate_errors(f"updating {r.singular.lower()}"), self.db.transaction() as conn:
            cursor = conn.execute(
                f"UPDATE {r.table} SET {assignments} WHERE {r.primary_key} = ?",
                list(values.values()) + [item_id]
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"{r.singular} not found.")
            row = self._fetch(conn, item_id)

        logger.info("Updated %s %s", r.name, item_id)
        return row

    def delete(self, item_id: int):
        r = self.resource
        with translate_errors(f"deleting {r.singular.lower()}"), self.db.transaction() as conn:
            cursor = conn.execute(f"DELETE FROM {r.table} WHERE {r.primary_key} = ?", (item_id,))
            if cursor.rowcount == 0:
                raise NotFoundError(f"{r.singular} not found.")
        logger.info("Deleted %s %s", r.name, item_id)


class PlotRepository(ResourceRepository):
    """Plots: refuse deletion while garden beds reference the plot."""

    def delete(self, plot_id: int):
        # Check and delete share one IMMEDIATE transaction, so no bed can be
        # added in between; the RESTRICT foreign key backs this up.
        with translate_errors("deleting plot"), self.db.transaction() as conn:
            bed_count = conn.execute(
                "SELECT COUNT(*) FROM garden_beds WHERE plot_id = ?", (plot_id,)
            ).fetchone()[0]
            if bed_count:
                raise ConflictError(
                    f"Cannot delete plot with {bed_count} associated garden bed(s). "
                    "Please remove the garden beds first."
                )
            cursor = conn.execute("DELETE FROM plots WHERE plot_id = ?", (plot_id,))
            if cursor.rowcount == 0:
                raise NotFoundError("Plot not found.")
        logger.info("Deleted plots %s", plot_id)

    def next_plot_code(self) -> str:
        """Next code in the PLOT-<n> sequence (PLOT-1 when none exist)."""
        with translate_errors("computing next plot code"), self.db.connection() as conn:
            codes = [row[0] for row in conn.execute("SELECT plot_code FROM plots").fetchall()]

        highest = 0
        for code in codes:
            match = PLOT_CODE_PATTERN.match(code or '')
            if match:
                highest = max(highest, int(match.group(1)))
        return f"PLOT-{highest + 1}"


REPOSITORY_CLASSES = {
    'plots': PlotRepository,
}


def get_repository(db: Database, name: str) -> ResourceRepository:
    """Repository for the resource registered under `name`."""
    resource = RESOURCES[name]
    cls = REPOSITORY_CLASSES.get(name, ResourceRepository)
    return cls(db, resource)
