"""
plantings.py — Plantings and their companion plants.

A planting and its companion rows (table planting_plants) are always written
together inside one transaction:

- create: insert the planting, then bulk-insert its companions
- update: update the planting; if a companion list is given, delete the
  existing companions and insert the new list (replace as a unit)
- delete: delete the companions, then the planting

Any failure rolls the whole operation back. Callers must go through
PlantingRepository; nothing else writes to planting_plants.
"""

import logging
from typing import Any, Dict, List, Optional

from database import Database, translate_errors, utcnow
from errors import NotFoundError, ValidationError
from models import COMPANION_FIELDS, PLANTINGS
from repository import check_required, decode_row, encode_values

logger = logging.getLogger(__name__)

PLANTING_SELECT = """
    SELECT t.*,
           p.botanical_name AS plant_name,
           pl.plot_code AS plot_code,
           b.bed_name AS bed_name
    FROM plantings t
    LEFT JOIN plants p ON t.plant_id = p.id
    LEFT JOIN plots pl ON t.plot_id = pl.plot_id
    LEFT JOIN garden_beds b ON t.bed_id = b.bed_id
"""

COMPANION_SELECT = """
    SELECT c.*, p.botanical_name AS plant_name
    FROM planting_plants c
    LEFT JOIN plants p ON c.plant_id = p.id
    WHERE c.planting_id = ?
    ORDER BY c.id
"""

COMPANION_INSERT = """
    INSERT INTO planting_plants
        (planting_id, plant_id, quantity, x_position, y_position, notes, created_at, updated_at)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
"""


def _companion_params(planting_id, companions, now):
    params = []
    for index, companion in enumerate(companions, start=1):
        if not isinstance(companion, dict):
            raise ValidationError(f"Companion plant #{index} must be an object.")
        try:
            check_required(COMPANION_FIELDS, companion)
        except ValidationError as e:
            raise ValidationError(f"Companion plant #{index}: {e.message}", field='companionPlants')
        params.append((
            planting_id,
            companion['plant_id'],
            companion.get('quantity'),
            companion.get('x_position'),
            companion.get('y_position'),
            companion.get('notes'),
            now,
            now,
        ))
    return params


class PlantingRepository:
    """The only interface for reading and writing plantings and companions."""

    def __init__(self, db: Database):
        self.db = db

    def _fetch_planting(self, conn, planting_id):
        row = conn.execute(f"{PLANTING_SELECT} WHERE t.planting_id = ?", (planting_id,)).fetchone()
        return decode_row(PLANTINGS.fields, row) if row else None

    def _fetch_companions(self, conn, planting_id):
        return [dict(row) for row in conn.execute(COMPANION_SELECT, (planting_id,)).fetchall()]

    def _fetch(self, conn, planting_id):
        planting = self._fetch_planting(conn, planting_id)
        if planting is None:
            return None
        planting['companion_plants'] = self._fetch_companions(conn, planting_id)
        return planting

    # ----- reads -----

    def list_all(self) -> List[Dict[str, Any]]:
        """All plantings (without companions), ordered by planting date."""
        with translate_errors("listing plantings"), self.db.connection() as conn:
            rows = conn.execute(f"{PLANTING_SELECT} ORDER BY t.planting_date, t.planting_id").fetchall()
        return [decode_row(PLANTINGS.fields, row) for row in rows]

    def get(self, planting_id: int) -> Dict[str, Any]:
        """The planting merged with its `companion_plants` list."""
        with translate_errors("loading planting"), self.db.connection() as conn:
            planting = self._fetch(conn, planting_id)
        if planting is None:
            raise NotFoundError("Planting not found.")
        return planting

    def list_companions(self, planting_id: int) -> List[Dict[str, Any]]:
        with translate_errors("loading companion plants"), self.db.connection() as conn:
            return self._fetch_companions(conn, planting_id)

    def count(self) -> int:
        with translate_errors("counting plantings"), self.db.connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM plantings").fetchone()[0]

    # ----- writes -----

    def create(self, data: Dict[str, Any], companions: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
        """
        Insert a planting and its companions atomically.

        Raises:
            ValidationError: a required planting or companion field is missing
            ConflictError: duplicate companion plant, unknown plant/plot/bed
            PersistenceError: any other database failure
        """
        check_required(PLANTINGS.fields, data)
        companions = companions or []

        values = encode_values(PLANTINGS.fields, data)
        now = utcnow()
        values['created_at'] = now
        values['updated_at'] = now

        columns = ', '.join(values)
        placeholders = ', '.join('?' for _ in values)
        with translate_errors("creating planting"), self.db.transaction() as conn:
            cursor = conn.execute(
                f"INSERT INTO plantings ({columns}) VALUES ({placeholders})",
                list(values.values())
            )
            planting_id = cursor.lastrowid
            if companions:
                conn.executemany(COMPANION_INSERT, _companion_params(planting_id, companions, now))
            planting = self._fetch(conn, planting_id)

        logger.info("Created planting %s with %d companion plant(s)", planting_id, len(companions))
        return planting

    def update(self, planting_id: int, data: Dict[str, Any],
               companions: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
        """
        Update a planting and, when `companions` is not None, replace its
        whole companion set (an empty list removes all companions).

        created_at is never changed. On any failure the planting and its
        companions are left exactly as they were.
        """
        check_required(PLANTINGS.fields, data, partial=True)

        # Only declared fields are encoded, so a caller-supplied created_at is dropped.
        values = encode_values(PLANTINGS.fields, data)
        now = utcnow()
        values['updated_at'] = now

        assignments = ', '.join(f"{column} = ?" for column in values)
        with translate_errors("updating planting"), self.db.transaction() as conn:
            cursor = conn.execute(
                f"UPDATE plantings SET {assignments} WHERE planting_id = ?",
                list(values.values()) + [planting_id]
            )
            if cursor.rowcount == 0:
                raise NotFoundError("Planting not found.")

            if companions is not None:
                conn.execute("DELETE FROM planting_plants WHERE planting_id = ?", (planting_id,))
                if companions:
                    conn.executemany(COMPANION_INSERT, _companion_params(planting_id, companions, now))

            planting = self._fetch(conn, planting_id)

        if companions is None:
            logger.info("Updated planting %s", planting_id)
        else:
            logger.info("Updated planting %s, replaced companions (%d)", planting_id, len(companions))
        return planting

    def delete(self, planting_id: int):
        """
        Delete a planting and its companions. Deleting an identifier that
        does not exist is not an error.
        """
        with translate_errors("deleting planting"), self.db.transaction() as conn:
            conn.execute("DELETE FROM planting_plants WHERE planting_id = ?", (planting_id,))
            cursor = conn.execute("DELETE FROM plantings WHERE planting_id = ?", (planting_id,))

        if cursor.rowcount:
            logger.info("Deleted planting %s", planting_id)
        else:
            logger.info("Delete of missing planting %s ignored", planting_id)
