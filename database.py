"""
database.py — SQLite schema creation, connection pool and transactions.

The Database object is constructed once by create_app() and attached to the
Flask app; route handlers reach it through get_database(). Connections are
pooled, handed out per repository call and returned on completion (rolled
back first if a transaction was left open).

Uses WAL mode for concurrent read performance and enforces foreign keys.
"""

import atexit
import logging
import os
import sqlite3
import threading
import weakref
from contextlib import contextmanager
from datetime import datetime, timezone

from flask import current_app

from errors import AdminError, ConflictError, PersistenceError

logger = logging.getLogger(__name__)

EXTENSION_KEY = 'herbal_db'

DEFAULT_DB_PATH = os.path.join(
    os.path.dirname(os.path.abspath(__file__)), 'data', 'herbal_garden.db'
)


def get_db_path() -> str:
    """Get the database path from environment or default."""
    return os.environ.get('HERBAL_DB_PATH', DEFAULT_DB_PATH)


def utcnow() -> str:
    """Current time as an ISO-8601 UTC timestamp, used for created_at/updated_at."""
    return datetime.now(timezone.utc).isoformat(timespec='seconds')


SCHEMA = """
CREATE TABLE IF NOT EXISTS plants (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    botanical_name TEXT NOT NULL UNIQUE,
    common_name TEXT NOT NULL,
    family TEXT,
    genus TEXT,
    species TEXT,
    description TEXT,
    native_range TEXT,
    growth_habit TEXT,
    lifespan TEXT,
    hardiness_zones TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS plant_part (
    part_id INTEGER PRIMARY KEY AUTOINCREMENT,
    plant_id INTEGER NOT NULL REFERENCES plants(id) ON DELETE CASCADE,
    part_name TEXT NOT NULL,
    description TEXT,
    edible INTEGER DEFAULT 0,
    harvest_guidelines TEXT,
    storage_requirements TEXT,
    processing_notes TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE(plant_id, part_name)
);

CREATE TABLE IF NOT EXISTS plant_properties (
    property_id INTEGER PRIMARY KEY AUTOINCREMENT,
    plant_id INTEGER NOT NULL REFERENCES plants(id) ON DELETE CASCADE,
    zone_range TEXT,
    soil_ph_range TEXT,
    light_requirements TEXT,
    water_requirements TEXT,
    days_to_maturity INTEGER,
    height_mature_cm INTEGER,
    spread_mature_cm INTEGER,
    soil_type_preferences TEXT,
    cultivation_notes TEXT,
    pest_susceptibility TEXT,
    disease_susceptibility TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS plant_germination_guide (
    guide_id INTEGER PRIMARY KEY AUTOINCREMENT,
    plant_id INTEGER NOT NULL REFERENCES plants(id) ON DELETE CASCADE,
    zone_range TEXT,
    soil_temp_min_c REAL,
    soil_temp_max_c REAL,
    days_to_germination_min INTEGER,
    days_to_germination_max INTEGER,
    planting_depth_cm REAL,
    light_requirement TEXT,
    stratification_required INTEGER DEFAULT 0,
    stratification_instructions TEXT,
    scarification_required INTEGER DEFAULT 0,
    scarification_instructions TEXT,
    germination_notes TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE(plant_id, zone_range)
);

CREATE TABLE IF NOT EXISTS planting_guide (
    guide_id INTEGER PRIMARY KEY AUTOINCREMENT,
    plant_id INTEGER NOT NULL REFERENCES plants(id) ON DELETE CASCADE,
    spring_planting_start TEXT,
    spring_planting_end TEXT,
    fall_planting_start TEXT,
    fall_planting_end TEXT,
    indoor_sowing_start TEXT,
    transplant_ready_weeks INTEGER,
    direct_sow_after_frost INTEGER DEFAULT 0,
    frost_tolerance TEXT,
    heat_tolerance TEXT,
    succession_planting_interval INTEGER,
    companion_plants TEXT,
    incompatible_plants TEXT,
    rotation_group TEXT,
    rotation_interval INTEGER,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS herbal_action (
    action_id INTEGER PRIMARY KEY AUTOINCREMENT,
    action_name TEXT NOT NULL UNIQUE,
    description TEXT,
    scientific_basis TEXT,
    historical_context TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS plant_actions (
    plant_action_id INTEGER PRIMARY KEY AUTOINCREMENT,
    plant_id INTEGER NOT NULL REFERENCES plants(id) ON DELETE CASCADE,
    action_id INTEGER NOT NULL REFERENCES herbal_action(action_id),
    part_id INTEGER REFERENCES plant_part(part_id),
    specific_notes TEXT,
    strength_rating INTEGER CHECK (strength_rating BETWEEN 1 AND 10),
    research_references TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE(plant_id, action_id, part_id)
);

CREATE TABLE IF NOT EXISTS medicinal_properties (
    med_prop_id INTEGER PRIMARY KEY AUTOINCREMENT,
    plant_id INTEGER NOT NULL REFERENCES plants(id) ON DELETE CASCADE,
    traditional_uses TEXT,
    drug_interactions TEXT,
    safety_notes TEXT,
    preparation_methods TEXT,
    dosage_guidelines TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS plant_recipes (
    recipe_id INTEGER PRIMARY KEY AUTOINCREMENT,
    plant_id INTEGER NOT NULL REFERENCES plants(id) ON DELETE CASCADE,
    recipe_name TEXT NOT NULL,
    ingredients TEXT NOT NULL,
    instructions TEXT NOT NULL,
    preparation_time INTEGER,
    difficulty_level TEXT,
    recipe_yield TEXT,
    notes TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS seed_saving_info (
    info_id INTEGER PRIMARY KEY AUTOINCREMENT,
    plant_id INTEGER NOT NULL REFERENCES plants(id) ON DELETE CASCADE,
    seed_type TEXT,
    seed_size TEXT,
    seed_color TEXT,
    days_to_maturity TEXT,
    harvest_season TEXT,
    harvesting_instructions TEXT,
    cleaning_instructions TEXT,
    drying_instructions TEXT,
    storage_instructions TEXT,
    storage_lifespan TEXT,
    germination_requirements TEXT,
    seed_saving_difficulty TEXT,
    cross_pollination_concerns TEXT,
    isolation_distance TEXT,
    seed_yield TEXT,
    notes TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS culinary_uses (
    use_id INTEGER PRIMARY KEY AUTOINCREMENT,
    plant_id INTEGER NOT NULL REFERENCES plants(id) ON DELETE CASCADE,
    edible_parts TEXT,
    flavor_profile TEXT,
    culinary_category TEXT,
    preparation_methods TEXT,
    common_dishes TEXT,
    cuisines TEXT,
    harvesting_season TEXT,
    nutritional_info TEXT,
    substitutions TEXT,
    pairs_with TEXT,
    storage_method TEXT,
    preservation_methods TEXT,
    special_considerations TEXT,
    notes TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS cut_flower_characteristics (
    characteristic_id INTEGER PRIMARY KEY AUTOINCREMENT,
    plant_id INTEGER NOT NULL REFERENCES plants(id) ON DELETE CASCADE,
    stem_length_min REAL,
    stem_length_max REAL,
    stem_strength TEXT,
    flower_form TEXT,
    color_variations TEXT,
    fragrance_level TEXT,
    seasonal_availability TEXT,
    harvest_stage TEXT,
    ethylene_sensitivity INTEGER,
    cold_storage_temp REAL,
    transport_requirements TEXT,
    typical_vase_life_days INTEGER,
    notes TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS cut_flower_treatments (
    treatment_id INTEGER PRIMARY KEY AUTOINCREMENT,
    plant_id INTEGER NOT NULL REFERENCES plants(id) ON DELETE CASCADE,
    treatment_type TEXT,
    treatment_name TEXT,
    chemical_composition TEXT,
    concentration TEXT,
    application_method TEXT,
    duration TEXT,
    effectiveness TEXT,
    precautions TEXT,
    notes TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS western_medicine (
    property_id INTEGER PRIMARY KEY AUTOINCREMENT,
    plant_id INTEGER NOT NULL REFERENCES plants(id) ON DELETE CASCADE,
    active_compounds TEXT,
    clinical_applications TEXT,
    dosage_information TEXT,
    safety_considerations TEXT,
    drug_interactions TEXT,
    research_summary TEXT,
    category_ids TEXT,
    action_ids TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS plant_tcm_properties (
    property_id INTEGER PRIMARY KEY AUTOINCREMENT,
    plant_id INTEGER NOT NULL REFERENCES plants(id) ON DELETE CASCADE,
    chinese_name TEXT,
    pinyin_name TEXT,
    temperature_id INTEGER,
    taste_ids TEXT NOT NULL DEFAULT '[]',
    meridian_ids TEXT NOT NULL DEFAULT '[]',
    dosage_range TEXT,
    contraindications TEXT,
    preparation_methods TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS plant_ayurvedic_properties (
    property_id INTEGER PRIMARY KEY AUTOINCREMENT,
    plant_id INTEGER NOT NULL REFERENCES plants(id) ON DELETE CASCADE,
    sanskrit_name TEXT,
    common_ayurvedic_name TEXT,
    rasa_ids TEXT NOT NULL DEFAULT '[]',
    virya_id INTEGER,
    vipaka_id INTEGER,
    guna_ids TEXT NOT NULL DEFAULT '[]',
    prabhava TEXT,
    dosage_form TEXT,
    dosage_range TEXT,
    anupana TEXT,
    contraindications TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS garden_areas (
    area_id INTEGER PRIMARY KEY AUTOINCREMENT,
    area_name TEXT NOT NULL,
    description TEXT,
    total_size_sqm REAL,
    elevation_meters REAL,
    location_details TEXT,
    topography TEXT,
    microclimate_notes TEXT,
    water_access TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS plots (
    plot_id INTEGER PRIMARY KEY AUTOINCREMENT,
    area_id INTEGER REFERENCES garden_areas(area_id) ON DELETE SET NULL,
    plot_code TEXT NOT NULL UNIQUE,
    size_sqm REAL,
    orientation TEXT,
    sun_exposure TEXT,
    irrigation_type TEXT,
    notes TEXT,
    status TEXT DEFAULT 'active',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

-- Plots with beds cannot be deleted; the application checks first and the
-- RESTRICT action refuses a bed inserted concurrently.
CREATE TABLE IF NOT EXISTS garden_beds (
    bed_id INTEGER PRIMARY KEY AUTOINCREMENT,
    plot_id INTEGER NOT NULL REFERENCES plots(plot_id) ON DELETE RESTRICT,
    bed_name TEXT NOT NULL,
    bed_code TEXT NOT NULL UNIQUE,
    length_cm INTEGER,
    width_cm INTEGER,
    height_cm INTEGER,
    area_sqm REAL,
    soil_type TEXT,
    soil_depth_cm REAL,
    raised_bed INTEGER DEFAULT 0,
    irrigation_type TEXT,
    sun_exposure TEXT,
    notes TEXT,
    status TEXT DEFAULT 'active',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_garden_beds_plot ON garden_beds(plot_id);

CREATE TABLE IF NOT EXISTS plantings (
    planting_id INTEGER PRIMARY KEY AUTOINCREMENT,
    plant_id INTEGER NOT NULL REFERENCES plants(id),
    plot_id INTEGER REFERENCES plots(plot_id) ON DELETE SET NULL,
    bed_id INTEGER REFERENCES garden_beds(bed_id) ON DELETE SET NULL,
    planting_date TEXT NOT NULL,
    planting_method TEXT,
    quantity_planted INTEGER,
    spacing_cm INTEGER,
    depth_cm REAL,
    area_sqm REAL,
    notes TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS planting_plants (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    planting_id INTEGER NOT NULL REFERENCES plantings(planting_id) ON DELETE CASCADE,
    plant_id INTEGER NOT NULL REFERENCES plants(id) ON DELETE CASCADE,
    quantity INTEGER,
    x_position REAL,
    y_position REAL,
    notes TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE(planting_id, plant_id)
);

CREATE INDEX IF NOT EXISTS idx_planting_plants_planting ON planting_plants(planting_id);

CREATE TABLE IF NOT EXISTS crop_rotations (
    rotation_id INTEGER PRIMARY KEY AUTOINCREMENT,
    bed_id INTEGER NOT NULL REFERENCES garden_beds(bed_id) ON DELETE CASCADE,
    season TEXT,
    year INTEGER NOT NULL,
    plant_families TEXT,
    notes TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


SAMPLE_PLOTS = [
    ('PLOT-A', 100.5, 'North-South', 'Full sun', 'Drip irrigation', 'Main vegetable plot', 'active'),
    ('PLOT-B', 75.25, 'East-West', 'Partial shade', 'Sprinkler', 'Herb garden', 'active'),
    ('PLOT-C', 50.0, 'North-South', 'Full sun', 'Manual watering', 'Flower garden', 'active'),
    ('PLOT-D', 200.0, 'East-West', 'Mixed sun/shade', 'Soaker hose', 'Fruit trees area', 'planned'),
]


# Databases not yet garbage collected; closed together at interpreter exit.
_open_databases = weakref.WeakSet()


def close_all_databases():
    """Close every Database still alive. Registered with atexit."""
    for db in list(_open_databases):
        db.close()


atexit.register(close_all_databases)


class Database:
    """
    Pooled access to the SQLite database file.

    Connections are created lazily up to `pool_size` idle connections kept
    for reuse. `connection()` hands one out for plain reads; `transaction()`
    wraps it in BEGIN IMMEDIATE / COMMIT and rolls back on any exception.
    """

    def __init__(self, path: str, pool_size: int = 5, timeout: float = 5.0):
        self.path = path
        self.pool_size = pool_size
        self.timeout = timeout
        self._idle = []
        self._lock = threading.Lock()
        self._closed = False
        _open_databases.add(self)

    def _connect(self) -> sqlite3.Connection:
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        conn = sqlite3.connect(self.path, timeout=self.timeout, check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        conn.row_factory = sqlite3.Row
        return conn

    def _acquire(self) -> sqlite3.Connection:
        with self._lock:
            if self._closed:
                raise PersistenceError("Database has been closed.")
            if self._idle:
                return self._idle.pop()
        return self._connect()

    def _release(self, conn: sqlite3.Connection):
        if conn.in_transaction:
            conn.rollback()
        with self._lock:
            if not self._closed and len(self._idle) < self.pool_size:
                self._idle.append(conn)
                return
        conn.close()

    @contextmanager
    def connection(self):
        conn = self._acquire()
        try:
            yield conn
        finally:
            self._release(conn)

    @contextmanager
    def transaction(self):
        """Run the enclosed statements atomically."""
        with self.connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            conn.commit()

    def close(self):
        """Close all pooled connections. Further use raises PersistenceError."""
        with self._lock:
            self._closed = True
            idle, self._idle = self._idle, []
        for conn in idle:
            conn.close()

    def init_schema(self):
        """Create all tables and indexes if they don't exist."""
        with self.connection() as conn:
            conn.executescript(SCHEMA)
            conn.commit()

    def seed_sample_plots(self) -> int:
        """Insert the sample plots when the plots table is empty. Returns rows inserted."""
        with self.transaction() as conn:
            existing = conn.execute("SELECT COUNT(*) FROM plots").fetchone()[0]
            if existing:
                return 0
            now = utcnow()
            conn.executemany(
                """INSERT INTO plots (plot_code, size_sqm, orientation, sun_exposure,
                   irrigation_type, notes, status, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                [plot + (now, now) for plot in SAMPLE_PLOTS]
            )
        return len(SAMPLE_PLOTS)

    def check_health(self):
        """Returns (is_healthy, message)."""
        try:
            with self.connection() as conn:
                count = conn.execute("SELECT COUNT(*) FROM plants").fetchone()[0]
            return True, f"Database OK ({count} plants)"
        except sqlite3.Error as e:
            return False, f"Database error: {e}"


def get_database() -> Database:
    """The Database attached to the current Flask app."""
    return current_app.extensions[EXTENSION_KEY]


def describe_integrity_error(error: sqlite3.IntegrityError) -> str:
    """Turn an SQLite constraint message into something a user can act on."""
    text = str(error)
    if text.startswith('UNIQUE constraint failed:'):
        columns = text.split(':', 1)[1].strip()
        return f"A record with the same values already exists ({columns})."
    if text.startswith('FOREIGN KEY constraint failed'):
        return "A referenced record does not exist, or this record is still referenced by others."
    if text.startswith('CHECK constraint failed'):
        return f"A value is outside its allowed range ({text.split(':', 1)[-1].strip()})."
    if text.startswith('NOT NULL constraint failed:'):
        return f"A required value is missing ({text.split(':', 1)[1].strip()})."
    return f"Constraint violation: {text}"


@contextmanager
def translate_errors(action: str):
    """
    Map sqlite3 exceptions raised in the block onto the error taxonomy.

    IntegrityError becomes ConflictError; any other sqlite3.Error is logged
    and becomes PersistenceError. Errors from the taxonomy pass through.
    """
    try:
        yield
    except AdminError:
        raise
    except sqlite3.IntegrityError as e:
        logger.info("Constraint violation while %s: %s", action, e)
        raise ConflictError(describe_integrity_error(e)) from e
    except sqlite3.Error as e:
        logger.error("Database error while %s", action, exc_info=True)
        raise PersistenceError(f"Database error while {action}.") from e
