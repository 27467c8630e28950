"""
app.py — Flask entry point for the herbal garden admin application.

Initializes the Flask app, creates the SQLite schema, attaches the Database
to the app, registers all route blueprints, adds the `init-db` and
`seed-plots` CLI commands and injects i18n strings into template context.

Run: python app.py → localhost:5000
"""

import json
import os

import click
from flask import Flask
from flask_wtf.csrf import CSRFProtect

from database import EXTENSION_KEY, Database, get_database, get_db_path
from models import RESOURCE_GROUPS, RESOURCES
from routes.admin import admin_bp
from routes.api import api_bp
from routes.garden import garden_api_bp
from routes.main import main_bp
from routes.plantings import plantings_admin_bp, plantings_api_bp


def create_app(test_config=None):
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_mapping(
        SECRET_KEY=os.environ.get('FLASK_SECRET_KEY', 'herbal-garden-local-app-secret-key'),
        DATABASE=get_db_path(),
        WTF_CSRF_CHECK_DEFAULT=True,
        TEMPLATES_AUTO_RELOAD=True,
    )

    if test_config:
        app.config.update(test_config)

    csrf = CSRFProtect(app)

    # One pooled Database per app; database.close_all_databases closes it at exit
    db = Database(app.config['DATABASE'])
    db.init_schema()
    app.extensions[EXTENSION_KEY] = db

    # Register blueprints
    app.register_blueprint(main_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(plantings_admin_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(garden_api_bp)
    app.register_blueprint(plantings_api_bp)

    # JSON clients do not carry a CSRF token
    csrf.exempt(api_bp)
    csrf.exempt(garden_api_bp)
    csrf.exempt(plantings_api_bp)

    # Load i18n strings
    base_dir = os.path.dirname(os.path.abspath(__file__))
    i18n_path = os.path.join(base_dir, 'i18n', 'en.json')
    with open(i18n_path, 'r', encoding='utf-8') as f:
        i18n = json.load(f)

    nav_groups = [
        (title, [RESOURCES[name] for name in names])
        for title, names in RESOURCE_GROUPS
    ]

    @app.context_processor
    def inject_i18n():
        """Inject UI strings and the navigation sections into all templates."""
        return {'i18n': i18n, 'nav_groups': nav_groups}

    @app.cli.command('init-db')
    def init_db_command():
        """Create all tables if they don't exist."""
        get_database().init_schema()
        click.echo(f"Initialized database at {app.config['DATABASE']}")

    @app.cli.command('seed-plots')
    def seed_plots_command():
        """Insert the sample plots when no plot exists yet."""
        inserted = get_database().seed_sample_plots()
        if inserted:
            click.echo(f"Inserted {inserted} sample plots.")
        else:
            click.echo("Plots already present, nothing inserted.")

    app.logger.info("Herbal garden admin ready (database: %s)", app.config['DATABASE'])
    return app


if __name__ == '__main__':
    app = create_app()
    # Debug mode: enabled by default for development (auto-reload on file changes)
    # Set FLASK_DEBUG=0 to disable for production
    debug = os.environ.get('FLASK_DEBUG', '1') != '0'
    app.run(host='localhost', port=5000, debug=debug)
