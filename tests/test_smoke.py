import pytest
from app import create_app
from database import EXTENSION_KEY
import os
import tempfile

@pytest.fixture
def app():
    # Create a temporary file to isolate the database for each test session
    db_fd, db_path = tempfile.mkstemp(suffix='.db')

    # Configure app for testing
    app = create_app({
        'TESTING': True,
        'DATABASE': db_path,
        'SECRET_KEY': 'dev-key-for-testing'
    })

    yield app

    # Cleanup
    app.extensions[EXTENSION_KEY].close()
    os.close(db_fd)
    for suffix in ('', '-wal', '-shm'):
        if os.path.exists(db_path + suffix):
            os.unlink(db_path + suffix)

@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client

def test_homepage_loads(client):
    """Test that the homepage loads successfully."""
    rv = client.get('/')
    assert rv.status_code == 200
    assert b'DOCTYPE html' in rv.data
    assert b'Herbal Garden Admin' in rv.data

def test_static_assets(client):
    """Test that static assets like CSS and JS are accessible."""
    assert client.get('/static/style.css').status_code == 200
    assert client.get('/static/js/admin.js').status_code == 200

def test_plantings_page(client):
    """Test that the plantings page loads."""
    rv = client.get('/admin/garden/plantings')
    assert rv.status_code == 200

def test_api_returns_json(client):
    rv = client.get('/api/plants')
    assert rv.status_code == 200
    assert rv.is_json

def test_seed_plots_command(app):
    """The seed-plots command inserts the sample plots once."""
    runner = app.test_cli_runner()
    result = runner.invoke(args=['seed-plots'])
    assert 'Inserted 4 sample plots.' in result.output

    result = runner.invoke(args=['seed-plots'])
    assert 'nothing inserted' in result.output

def test_init_db_command(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=['init-db'])
    assert result.exit_code == 0
    assert 'Initialized database' in result.output
