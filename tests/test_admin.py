"""
tests/test_admin.py — Tests for the HTML admin pages.

Tests cover:
- List, detail and form pages render for every resource
- Create/edit/delete through form posts, with flash messages
- Failed submissions re-render the form with the entered values
- Planting forms with repeated companion rows
- CSRF protection on HTML forms (and not on the JSON API)
"""

import os
import tempfile

import pytest

from app import create_app
from database import EXTENSION_KEY
from models import RESOURCES
from plantings import PlantingRepository
from repository import get_repository


def make_app(db_path, **config):
    settings = {
        'TESTING': True,
        'DATABASE': db_path,
        'SECRET_KEY': 'dev-key-for-testing',
        'WTF_CSRF_ENABLED': False,
    }
    settings.update(config)
    return create_app(settings)


@pytest.fixture
def db_path():
    db_fd, path = tempfile.mkstemp(suffix='.db')
    yield path
    os.close(db_fd)
    for suffix in ('', '-wal', '-shm'):
        try:
            os.unlink(path + suffix)
        except FileNotFoundError:
            pass


@pytest.fixture
def app(db_path):
    app = make_app(db_path)
    yield app
    app.extensions[EXTENSION_KEY].close()


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture
def db(app):
    return app.extensions[EXTENSION_KEY]


@pytest.fixture
def plant(db):
    return get_repository(db, 'plants').create({'botanical_name': 'Achillea millefolium', 'common_name': 'Yarrow'})


# ========================================
# Page rendering
# ========================================

@pytest.mark.parametrize('name', list(RESOURCES))
def test_list_and_new_pages(client, name):
    path = RESOURCES[name].path
    assert client.get(f'/admin/{path}').status_code == 200
    assert client.get(f'/admin/{path}/new').status_code == 200


def test_plant_detail_lists_children(client, db, plant):
    get_repository(db, 'parts').create({'plant_id': plant['id'], 'part_name': 'Flowering tops'})
    get_repository(db, 'recipes').create({
        'plant_id': plant['id'],
        'recipe_name': 'Yarrow tea',
        'ingredients': 'Dried yarrow',
        'instructions': 'Steep 10 minutes',
    })

    rv = client.get(f"/admin/plants/{plant['id']}")
    assert rv.status_code == 200
    assert b'Achillea millefolium' in rv.data
    assert b'Flowering tops' in rv.data
    assert b'Yarrow tea' in rv.data
    assert f"plantId={plant['id']}".encode() in rv.data


def test_detail_missing_redirects(client):
    rv = client.get('/admin/plants/99', follow_redirects=True)
    assert rv.status_code == 200
    assert b'Plant not found.' in rv.data


def test_detail_oversized_id_redirects(client):
    rv = client.get('/admin/plants/99999999999999999999', follow_redirects=True)
    assert rv.status_code == 200
    assert b'out of range' in rv.data


def test_oversized_value_keeps_values(client, plant):
    rv = client.post('/admin/growing/new', data={'plantId': str(plant['id']), 'daysToMaturity': '9' * 20})
    assert rv.status_code == 400
    assert b'out of range' in rv.data


def test_new_form_prefilled_from_query(client, plant):
    rv = client.get(f"/admin/parts/new?plantId={plant['id']}")
    assert rv.status_code == 200
    assert f'<option value="{plant["id"]}" selected>'.encode() in rv.data


def test_new_plot_form_suggests_code(client, db):
    get_repository(db, 'plots').create({'plot_code': 'PLOT-4'})
    rv = client.get('/admin/garden/plots/new')
    assert b'value="PLOT-5"' in rv.data


def test_dashboard_counts(client, plant):
    rv = client.get('/')
    assert rv.status_code == 200
    assert b'Plants' in rv.data
    assert b'1 records' in rv.data


# ========================================
# Form posts
# ========================================

class TestResourceForms:
    """Create, edit and delete through HTML forms."""

    def test_create_redirects_to_detail(self, client, db):
        rv = client.post('/admin/plants/new', data={
            'botanicalName': 'Calendula officinalis',
            'commonName': 'Pot marigold',
        })
        assert rv.status_code == 302
        plant = get_repository(db, 'plants').list_all()[0]
        assert rv.headers['Location'].endswith(f"/admin/plants/{plant['id']}")

    def test_create_flashes_success(self, client):
        rv = client.post('/admin/herbal-actions/new', data={'actionName': 'Astringent'}, follow_redirects=True)
        assert rv.status_code == 200
        assert b'Herbal Action created.' in rv.data

    def test_failed_create_keeps_values(self, client, db):
        rv = client.post('/admin/plants/new', data={'botanicalName': 'Calendula officinalis'})
        assert rv.status_code == 400
        assert b'Common name is required.' in rv.data
        assert b'value="Calendula officinalis"' in rv.data
        assert get_repository(db, 'plants').count() == 0

    def test_malformed_value_keeps_values(self, client, plant):
        rv = client.post('/admin/growing/new', data={'plantId': str(plant['id']), 'daysToMaturity': 'soon'})
        assert rv.status_code == 400
        assert b'value="soon"' in rv.data

    def test_conflict_rerenders_form(self, client, plant):
        rv = client.post('/admin/plants/new', data={
            'botanicalName': 'Achillea millefolium',
            'commonName': 'Yarrow again',
        })
        assert rv.status_code == 400
        assert b'already exists' in rv.data

    def test_edit(self, client, db, plant):
        rv = client.get(f"/admin/plants/edit/{plant['id']}")
        assert rv.status_code == 200
        assert b'value="Yarrow"' in rv.data

        rv = client.post(f"/admin/plants/edit/{plant['id']}", data={
            'botanicalName': 'Achillea millefolium',
            'commonName': 'Common yarrow',
            'family': 'Asteraceae',
        })
        assert rv.status_code == 302
        updated = get_repository(db, 'plants').get(plant['id'])
        assert updated['common_name'] == 'Common yarrow'
        assert updated['family'] == 'Asteraceae'

    def test_edit_unchecks_checkbox(self, client, db, plant):
        part = get_repository(db, 'parts').create({'plant_id': plant['id'], 'part_name': 'Leaf', 'edible': True})
        client.post(f"/admin/parts/edit/{part['part_id']}", data={
            'plantId': str(plant['id']),
            'partName': 'Leaf',
        })
        assert get_repository(db, 'parts').get(part['part_id'])['edible'] is False

    def test_edit_missing_redirects(self, client):
        rv = client.get('/admin/recipes/edit/5', follow_redirects=True)
        assert b'Recipe not found.' in rv.data

    def test_delete(self, client, db, plant):
        rv = client.post(f"/admin/plants/delete/{plant['id']}", follow_redirects=True)
        assert rv.status_code == 200
        assert b'Plant deleted.' in rv.data
        assert get_repository(db, 'plants').count() == 0

    def test_delete_plot_with_beds_refused(self, client, db):
        plot = get_repository(db, 'plots').create({'plot_code': 'PLOT-1'})
        get_repository(db, 'garden_beds').create({'plot_id': plot['plot_id'], 'bed_name': 'Bed', 'bed_code': 'B-1'})

        rv = client.post(f"/admin/garden/plots/delete/{plot['plot_id']}")
        assert rv.status_code == 302
        assert rv.headers['Location'].endswith(f"/admin/garden/plots/{plot['plot_id']}")

        rv = client.get(rv.headers['Location'])
        assert b'Cannot delete plot with 1 associated garden bed(s)' in rv.data
        assert get_repository(db, 'plots').count() == 1

    def test_delete_requires_post(self, client, plant):
        assert client.get(f"/admin/plants/delete/{plant['id']}").status_code == 405


# ========================================
# Plantings
# ========================================

class TestPlantingForms:
    """Planting pages with companion rows."""

    @pytest.fixture
    def plants(self, db):
        repo = get_repository(db, 'plants')
        return [
            repo.create({'botanical_name': name, 'common_name': name})['id']
            for name in ('Solanum lycopersicum', 'Ocimum basilicum', 'Tagetes patula')
        ]

    def test_pages_render(self, client, plants):
        assert client.get('/admin/garden/plantings').status_code == 200
        rv = client.get('/admin/garden/plantings/new')
        assert rv.status_code == 200
        assert b'name="companionPlantId"' in rv.data

    def test_create_with_companions(self, client, db, plants):
        tomato, basil, marigold = plants
        rv = client.post('/admin/garden/plantings/new', data={
            'plantId': str(tomato),
            'plantingDate': '2024-04-15',
            'companionPlantId': [str(basil), str(marigold), ''],
            'companionQuantity': ['3', '', ''],
            'companionXPosition': ['', '', ''],
            'companionYPosition': ['', '', ''],
            'companionNotes': ['', 'border', ''],
        })
        assert rv.status_code == 302

        planting = PlantingRepository(db).list_all()[0]
        companions = PlantingRepository(db).list_companions(planting['planting_id'])
        assert sorted(c['plant_id'] for c in companions) == [basil, marigold]

        rv = client.get(rv.headers['Location'])
        assert b'Ocimum basilicum' in rv.data
        assert b'border' in rv.data

    def test_edit_replaces_companions(self, client, db, plants):
        tomato, basil, marigold = plants
        repo = PlantingRepository(db)
        planting = repo.create({'plant_id': tomato, 'planting_date': '2024-04-15'}, [{'plant_id': basil}])

        rv = client.get(f"/admin/garden/plantings/edit/{planting['planting_id']}")
        assert rv.status_code == 200

        rv = client.post(f"/admin/garden/plantings/edit/{planting['planting_id']}", data={
            'plantId': str(tomato),
            'plantingDate': '2024-04-15',
            'companionPlantId': [str(marigold)],
        })
        assert rv.status_code == 302
        assert [c['plant_id'] for c in repo.list_companions(planting['planting_id'])] == [marigold]

    def test_edit_with_blank_rows_clears_companions(self, client, db, plants):
        tomato, basil, _ = plants
        repo = PlantingRepository(db)
        planting = repo.create({'plant_id': tomato, 'planting_date': '2024-04-15'}, [{'plant_id': basil}])

        client.post(f"/admin/garden/plantings/edit/{planting['planting_id']}", data={
            'plantId': str(tomato),
            'plantingDate': '2024-04-15',
            'companionPlantId': [''],
        })
        assert repo.list_companions(planting['planting_id']) == []

    def test_duplicate_companion_rerenders(self, client, db, plants):
        tomato, basil, _ = plants
        rv = client.post('/admin/garden/plantings/new', data={
            'plantId': str(tomato),
            'plantingDate': '2024-04-15',
            'notes': 'keep me',
            'companionPlantId': [str(basil), str(basil)],
        })
        assert rv.status_code == 400
        assert b'already exists' in rv.data
        assert b'keep me' in rv.data
        assert PlantingRepository(db).count() == 0

    def test_delete(self, client, db, plants):
        tomato, basil, _ = plants
        repo = PlantingRepository(db)
        planting = repo.create({'plant_id': tomato, 'planting_date': '2024-04-15'}, [{'plant_id': basil}])

        rv = client.post(f"/admin/garden/plantings/delete/{planting['planting_id']}", follow_redirects=True)
        assert b'Planting deleted.' in rv.data
        assert repo.count() == 0


# ========================================
# CSRF
# ========================================

class TestCsrf:
    """CSRF protection applies to HTML forms only."""

    @pytest.fixture
    def csrf_client(self, db_path):
        app = make_app(db_path, WTF_CSRF_ENABLED=True)
        with app.test_client() as client:
            yield client
        app.extensions[EXTENSION_KEY].close()

    def test_form_post_without_token_rejected(self, csrf_client):
        rv = csrf_client.post('/admin/herbal-actions/new', data={'actionName': 'Tonic'})
        assert rv.status_code == 400

    def test_api_is_exempt(self, csrf_client):
        rv = csrf_client.post('/api/herbal-actions', json={'actionName': 'Tonic'})
        assert rv.status_code == 201
