"""
tests/test_api.py — Tests for the JSON API.

Tests cover:
- Planting create/read/update/delete with companion plants
- Generic resource CRUD, camelCase payloads and error responses
- Plot helpers (next code, beds by plot) and the plot deletion guard
"""

import os
import tempfile

import pytest

from app import create_app
from database import EXTENSION_KEY
from repository import get_repository


@pytest.fixture
def app():
    db_fd, db_path = tempfile.mkstemp(suffix='.db')

    app = create_app({
        'TESTING': True,
        'DATABASE': db_path,
        'SECRET_KEY': 'dev-key-for-testing',
        'WTF_CSRF_ENABLED': False,
    })

    yield app

    # Cleanup
    app.extensions[EXTENSION_KEY].close()
    os.close(db_fd)
    for suffix in ('', '-wal', '-shm'):
        try:
            os.unlink(db_path + suffix)
        except FileNotFoundError:
            pass


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture
def garden(app):
    """7 plants, plot 1 and beds 1 and 2."""
    db = app.extensions[EXTENSION_KEY]
    plants = get_repository(db, 'plants')
    for i in range(1, 8):
        plants.create({'botanical_name': f'Herba testa {i}', 'common_name': f'Test herb {i}'})
    get_repository(db, 'plots').create({'plot_code': 'PLOT-1'})
    beds = get_repository(db, 'garden_beds')
    beds.create({'plot_id': 1, 'bed_name': 'North bed', 'bed_code': 'B-1'})
    beds.create({'plot_id': 1, 'bed_name': 'South bed', 'bed_code': 'B-2'})
    return db


def planting_payload(**overrides):
    payload = {'plantId': 5, 'plotId': 1, 'bedId': 2, 'plantingDate': '2024-03-01', 'quantityPlanted': 10}
    payload.update(overrides)
    return payload


# ========================================
# Plantings
# ========================================

class TestPlantingsApi:
    """Tests for /api/garden/plantings."""

    def test_create_then_clear_companions(self, client, garden):
        payload = planting_payload(companionPlants=[
            {'plantId': 7, 'quantity': 2, 'xPosition': 0, 'yPosition': 0},
        ])
        rv = client.post('/api/garden/plantings', json=payload)
        assert rv.status_code == 201
        created = rv.get_json()
        assert created['plantingId']
        assert len(created['companionPlants']) == 1
        companion = created['companionPlants'][0]
        assert companion['plantId'] == 7
        assert companion['plantingId'] == created['plantingId']
        assert companion['id']
        assert companion['createdAt']

        planting_id = created['plantingId']
        rv = client.put(f'/api/garden/plantings/{planting_id}', json={'companionPlants': []})
        assert rv.status_code == 200
        assert rv.get_json()['companionPlants'] == []

        rv = client.get(f'/api/garden/plantings/{planting_id}')
        assert rv.status_code == 200
        assert rv.get_json()['companionPlants'] == []
        assert rv.get_json()['quantityPlanted'] == 10

    def test_update_without_companions_key_keeps_them(self, client, garden):
        created = client.post('/api/garden/plantings', json=planting_payload(
            companionPlants=[{'plantId': 7}]
        )).get_json()

        rv = client.put(f"/api/garden/plantings/{created['plantingId']}", json={'notes': 'mulched'})
        assert rv.status_code == 200
        body = rv.get_json()
        assert body['notes'] == 'mulched'
        assert [c['plantId'] for c in body['companionPlants']] == [7]

    def test_duplicate_companion_rejected(self, client, garden):
        rv = client.post('/api/garden/plantings', json=planting_payload(
            companionPlants=[{'plantId': 7}, {'plantId': 7}]
        ))
        assert rv.status_code == 400
        assert 'error' in rv.get_json()
        assert client.get('/api/garden/plantings').get_json() == []

    def test_missing_planting_date(self, client, garden):
        payload = planting_payload()
        del payload['plantingDate']
        rv = client.post('/api/garden/plantings', json=payload)
        assert rv.status_code == 400
        assert rv.get_json()['field'] == 'plantingDate'

    def test_companions_must_be_list(self, client, garden):
        rv = client.post('/api/garden/plantings', json=planting_payload(companionPlants={'plantId': 7}))
        assert rv.status_code == 400

    def test_companion_must_be_object(self, client, garden):
        rv = client.post('/api/garden/plantings', json=planting_payload(companionPlants=[7]))
        assert rv.status_code == 400
        assert 'Companion plant #1' in rv.get_json()['error']

    def test_body_must_be_json(self, client, garden):
        rv = client.post('/api/garden/plantings', data='not json', content_type='application/json')
        assert rv.status_code == 400

    def test_get_missing(self, client, garden):
        rv = client.get('/api/garden/plantings/999')
        assert rv.status_code == 404
        assert rv.get_json() == {'error': 'Planting not found.'}

    def test_update_missing(self, client, garden):
        rv = client.put('/api/garden/plantings/999', json={'notes': 'x'})
        assert rv.status_code == 404

    def test_non_numeric_id(self, client, garden):
        rv = client.get('/api/garden/plantings/abc')
        assert rv.status_code == 400

    def test_oversized_id(self, client, garden):
        rv = client.get('/api/garden/plantings/99999999999999999999')
        assert rv.status_code == 400
        assert 'out of range' in rv.get_json()['error']
        assert client.delete('/api/garden/plantings/99999999999999999999').status_code == 400

    def test_oversized_plant_id(self, client, garden):
        rv = client.post('/api/garden/plantings', json=planting_payload(plantId=99999999999999999999))
        assert rv.status_code == 400
        assert rv.get_json()['field'] == 'plantId'
        assert client.get('/api/garden/plantings').get_json() == []

    def test_oversized_companion_plant_id(self, client, garden):
        rv = client.post('/api/garden/plantings', json=planting_payload(
            companionPlants=[{'plantId': 2 ** 64}]
        ))
        assert rv.status_code == 400
        assert client.get('/api/garden/plantings').get_json() == []

    def test_planting_date_with_trailing_text(self, client, garden):
        rv = client.post('/api/garden/plantings', json=planting_payload(plantingDate='2024-03-01garbage'))
        assert rv.status_code == 400
        assert rv.get_json()['field'] == 'plantingDate'
        assert client.get('/api/garden/plantings').get_json() == []

    def test_delete(self, client, garden):
        created = client.post('/api/garden/plantings', json=planting_payload(
            companionPlants=[{'plantId': 7}, {'plantId': 6}]
        )).get_json()

        rv = client.delete(f"/api/garden/plantings/{created['plantingId']}")
        assert rv.status_code == 200
        assert rv.get_json() == {'success': True}
        assert client.get(f"/api/garden/plantings/{created['plantingId']}").status_code == 404

        with garden.connection() as conn:
            assert conn.execute("SELECT COUNT(*) FROM planting_plants").fetchone()[0] == 0

    def test_delete_missing_succeeds(self, client, garden):
        rv = client.delete('/api/garden/plantings/999')
        assert rv.status_code == 200
        assert rv.get_json() == {'success': True}

    def test_list(self, client, garden):
        client.post('/api/garden/plantings', json=planting_payload())
        rv = client.get('/api/garden/plantings')
        assert rv.status_code == 200
        plantings = rv.get_json()
        assert len(plantings) == 1
        assert plantings[0]['plantName'] == 'Herba testa 5'
        assert plantings[0]['bedName'] == 'South bed'


# ========================================
# Generic resources
# ========================================

class TestResourceApi:
    """Tests for /api/<path>."""

    def test_plant_crud(self, client):
        rv = client.post('/api/plants', json={'botanicalName': 'Melissa officinalis', 'commonName': 'Lemon balm'})
        assert rv.status_code == 201
        plant = rv.get_json()
        assert plant['botanicalName'] == 'Melissa officinalis'
        plant_id = plant['id']

        rv = client.get(f'/api/plants/{plant_id}')
        assert rv.get_json() == plant

        rv = client.put(f'/api/plants/{plant_id}', json={'family': 'Lamiaceae'})
        assert rv.status_code == 200
        assert rv.get_json()['family'] == 'Lamiaceae'
        assert rv.get_json()['commonName'] == 'Lemon balm'

        assert len(client.get('/api/plants').get_json()) == 1

        rv = client.delete(f'/api/plants/{plant_id}')
        assert rv.get_json() == {'success': True}
        assert client.get(f'/api/plants/{plant_id}').status_code == 404

    def test_child_resource_with_arrays(self, client, garden):
        rv = client.post('/api/culinary', json={
            'plantId': 3,
            'edibleParts': ['leaves'],
            'cuisines': 'Thai, Vietnamese',
        })
        assert rv.status_code == 201
        use = rv.get_json()
        assert use['edibleParts'] == ['leaves']
        assert use['cuisines'] == ['Thai', 'Vietnamese']
        assert use['plantName'] == 'Herba testa 3'

    def test_missing_required_field(self, client):
        rv = client.post('/api/plants', json={'botanicalName': 'Salvia officinalis'})
        assert rv.status_code == 400
        body = rv.get_json()
        assert body['field'] == 'commonName'
        assert 'required' in body['error']

    def test_malformed_value(self, client, garden):
        rv = client.post('/api/garden/crop-rotations', json={'bedId': 1, 'year': 'next'})
        assert rv.status_code == 400

    def test_duplicate_is_conflict(self, client, garden):
        rv = client.post('/api/garden/plots', json={'plotCode': 'PLOT-1'})
        assert rv.status_code == 400
        assert 'already exists' in rv.get_json()['error']

    def test_not_found(self, client):
        rv = client.get('/api/recipes/12')
        assert rv.status_code == 404
        assert rv.get_json() == {'error': 'Recipe not found.'}
        assert client.put('/api/recipes/12', json={'notes': 'x'}).status_code == 404
        assert client.delete('/api/recipes/12').status_code == 404

    def test_non_numeric_id(self, client):
        rv = client.get('/api/plants/abc')
        assert rv.status_code == 400
        assert 'error' in rv.get_json()

    def test_oversized_id(self, client):
        rv = client.get('/api/plants/99999999999999999999')
        assert rv.status_code == 400
        assert 'error' in rv.get_json()

    def test_oversized_integer_value(self, client, garden):
        rv = client.post('/api/garden/crop-rotations', json={'bedId': 1, 'year': 10 ** 30})
        assert rv.status_code == 400
        assert rv.get_json()['field'] == 'year'

    def test_every_resource_lists(self, app, client):
        from models import RESOURCES
        for resource in RESOURCES.values():
            rv = client.get(f'/api/{resource.path}')
            assert rv.status_code == 200, resource.path
            assert rv.get_json() == []


# ========================================
# Garden helpers
# ========================================

class TestGardenApi:
    """Plot guard, next plot code and beds by plot."""

    def test_delete_plot_with_beds(self, client, garden):
        rv = client.delete('/api/garden/plots/1')
        assert rv.status_code == 400
        assert 'Cannot delete plot with 2 associated garden bed(s)' in rv.get_json()['error']
        assert client.get('/api/garden/plots/1').status_code == 200

    def test_delete_plot_after_beds(self, client, garden):
        client.delete('/api/garden/beds/1')
        client.delete('/api/garden/beds/2')
        rv = client.delete('/api/garden/plots/1')
        assert rv.status_code == 200
        assert client.get('/api/garden/plots/1').status_code == 404

    def test_next_plot_code(self, client, garden):
        rv = client.get('/api/garden/plots/next-code')
        assert rv.status_code == 200
        assert rv.get_json() == {'plotCode': 'PLOT-2'}

    def test_beds_by_plot(self, client, garden):
        rv = client.get('/api/garden/beds/by-plot/1')
        assert rv.status_code == 200
        assert sorted(b['bedCode'] for b in rv.get_json()) == ['B-1', 'B-2']

    def test_beds_by_unknown_plot(self, client, garden):
        assert client.get('/api/garden/beds/by-plot/99').status_code == 404
