"""
Tests for the JSON routes
"""
import pytest


@pytest.fixture
def stocked(make_item, make_warehouse_item):
    flour = make_item('Flour', current_stock=10, unit_cost=2)
    sugar = make_item('Sugar', current_stock=4)
    make_warehouse_item(sugar, reorder_min=2, reorder_max=10)
    return flour, sugar


def _start(client, team, warehouse=None, **extra):
    payload = {'name': 'Shelf count', 'team_id': team.id}
    if warehouse is not None:
        payload['warehouse_id'] = warehouse.id
    payload.update(extra)
    response = client.post('/counts/', json=payload)
    assert response.status_code == 201
    return response.get_json()['count']


def test_health(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.get_json() == {'status': 'ok'}


def test_unknown_url_is_json_404(client):
    response = client.get('/nowhere')
    assert response.status_code == 404
    assert response.get_json()['code'] == 'not_found'


class TestCountRoutes:

    def test_start_and_list(self, client, team, stocked):
        count = _start(client, team)

        assert count['status'] == 'in_progress'
        assert count['total_items_count'] == 2

        listing = client.get('/counts/').get_json()['counts']
        assert [c['id'] for c in listing] == [count['id']]

    def test_start_from_unknown_template(self, client, team, stocked):
        response = client.post('/counts/', json={'team_id': team.id, 'template_id': 999})

        assert response.status_code == 404
        assert response.get_json()['code'] == 'not_found'

    def test_start_with_nothing_to_count(self, client, team):
        response = client.post('/counts/', json={'team_id': team.id})

        assert response.status_code == 400
        assert response.get_json()['code'] == 'invalid_source'

    def test_update_item_returns_aggregates(self, client, team, stocked):
        flour, _ = stocked
        count = _start(client, team)

        response = client.put(f"/counts/{count['id']}/items/{flour.id}", json={'actual_quantity': '8'})

        assert response.status_code == 200
        body = response.get_json()
        assert body['item']['actual_quantity'] == 8.0
        assert body['aggregates']['counted_items_count'] == 1
        assert body['aggregates']['variance_count'] == 1
        assert body['aggregates']['completion_percentage'] == 50.0

    def test_invalid_quantity_is_400(self, client, team, stocked):
        flour, _ = stocked
        count = _start(client, team)

        response = client.put(f"/counts/{count['id']}/items/{flour.id}", json={'actual_quantity': -3})

        assert response.status_code == 400
        assert response.get_json()['code'] == 'invalid_quantity'

    def test_items_listing(self, client, team, warehouse, stocked):
        flour, sugar = stocked
        count = _start(client, team, warehouse)
        client.put(f"/counts/{count['id']}/items/{sugar.id}", json={'actual_quantity': 12})

        items = client.get(f"/counts/{count['id']}/items").get_json()['items']
        by_item = {row['item_id']: row for row in items}

        assert by_item[sugar.id]['status'] == 'over_stock'
        assert by_item[sugar.id]['maximum_source'] == 'warehouse'
        assert by_item[flour.id]['status'] is None

    def test_lifecycle_and_state_errors(self, client, team, stocked):
        flour, _ = stocked
        count = _start(client, team)
        base = f"/counts/{count['id']}"

        response = client.post(f'{base}/complete')
        assert response.status_code == 409
        assert response.get_json()['code'] == 'empty_count'

        response = client.post(f'{base}/void', json={'reason': 'too early'})
        assert response.status_code == 409
        assert response.get_json()['code'] == 'not_completed'

        client.put(f'{base}/items/{flour.id}', json={'actual_quantity': 9})
        response = client.post(f'{base}/complete')
        assert response.status_code == 200
        assert response.get_json()['count']['status'] == 'completed'

        response = client.put(f'{base}/items/{flour.id}', json={'actual_quantity': 1})
        assert response.status_code == 409
        assert response.get_json()['code'] == 'session_closed'

        response = client.post(f'{base}/void', json={'reason': 'miscounted'})
        assert response.get_json()['count']['is_voided'] is True

        response = client.post(f'{base}/void', json={'reason': 'again'})
        assert response.status_code == 409
        assert response.get_json()['code'] == 'already_voided'

        financial = client.get(f'{base}/financial').get_json()
        assert financial['is_excluded'] is True
        assert financial['total_financial_impact'] == 0
        assert len(financial['items']) == 2

        actions = [e['action'] for e in client.get(f'{base}/audit').get_json()['entries']]
        assert actions[0] == 'create'
        assert actions[-1] == 'void'

    def test_cancel(self, client, team, stocked):
        count = _start(client, team)

        response = client.post(f"/counts/{count['id']}/cancel", json={'reason': 'wrong day'})

        assert response.status_code == 200
        assert response.get_json()['count']['status'] == 'cancelled'
        assert response.get_json()['count']['notes'] == 'wrong day'

    def test_bulk_update(self, client, team, stocked):
        flour, sugar = stocked
        count = _start(client, team)

        response = client.post(f"/counts/{count['id']}/items/bulk", json={'updates': [
            {'item_id': flour.id, 'actual_quantity': 10},
            {'item_id': sugar.id, 'actual_quantity': 4},
        ]})

        assert response.get_json() == {'updated': 2}
        detail = client.get(f"/counts/{count['id']}").get_json()
        assert detail['aggregates']['completion_percentage'] == 100.0
        assert detail['aggregates']['variance_count'] == 0

    def test_bulk_update_malformed_entry_is_400(self, client, team, stocked):
        count = _start(client, team)

        response = client.post(f"/counts/{count['id']}/items/bulk", json={'updates': [5]})

        assert response.status_code == 400
        assert response.get_json()['code'] == 'invalid_update'

    def test_compare_with_previous(self, client, team, stocked):
        flour, _ = stocked
        first = _start(client, team)
        client.put(f"/counts/{first['id']}/items/{flour.id}", json={'actual_quantity': 7})
        client.post(f"/counts/{first['id']}/complete")
        second = _start(client, team)
        client.put(f"/counts/{second['id']}/items/{flour.id}", json={'actual_quantity': 10})
        client.post(f"/counts/{second['id']}/complete")

        body = client.get(f"/counts/{second['id']}/compare").get_json()

        assert body['previous_session_id'] == first['id']
        assert body['metrics']['variance_count'] == {'current': 0, 'previous': 1, 'change': -1}
        flour_row = next(row for row in body['items'] if row['item_id'] == flour.id)
        assert flour_row['quantity_change'] == 3.0
        assert flour_row['value_change'] == 6.0

    def test_unknown_count_is_404(self, client):
        response = client.get('/counts/4040')
        assert response.status_code == 404
        assert response.get_json()['code'] == 'not_found'

    def test_financial_report(self, client, team, stocked):
        flour, _ = stocked
        count = _start(client, team)
        client.put(f"/counts/{count['id']}/items/{flour.id}", json={'actual_quantity': 7})
        client.post(f"/counts/{count['id']}/complete")

        summary = client.get(f'/counts/reports/financial?team_id={team.id}').get_json()

        assert summary['completed_sessions'] == 1
        assert summary['total_financial_impact'] == -6.0
        assert summary['sessions'][0]['session_id'] == count['id']


class TestWarehouseRoutes:

    def test_day_settings_roundtrip(self, client, warehouse, stocked):
        _, sugar = stocked
        base = f'/warehouse/{warehouse.id}/items/{sugar.id}'

        response = client.put(f'{base}/settings/6', json={'reorder_min': 5, 'reorder_max': 25})
        assert response.status_code == 200
        assert response.get_json()['setting']['day_of_week'] == 6

        days = client.get(f'{base}/settings').get_json()['days']
        assert days['6'] == {'reorder_min': 5.0, 'reorder_max': 25.0, 'is_override': True}
        assert days['1']['is_override'] is False
        assert days['1']['reorder_max'] == 10.0

    def test_invalid_day_settings(self, client, warehouse, stocked):
        _, sugar = stocked
        base = f'/warehouse/{warehouse.id}/items/{sugar.id}'

        response = client.put(f'{base}/settings/2', json={'reorder_min': 9, 'reorder_max': 3})
        assert response.status_code == 400
        assert response.get_json()['code'] == 'invalid_threshold'

        response = client.put(f'{base}/settings/7', json={'reorder_min': 1, 'reorder_max': 3})
        assert response.status_code == 400

    def test_live_thresholds(self, client, warehouse, stocked):
        _, sugar = stocked
        client.put(f'/warehouse/{warehouse.id}/items/{sugar.id}/settings/3',
                   json={'reorder_min': 5, 'reorder_max': 25})

        wednesday = client.get(
            f'/warehouse/items/{sugar.id}/thresholds?warehouse_id={warehouse.id}&day_of_week=3').get_json()
        monday = client.get(
            f'/warehouse/items/{sugar.id}/thresholds?warehouse_id={warehouse.id}&day_of_week=1').get_json()

        assert wednesday['minimum'] == 5.0
        assert wednesday['minimum_source'] == 'daily'
        assert wednesday['status'] == 'under_stock'
        assert monday['minimum'] == 2.0
        assert monday['status'] == 'normal_stock'

    def test_thresholds_unknown_item(self, client):
        response = client.get('/warehouse/items/999/thresholds')
        assert response.status_code == 404
