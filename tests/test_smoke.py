"""
tests/test_smoke.py — HTTP API smoke tests through the Flask test client.
"""

from datetime import date


def _setup_phase(client):
    rv = client.post('/phases', json={'name': 'Phase 1'})
    assert rv.status_code == 201
    phase_id = rv.get_json()['phase_id']
    block_ids = {}
    for label in ['10', '2', 'A', '1']:
        rv = client.post(f'/phases/{phase_id}/blocks', json={'label': label})
        assert rv.status_code == 201
        block_ids[label] = rv.get_json()['block_id']
    return phase_id, block_ids


def test_homepage_loads(client):
    rv = client.get('/')
    assert rv.status_code == 200
    assert rv.get_json() == {'success': True, 'phases': []}


def test_csrf_token_endpoint(client):
    rv = client.get('/csrf-token')
    assert rv.status_code == 200
    assert rv.get_json()['csrf_token']


def test_phase_detail_sorts_blocks(client):
    phase_id, _ = _setup_phase(client)
    data = client.get(f'/phases/{phase_id}').get_json()
    assert [b['label'] for b in data['blocks']] == ['1', '2', '10', 'A']
    assert data['start_date'] is None
    assert client.get('/phases/999').status_code == 404


def test_program_requires_start_date(client):
    phase_id, _ = _setup_phase(client)
    assert client.get(f'/phases/{phase_id}/program').status_code == 409
    assert client.get(f'/phases/{phase_id}/start-date').status_code == 404


def test_program_end_to_end(client):
    phase_id, blocks = _setup_phase(client)
    rv = client.put(f'/phases/{phase_id}/start-date', json={'start_date': '2024-01-01'})
    assert rv.status_code == 200
    assert rv.get_json()['start_date']['start_date'] == '2024-01-01'

    rv = client.post(f'/phases/{phase_id}/program/entries', json={
        'block_id': blocks['1'],
        'month': '2024-01-01',
        'entries': [{'fertilizer_name': 'Urea', 'kilogram_amount': 0.5},
                    {'fertilizer_name': 'NPK', 'kilogram_amount': 0.3}],
    })
    assert rv.status_code == 201
    assert len(rv.get_json()['entry_ids']) == 2

    data = client.get(f'/phases/{phase_id}/program?years=2').get_json()
    assert data['years'] == 2
    assert len(data['columns']) == 28
    assert data['columns'][0] == {'type': 'month', 'date': '2024-01-01', 'label': 'Jan',
                                  'period_key': '2024-01-01', 'year_number': 1}
    assert data['columns'][13]['window_end'] == '2025-01-01'
    assert [row['block']['label'] for row in data['rows']] == ['1', '2', '10', 'A']

    first = data['rows'][0]
    assert first['cells'][0]['entries'] == [
        {'fertilizer_name': 'Urea', 'amount_per_palm': 0.5},
        {'fertilizer_name': 'NPK', 'amount_per_palm': 0.3},
    ]
    assert first['totals']['by_fertilizer'] == {'Urea': 0.5, 'NPK': 0.3}
    assert abs(first['totals']['grand_total'] - 0.8) < 1e-9
    assert data['rows'][1]['totals']['grand_total'] == 0.0

    cell = client.get(f'/phases/{phase_id}/program/entries?block_id={blocks["1"]}&month=2024-01-01')
    entries = cell.get_json()['entries']
    assert [e['fertilizer_name'] for e in entries] == ['Urea', 'NPK']

    rv = client.delete(f'/program/entries/{entries[0]["id"]}')
    assert rv.status_code == 200
    assert client.delete(f'/program/entries/{entries[0]["id"]}').status_code == 404


def test_program_entry_validation(client):
    phase_id, blocks = _setup_phase(client)
    rv = client.post(f'/phases/{phase_id}/program/entries', json={
        'block_id': blocks['1'], 'month': '2024-01-01',
        'entries': [{'fertilizer_name': '  ', 'kilogram_amount': 1}],
    })
    assert rv.status_code == 400
    body = rv.get_json()
    assert body['success'] is False
    assert body['field'] == 'fertilizer_name'

    rv = client.post(f'/phases/{phase_id}/program/entries', json={
        'block_id': blocks['1'], 'month': '2024-01-01', 'entries': ['Urea'],
    })
    assert rv.status_code == 400
    assert rv.get_json()['field'] == 'entries'

    rv = client.post(f'/phases/{phase_id}/program/entries', data={
        'block_id': blocks['1'], 'month': '2024-01-01', 'entries': 'Urea',
    })
    assert rv.status_code == 400
    assert rv.get_json()['field'] == 'entries'

    rv = client.post(f'/phases/{phase_id}/program/entries', json=[blocks['1'], '2024-01-01'])
    assert rv.status_code == 400
    assert rv.get_json()['field'] == 'block_id'


def test_non_object_json_body_rejected(client):
    phase_id, _ = _setup_phase(client)
    assert client.post('/phases', json=['Phase 2']).status_code == 400
    assert client.post(f'/phases/{phase_id}/blocks', json='B').status_code == 400
    assert client.put(f'/phases/{phase_id}/start-date', json=['2024-01-01']).status_code == 400
    rv = client.post(f'/phases/{phase_id}/calendar/entries', json=[1, 2])
    assert rv.status_code == 400
    assert rv.get_json()['field'] == 'name'


def test_entry_for_other_phase_block_rejected(client):
    phase_id, _ = _setup_phase(client)
    other = client.post('/phases', json={'name': 'Phase 2'}).get_json()['phase_id']
    foreign = client.post(f'/phases/{other}/blocks', json={'label': 'X'}).get_json()['block_id']
    rv = client.post(f'/phases/{phase_id}/program/entries', json={
        'block_id': foreign, 'month': '2024-01-01',
        'entries': [{'fertilizer_name': 'Urea', 'kilogram_amount': 0.5}],
    })
    assert rv.status_code == 400
    assert rv.get_json()['field'] == 'block_id'


def test_calendar_end_to_end(client):
    phase_id, blocks = _setup_phase(client)
    client.put(f'/phases/{phase_id}/start-date', json={'start_date': '2024-03-01'})

    for bag, quantity in [(50, 2), (10, 1)]:
        rv = client.post(f'/phases/{phase_id}/calendar/entries', json={
            'date': '2024-03-05', 'name': 'Ali', 'block_id': blocks['2'],
            'bag': bag, 'quantity': quantity,
        })
        assert rv.status_code == 201

    data = client.get(f'/phases/{phase_id}/calendar').get_json()
    assert data['month'] == '2024-03'
    assert data['previous_month'] == '2024-02'
    # 1 March 2024 is a Friday
    assert data['cells'][:5] == [None] * 5
    day_five = data['cells'][5 + 4]
    assert day_five['day'] == 5
    assert day_five['total_kg'] == 110
    assert data['month_totals'] == {
        'total_kg': 110, 'application_count': 2,
        'by_worker': {'Ali': {'amount': 110, 'count': 2}},
    }
    assert all(len(week) == 7 for week in data['weeks'])

    moved = client.get(f'/phases/{phase_id}/calendar?month=2024-03&direction=next').get_json()
    assert moved['month'] == '2024-04'
    assert moved['month_totals']['application_count'] == 0

    day = client.get(f'/phases/{phase_id}/calendar/entries?date=2024-03-05').get_json()
    assert [e['block_label'] for e in day['entries']] == ['2', '2']

    rv = client.delete(f'/calendar/entries/{day["entries"][0]["id"]}')
    assert rv.status_code == 200


def test_calendar_rejects_bad_input(client):
    phase_id, blocks = _setup_phase(client)
    rv = client.post(f'/phases/{phase_id}/calendar/entries', json={
        'date': '2024-03-05', 'name': 'Ali', 'block_id': blocks['2'], 'bag': 25, 'quantity': 1,
    })
    assert rv.status_code == 400
    assert rv.get_json()['field'] == 'bag'

    rv = client.get(f'/phases/{phase_id}/calendar?month=2024-03&direction=sideways')
    assert rv.status_code == 400


def test_block_history(client):
    phase_id, blocks = _setup_phase(client)
    client.post(f'/phases/{phase_id}/program/entries', json={
        'block_id': blocks['A'], 'month': '2024-01-01',
        'entries': [{'fertilizer_name': 'Urea', 'kilogram_amount': 0.5}],
    })
    client.post(f'/phases/{phase_id}/calendar/entries', json={
        'date': '2024-03-05', 'name': 'Ali', 'block_id': blocks['A'], 'bag': 50, 'quantity': 1,
    })

    rv = client.get(f'/phases/{phase_id}/blocks/{blocks["A"]}/history?month=2024-03')
    history = rv.get_json()['history']
    assert history['block']['label'] == 'A'
    assert history['selected_month'] == '2024-03'
    assert history['yearly_stats']['total_applications'] == 1
    assert history['daily_stats'] == {'total_kg': 50, 'application_count': 1}
    assert history['available_months'] == ['2024-03']

    assert client.get(f'/phases/{phase_id}/blocks/9999/history').status_code == 404


def test_delete_block_with_entries_conflicts(client):
    phase_id, blocks = _setup_phase(client)
    client.post(f'/phases/{phase_id}/calendar/entries', json={
        'date': date(2024, 3, 5).isoformat(), 'name': 'Ali', 'block_id': blocks['1'],
        'bag': 10, 'quantity': 1,
    })
    assert client.delete(f'/blocks/{blocks["1"]}').status_code == 409
    assert client.delete(f'/blocks/{blocks["10"]}').status_code == 200
