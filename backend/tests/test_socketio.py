def _names(events):
    return [e['name'] for e in events]


def test_socket_connect_and_join(sio_client):
    # Ensure we are connected to /ws
    if not sio_client.is_connected('/ws'):
        sio_client.connect(namespace='/ws')
    assert sio_client.is_connected('/ws')
    assert 'connected' in _names(sio_client.get_received('/ws'))

    sio_client.emit('join_match', {'match_id': 7}, namespace='/ws')
    received = sio_client.get_received('/ws')
    joined = [e for e in received if e['name'] == 'joined']
    assert joined and joined[0]['args'][0] == {'room': 'match:7'}


def test_join_without_match_id_reports_error(sio_client):
    sio_client.get_received('/ws')
    sio_client.emit('join_match', {}, namespace='/ws')
    assert 'error' in _names(sio_client.get_received('/ws'))


def test_http_changes_reach_the_match_room(sio_client, client):
    match_id = client.post('/api/matches/quick', json={'user_id': 'alice'}).get_json()['id']

    sio_client.emit('join_match', {'match_id': match_id}, namespace='/ws')
    sio_client.get_received('/ws')  # flush

    client.post('/api/matches/quick', json={'user_id': 'bob'})
    events = [e for e in sio_client.get_received('/ws') if e['name'] == 'match_changed']
    assert events and events[0]['args'][0] == {'match_id': match_id}


def test_other_rooms_stay_quiet(flask_app, sio_client, client):
    match_id = client.post('/api/matches/quick', json={'user_id': 'alice'}).get_json()['id']
    sio_client.emit('join_match', {'match_id': match_id + 100}, namespace='/ws')
    sio_client.get_received('/ws')

    client.post('/api/matches/quick', json={'user_id': 'bob'})
    assert 'match_changed' not in _names(sio_client.get_received('/ws'))


def test_leave_match_stops_events(sio_client, client):
    match_id = client.post('/api/matches/create', json={'user_id': 'alice', 'private': True}).get_json()['id']
    sio_client.emit('join_match', {'match_id': match_id}, namespace='/ws')
    sio_client.emit('leave_match', {'match_id': match_id}, namespace='/ws')
    assert 'left' in _names(sio_client.get_received('/ws'))

    client.post(f'/api/matches/{match_id}/leave', json={'user_id': 'alice'})
    assert 'match_changed' not in _names(sio_client.get_received('/ws'))
