def test_health(client):
    res = client.get('/health')
    assert res.status_code == 200


def test_quick_match_pairs_two_users(client):
    res = client.post('/api/matches/quick', json={'user_id': 'alice'})
    assert res.status_code == 201
    waiting = res.get_json()
    assert waiting['status'] == 'waiting'
    assert waiting['sync'] == {'poll_interval_sec': 2.5, 'rematch_decline_grace_sec': 2.0}

    joined = client.post('/api/matches/quick', json={'user_id': 'bob'}).get_json()
    assert joined['id'] == waiting['id']
    assert joined['status'] == 'active'
    assert {p['user_id'] for p in joined['players']} == {'alice', 'bob'}


def test_invite_flow(client):
    created = client.post('/api/matches/create', json={'user_id': 'alice', 'private': True}).get_json()
    code = created['invite_code']
    assert len(code) == 6

    # join with a lower-case code
    res = client.post('/api/matches/join', json={'user_id': 'bob', 'code': code.lower()})
    assert res.status_code == 200
    assert res.get_json()['status'] == 'active'

    # third user is turned away
    res = client.post('/api/matches/join', json={'user_id': 'cara', 'code': code})
    assert res.status_code == 409
    assert res.get_json() == {'error': 'Invalid or expired invite code', 'kind': 'stale'}


def test_public_create_has_no_code(client):
    created = client.post('/api/matches/create', json={'user_id': 'alice'}).get_json()
    assert created['invite_code'] is None


def test_full_match_lifecycle(client):
    match_id = client.post('/api/matches/quick', json={'user_id': 'alice'}).get_json()['id']
    client.post('/api/matches/quick', json={'user_id': 'bob'})

    live = client.post(f'/api/matches/{match_id}/live-score', json={'user_id': 'alice', 'score': 4}).get_json()
    assert next(p for p in live['players'] if p['user_id'] == 'alice')['score'] == 4

    client.post(f'/api/matches/{match_id}/submit', json={'user_id': 'alice', 'score': 15})
    done = client.post(f'/api/matches/{match_id}/submit', json={'user_id': 'bob', 'score': 3}).get_json()
    assert done['status'] == 'finished'
    winners = [p['user_id'] for p in done['players'] if p['is_winner']]
    assert winners == ['alice']

    state = client.get(f'/api/matches/{match_id}').get_json()
    assert state['status'] == 'finished'

    recent = client.get('/api/users/alice/matches').get_json()
    assert [m['id'] for m in recent] == [match_id]
    h2h = client.get('/api/users/bob/head-to-head/alice').get_json()
    assert h2h == {'total_matches': 1, 'my_wins': 0, 'their_wins': 1}


def test_rematch_over_http(client):
    match_id = client.post('/api/matches/quick', json={'user_id': 'alice'}).get_json()['id']
    client.post('/api/matches/quick', json={'user_id': 'bob'})
    client.post(f'/api/matches/{match_id}/submit', json={'user_id': 'alice', 'score': 1})
    client.post(f'/api/matches/{match_id}/submit', json={'user_id': 'bob', 'score': 2})

    first = client.post(f'/api/matches/{match_id}/rematch', json={'user_id': 'alice'}).get_json()
    assert first['action'] == 'requested'
    accepted = client.post(f"/api/rematches/{first['request']['id']}/accept", json={'user_id': 'bob'}).get_json()
    assert accepted['action'] == 'accepted'
    assert accepted['match']['status'] == 'active'

    # the finished match now points at the new one
    state = client.get(f'/api/matches/{match_id}').get_json()
    assert state['rematch_requests'][0]['created_match_id'] == accepted['match']['id']


def test_challenge_and_friends_over_http(client):
    request = client.post('/api/friends', json={'user_id': 'alice', 'friend_id': 'bob'})
    assert request.status_code == 201
    listing = client.get('/api/users/bob/friends').get_json()
    assert [r['user_id'] for r in listing['pending']] == ['alice']

    client.post(f"/api/friends/{request.get_json()['id']}/accept", json={'user_id': 'bob'})
    assert len(client.get('/api/users/alice/friends').get_json()['friends']) == 1

    res = client.post('/api/challenges', json={'from_user_id': 'alice', 'to_user_id': 'bob'})
    assert res.status_code == 201
    challenge = res.get_json()
    assert [c['id'] for c in client.get('/api/users/bob/challenges').get_json()] == [challenge['id']]

    match = client.post(f"/api/challenges/{challenge['id']}/accept", json={'user_id': 'bob'}).get_json()
    assert match['id'] == challenge['match_id']
    assert match['status'] == 'active'


def test_errors_carry_kind(client):
    res = client.get('/api/matches/9999')
    assert res.status_code == 404
    assert res.get_json()['kind'] == 'not_found'

    res = client.post('/api/matches/quick', json={})
    assert res.status_code == 400
    assert res.get_json() == {'error': 'user_id required', 'kind': 'validation'}

    res = client.post('/api/matches/join', json={'user_id': 'bob', 'code': 'AB'})
    assert res.status_code == 400

    match_id = client.post('/api/matches/quick', json={'user_id': 'alice'}).get_json()['id']
    res = client.post(f'/api/matches/{match_id}/submit', json={'user_id': 'mallory', 'score': 1})
    assert res.status_code == 403
    assert res.get_json()['kind'] == 'not_participant'

    res = client.post(f'/api/matches/{match_id}/submit', json={'user_id': 'alice', 'score': 1})
    assert res.status_code == 409
    assert res.get_json()['kind'] == 'stale'

    res = client.post('/api/challenges', json={'from_user_id': 'alice', 'to_user_id': 'bob'})
    assert res.status_code == 400
    assert res.get_json()['error'] == 'Can only challenge friends'


def test_leave_and_cancel(client):
    first = client.post('/api/matches/create', json={'user_id': 'alice', 'private': True}).get_json()
    left = client.post(f"/api/matches/{first['id']}/leave", json={'user_id': 'alice'}).get_json()
    assert left['status'] == 'cancelled'

    second = client.post('/api/matches/quick', json={'user_id': 'alice'}).get_json()
    res = client.post(f"/api/matches/{second['id']}/cancel", json={'user_id': 'bob'})
    assert res.status_code == 403
    cancelled = client.post(f"/api/matches/{second['id']}/cancel", json={'user_id': 'alice'}).get_json()
    assert cancelled['status'] == 'cancelled'


def test_notification_inbox_over_http(client):
    request = client.post('/api/friends', json={'user_id': 'alice', 'friend_id': 'bob'}).get_json()
    client.post(f"/api/friends/{request['id']}/accept", json={'user_id': 'bob'})
    client.post('/api/challenges', json={'from_user_id': 'alice', 'to_user_id': 'bob'})

    assert client.get('/api/users/bob/notifications/unread-count').get_json() == {'count': 2}
    inbox = client.get('/api/users/bob/notifications').get_json()
    assert [n['type'] for n in inbox] == ['challenge', 'friend_request']
    assert len(client.get('/api/users/bob/notifications?limit=1').get_json()) == 1

    read = client.post(f"/api/notifications/{inbox[0]['id']}/read", json={'user_id': 'bob'}).get_json()
    assert read['read_at'] is not None
    unread = client.get('/api/users/bob/notifications?unread_only=true').get_json()
    assert [n['id'] for n in unread] == [inbox[1]['id']]

    res = client.post(f"/api/notifications/{inbox[1]['id']}/read", json={'user_id': 'alice'})
    assert res.status_code == 404
    assert res.get_json()['kind'] == 'not_found'

    assert client.post('/api/users/bob/notifications/read-all').get_json() == {'updated': 1}
    assert client.get('/api/users/bob/notifications/unread-count').get_json() == {'count': 0}


def test_recent_opponents_over_http(client):
    client.post('/api/matches/quick', json={'user_id': 'alice'})
    client.post('/api/matches/quick', json={'user_id': 'bob'})
    assert client.get('/api/users/alice/opponents').get_json() == {'opponents': ['bob']}
    assert client.get('/api/users/cara/opponents').get_json() == {'opponents': []}
