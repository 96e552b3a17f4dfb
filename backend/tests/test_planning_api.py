SUGGESTION = {
    'title': 'Biology',
    'session_minutes': 45,
    'total_minutes': 180,
    'window': {'from': '2026-10-19T08:00:00Z', 'to': '2026-10-23T20:00:00Z', 'days': [1, 2, 3, 4, 5]},
    'max_per_day': 1,
    'preferred_start': '17:00',
}


def test_suggest_previews_without_storing(client, auth_headers):
    r = client.post('/study-sessions/suggest', json=SUGGESTION, headers=auth_headers)
    assert r.status_code == 200
    body = r.json()
    assert [s['scheduled_start'] for s in body['sessions']] == [
        '2026-10-19T17:00:00.000Z', '2026-10-20T17:00:00.000Z',
        '2026-10-21T17:00:00.000Z', '2026-10-22T17:00:00.000Z',
    ]
    assert body['planned_minutes'] == 180
    assert body['dropped_count'] == 0
    assert client.get('/study-sessions', headers=auth_headers).json() == []


def test_suggest_accepts_legacy_start_object(client, auth_headers):
    payload = {**SUGGESTION, 'preferred_start': None, 'preferred_start_obj': {'hh': 7, 'mm': 30}}
    body = client.post('/study-sessions/suggest', json=payload, headers=auth_headers).json()
    assert body['sessions'][0]['scheduled_start'] == '2026-10-19T07:30:00.000Z'


def test_suggest_with_invalid_minutes_is_empty(client, auth_headers):
    body = client.post('/study-sessions/suggest', json={**SUGGESTION, 'session_minutes': 0}, headers=auth_headers).json()
    assert body['sessions'] == []


def test_plan_drops_conflicts_and_reports_shortfall(client, auth_headers):
    client.post('/study-sessions', json={'title': 'Football', 'scheduled_start': '2026-10-19T16:30:00Z',
                                         'scheduled_end': '2026-10-19T18:00:00Z'}, headers=auth_headers)
    r = client.post('/study-sessions/plan', json=SUGGESTION, headers=auth_headers)
    assert r.status_code == 200
    body = r.json()
    assert body['requested_minutes'] == 180
    assert body['planned_minutes'] == 135
    assert body['suggested_count'] == 4
    assert body['dropped_count'] == 1
    assert [s['scheduled_start'][:10] for s in body['sessions']] == ['2026-10-20', '2026-10-21', '2026-10-22']
    assert all(s['id'] for s in body['sessions'])
    assert len(client.get('/study-sessions', headers=auth_headers).json()) == 4


def test_plan_shift_mode_moves_around_existing(client, auth_headers):
    client.post('/study-sessions', json={'title': 'Piano', 'scheduled_start': '2026-10-19T17:00:00Z',
                                         'scheduled_end': '2026-10-19T17:30:00Z'}, headers=auth_headers)
    payload = {**SUGGESTION, 'total_minutes': 45, 'drop_conflicts': False}
    body = client.post('/study-sessions/plan', json=payload, headers=auth_headers).json()
    assert [s['scheduled_start'] for s in body['sessions']] == ['2026-10-19T18:00:00.000Z']
    assert body['dropped_count'] == 0


def test_plan_rejects_invalid_minutes(client, auth_headers):
    r = client.post('/study-sessions/plan', json={**SUGGESTION, 'total_minutes': 0}, headers=auth_headers)
    assert r.status_code == 400


def test_template_creates_week_of_sessions(client, auth_headers):
    payload = {
        'week_start': '2026-10-19',
        'items': [
            {'day_offset': 0, 'hour': 18, 'minute': 0, 'minutes': 60, 'title': 'Maths'},
            {'day_offset': 4, 'hour': 16, 'minute': 30, 'minutes': 30, 'title': 'French'},
        ],
    }
    body = client.post('/study-sessions/template', json=payload, headers=auth_headers).json()
    assert [(s['title'], s['scheduled_start']) for s in body['sessions']] == [
        ('Maths', '2026-10-19T18:00:00.000Z'),
        ('French', '2026-10-23T16:30:00.000Z'),
    ]
    assert body['requested_minutes'] == 90
    # applying it again collides with itself and creates nothing
    again = client.post('/study-sessions/template', json=payload, headers=auth_headers).json()
    assert again['sessions'] == [] and again['dropped_count'] == 2

    bad = client.post('/study-sessions/template', json={**payload, 'week_start': '2026-10-20'}, headers=auth_headers)
    assert bad.status_code == 400


def test_distribute_preview(client, auth_headers):
    payload = {
        'title': 'Revision',
        'session_minutes': 30,
        'total_minutes': 120,
        'availability': {
            '2026-10-19': [{'start': '2026-10-19T15:00:00Z', 'end': '2026-10-19T16:00:00Z'}],
            '2026-10-20': [{'start': '2026-10-20T15:00:00Z', 'end': '2026-10-20T16:30:00Z'}],
        },
        'hard_gaps': [{'weekday': 1, 'start': '15:30', 'end': '17:00'}],
    }
    body = client.post('/study-sessions/distribute', json=payload, headers=auth_headers).json()
    assert [s['start'] for s in body['sessions']] == [
        '2026-10-20T15:00:00.000Z', '2026-10-20T15:30:00.000Z', '2026-10-20T16:00:00.000Z',
    ]
    assert body['sessions'][0]['title'] == 'Revision'
    assert body['minutes_unplaced'] == 30


def test_distribute_rejects_malformed_gap_times(client, auth_headers):
    payload = {
        'title': 'Revision',
        'session_minutes': 30,
        'total_minutes': 60,
        'availability': {'2026-10-19': [{'start': '2026-10-19T07:00:00Z', 'end': '2026-10-19T08:00:00Z'}]},
        'hard_gaps': [{'weekday': 1, 'start': '9:00', 'end': '10:00'}],
    }
    r = client.post('/study-sessions/distribute', json=payload, headers=auth_headers)
    assert r.status_code == 422


def test_suggest_uses_window_offset_without_explicit_timezone(client, auth_headers):
    window = {'from': '2026-10-19T08:00:00+02:00', 'to': '2026-10-20T20:00:00+02:00', 'days': [1, 2]}
    body = client.post('/study-sessions/suggest', json={**SUGGESTION, 'window': window, 'total_minutes': 45},
                       headers=auth_headers).json()
    assert [s['scheduled_start'] for s in body['sessions']] == ['2026-10-19T15:00:00.000Z']

    explicit = {**SUGGESTION, 'window': window, 'total_minutes': 45, 'timezone': 'UTC'}
    body = client.post('/study-sessions/suggest', json=explicit, headers=auth_headers).json()
    assert [s['scheduled_start'] for s in body['sessions']] == ['2026-10-19T17:00:00.000Z']
