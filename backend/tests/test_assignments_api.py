import json


def _student(client, headers, name, email=None, status='active', auth_username=None):
    r = client.post('/students', json={
        'full_name': name, 'email': email, 'status': status, 'auth_username': auth_username,
    }, headers=headers)
    assert r.status_code == 200, r.text
    return r.json()


def _payload(**overrides):
    body = {
        'title': 'Present simple',
        'description': 'Unit 2 homework',
        'exercises': [
            {'type': 'multiple_choice', 'question': 'She ___ tea', 'options': ['drink', 'drinks'], 'correct_answer': 'drinks', 'points': 2},
            {'type': 'matching', 'question': 'Pairs', 'correct_answer': {'cat': 'gato', 'dog': 'perro'}},
            {'type': 'true_false', 'question': 'Water is dry', 'correct_answer': False},
            {'type': 'free_text', 'question': 'Describe your day'},
        ],
    }
    body.update(overrides)
    return body


def test_create_assignment_mints_token_and_numbers_exercises(client, tutor_headers):
    r = client.post('/assignments', json=_payload(), headers=tutor_headers)
    assert r.status_code == 200, r.text
    data = r.json()
    assert len(data['public_token']) >= 20
    assert data['share_url'].endswith(f"/assignment/{data['public_token']}")
    assert data['is_active'] is True
    assert data['audience'] == 'broadcast'
    assert [e['order_index'] for e in data['exercises']] == [0, 1, 2, 3]
    assert [e['type'] for e in data['exercises']] == ['multiple_choice', 'matching', 'true_false', 'free_text']
    assert json.loads(data['exercises'][1]['correct_answer']) == {'cat': 'gato', 'dog': 'perro'}
    assert data['exercises'][2]['correct_answer'] == 'false'
    assert data['exercises'][0]['options'] == ['drink', 'drinks']
    assert data['exercises'][1]['options'] is None


def test_update_keeps_token_and_replaces_exercises(client, tutor_headers):
    created = client.post('/assignments', json=_payload(), headers=tutor_headers).json()
    new_exercises = [
        {'type': 'fill_blank', 'question': 'He ___ home', 'correct_answer': 'goes'},
        {'type': 'pronunciation', 'question': 'Say: thought', 'correct_answer': 'thought', 'points': 3},
    ]
    r = client.put(f"/assignments/{created['id']}", json=_payload(title='Renamed', exercises=new_exercises), headers=tutor_headers)
    assert r.status_code == 200, r.text
    updated = r.json()
    assert updated['public_token'] == created['public_token']
    assert updated['title'] == 'Renamed'
    assert [e['type'] for e in updated['exercises']] == ['fill_blank', 'pronunciation']
    assert [e['order_index'] for e in updated['exercises']] == [0, 1]


def test_restricted_without_recipients_is_rejected_before_saving(client, tutor_headers):
    r = client.post('/assignments', json=_payload(audience='restricted', recipient_ids=[]), headers=tutor_headers)
    assert r.status_code == 400
    assert r.json()['kind'] == 'validation_error'
    assert client.get('/assignments', headers=tutor_headers).json() == []


def test_recipients_must_belong_to_the_tutor(client, tutor_headers, login_as):
    other = login_as('other-tutor')
    foreign = _student(client, other, 'Not Mine')
    r = client.post('/assignments', json=_payload(audience='restricted', recipient_ids=[foreign['id']]), headers=tutor_headers)
    assert r.status_code == 400
    assert r.json()['kind'] == 'validation_error'


def test_switching_to_broadcast_clears_recipients(client, tutor_headers):
    s1 = _student(client, tutor_headers, 'Ana')
    s2 = _student(client, tutor_headers, 'Ben')
    created = client.post('/assignments', json=_payload(audience='restricted', recipient_ids=[s2['id'], s1['id'], s1['id']]), headers=tutor_headers).json()
    assert created['recipient_ids'] == sorted([s1['id'], s2['id']])
    updated = client.put(f"/assignments/{created['id']}", json=_payload(audience='broadcast', recipient_ids=[s1['id']]), headers=tutor_headers).json()
    assert updated['recipient_ids'] == []


def test_invalid_exercises_are_rejected(client, tutor_headers):
    bad_points = _payload(exercises=[{'type': 'fill_blank', 'question': 'q', 'correct_answer': 'a', 'points': 0}])
    assert client.post('/assignments', json=bad_points, headers=tutor_headers).status_code == 422
    bad_choice = _payload(exercises=[{'type': 'multiple_choice', 'question': 'q', 'options': ['a', 'b'], 'correct_answer': 'c'}])
    assert client.post('/assignments', json=bad_choice, headers=tutor_headers).status_code == 422
    bad_matching = _payload(exercises=[{'type': 'matching', 'question': 'q', 'correct_answer': '{oops'}])
    assert client.post('/assignments', json=bad_matching, headers=tutor_headers).status_code == 422
    unknown_type = _payload(exercises=[{'type': 'essay', 'question': 'q', 'correct_answer': 'a'}])
    assert client.post('/assignments', json=unknown_type, headers=tutor_headers).status_code == 422


def test_blank_title_is_rejected(client, tutor_headers):
    r = client.post('/assignments', json=_payload(title='   '), headers=tutor_headers)
    assert r.status_code == 400
    assert r.json()['kind'] == 'validation_error'


def test_other_tutors_cannot_see_or_edit(client, tutor_headers, login_as):
    created = client.post('/assignments', json=_payload(), headers=tutor_headers).json()
    other = login_as('intruder')
    assert client.get(f"/assignments/{created['id']}", headers=other).status_code == 404
    assert client.put(f"/assignments/{created['id']}", json=_payload(), headers=other).status_code == 404
    assert client.delete(f"/assignments/{created['id']}", headers=other).status_code == 404
    assert client.get('/assignments', headers=other).json() == []


def test_toggle_active_and_delete(client, tutor_headers):
    created = client.post('/assignments', json=_payload(), headers=tutor_headers).json()
    toggled = client.post(f"/assignments/{created['id']}/toggle-active", headers=tutor_headers).json()
    assert toggled['is_active'] is False
    assert client.get(f"/public/assignments/{created['public_token']}").json()['kind'] == 'inactive'

    client.post(f"/assignments/{created['id']}/toggle-active", headers=tutor_headers)
    client.post('/public/assignments/submit', json={'token': created['public_token'], 'studentName': 'Guest', 'answers': {}})

    r = client.delete(f"/assignments/{created['id']}", headers=tutor_headers)
    assert r.status_code == 200
    assert client.get(f"/assignments/{created['id']}", headers=tutor_headers).status_code == 404
    assert client.get(f"/public/assignments/{created['public_token']}").json()['kind'] == 'not_found'


def test_list_is_most_recently_updated_first(client, tutor_headers):
    first = client.post('/assignments', json=_payload(title='First'), headers=tutor_headers).json()
    client.post('/assignments', json=_payload(title='Second'), headers=tutor_headers)
    client.put(f"/assignments/{first['id']}", json=_payload(title='First again'), headers=tutor_headers)
    titles = [a['title'] for a in client.get('/assignments', headers=tutor_headers).json()]
    assert titles == ['First again', 'Second']


def test_eligible_students_filter(client, tutor_headers):
    _student(client, tutor_headers, 'Active Amy')
    _student(client, tutor_headers, 'Trial Tom', status='trial')
    _student(client, tutor_headers, 'Gone Gina', status='inactive')
    everyone = client.get('/students', headers=tutor_headers).json()
    eligible = client.get('/students', params={'eligible': 'true'}, headers=tutor_headers).json()
    assert len(everyone) == 3
    assert sorted(s['full_name'] for s in eligible) == ['Active Amy', 'Trial Tom']


def test_auto_draft_endpoint_appends_to_existing(client, tutor_headers):
    body = {
        'existing': [{'type': 'fill_blank', 'question': 'q', 'correct_answer': 'a'}],
        'sections': [
            {'type': 'vocabulary', 'words': [{'word': 'cat', 'translation': 'gato'}, {'word': 'dog', 'translation': 'perro'}]},
            {'type': 'grammar', 'examples': [{'sentence': 'She goes to school'}]},
            {'type': 'reading', 'text': 'skipped'},
        ],
    }
    r = client.post('/assignments/auto-draft', json=body, headers=tutor_headers)
    assert r.status_code == 200
    exercises = r.json()['exercises']
    assert [e['type'] for e in exercises] == ['fill_blank', 'matching', 'fill_blank']
    assert exercises[1]['correct_answer'] == {'cat': 'gato', 'dog': 'perro'}
    assert exercises[2]['question'] == 'She goes ___ school'
    # drafted output can be saved as-is
    saved = client.post('/assignments', json=_payload(exercises=exercises), headers=tutor_headers)
    assert saved.status_code == 200
    assert len(saved.json()['exercises']) == 3


def test_auto_draft_endpoint_skips_malformed_sections(client, tutor_headers):
    body = {'sections': [
        None,
        'x',
        42,
        {'type': 'vocabulary', 'words': [{'word': 'cat', 'translation': 'gato'}, {'word': 'dog', 'translation': 'perro'}]},
    ]}
    r = client.post('/assignments/auto-draft', json=body, headers=tutor_headers)
    assert r.status_code == 200, r.text
    [matching] = r.json()['exercises']
    assert matching['type'] == 'matching'
    assert matching['points'] == 2
