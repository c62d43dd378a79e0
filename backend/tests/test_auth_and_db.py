def test_register_login_and_protected_endpoints(client):
    # register
    r = client.post('/auth/register', json={'username': 'testuser', 'password': 'pass123'})
    assert r.status_code == 200
    # register again is idempotent
    again = client.post('/auth/register', json={'username': 'testuser', 'password': 'pass123'})
    assert again.json()['id'] == r.json()['id']
    # login
    r2 = client.post('/auth/login', json={'username': 'testuser', 'password': 'pass123'})
    assert r2.status_code == 200
    assert 'access_token' in r2.json()
    token = r2.json()['access_token']
    # protected endpoint rejects missing token
    r3 = client.get('/assignments')
    assert r3.status_code == 403 or r3.status_code == 401
    # and accepts a valid one
    r4 = client.get('/assignments', headers={'Authorization': f'Bearer {token}'})
    assert r4.status_code == 200
    assert r4.json() == []


def test_wrong_password_rejected(client):
    client.post('/auth/register', json={'username': 'someone', 'password': 'right'})
    r = client.post('/auth/login', json={'username': 'someone', 'password': 'wrong'})
    assert r.status_code == 401


def test_invalid_token_rejected(client):
    headers = {'Authorization': 'Bearer invalid.token.here'}
    r = client.get('/students', headers=headers)
    assert r.status_code == 401


def test_health_has_request_id(client):
    r = client.get('/health')
    assert r.status_code == 200
    assert 'X-Request-ID' in r.headers
    echoed = client.get('/health', headers={'X-Request-ID': 'abc123'})
    assert echoed.headers['X-Request-ID'] == 'abc123'
