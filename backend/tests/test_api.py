from portal.errors import FetchError, WriteError
from portal.store import RecordStore


def test_register_creates_account_and_signs_in(client, store):
    res = client.post('/register', json={
        'email': 'Fred@RedFred.test', 'password': 'pw', 'confirm_password': 'pw', 'username': 'fred'
    })
    assert res.status_code == 201
    user = res.get_json()['user']
    assert user['username'] == 'fred'
    assert user['admin'] is False
    assert user['banned'] is False

    stored = store.read_record(f"users/{user['uid']}")
    assert stored['email'] == 'fred@redfred.test'
    assert stored['admin'] is False
    assert stored['banEnd'] is None
    assert stored['lastLogin']

    res = client.get('/check_login')
    assert res.status_code == 200
    assert res.get_json()['user']['uid'] == user['uid']


def test_register_validation(client, make_account):
    make_account('taken@redfred.test', 'taken')
    res = client.post('/register', json={'email': 'a@redfred.test', 'password': 'pw'})
    assert res.status_code == 400
    res = client.post('/register', json={
        'email': 'a@redfred.test', 'password': 'pw', 'confirm_password': 'other', 'username': 'a'
    })
    assert res.status_code == 400
    assert 'match' in res.get_json()['message']
    res = client.post('/register', json={
        'email': 'taken@redfred.test', 'password': 'pw', 'confirm_password': 'pw', 'username': 'dup'
    })
    assert res.status_code == 400


def test_register_rolls_back_credential_when_record_write_fails(client, monkeypatch):
    def failing_write(self, path, value):
        raise WriteError(f'Could not write {path}')

    monkeypatch.setattr(RecordStore, 'write_record', failing_write)
    res = client.post('/register', json={
        'email': 'x@redfred.test', 'password': 'pw', 'confirm_password': 'pw', 'username': 'x'
    })
    assert res.status_code == 502
    monkeypatch.undo()

    res = client.post('/login', json={'email': 'x@redfred.test', 'password': 'pw'})
    assert res.status_code == 401


def test_login_refreshes_last_login(client, store, make_account):
    uid = make_account('fred@redfred.test', 'fred')
    res = client.post('/login', json={'email': 'fred@redfred.test', 'password': 'password'})
    assert res.status_code == 200
    assert res.get_json()['user']['username'] == 'fred'
    assert store.read_record(f'users/{uid}')['lastLogin'] != '2025-01-01T00:00:00.000Z'


def test_login_failures(client, make_account):
    make_account('fred@redfred.test', 'fred')
    assert client.post('/login', json={'email': 'fred@redfred.test', 'password': 'nope'}).status_code == 401
    assert client.post('/login', json={'email': 'who@redfred.test', 'password': 'x'}).status_code == 401
    assert client.post('/login', json={}).status_code == 400


def test_logout(client, make_account, login):
    make_account('fred@redfred.test', 'fred')
    login('fred@redfred.test')
    assert client.post('/logout').get_json() == {'success': True}
    assert client.get('/check_login').status_code == 401


def test_profile_requires_login(client):
    assert client.get('/api/profile').status_code == 401
    assert client.get('/api/profile/badge').status_code == 401


def test_profile_shows_active_ban(client, make_account, login):
    make_account('fred@redfred.test', 'fred', ban_end=4_102_444_800_000)  # 2100-01-01T00:00Z
    login('fred@redfred.test')
    res = client.get('/api/profile', headers={'Accept-Language': 'fr-FR'})
    assert res.status_code == 200
    ban = res.get_json()['ban']
    assert ban['banned'] is True
    assert ban['permanent'] is False
    assert ban['ends_at'] == '01/01/2100 00:00'


def test_profile_shows_expired_ban_as_not_banned(client, make_account, login):
    make_account('fred@redfred.test', 'fred', ban_end=500)
    login('fred@redfred.test')
    ban = client.get('/api/profile').get_json()['ban']
    assert ban['banned'] is False
    assert ban['label'] == 'ban expired'
    assert client.get('/api/profile/badge').get_json()['banned'] is False


def test_profile_rename(client, store, make_account, login):
    uid = make_account('fred@redfred.test', 'fred')
    login('fred@redfred.test')
    res = client.patch('/api/profile', json={'username': '  Freddy '})
    assert res.status_code == 200
    assert res.get_json()['username'] == 'Freddy'
    assert store.read_record(f'users/{uid}')['username'] == 'Freddy'

    res = client.patch('/api/profile', json={'username': '   '})
    assert res.status_code == 400
    assert store.read_record(f'users/{uid}')['username'] == 'Freddy'


def test_leaderboard_sorted_and_paginated(client, store, make_account):
    uid_a = make_account('a@redfred.test', 'alice')
    uid_b = make_account('b@redfred.test', 'bob')
    store.write_record(f'scores/{uid_a}', {'score': 10, 'height': 50, 'time': 12})
    store.write_record(f'scores/{uid_b}', {'score': 30, 'height': 5, 'time': 40})
    store.write_record('scores/orphan', {'score': 20, 'height': 9, 'time': 3})

    data = client.get('/api/leaderboard').get_json()
    assert data['sort'] == 'score'
    assert data['total_pages'] == 2
    assert [(r['rank'], r['username']) for r in data['rows']] == [(1, 'bob'), (2, 'Anonymous')]

    data = client.get('/api/leaderboard?page=1').get_json()
    assert [(r['rank'], r['username']) for r in data['rows']] == [(3, 'alice')]

    data = client.get('/api/leaderboard?sort=height').get_json()
    assert [r['username'] for r in data['rows']] == ['alice', 'Anonymous']


def test_leaderboard_clamps_page(client, store):
    store.write_record('scores/a', {'score': 1})
    data = client.get('/api/leaderboard?page=40').get_json()
    assert data['page'] == 0
    assert len(data['rows']) == 1


def test_leaderboard_empty_is_not_an_error(client):
    res = client.get('/api/leaderboard')
    assert res.status_code == 200
    data = res.get_json()
    assert data['empty'] is True
    assert data['rows'] == []
    assert data['message']


def test_leaderboard_fetch_failure(client, monkeypatch):
    def failing_read(self, path):
        raise FetchError(f'Could not read {path}')

    monkeypatch.setattr(RecordStore, 'read_record', failing_read)
    res = client.get('/api/leaderboard')
    assert res.status_code == 503
    assert 'error' in res.get_json()


def test_leaderboard_unknown_sort(client):
    assert client.get('/api/leaderboard?sort=elo').status_code == 400


def test_register_rolls_back_credential_when_record_read_fails(client, monkeypatch):
    def failing_read(self, path):
        raise FetchError(f'Could not read {path}')

    monkeypatch.setattr(RecordStore, 'read_record', failing_read)
    res = client.post('/register', json={
        'email': 'y@redfred.test', 'password': 'pw', 'confirm_password': 'pw', 'username': 'y'
    })
    assert res.status_code == 503
    monkeypatch.undo()

    res = client.post('/login', json={'email': 'y@redfred.test', 'password': 'pw'})
    assert res.status_code == 401


def test_leaderboard_tolerates_malformed_ban_value(client, store):
    store.write_record('users/zz', {'uid': 'zz', 'username': 'zed', 'banEnd': 'tomorrow'})
    store.write_record('scores/zz', {'score': 5, 'height': 1, 'time': 2})
    res = client.get('/api/leaderboard')
    assert res.status_code == 200
    assert [r['username'] for r in res.get_json()['rows']] == ['zed']
