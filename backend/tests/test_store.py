import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from portal import db
from portal.errors import FetchError, WriteError
from portal.models import Record


def test_absent_record_and_collection(store):
    assert store.read_record('users/nobody') is None
    assert store.read_record('scores') is None
    assert store.exists('users/nobody') is False


def test_write_then_read(store):
    store.write_record('scores/a', {'score': 10, 'height': 2, 'time': 3.5})
    store.write_record('scores/b', {'score': 4})
    assert store.exists('scores/a')
    assert store.read_record('scores/a') == {'score': 10, 'height': 2, 'time': 3.5}
    assert store.read_record('scores') == {'a': {'score': 10, 'height': 2, 'time': 3.5}, 'b': {'score': 4}}


def test_write_overwrites_whole_record(store):
    store.write_record('users/a', {'email': 'a@x.test', 'username': 'a'})
    store.write_record('users/a', {'email': 'a@x.test'})
    assert store.read_record('users/a') == {'email': 'a@x.test'}


def test_writing_none_deletes(store):
    store.write_record('users/a', {'email': 'a@x.test'})
    store.write_record('users/a', None)
    assert store.read_record('users/a') is None


def test_update_fields_merges(store):
    store.write_record('users/a', {'email': 'a@x.test', 'username': 'old', 'banEnd': -1})
    store.update_fields('users/a', {'username': 'new', 'banEnd': None})
    assert store.read_record('users/a') == {'email': 'a@x.test', 'username': 'new'}


def test_update_fields_creates_missing_record(store):
    store.update_fields('users/fresh', {'username': 'fresh'})
    assert store.read_record('users/fresh') == {'username': 'fresh'}


@pytest.mark.parametrize('path', ['', 'games', 'users/a/b', 'games/x'])
def test_unsupported_paths(store, path):
    with pytest.raises(ValueError):
        store.read_record(path)


def test_collection_cannot_be_overwritten(store):
    with pytest.raises(ValueError):
        store.write_record('users', {})


def test_malformed_json_is_a_fetch_error(store):
    db.session.add(Record(collection='users', key='broken', value='{not json'))
    db.session.commit()
    with pytest.raises(FetchError):
        store.read_record('users/broken')
    with pytest.raises(FetchError):
        store.read_record('users')


def test_failed_write_leaves_record_unchanged(store, monkeypatch):
    store.write_record('users/a', {'username': 'before'})

    def failing_commit(self):
        raise OperationalError('UPDATE record', {}, Exception('database is locked'))

    monkeypatch.setattr(Session, 'commit', failing_commit)
    with pytest.raises(WriteError):
        store.write_record('users/a', {'username': 'after'})
    monkeypatch.undo()

    assert store.read_record('users/a') == {'username': 'before'}
