"""Key-value record store backing account and score documents.

Documents are addressed by key path: ``users`` and ``scores`` name whole
collections, ``users/{uid}`` and ``scores/{uid}`` single records. Reads of
a missing record (or an empty collection) return None, the same "absent"
answer the managed backend gives.
"""
import json
from typing import Any, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from portal import db
from portal.errors import FetchError, WriteError
from portal.models import Record

COLLECTIONS = ('users', 'scores')


def split_path(path: str) -> Tuple[str, Optional[str]]:
    parts = [p for p in (path or '').strip('/').split('/') if p]
    if not parts or len(parts) > 2 or parts[0] not in COLLECTIONS:
        raise ValueError(f'Unsupported record path: {path!r}')
    return parts[0], (parts[1] if len(parts) == 2 else None)


def _decode(row: Record) -> Any:
    try:
        return json.loads(row.value)
    except ValueError:
        raise FetchError(f'Malformed record at {row.collection}/{row.key}')


class RecordStore:
    """Read/write JSON documents by key path."""

    def read_record(self, path: str) -> Any:
        collection, key = split_path(path)
        try:
            if key is None:
                rows = Record.query.filter_by(collection=collection).order_by(Record.id).all()
                if not rows:
                    return None
                return {row.key: _decode(row) for row in rows}
            row = Record.query.filter_by(collection=collection, key=key).first()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.warning(f"[store-read-failed] path={path} error={exc}")
            raise FetchError(f'Could not read {path}')
        return _decode(row) if row else None

    def exists(self, path: str) -> bool:
        return self.read_record(path) is not None

    def write_record(self, path: str, value: Any) -> None:
        """Overwrite the record at ``path``; writing None deletes it."""
        collection, key = self._record_path(path)
        encoded = json.dumps(value) if value is not None else None
        try:
            row = Record.query.filter_by(collection=collection, key=key).first()
            if encoded is None:
                if row:
                    db.session.delete(row)
            elif row:
                row.value = encoded
                db.session.add(row)
            else:
                db.session.add(Record(collection=collection, key=key, value=encoded))
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.warning(f"[store-write-failed] path={path} error={exc}")
            raise WriteError(f'Could not write {path}')

    def update_fields(self, path: str, fields: dict) -> None:
        """Merge ``fields`` into the record at ``path``; None values remove keys."""
        current = self.read_record(path)
        if current is None:
            current = {}
        if not isinstance(current, dict):
            raise FetchError(f'Record at {path} is not an object')
        merged = dict(current)
        for name, value in fields.items():
            if value is None:
                merged.pop(name, None)
            else:
                merged[name] = value
        self.write_record(path, merged)

    @staticmethod
    def _record_path(path: str) -> Tuple[str, str]:
        collection, key = split_path(path)
        if key is None:
            raise ValueError(f'Cannot overwrite a whole collection: {path!r}')
        return collection, key
