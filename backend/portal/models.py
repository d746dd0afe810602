from portal import db, bcrypt
from flask_login import UserMixin
import uuid


def generate_uid():
    """Generate an opaque account id."""
    return uuid.uuid4().hex


class Credential(UserMixin, db.Model):
    """Sign-in identity. Profile data lives in the `users/{uid}` record."""
    __tablename__ = 'credential'
    id = db.Column(db.Integer, primary_key=True)
    uid = db.Column(db.String(32), unique=True, nullable=False, index=True)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(128), nullable=False)

    def __init__(self, **kwargs):
        super(Credential, self).__init__(**kwargs)
        if not self.uid:
            self.uid = generate_uid()

    def get_id(self):
        return self.uid

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'uid': self.uid,
            'email': self.email,
        }


class Record(db.Model):
    """One JSON document of the key-value store, addressed by collection/key."""
    __tablename__ = 'record'
    __table_args__ = (db.UniqueConstraint('collection', 'key', name='uq_record_collection_key'),)
    id = db.Column(db.Integer, primary_key=True)
    collection = db.Column(db.String(32), nullable=False, index=True)
    key = db.Column(db.String(128), nullable=False)
    value = db.Column(db.Text, nullable=False)  # JSON-encoded document
