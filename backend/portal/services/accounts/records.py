from dataclasses import dataclass, field, replace
from typing import List, Optional

from portal.errors import FetchError
from .ban import BanStatus, NOT_BANNED, decode_ban_end, encode_ban_end

# Stored keys owned by `Account`; anything else in a record is carried through.
KNOWN_KEYS = ('uid', 'email', 'username', 'admin', 'lastLogin', 'banEnd', 'photoURL')


@dataclass(frozen=True)
class Account:
    uid: str
    email: Optional[str] = None
    username: Optional[str] = None
    admin: bool = False
    last_login: Optional[str] = None
    ban: BanStatus = NOT_BANNED
    photo_url: Optional[str] = None
    extra: dict = field(default_factory=dict)
    # Set when a lenient read found an undecodable banEnd
    ban_invalid: bool = False

    @classmethod
    def from_record(cls, uid: str, raw, lenient: bool = False) -> 'Account':
        """Build an account from its stored document.

        A malformed ``banEnd`` raises FetchError, unless ``lenient`` is set:
        then the account reads as not banned with ``ban_invalid`` flagged, so
        listings still show it and an unban can overwrite the bad value.
        """
        if not isinstance(raw, dict):
            raise FetchError(f'Account record {uid} is not an object')
        ban_invalid = False
        try:
            ban = decode_ban_end(raw.get('banEnd'))
        except FetchError:
            if not lenient:
                raise
            ban, ban_invalid = NOT_BANNED, True
        username = raw.get('username')
        return cls(
            uid=uid,
            email=raw.get('email'),
            username=username if isinstance(username, str) and username else None,
            admin=raw.get('admin') is True,
            last_login=raw.get('lastLogin'),
            ban=ban,
            photo_url=raw.get('photoURL'),
            extra={k: v for k, v in raw.items() if k not in KNOWN_KEYS},
            ban_invalid=ban_invalid,
        )

    def to_record(self) -> dict:
        record = dict(self.extra)
        record.update({
            'uid': self.uid,
            'email': self.email,
            'admin': self.admin,
            'lastLogin': self.last_login,
            'banEnd': encode_ban_end(self.ban),
        })
        if self.username is not None:
            record['username'] = self.username
        if self.photo_url is not None:
            record['photoURL'] = self.photo_url
        return record

    def with_ban(self, status: BanStatus) -> 'Account':
        return replace(self, ban=status, ban_invalid=False)


def new_account(uid: str, email: Optional[str], username: Optional[str], now: str) -> Account:
    """Defaults for an account's first sign-in."""
    return Account(uid=uid, email=email, username=username or None, admin=False, last_login=now, ban=NOT_BANNED)


def accounts_from_collection(raw, lenient: bool = False) -> List[Account]:
    if raw is None:
        return []
    if not isinstance(raw, dict):
        raise FetchError('Account collection is not an object')
    return [Account.from_record(uid, value, lenient) for uid, value in raw.items()]
