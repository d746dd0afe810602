from dataclasses import replace
from typing import List, Optional

from flask import current_app

from portal.errors import NotFound, ValidationError
from .ban import (
    Permanent,
    Until,
    clear_ban,
    compute_ban_end,
    encode_ban_end,
    format_ban_end_date,
    format_ban_status,
    is_banned,
)
from .records import Account, accounts_from_collection, new_account

NO_USERNAME = 'No username'
INVALID_BAN_LABEL = 'invalid ban value'


def account_path(uid: str) -> str:
    return f'users/{uid}'


def load_account(store, uid: str) -> Optional[Account]:
    raw = store.read_record(account_path(uid))
    return Account.from_record(uid, raw) if raw is not None else None


def require_account(store, uid: str) -> Account:
    account = load_account(store, uid)
    if account is None:
        raise NotFound(f'Account {uid} not found')
    return account


def list_accounts(store, search: Optional[str] = None) -> List[Account]:
    """All accounts, optionally filtered by a case-insensitive username match."""
    accounts = accounts_from_collection(store.read_record('users'), lenient=True)
    for account in accounts:
        if account.ban_invalid:
            current_app.logger.warning(f"[account-invalid-ban] uid={account.uid}")
    term = (search or '').strip().lower()
    if not term:
        return accounts
    return [a for a in accounts if term in (a.username or '').lower()]


def ban_account(store, uid: str, permanent: bool, days: int, hours: int, minutes: int, now: int) -> Account:
    """Ban an account and rewrite its whole record.

    The duration is validated before anything is read or written. Two bans
    racing on the same account are not coordinated; the last write wins.
    """
    status = compute_ban_end(permanent, days, hours, minutes, now)
    account = require_account(store, uid)
    updated = account.with_ban(status)
    store.write_record(account_path(uid), updated.to_record())
    current_app.logger.info(f"[ban] uid={uid} banEnd={encode_ban_end(status)}")
    return updated


def unban_account(store, uid: str) -> Account:
    """Clear the ban, overwriting whatever ``banEnd`` held, even a malformed value."""
    raw = store.read_record(account_path(uid))
    if raw is None:
        raise NotFound(f'Account {uid} not found')
    updated = Account.from_record(uid, raw, lenient=True).with_ban(clear_ban())
    store.write_record(account_path(uid), updated.to_record())
    current_app.logger.info(f"[unban] uid={uid}")
    return updated


def record_login(store, uid: str, email: Optional[str], username: Optional[str] = None, now: Optional[str] = None) -> Account:
    """Create the account on first sign-in, otherwise refresh email and last login."""
    existing = load_account(store, uid)
    if existing is None:
        account = new_account(uid, email, username, now)
        current_app.logger.info(f"[account-created] uid={uid}")
    else:
        account = replace(existing, email=email, last_login=now)
    store.write_record(account_path(uid), account.to_record())
    return account


def rename_account(store, uid: str, username: Optional[str], now: str) -> Account:
    name = (username or '').strip()
    if not name:
        raise ValidationError('Username cannot be empty.')
    account = require_account(store, uid)
    store.update_fields(account_path(uid), {'username': name, 'lastLogin': now})
    return replace(account, username=name, last_login=now)


def identity_badge(account: Account, now: int) -> dict:
    return {
        'uid': account.uid,
        'username': account.username,
        'photoURL': account.photo_url,
        'admin': account.admin,
        'banned': is_banned(account.ban, now),
    }


def profile_view(account: Account, now: int, locale: Optional[str] = None, tz: Optional[str] = None) -> dict:
    banned = is_banned(account.ban, now)
    ends_at = None
    if banned and isinstance(account.ban, Until):
        ends_at = format_ban_end_date(account.ban.end_ms, locale, tz)
    return {
        'uid': account.uid,
        'email': account.email,
        'username': account.username,
        'photoURL': account.photo_url,
        'lastLogin': account.last_login,
        'ban': {
            'banned': banned,
            'permanent': isinstance(account.ban, Permanent),
            'ends_at': ends_at,
            'label': format_ban_status(account.ban, now, locale, tz),
        },
    }


def admin_row(account: Account, now: int, locale: Optional[str] = None, tz: Optional[str] = None) -> dict:
    banned = is_banned(account.ban, now)
    label = INVALID_BAN_LABEL if account.ban_invalid else format_ban_status(account.ban, now, locale, tz)
    return {
        'uid': account.uid,
        'username': account.username or NO_USERNAME,
        'email': account.email,
        'admin': account.admin,
        'banEnd': encode_ban_end(account.ban),
        'ban_label': label,
        'banned': banned,
        # A malformed stored value can only be repaired by an unban
        'can_unban': banned or account.ban_invalid,
    }
