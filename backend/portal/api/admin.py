from functools import wraps

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from portal.api.common import as_bool, as_int, display_locale, display_timezone
from portal.services.accounts import service
from portal.services.accounts.ban import now_ms
from portal.socketio_events import notify_account_changed
from portal.store import RecordStore

admin = Blueprint('admin', __name__)


def admin_required(view):
    @wraps(view)
    @login_required
    def wrapped(*args, **kwargs):
        account = service.load_account(RecordStore(), current_user.uid)
        if not account or not account.admin:
            return jsonify({'error': 'Administrator access required'}), 403
        return view(*args, **kwargs)
    return wrapped


@admin.route('/users', methods=['GET'])
@admin_required
def list_users():
    now = now_ms()
    locale, tz = display_locale(), display_timezone()
    accounts = service.list_accounts(RecordStore(), request.args.get('search'))
    rows = [service.admin_row(a, now, locale, tz) for a in accounts]
    return jsonify({
        'users': rows,
        'message': None if rows else 'No users found.',
    })


@admin.route('/users/<string:uid>/ban', methods=['POST'])
@admin_required
def ban_user(uid):
    data = request.get_json(silent=True) or {}
    now = now_ms()
    account = service.ban_account(
        RecordStore(),
        uid,
        permanent=as_bool(data.get('permanent')),
        days=as_int(data.get('days')),
        hours=as_int(data.get('hours')),
        minutes=as_int(data.get('minutes')),
        now=now,
    )
    current_app.logger.info(f"[admin-action] ban by={current_user.uid} target={uid}")
    notify_account_changed(uid)
    return jsonify(service.admin_row(account, now, display_locale(), display_timezone()))


@admin.route('/users/<string:uid>/unban', methods=['POST'])
@admin_required
def unban_user(uid):
    account = service.unban_account(RecordStore(), uid)
    current_app.logger.info(f"[admin-action] unban by={current_user.uid} target={uid}")
    notify_account_changed(uid)
    return jsonify(service.admin_row(account, now_ms(), display_locale(), display_timezone()))
