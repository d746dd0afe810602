from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from portal.api.common import display_locale, display_timezone
from portal.services.accounts import service
from portal.services.accounts.ban import now_iso, now_ms
from portal.socketio_events import notify_account_changed
from portal.store import RecordStore

profile = Blueprint('profile', __name__)


@profile.route('', methods=['GET'])
@login_required
def get_profile():
    account = service.require_account(RecordStore(), current_user.uid)
    return jsonify(service.profile_view(account, now_ms(), display_locale(), display_timezone()))


@profile.route('', methods=['PATCH'])
@login_required
def update_profile():
    data = request.get_json(silent=True) or {}
    account = service.rename_account(RecordStore(), current_user.uid, data.get('username'), now_iso())
    notify_account_changed(account.uid)
    return jsonify(service.profile_view(account, now_ms(), display_locale(), display_timezone()))


@profile.route('/badge', methods=['GET'])
@login_required
def get_badge():
    account = service.require_account(RecordStore(), current_user.uid)
    return jsonify(service.identity_badge(account, now_ms()))
