import uuid

from flask import Blueprint, current_app, request, jsonify, session
from flask_login import login_user, logout_user, login_required, current_user
from .models import db, Credential
from .errors import PortalError
from .store import RecordStore
from .services.accounts import service
from .services.accounts.ban import now_iso, now_ms
from .socketio_events import AUTH_SESSION_KEY, notify_signed_out

main = Blueprint('main', __name__)

@main.route('/login', methods=['POST', 'OPTIONS'])
def login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    if not email or not password:
        return jsonify({"success": False, "message": "Please fill in all fields."}), 400
    credential = Credential.query.filter_by(email=email).first()
    if not (credential and credential.check_password(password)):
        return jsonify({"success": False, "message": "Invalid credentials"}), 401
    # Refresh the account record before the session exists
    account = service.record_login(RecordStore(), credential.uid, credential.email, now=now_iso())
    login_user(credential)
    session[AUTH_SESSION_KEY] = uuid.uuid4().hex
    current_app.logger.info(f"[login] uid={credential.uid}")
    return jsonify({"success": True, "user": service.identity_badge(account, now_ms())})

@main.route('/register', methods=['POST', 'OPTIONS'])
def register():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    confirm = data.get('confirm_password') or ''
    username = (data.get('username') or '').strip()
    if not all([email, password, confirm, username]):
        return jsonify({"success": False, "message": "Please fill in all fields."}), 400
    if password != confirm:
        return jsonify({"success": False, "message": "Passwords do not match."}), 400
    if Credential.query.filter_by(email=email).first():
        return jsonify({"success": False, "message": "Email already registered"}), 400

    credential = Credential(email=email)
    credential.set_password(password)
    db.session.add(credential)
    db.session.commit()
    try:
        account = service.record_login(RecordStore(), credential.uid, email, username=username, now=now_iso())
    except PortalError:
        # No account record, no credential
        db.session.delete(credential)
        db.session.commit()
        raise
    login_user(credential)
    session[AUTH_SESSION_KEY] = uuid.uuid4().hex
    current_app.logger.info(f"[register] uid={credential.uid}")
    return jsonify({"success": True, "user": service.identity_badge(account, now_ms())}), 201

@main.route('/check_login', methods=['GET', 'OPTIONS'])
def check_login():
    if request.method == 'OPTIONS':
        return jsonify({'status': 'ok'}), 200

    @login_required
    def protected_check():
        account = service.load_account(RecordStore(), current_user.uid)
        user = service.identity_badge(account, now_ms()) if account else current_user.to_dict()
        return jsonify({"success": True, "user": user})

    return protected_check()

@main.route('/logout', methods=['POST', 'OPTIONS'])
@login_required
def logout():
    uid = current_user.uid
    auth_session = session.pop(AUTH_SESSION_KEY, None)
    logout_user()
    notify_signed_out(uid, auth_session)
    return jsonify({"success": True})
