from flask import current_app, request, session
from flask_login import current_user
from flask_socketio import emit
from typing import Any, Dict, Optional

from portal import socketio
from portal.errors import FetchError, ValidationError
from portal.services.accounts import service
from portal.services.accounts.ban import now_ms
from portal.services.leaderboard.board import LeaderboardState, load_snapshot
from portal.services.leaderboard.ranking import DEFAULT_SORT_KEY
from portal.services.session import AuthChannel, ViewContext
from portal.store import RecordStore

NAMESPACE = '/ws'
# Per-login token kept in the Flask session; ties sockets to the sign-in that opened them
AUTH_SESSION_KEY = 'auth_session'

_sid_to_ctx: Dict[str, Dict[str, Any]] = {}


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _current_uid() -> Optional[str]:
    return current_user.uid if current_user.is_authenticated else None


def _current_auth_session() -> Optional[str]:
    return session.get(AUTH_SESSION_KEY) if current_user.is_authenticated else None


def _emit_to(sid: str, event: str, payload: dict) -> None:
    # socketio.emit works from HTTP handlers and background tasks alike
    socketio.emit(event, payload, to=sid, namespace=NAMESPACE)


def _run(app, fn, *args) -> None:
    """Run a fetch in the background; inline under TESTING for determinism."""
    if app.config.get('TESTING'):
        fn(*args)
    else:
        socketio.start_background_task(fn, *args)


def handle_connect(auth=None):
    uid = _current_uid()
    _sid_to_ctx[_get_sid()] = {
        'uid': uid,
        'auth_session': _current_auth_session(),
        'channel': AuthChannel(uid),
        'identity_view': ViewContext(),
        'leaderboard_view': ViewContext(),
        'leaderboard': None,
        'unsubscribe': [],
    }
    emit('connected', {'uid': uid})


def handle_disconnect(reason=None):
    ctx = _sid_to_ctx.pop(_get_sid(), None)
    if not ctx:
        return
    for unsubscribe in ctx['unsubscribe']:
        unsubscribe()
    ctx['channel'].close()
    ctx['identity_view'].close()
    ctx['leaderboard_view'].close()


def _context() -> Optional[Dict[str, Any]]:
    ctx = _sid_to_ctx.get(_get_sid())
    if ctx is None:
        emit('error', {'message': 'Not connected'})
    return ctx


# ---- Identity badge ----

def handle_watch_identity(data=None):
    ctx = _context()
    if not ctx:
        return
    app = current_app._get_current_object()
    sid = _get_sid()

    def on_auth_change(uid):
        token = ctx['identity_view'].begin()
        _run(app, _push_identity, app, sid, ctx, token, uid)

    ctx['unsubscribe'].append(ctx['channel'].subscribe(on_auth_change))


def _push_identity(app, sid: str, ctx: Dict[str, Any], token: int, uid: Optional[str]) -> None:
    with app.app_context():
        if uid is None:
            payload = {'signed_in': False, 'badge': None}
        else:
            try:
                account = service.load_account(RecordStore(), uid)
            except FetchError as exc:
                ctx['identity_view'].deliver(token, _emit_to, sid, 'identity_error', {'error': exc.message})
                return
            badge = service.identity_badge(account, now_ms()) if account else None
            payload = {'signed_in': True, 'badge': badge}
        ctx['identity_view'].deliver(token, _emit_to, sid, 'identity', payload)


def notify_account_changed(uid: str) -> None:
    """Re-push identity badges on every connection signed in as ``uid``."""
    for ctx in list(_sid_to_ctx.values()):
        if ctx['uid'] == uid:
            ctx['channel'].publish(uid)


def notify_signed_out(uid: str, auth_session: Optional[str]) -> None:
    """Sign out the connections opened under the sign-in that just ended.

    Other browsers signed in as the same user keep their session and badge.
    """
    if auth_session is None:
        return
    for ctx in list(_sid_to_ctx.values()):
        if ctx['uid'] == uid and ctx['auth_session'] == auth_session:
            ctx['uid'] = None
            ctx['channel'].publish(None)


# ---- Leaderboard ----

def handle_leaderboard_open(data=None):
    ctx = _context()
    if not ctx:
        return
    cfg = current_app.config
    try:
        state = LeaderboardState(int(cfg.get('LEADERBOARD_PAGE_SIZE', 10)), (data or {}).get('sort') or DEFAULT_SORT_KEY)
    except ValidationError as exc:
        emit('leaderboard_error', {'error': exc.message})
        return
    ctx['leaderboard'] = state
    _refresh_leaderboard(ctx)


def handle_leaderboard_refresh(data=None):
    ctx = _context()
    if not ctx or not _leaderboard_state(ctx):
        return
    _refresh_leaderboard(ctx)


def _refresh_leaderboard(ctx: Dict[str, Any]) -> None:
    app = current_app._get_current_object()
    token = ctx['leaderboard_view'].begin()
    _run(app, _load_leaderboard, app, _get_sid(), ctx, token)


def _load_leaderboard(app, sid: str, ctx: Dict[str, Any], token: int) -> None:
    with app.app_context():
        placeholder = app.config.get('LEADERBOARD_PLACEHOLDER_NAME', 'Anonymous')
        try:
            entries = load_snapshot(RecordStore(), placeholder)
        except FetchError as exc:
            ctx['leaderboard_view'].deliver(token, _emit_to, sid, 'leaderboard_error', {'error': exc.message})
            return

        def apply(snapshot):
            state = ctx['leaderboard']
            state.replace_entries(snapshot)
            _emit_to(sid, 'leaderboard_page', state.to_dict())

        ctx['leaderboard_view'].deliver(token, apply, entries)


def _leaderboard_state(ctx: Dict[str, Any]) -> Optional[LeaderboardState]:
    state = ctx.get('leaderboard')
    if state is None:
        emit('leaderboard_error', {'error': 'Leaderboard is not open'})
    return state


def handle_leaderboard_sort(data=None):
    ctx = _context()
    state = _leaderboard_state(ctx) if ctx else None
    if not state:
        return
    try:
        state.set_sort_key((data or {}).get('sort'))
    except ValidationError as exc:
        emit('leaderboard_error', {'error': exc.message})
        return
    if state.loaded:
        emit('leaderboard_page', state.to_dict())


def handle_leaderboard_goto(data=None):
    ctx = _context()
    state = _leaderboard_state(ctx) if ctx else None
    if not state or not state.loaded:
        return
    data = data or {}
    direction = data.get('direction')
    if direction == 'next':
        state.next_page()
    elif direction == 'previous':
        state.previous_page()
    else:
        try:
            state.go_to(int(data.get('page', 0)))
        except (TypeError, ValueError):
            emit('leaderboard_error', {'error': 'page must be an integer'})
            return
    emit('leaderboard_page', state.to_dict())


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('watch_identity', handle_watch_identity, namespace=NAMESPACE)
    socketio.on_event('leaderboard_open', handle_leaderboard_open, namespace=NAMESPACE)
    socketio.on_event('leaderboard_refresh', handle_leaderboard_refresh, namespace=NAMESPACE)
    socketio.on_event('leaderboard_sort', handle_leaderboard_sort, namespace=NAMESPACE)
    socketio.on_event('leaderboard_goto', handle_leaderboard_goto, namespace=NAMESPACE)
