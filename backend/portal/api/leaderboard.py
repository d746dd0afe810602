from flask import Blueprint, current_app, jsonify, request

from portal.services.leaderboard.board import LeaderboardState, load_snapshot
from portal.services.leaderboard.ranking import DEFAULT_SORT_KEY
from portal.store import RecordStore

leaderboard = Blueprint('leaderboard', __name__)


@leaderboard.route('', methods=['GET'])
def get_leaderboard():
    cfg = current_app.config
    sort_key = request.args.get('sort') or DEFAULT_SORT_KEY
    page = request.args.get('page', 0, type=int)

    state = LeaderboardState(int(cfg.get('LEADERBOARD_PAGE_SIZE', 10)), sort_key)
    state.replace_entries(load_snapshot(RecordStore(), cfg.get('LEADERBOARD_PLACEHOLDER_NAME', 'Anonymous')))
    state.go_to(page)
    return jsonify(state.to_dict())
