from flask import Blueprint, jsonify, current_app, request

from palindrome.errors import MatchError
from palindrome.schemas import MatchSchema
from . import error_response, json_body, required, lifecycle, rematches

matches = Blueprint('matches', __name__)
matches.register_error_handler(MatchError, error_response)


def _match_payload(match: MatchSchema) -> dict:
    payload = match.model_dump(mode='json')
    # Clients drive their push+poll loop and redirect delays from these
    cfg = current_app.config
    payload['sync'] = {
        'poll_interval_sec': float(cfg.get('SYNC_POLL_INTERVAL_SEC', 2.5)),
        'rematch_decline_grace_sec': float(cfg.get('REMATCH_DECLINE_GRACE_SEC', 2)),
    }
    return payload


@matches.route('/matches/quick', methods=['POST'])
def claim_quick_match():
    user_id = required(json_body(), 'user_id')[0]
    match = lifecycle().claim_quick_match(user_id)
    return jsonify(_match_payload(match)), 201


@matches.route('/matches/create', methods=['POST'])
def create_match():
    data = json_body()
    user_id = required(data, 'user_id')[0]
    service = lifecycle()
    if data.get('private'):
        match = service.create_invite_match(user_id)
    else:
        match = service.create_quick_match(user_id)
    return jsonify(_match_payload(match)), 201


@matches.route('/matches/join', methods=['POST'])
def join_match():
    user_id, code = required(json_body(), 'user_id', 'code')
    match = lifecycle().join_by_invite_code(user_id, code)
    return jsonify(_match_payload(match))


@matches.route('/matches/<int:match_id>', methods=['GET'])
def get_match(match_id):
    match = lifecycle().get_match(match_id)
    if match is None:
        return jsonify({'error': 'Match not found', 'kind': 'not_found'}), 404
    return jsonify(_match_payload(match))


@matches.route('/matches/<int:match_id>/leave', methods=['POST'])
def leave_match(match_id):
    user_id = required(json_body(), 'user_id')[0]
    return jsonify(_match_payload(lifecycle().leave_match(user_id, match_id)))


@matches.route('/matches/<int:match_id>/cancel', methods=['POST'])
def cancel_match(match_id):
    user_id = required(json_body(), 'user_id')[0]
    return jsonify(_match_payload(lifecycle().cancel_match(user_id, match_id)))


@matches.route('/matches/<int:match_id>/live-score', methods=['POST'])
def update_live_score(match_id):
    user_id, score = required(json_body(), 'user_id', 'score')
    return jsonify(_match_payload(lifecycle().update_live_score(match_id, user_id, score)))


@matches.route('/matches/<int:match_id>/submit', methods=['POST'])
def submit_score(match_id):
    user_id, score = required(json_body(), 'user_id', 'score')
    return jsonify(_match_payload(lifecycle().submit_score(match_id, user_id, score)))


@matches.route('/matches/<int:match_id>/rematch', methods=['POST'])
def request_rematch(match_id):
    user_id = required(json_body(), 'user_id')[0]
    outcome = rematches().request_rematch(match_id, user_id)
    return jsonify(outcome.model_dump(mode='json'))


@matches.route('/rematches/<int:request_id>/accept', methods=['POST'])
def accept_rematch(request_id):
    user_id = required(json_body(), 'user_id')[0]
    outcome = rematches().accept_rematch(request_id, user_id)
    return jsonify(outcome.model_dump(mode='json'))


@matches.route('/rematches/<int:request_id>/decline', methods=['POST'])
def decline_rematch(request_id):
    user_id = required(json_body(), 'user_id')[0]
    return jsonify(rematches().decline_rematch(request_id, user_id).model_dump(mode='json'))


@matches.route('/users/<string:user_id>/matches', methods=['GET'])
def recent_matches(user_id):
    return jsonify([m.model_dump(mode='json') for m in lifecycle().get_recent_matches(user_id)])


@matches.route('/users/<string:user_id>/head-to-head/<string:other_id>', methods=['GET'])
def head_to_head(user_id, other_id):
    return jsonify(lifecycle().head_to_head(user_id, other_id).model_dump())


@matches.route('/users/<string:user_id>/opponents', methods=['GET'])
def recent_opponents(user_id):
    limit = request.args.get('limit', default=20, type=int)
    return jsonify({'opponents': lifecycle().get_recent_opponents(user_id, limit=limit)})
