from flask import Blueprint, jsonify, request

from palindrome.errors import MatchError
from . import error_response, json_body, required, challenges, friends, notifications

social = Blueprint('social', __name__)
social.register_error_handler(MatchError, error_response)


@social.route('/challenges', methods=['POST'])
def challenge_friend():
    from_user_id, to_user_id = required(json_body(), 'from_user_id', 'to_user_id')
    challenge = challenges().challenge_friend(from_user_id, to_user_id)
    return jsonify(challenge.model_dump(mode='json')), 201


@social.route('/challenges/<int:challenge_id>/accept', methods=['POST'])
def accept_challenge(challenge_id):
    user_id = required(json_body(), 'user_id')[0]
    match = challenges().accept_challenge(challenge_id, user_id)
    return jsonify(match.model_dump(mode='json'))


@social.route('/challenges/<int:challenge_id>/decline', methods=['POST'])
def decline_challenge(challenge_id):
    user_id = required(json_body(), 'user_id')[0]
    return jsonify(challenges().decline_challenge(challenge_id, user_id).model_dump(mode='json'))


@social.route('/users/<string:user_id>/challenges', methods=['GET'])
def pending_challenges(user_id):
    return jsonify([c.model_dump(mode='json') for c in challenges().get_pending_challenges(user_id)])


@social.route('/friends', methods=['POST'])
def send_friend_request():
    user_id, friend_id = required(json_body(), 'user_id', 'friend_id')
    return jsonify(friends().send_request(user_id, friend_id).model_dump(mode='json')), 201


@social.route('/friends/<int:request_id>/accept', methods=['POST'])
def accept_friend_request(request_id):
    user_id = required(json_body(), 'user_id')[0]
    return jsonify(friends().accept_request(request_id, user_id).model_dump(mode='json'))


@social.route('/friends/<int:request_id>/decline', methods=['POST'])
def decline_friend_request(request_id):
    user_id = required(json_body(), 'user_id')[0]
    friends().decline_request(request_id, user_id)
    return jsonify({'ok': True})


@social.route('/users/<string:user_id>/friends', methods=['GET'])
def list_friends(user_id):
    service = friends()
    return jsonify({
        'friends': [f.model_dump(mode='json') for f in service.get_friends(user_id)],
        'pending': [f.model_dump(mode='json') for f in service.get_pending_requests(user_id)],
    })


@social.route('/users/<string:user_id>/notifications', methods=['GET'])
def list_notifications(user_id):
    limit = request.args.get('limit', default=50, type=int)
    unread_only = request.args.get('unread_only', '').lower() in ('1', 'true', 'yes')
    rows = notifications().get_notifications(user_id, limit=limit, unread_only=unread_only)
    return jsonify([n.model_dump(mode='json') for n in rows])


@social.route('/users/<string:user_id>/notifications/unread-count', methods=['GET'])
def unread_count(user_id):
    return jsonify({'count': notifications().get_unread_count(user_id)})


@social.route('/notifications/<int:notification_id>/read', methods=['POST'])
def mark_notification_read(notification_id):
    user_id = required(json_body(), 'user_id')[0]
    return jsonify(notifications().mark_as_read(notification_id, user_id).model_dump(mode='json'))


@social.route('/users/<string:user_id>/notifications/read-all', methods=['POST'])
def mark_all_notifications_read(user_id):
    return jsonify({'updated': notifications().mark_all_as_read(user_id)})
