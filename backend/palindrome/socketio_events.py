from flask_socketio import join_room, leave_room, emit
from palindrome import socketio

NAMESPACE = '/ws'


def match_room(match_id) -> str:
    return f"match:{match_id}"


class MatchNotifier:
    """Tell every client watching a match that it changed.

    The event carries only the match id. Clients refetch the whole match on
    receipt, so lost, duplicated or reordered events are harmless.
    """

    def __init__(self, sio=None, namespace=NAMESPACE):
        self.sio = sio or socketio
        self.namespace = namespace

    def match_changed(self, match_id: int) -> None:
        self.sio.emit('match_changed', {'match_id': match_id}, to=match_room(match_id), namespace=self.namespace)


def _match_id(data):
    match_id = (data or {}).get('match_id')
    if match_id is None:
        emit('error', {'message': 'match_id is required'})
        return None
    return match_id


def handle_connect():
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_join_match(data):
    match_id = _match_id(data)
    if match_id is None:
        return
    room = match_room(match_id)
    join_room(room)
    emit('joined', {'room': room})


def handle_leave_match(data):
    match_id = _match_id(data)
    if match_id is None:
        return
    room = match_room(match_id)
    leave_room(room)
    emit('left', {'room': room})


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    namespaces = [NAMESPACE, '/'] if testing else [NAMESPACE]
    for namespace in namespaces:
        socketio.on_event('connect', handle_connect, namespace=namespace)
        socketio.on_event('join_match', handle_join_match, namespace=namespace)
        socketio.on_event('leave_match', handle_leave_match, namespace=namespace)
        socketio.on_event('ping', handle_ping, namespace=namespace)
