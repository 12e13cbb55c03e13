import logging
import signal
import sys

from flask import current_app, request
from flask_socketio import emit, join_room, leave_room

from playroom.errors import RelayError
from playroom.services.relay import RELAYED_EVENTS

logger = logging.getLogger(__name__)

INTERNAL_ERROR = {'error': 'Internal error'}


def _services():
    return current_app.extensions['playroom']


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _announce_leave(svc, result) -> None:
    code = result.room.code
    svc.broadcaster.to_room(code, 'playerLeft', {
        'id': result.player.id,
        'name': result.player.name,
        'count': len(result.room.players),
        'players': result.room.players_payload(),
    })
    if result.new_host is not None:
        svc.broadcaster.to_room(code, 'hostChanged', {
            'hostId': result.new_host.id,
            'hostName': result.new_host.name,
        })


def _leave_previous(svc, sid: str, previous, disconnecting: bool = False) -> None:
    if previous is None:
        return
    result = svc.directory.leave(previous.code, sid)
    if not disconnecting:
        leave_room(previous.code)
    if result is not None:
        _announce_leave(svc, result)


def handle_connect(auth=None):
    _services().start_sweeper()
    emit('connected', {'id': _get_sid()})


def handle_disconnect(reason=None):
    svc = _services()
    sid = _get_sid()
    svc.limiter.forget(sid)
    with svc.directory.lock:
        _leave_previous(svc, sid, svc.directory.session_for(sid), disconnecting=True)


def handle_create_room(data=None):
    svc = _services()
    sid = _get_sid()
    if not svc.relay.allowed(sid, 'createRoom'):
        return None
    game_kind = data.get('gameKind') if isinstance(data, dict) else data
    with svc.directory.lock:
        previous = svc.directory.session_for(sid)
        try:
            room = svc.directory.create_room(game_kind, sid)
        except RelayError as exc:
            return exc.to_ack()
        except Exception:
            current_app.logger.exception(f"[room-create] failed kind={game_kind!r}")
            return INTERNAL_ERROR
        _leave_previous(svc, sid, previous)
        join_room(room.code)
        return room.code


def handle_join_room(data=None, display_name=None):
    svc = _services()
    sid = _get_sid()
    if not svc.relay.allowed(sid, 'joinRoom'):
        return None
    if isinstance(data, dict):
        code = data.get('roomCode') or data.get('code')
        display_name = data.get('displayName') or data.get('name')
    else:
        code = data
    with svc.directory.lock:
        previous = svc.directory.session_for(sid)
        try:
            room, player = svc.directory.join_room(code, sid, display_name)
        except RelayError as exc:
            return exc.to_ack()
        except Exception:
            current_app.logger.exception(f"[room-join] failed code={code!r}")
            return INTERNAL_ERROR
        if previous is not None and previous.code != room.code:
            _leave_previous(svc, sid, previous)
        join_room(room.code)

        player_index = room.index_of(player.id)
        svc.broadcaster.to_room(room.code, 'playerJoined', {
            'id': player.id,
            'name': player.name,
            'playerIndex': player_index,
            'count': len(room.players),
            'players': room.players_payload(),
        })
        svc.engine.player_joined(room.code)
        return {
            'code': room.code,
            'gameKind': room.game_kind,
            'playerIndex': player_index,
            'players': room.players_payload(),
        }


def handle_draw_game_start(*_args):
    svc = _services()
    sid = _get_sid()
    room = svc.directory.room_for(sid)
    if room is None:
        return
    try:
        svc.engine.start_game(room.code, sid)
    except RelayError as exc:
        # Unauthorized starts are ignored without telling the sender
        current_app.logger.debug(f"[game-start] ignored sid={sid}: {exc.message}")


def handle_set_word(word=None):
    svc = _services()
    sid = _get_sid()
    room = svc.directory.room_for(sid)
    if room is None or not svc.relay.allowed(sid, 'setWord'):
        return
    try:
        svc.engine.set_word(room.code, sid, word)
    except RelayError as exc:
        current_app.logger.debug(f"[round-word] ignored sid={sid}: {exc.message}")


def handle_chat_msg(text=None):
    svc = _services()
    svc.relay.chat(_get_sid(), text)


def _relay_handler(event):
    def handler(data=None):
        svc = _services()
        svc.relay.relay(_get_sid(), event, data)
    handler.__name__ = f'handle_{event}'
    return handler


def handle_unexpected_error(exc):
    current_app.logger.exception(f"[socket-error] event={getattr(request, 'event', None)} sid={getattr(request, 'sid', None)}: {exc}")


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register Socket.IO event handlers on the given namespace."""
    from playroom import socketio

    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('createRoom', handle_create_room, namespace=namespace)
    socketio.on_event('joinRoom', handle_join_room, namespace=namespace)
    socketio.on_event('drawGameStart', handle_draw_game_start, namespace=namespace)
    socketio.on_event('setWord', handle_set_word, namespace=namespace)
    socketio.on_event('chatMsg', handle_chat_msg, namespace=namespace)
    for event in RELAYED_EVENTS:
        socketio.on_event(event, _relay_handler(event), namespace=namespace)
    socketio.on_error_default(handle_unexpected_error)


def notify_shutdown(app) -> None:
    with app.app_context():
        app.extensions['playroom'].shutdown()


def install_shutdown_handlers(app, signals=(signal.SIGTERM, signal.SIGINT)) -> None:
    """Notify rooms and exit when the process is asked to stop."""
    from playroom import socketio

    def handle_stop_signal(signum, frame):
        logger.info(f"Received signal {signal.Signals(signum).name}. Initiating graceful shutdown...")
        notify_shutdown(app)
        # Give the transport a moment to flush the notice
        socketio.sleep(app.config.get('SHUTDOWN_FLUSH_SEC', 0))
        sys.exit(0)

    for signum in signals:
        signal.signal(signum, handle_stop_signal)
