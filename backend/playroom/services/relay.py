import logging
from typing import NamedTuple, Tuple

from .rounds import GUESS_MISS

logger = logging.getLogger(__name__)

CHAT_MAX_LEN = 200


class RelayedEvent(NamedTuple):
    game_kind: str
    fields: Tuple[str, ...]
    # State changes go to everyone; continuous updates skip the sender,
    # who already holds the authoritative local state
    include_sender: bool
    tag_sender: bool = False


RELAYED_EVENTS = {
    'drawLine': RelayedEvent('draw', ('from', 'to', 'color', 'size'), False),
    'clearCanvas': RelayedEvent('draw', (), True),
    'snakeUpdate': RelayedEvent('snake', ('x', 'y', 'direction'), False, tag_sender=True),
    'snakeStart': RelayedEvent('snake', (), True),
    'pongMove': RelayedEvent('pong', ('y', 'playerSlot'), False),
    'pongBall': RelayedEvent('pong', ('x', 'y', 'vx', 'vy'), False),
    'pongScore': RelayedEvent('pong', ('left', 'right'), True),
}


def narrow_payload(data, fields):
    """Keep only recognised fields. Returns None for a non-dict payload."""
    if not isinstance(data, dict):
        return None
    return {k: data[k] for k in fields if k in data}


class SessionRelay:
    def __init__(self, directory, engine, limiter, broadcaster, config):
        self.directory = directory
        self.engine = engine
        self.limiter = limiter
        self.broadcaster = broadcaster
        self.rate_limits = dict(config.get('RATE_LIMITS') or {})

    def allowed(self, sid: str, action: str) -> bool:
        limit = self.rate_limits.get(action)
        if not limit:
            return True
        max_calls, window_ms = limit
        if self.limiter.allow(sid, action, max_calls, window_ms):
            return True
        logger.debug(f"[rate-drop] sid={sid} action={action}")
        return False

    def relay(self, sid: str, event: str, data=None) -> bool:
        """Forward a game event to the sender's room. Returns False if dropped."""
        route = RELAYED_EVENTS.get(event)
        if route is None:
            return False
        with self.directory.lock:
            room = self.directory.room_for(sid)
            if room is None or room.game_kind != route.game_kind:
                return False
            if not self.allowed(sid, event):
                return False

            payload = None
            if route.fields:
                payload = narrow_payload(data, route.fields)
                if payload is None:
                    return False
                if route.tag_sender:
                    payload = {'id': sid, **payload}
            room.touch(self.directory.clock())
            self.broadcaster.to_room(room.code, event, payload, skip=None if route.include_sender else sid)
            return True

    def chat(self, sid: str, text) -> bool:
        """Send a chat line, letting the round engine claim guesses first."""
        if not isinstance(text, str):
            return False
        text = text.strip()[:CHAT_MAX_LEN]
        with self.directory.lock:
            room = self.directory.room_for(sid)
            if room is None or not text or not self.allowed(sid, 'chatMsg'):
                return False

            if room.round_state is not None:
                if self.engine.submit_guess(room.code, sid, text) != GUESS_MISS:
                    return True
            player = room.find_player(sid)
            room.touch(self.directory.clock())
            self.broadcaster.to_room(room.code, 'chatMsg', {
                'id': sid,
                'name': player.name if player else None,
                'msg': text,
            })
            return True
