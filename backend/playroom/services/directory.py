import logging
import re
import threading
import time
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from playroom.errors import CapacityError, InvalidNameError, NameTakenError, NotFoundError, ValidationError
from playroom.models import GAME_KINDS, Player, Room, RoundState
from .codes import RoomCodeGenerator, normalize_code

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 20

_UNSAFE_CHARS = re.compile(r'[\x00-\x1f\x7f<>]')
_WHITESPACE = re.compile(r'\s+')


def sanitize_name(raw) -> str:
    if not isinstance(raw, str):
        return ''
    cleaned = _UNSAFE_CHARS.sub('', raw)
    return _WHITESPACE.sub(' ', cleaned).strip()


class SessionContext(NamedTuple):
    connection_id: str
    code: str
    name: str


class LeaveResult(NamedTuple):
    room: Room
    player: Player
    new_host: Optional[Player]
    emptied: bool


class RoomDirectory:
    """Process-wide map from room code to Room.

    Also indexes which room each connection is in, so handlers look the
    session up here instead of stashing it on the transport connection.
    """

    def __init__(self, config, clock: Callable[[], float] = time.time, code_generator: Optional[RoomCodeGenerator] = None):
        self.capacity = int(config.get('ROOM_CAPACITY', 4))
        self.idle_sec = float(config.get('ROOM_IDLE_SEC', 600))
        self.name_min = int(config.get('NAME_MIN_LEN', 2))
        self.name_max = int(config.get('NAME_MAX_LEN', 15))
        self.name_template = config.get('DEFAULT_NAME_TEMPLATE', 'Игрок {n}')
        self.clock = clock
        self.codes = code_generator or RoomCodeGenerator(length=int(config.get('ROOM_CODE_LENGTH', 6)))
        self._rooms: Dict[str, Room] = {}
        self._sessions: Dict[str, SessionContext] = {}
        # Socket handlers and timer callbacks run on separate threads;
        # every room mutation happens under this lock
        self.lock = threading.RLock()

    # ---- lookups ----

    def __len__(self) -> int:
        return len(self._rooms)

    def rooms(self) -> List[Room]:
        with self.lock:
            return list(self._rooms.values())

    def get(self, code) -> Optional[Room]:
        return self._rooms.get(normalize_code(code))

    def require(self, code) -> Room:
        code = normalize_code(code)
        if not self.codes.validate(code):
            raise ValidationError('Invalid room code')
        room = self._rooms.get(code)
        if room is None:
            raise NotFoundError()
        return room

    def session_for(self, connection_id: str) -> Optional[SessionContext]:
        return self._sessions.get(connection_id)

    def room_for(self, connection_id: str) -> Optional[Room]:
        ctx = self._sessions.get(connection_id)
        return self._rooms.get(ctx.code) if ctx else None

    # ---- lifecycle ----

    def _fresh_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = self.codes.generate()
            if code not in self._rooms:
                return code
            logger.info(f"[room-code] collision on {code}, retrying")
        raise RuntimeError(f'no free room code after {MAX_CODE_ATTEMPTS} attempts')

    @staticmethod
    def check_game_kind(game_kind) -> None:
        if game_kind not in GAME_KINDS:
            raise ValidationError('Unknown game')

    def create_room(self, game_kind, connection_id: str) -> Room:
        self.check_game_kind(game_kind)
        with self.lock:
            code = self._fresh_code()
            room = Room(code, game_kind, self.clock())
            creator = Player(connection_id, self.name_template.format(n=1))
            room.add_player(creator)
            # Registered only once fully built
            self._rooms[code] = room
            self._sessions[connection_id] = SessionContext(connection_id, code, creator.name)
        logger.info(f"[room-create] code={code} kind={game_kind} host={connection_id}")
        return room

    def join_room(self, code, connection_id: str, proposed_name) -> Tuple[Room, Player]:
        name = sanitize_name(proposed_name)
        with self.lock:
            room = self.require(code)
            if room.find_player(connection_id) is not None:
                raise ValidationError('Already in this room')
            if len(room.players) >= self.capacity:
                raise CapacityError()
            if len(name) < self.name_min:
                raise InvalidNameError(f'Name must be at least {self.name_min} characters')
            if len(name) > self.name_max:
                raise InvalidNameError(f'Name must be at most {self.name_max} characters')
            if room.name_taken(name):
                raise NameTakenError()

            player = Player(connection_id, name)
            room.add_player(player)
            room.touch(self.clock())
            self._sessions[connection_id] = SessionContext(connection_id, room.code, name)
        logger.info(f"[room-join] code={room.code} player={connection_id} name={name!r} count={len(room.players)}")
        return room, player

    def leave(self, code, connection_id: str) -> Optional[LeaveResult]:
        code = normalize_code(code)
        with self.lock:
            ctx = self._sessions.get(connection_id)
            if ctx is not None and ctx.code == code:
                del self._sessions[connection_id]
            room = self._rooms.get(code)
            if room is None:
                return None
            player, host_changed = room.remove_player(connection_id)
            if player is None:
                return None
            room.touch(self.clock())

            emptied = room.is_empty
            if emptied:
                if room.pending_advance is not None:
                    room.pending_advance.cancel()
                    room.pending_advance = None
                # Whoever reopens the room starts from a fresh game
                if room.round_state is not None:
                    room.round_state = RoundState()
            new_host = room.host_player if host_changed else None
        logger.info(
            f"[room-leave] code={room.code} player={connection_id} remaining={len(room.players)}"
            + (f" new_host={new_host.id}" if new_host else '')
        )
        return LeaveResult(room, player, new_host, emptied)

    def sweep_stale(self, now: Optional[float] = None) -> List[str]:
        with self.lock:
            now = self.clock() if now is None else now
            stale = [
                code for code, room in self._rooms.items()
                if room.is_empty and now - room.last_active_at > self.idle_sec
            ]
            for code in stale:
                room = self._rooms.pop(code)
                if room.pending_advance is not None:
                    room.pending_advance.cancel()
            remaining = len(self._rooms)
        if stale:
            logger.info(f"[room-sweep] removed={len(stale)} remaining={remaining}")
        return stale
