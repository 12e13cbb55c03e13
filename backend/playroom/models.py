from typing import List, Optional

GAME_KINDS = ('draw', 'snake', 'pong')

# Round phases for the drawing game
PHASE_IDLE = 'idle'
PHASE_AWAITING_WORD = 'awaiting_word'
PHASE_ACTIVE = 'active'
PHASE_RESOLVED = 'resolved'
PHASE_PAUSED = 'paused'


class Player:
    def __init__(self, id: str, name: str, score: int = 0):
        self.id = id
        self.name = name
        self.score = score

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'score': self.score,
        }


class RoundState:
    def __init__(self):
        self.phase = PHASE_IDLE
        self.secret_word: Optional[str] = None
        # Who set the current word; survives drawer_index shifting on leave
        self.drawer_id: Optional[str] = None
        self.drawer_index = 0
        self.round_number = 0

    def reset(self):
        self.phase = PHASE_AWAITING_WORD
        self.secret_word = None
        self.drawer_id = None
        self.drawer_index = 0
        self.round_number = 0

    def to_dict(self):
        # The secret word never leaves the server
        return {
            'phase': self.phase,
            'drawer_index': self.drawer_index,
            'round': self.round_number,
            'has_word': self.secret_word is not None,
        }


class Room:
    def __init__(self, code: str, game_kind: str, now: float):
        self.code = code
        self.game_kind = game_kind
        self.players: List[Player] = []
        self.host: Optional[str] = None
        self.round_state = RoundState() if game_kind == 'draw' else None
        self.created_at = now
        self.last_active_at = now
        # Cancellable delayed round advance, owned by the room
        self.pending_advance = None

    @property
    def is_empty(self) -> bool:
        return not self.players

    def touch(self, now: float) -> None:
        self.last_active_at = now

    def find_player(self, player_id: str) -> Optional[Player]:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    def index_of(self, player_id: str) -> int:
        for idx, p in enumerate(self.players):
            if p.id == player_id:
                return idx
        return -1

    def name_taken(self, name: str) -> bool:
        folded = name.casefold()
        return any(p.name.casefold() == folded for p in self.players)

    def add_player(self, player: Player) -> int:
        self.players.append(player)
        if self.host is None:
            self.host = player.id
        return len(self.players) - 1

    def remove_player(self, player_id: str):
        """Remove a player and keep host and drawer pointing at live players.

        Returns ``(player, host_changed)`` or ``(None, False)`` when the id is
        not in the room.
        """
        idx = self.index_of(player_id)
        if idx < 0:
            return None, False
        player = self.players.pop(idx)

        host_changed = False
        if self.host == player_id:
            self.host = self.players[0].id if self.players else None
            host_changed = self.host is not None

        rs = self.round_state
        if rs is not None:
            if not self.players:
                rs.drawer_index = 0
            elif idx < rs.drawer_index:
                rs.drawer_index -= 1
            elif rs.drawer_index >= len(self.players):
                rs.drawer_index %= len(self.players)
        return player, host_changed

    @property
    def host_player(self) -> Optional[Player]:
        return self.find_player(self.host) if self.host else None

    @property
    def drawer(self) -> Optional[Player]:
        if self.round_state is None or not self.players:
            return None
        idx = self.round_state.drawer_index
        if 0 <= idx < len(self.players):
            return self.players[idx]
        return None

    def players_payload(self):
        return [p.to_dict() for p in self.players]

    def to_dict(self):
        data = {
            'code': self.code,
            'game_kind': self.game_kind,
            'host': self.host,
            'players': self.players_payload(),
            'created_at': self.created_at,
            'last_active_at': self.last_active_at,
        }
        if self.round_state is not None:
            data['round'] = self.round_state.to_dict()
        return data
