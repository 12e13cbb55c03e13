"""Round state machine for the drawing game.

idle -> awaiting_word -> active -> resolved -> awaiting_word -> ...

A correct guess closes the round immediately and schedules the rotation to
the next drawer after a short reveal delay. The delayed task is owned by the
room so a restart or an emptied room can cancel it, and the callback
re-checks the room before acting.
"""
import logging

from playroom.errors import AuthorizationError, NotFoundError
from playroom.models import (
    PHASE_ACTIVE,
    PHASE_AWAITING_WORD,
    PHASE_PAUSED,
    PHASE_RESOLVED,
    Room,
)

logger = logging.getLogger(__name__)

MIN_PLAYERS = 2
MIN_WORD_LEN = 2

GUESS_CORRECT = 'correct'
GUESS_MISS = 'miss'
GUESS_SUPPRESSED = 'suppressed'


def make_hint(word: str) -> str:
    """First character followed by one ``_`` per remaining character."""
    return word[0] + ' _' * (len(word) - 1)


class RoundEngine:
    def __init__(self, directory, broadcaster, scheduler, config):
        self.directory = directory
        self.broadcaster = broadcaster
        self.scheduler = scheduler
        self.next_round_delay = float(config.get('NEXT_ROUND_DELAY_SEC', 4))
        self.guesser_points = int(config.get('GUESSER_POINTS', 10))
        self.drawer_points = int(config.get('DRAWER_POINTS', 5))

    def _draw_room(self, code) -> Room:
        room = self.directory.get(code)
        if room is None or room.round_state is None:
            raise NotFoundError()
        return room

    def _round_payload(self, room: Room):
        drawer = room.drawer
        rs = room.round_state
        return {
            'drawerId': drawer.id if drawer else None,
            'drawerName': drawer.name if drawer else None,
            'drawerIndex': rs.drawer_index,
            'round': rs.round_number,
            'players': room.players_payload(),
        }

    def _cancel_pending(self, room: Room) -> None:
        if room.pending_advance is not None:
            room.pending_advance.cancel()
            room.pending_advance = None

    def start_game(self, code, requestor_id: str) -> None:
        with self.directory.lock:
            room = self._draw_room(code)
            if room.host != requestor_id:
                raise AuthorizationError('Only the host can start the game')
            self._cancel_pending(room)
            room.round_state.reset()
            room.touch(self.directory.clock())
            logger.info(f"[game-start] room={room.code} players={len(room.players)}")
            self.broadcaster.to_room(room.code, 'drawGameStarted', self._round_payload(room))

    def set_word(self, code, requestor_id: str, word) -> bool:
        """Store the drawer's word and send the hint. Returns False if ignored."""
        with self.directory.lock:
            room = self._draw_room(code)
            rs = room.round_state
            drawer = room.drawer
            if drawer is None or drawer.id != requestor_id:
                raise AuthorizationError('Only the drawer can set the word')
            if rs.phase not in (PHASE_AWAITING_WORD, PHASE_ACTIVE):
                raise AuthorizationError('No round is waiting for a word')
            if not isinstance(word, str) or len(word.strip()) < MIN_WORD_LEN:
                return False

            rs.secret_word = word.strip()
            rs.drawer_id = drawer.id
            rs.phase = PHASE_ACTIVE
            room.touch(self.directory.clock())
            logger.info(f"[round-word] room={room.code} round={rs.round_number} drawer={drawer.id}")
            self.broadcaster.to_room(room.code, 'wordHint', make_hint(rs.secret_word), skip=drawer.id)
            self.broadcaster.to_room(room.code, 'roundStart', self._round_payload(room))
            return True

    def submit_guess(self, code, connection_id: str, text: str) -> str:
        """Evaluate a chat line against the secret word.

        Returns GUESS_CORRECT when it won the round, GUESS_SUPPRESSED when it
        must not be shown (the word's author typing it), GUESS_MISS otherwise.
        """
        with self.directory.lock:
            room = self._draw_room(code)
            rs = room.round_state
            if rs.phase != PHASE_ACTIVE or rs.secret_word is None:
                return GUESS_MISS
            if text.strip().casefold() != rs.secret_word.casefold():
                return GUESS_MISS
            if connection_id == rs.drawer_id:
                return GUESS_SUPPRESSED
            guesser = room.find_player(connection_id)
            if guesser is None:
                return GUESS_MISS

            word = rs.secret_word
            # Cleared together with the award so a second match scores nothing
            rs.secret_word = None
            rs.phase = PHASE_RESOLVED
            guesser.score += self.guesser_points
            # The author may have left since setting the word
            author = room.find_player(rs.drawer_id) if rs.drawer_id else None
            if author is not None:
                author.score += self.drawer_points
            room.touch(self.directory.clock())
            logger.info(f"[round-guess] room={room.code} round={rs.round_number} guesser={guesser.id}")

            self.broadcaster.to_room(room.code, 'correctGuess', {
                'id': guesser.id,
                'name': guesser.name,
                'word': word,
                'players': room.players_payload(),
            })
            self._cancel_pending(room)
            room.pending_advance = self.scheduler.call_later(
                self.next_round_delay, self._on_advance_timer, room.code, name=f'advance:{room.code}'
            )
            return GUESS_CORRECT

    def _on_advance_timer(self, code: str) -> None:
        with self.directory.lock:
            room = self.directory.get(code)
            if room is None or room.pending_advance is None:
                logger.info(f"[timer-abort] room={code} gone or advance cancelled")
                return
            self.advance_round(code)

    def advance_round(self, code) -> bool:
        with self.directory.lock:
            room = self.directory.get(code)
            if room is None or room.round_state is None:
                return False
            room.pending_advance = None
            rs = room.round_state
            rs.secret_word = None
            rs.drawer_id = None
            if len(room.players) < MIN_PLAYERS:
                rs.phase = PHASE_PAUSED
                logger.info(f"[round-pause] room={room.code} players={len(room.players)}")
                return False

            rs.round_number += 1
            # Recomputed against current membership, not a fixed order
            rs.drawer_index = rs.round_number % len(room.players)
            rs.phase = PHASE_AWAITING_WORD
            logger.info(f"[round-next] room={room.code} round={rs.round_number} drawer_index={rs.drawer_index}")
            self.broadcaster.to_room(room.code, 'nextRound', self._round_payload(room))
            return True

    def player_joined(self, code) -> None:
        with self.directory.lock:
            room = self.directory.get(code)
            if room is None or room.round_state is None:
                return
            if room.round_state.phase == PHASE_PAUSED and len(room.players) >= MIN_PLAYERS:
                self.advance_round(room.code)
