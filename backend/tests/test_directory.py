import pytest

from playroom.errors import CapacityError, InvalidNameError, NameTakenError, NotFoundError, ValidationError
from playroom.models import GAME_KINDS
from playroom.services.codes import RoomCodeGenerator
from playroom.services.directory import RoomDirectory, sanitize_name


class SequenceCodes(RoomCodeGenerator):
    def __init__(self, codes):
        super().__init__()
        self.codes = list(codes)

    def generate(self):
        return self.codes.pop(0)


@pytest.fixture()
def directory(config, clock):
    return RoomDirectory(config, clock=clock)


def _full_room(directory):
    room = directory.create_room('draw', 'host')
    for idx, name in enumerate(['Alice', 'Bob', 'Cara']):
        directory.join_room(room.code, f'sid{idx}', name)
    return room


def test_create_room_for_every_kind(directory):
    for idx, kind in enumerate(GAME_KINDS):
        room = directory.create_room(kind, f'creator{idx}')
        assert directory.codes.validate(room.code)
        assert len(room.players) == 1
        assert room.host == f'creator{idx}'
        assert room.players[0].name == 'Игрок 1'
        assert (room.round_state is not None) == (kind == 'draw')
        assert directory.get(room.code) is room
        assert directory.session_for(f'creator{idx}').code == room.code


def test_create_room_rejects_unknown_kind(directory):
    with pytest.raises(ValidationError):
        directory.create_room('chess', 'sid')
    assert len(directory) == 0
    assert directory.session_for('sid') is None


def test_create_room_retries_on_collision(config, clock):
    directory = RoomDirectory(config, clock=clock, code_generator=SequenceCodes(['AAAAAA', 'AAAAAA', 'BBBBBB']))
    first = directory.create_room('snake', 'a')
    second = directory.create_room('pong', 'b')
    assert first.code == 'AAAAAA'
    assert second.code == 'BBBBBB'


def test_join_returns_index_and_touches_room(directory, clock):
    room = directory.create_room('draw', 'host')
    clock.advance(30)
    joined, player = directory.join_room(room.code.lower(), 'alice', 'Alice')
    assert joined is room
    assert room.index_of(player.id) == 1
    assert [p.name for p in room.players] == ['Игрок 1', 'Alice']
    assert room.last_active_at == clock()
    assert directory.room_for('alice') is room


def test_join_full_room_fails_without_mutation(directory):
    room = _full_room(directory)
    assert len(room.players) == 4
    with pytest.raises(CapacityError):
        directory.join_room(room.code, 'late', 'Dave')
    assert len(room.players) == 4
    assert directory.session_for('late') is None


def test_join_name_taken_case_insensitive(directory):
    room = directory.create_room('draw', 'host')
    directory.join_room(room.code, 'a', 'Alice')
    with pytest.raises(NameTakenError):
        directory.join_room(room.code, 'b', 'aLiCe')
    assert len(room.players) == 2


def test_join_rejects_bad_names(directory):
    room = directory.create_room('pong', 'host')
    with pytest.raises(InvalidNameError):
        directory.join_room(room.code, 'a', ' x ')
    with pytest.raises(InvalidNameError):
        directory.join_room(room.code, 'a', 'x' * 16)
    with pytest.raises(InvalidNameError):
        directory.join_room(room.code, 'a', None)
    assert len(room.players) == 1


def test_sanitize_name():
    assert sanitize_name('  Al\x00ice  ') == 'Alice'
    assert sanitize_name('<b>Bob</b>') == 'bBob/b'
    assert sanitize_name('Mary   Jane') == 'Mary Jane'
    assert sanitize_name(42) == ''


def test_join_validates_code_before_lookup(directory):
    with pytest.raises(ValidationError):
        directory.join_room('nope', 'a', 'Alice')
    with pytest.raises(NotFoundError):
        directory.join_room('ABCD23', 'a', 'Alice')


def test_join_same_room_twice_rejected(directory):
    room = directory.create_room('snake', 'host')
    with pytest.raises(ValidationError):
        directory.join_room(room.code, 'host', 'Again')


def test_host_leaving_promotes_index_zero(directory):
    room = directory.create_room('draw', 'host')
    directory.join_room(room.code, 'a', 'Alice')
    directory.join_room(room.code, 'b', 'Bob')
    result = directory.leave(room.code, 'host')
    assert result.player.id == 'host'
    assert result.new_host.id == 'a'
    assert room.host == 'a'
    assert not result.emptied
    assert directory.session_for('host') is None


def test_non_host_leaving_keeps_host(directory):
    room = directory.create_room('draw', 'host')
    directory.join_room(room.code, 'a', 'Alice')
    result = directory.leave(room.code, 'a')
    assert result.new_host is None
    assert room.host == 'host'


def test_leave_unknown_connection_is_noop(directory):
    room = directory.create_room('draw', 'host')
    assert directory.leave(room.code, 'ghost') is None
    assert directory.leave('ZZZZZZ', 'host') is None


def test_last_player_leaving_empties_room_until_sweep(directory, clock, config):
    room = directory.create_room('snake', 'host')
    result = directory.leave(room.code, 'host')
    assert result.emptied
    assert room.host is None
    # Still listed until the sweep confirms it stayed idle
    assert directory.get(room.code) is room
    clock.advance(config['ROOM_IDLE_SEC'] - 1)
    assert directory.sweep_stale() == []
    clock.advance(2)
    assert directory.sweep_stale() == [room.code]
    assert directory.get(room.code) is None


def test_sweep_keeps_occupied_rooms(directory, clock):
    room = directory.create_room('pong', 'host')
    clock.advance(10_000)
    assert directory.sweep_stale() == []
    assert directory.get(room.code) is room


def test_empty_room_can_be_rejoined_before_sweep(directory):
    room = directory.create_room('draw', 'host')
    directory.leave(room.code, 'host')
    directory.join_room(room.code, 'a', 'Alice')
    assert room.host == 'a'


def test_leave_keeps_drawer_pointing_at_same_player(directory):
    room = _full_room(directory)
    room.round_state.drawer_index = 2  # sid1
    directory.leave(room.code, 'sid0')
    assert room.drawer.id == 'sid1'


def test_drawer_leaving_last_slot_wraps_index(directory):
    room = _full_room(directory)
    room.round_state.drawer_index = 3  # sid2, last
    directory.leave(room.code, 'sid2')
    assert room.round_state.drawer_index == 0
    assert room.drawer.id == 'host'


def test_emptied_draw_room_reopens_with_fresh_round(directory):
    room = directory.create_room('draw', 'host')
    directory.join_room(room.code, 'a', 'Alice')
    rs = room.round_state
    rs.reset()
    rs.secret_word = 'apple'
    rs.drawer_id = 'host'
    rs.phase = 'active'
    rs.round_number = 3
    directory.leave(room.code, 'host')
    directory.leave(room.code, 'a')

    directory.join_room(room.code, 'b', 'Bob')
    assert room.host == 'b'
    assert room.round_state.phase == 'idle'
    assert room.round_state.secret_word is None
    assert room.round_state.drawer_id is None
    assert room.round_state.round_number == 0
