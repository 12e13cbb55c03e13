import os


def _rate(name, default_calls, default_window_ms):
    """Read a `calls/window_ms` pair such as `RATE_DRAWLINE=120/1000`."""
    raw = os.environ.get(f'RATE_{name.upper()}')
    if not raw:
        return (default_calls, default_window_ms)
    calls, _, window = raw.partition('/')
    return (int(calls), int(window or default_window_ms))


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    # Pause between the shutdown notice and process exit (seconds)
    SHUTDOWN_FLUSH_SEC = float(os.environ.get('SHUTDOWN_FLUSH_SEC', '0.5'))
    # Rooms
    ROOM_CAPACITY = int(os.environ.get('ROOM_CAPACITY', '4'))
    ROOM_CODE_LENGTH = 6
    # Empty rooms are reaped once idle this long (seconds)
    ROOM_IDLE_SEC = int(os.environ.get('ROOM_IDLE_SEC', '600'))
    ROOM_SWEEP_INTERVAL_SEC = int(os.environ.get('ROOM_SWEEP_INTERVAL_SEC', '300'))
    # Player names
    NAME_MIN_LEN = 2
    NAME_MAX_LEN = 15
    DEFAULT_NAME_TEMPLATE = os.environ.get('DEFAULT_NAME_TEMPLATE', 'Игрок {n}')
    # Drawing game
    NEXT_ROUND_DELAY_SEC = float(os.environ.get('NEXT_ROUND_DELAY_SEC', '4'))
    GUESSER_POINTS = int(os.environ.get('GUESSER_POINTS', '10'))
    DRAWER_POINTS = int(os.environ.get('DRAWER_POINTS', '5'))
    # Per-action throttles: action -> (max calls, window in ms)
    RATE_LIMITS = {
        'createRoom': _rate('createRoom', 5, 10000),
        'joinRoom': _rate('joinRoom', 10, 10000),
        'chatMsg': _rate('chatMsg', 5, 3000),
        'setWord': _rate('setWord', 5, 5000),
        'drawLine': _rate('drawLine', 120, 1000),
        'clearCanvas': _rate('clearCanvas', 3, 1000),
        'snakeUpdate': _rate('snakeUpdate', 30, 1000),
        'snakeStart': _rate('snakeStart', 2, 1000),
        'pongMove': _rate('pongMove', 60, 1000),
        'pongBall': _rate('pongBall', 60, 1000),
        'pongScore': _rate('pongScore', 5, 1000),
    }
