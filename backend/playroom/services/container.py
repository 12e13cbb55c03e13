import logging
import time

from .broadcast import Broadcaster
from .directory import RoomDirectory
from .ratelimit import RateLimiter
from .relay import SessionRelay
from .rounds import RoundEngine
from .scheduler import SocketIOScheduler

logger = logging.getLogger(__name__)


class RelayServices:
    """Everything the handlers need, built once per app.

    `clock` and `scheduler` are injectable so tests can move time forward
    by hand instead of sleeping.
    """

    def __init__(self, config, socketio, clock=None, scheduler=None, code_generator=None):
        self.clock = clock or time.time
        self.broadcaster = Broadcaster(socketio, namespace=config.get('SOCKETIO_NAMESPACE', '/'))
        self.scheduler = scheduler or SocketIOScheduler(socketio, clock=self.clock)
        self.directory = RoomDirectory(config, clock=self.clock, code_generator=code_generator)
        self.limiter = RateLimiter(clock=self.clock)
        self.engine = RoundEngine(self.directory, self.broadcaster, self.scheduler, config)
        self.relay = SessionRelay(self.directory, self.engine, self.limiter, self.broadcaster, config)
        self.sweep_interval = float(config.get('ROOM_SWEEP_INTERVAL_SEC', 300))
        self._sweeper = None
        self._closed = False

    def start_sweeper(self) -> None:
        with self.directory.lock:
            if self._closed or self._sweeper is not None or self.sweep_interval <= 0:
                return
            self._sweeper = self.scheduler.call_later(self.sweep_interval, self._sweep_tick, name='room-sweep')
        logger.info(f"[room-sweep] every {self.sweep_interval}s")

    def _sweep_tick(self) -> None:
        try:
            self.directory.sweep_stale()
        finally:
            with self.directory.lock:
                if not self._closed:
                    self._sweeper = self.scheduler.call_later(self.sweep_interval, self._sweep_tick, name='room-sweep')

    def shutdown(self) -> None:
        """Tell every live room the server is going away and stop timers.

        Safe to call more than once; only the first call notifies.
        """
        with self.directory.lock:
            if self._closed:
                return
            self._closed = True
            if self._sweeper is not None:
                self._sweeper.cancel()
                self._sweeper = None
            notified = 0
            for room in self.directory.rooms():
                if room.pending_advance is not None:
                    room.pending_advance.cancel()
                    room.pending_advance = None
                if not room.is_empty:
                    self.broadcaster.to_room(room.code, 'serverShutdown', {'message': 'Server is shutting down'})
                    notified += 1
        logger.info(f"[shutdown] notified rooms={notified}")
