import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ScheduledTask:
    """Handle for a delayed call. Cancelling it turns the call into a no-op."""

    def __init__(self, name: str, deadline: float):
        self.name = name
        self.deadline = deadline
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)


class SocketIOScheduler:
    """Run delayed callbacks on Socket.IO background tasks.

    Uses ``socketio.sleep`` so the delay cooperates with whatever async mode
    the server runs under (threading, eventlet or gevent).
    """

    def __init__(self, socketio, clock: Callable[[], float] = time.time):
        self.socketio = socketio
        self.clock = clock

    def call_later(self, delay: float, fn: Callable, *args, name: Optional[str] = None) -> ScheduledTask:
        task = ScheduledTask(name or getattr(fn, '__name__', 'task'), self.clock() + delay)
        logger.debug(f"[timer-set] task={task.name} delay={delay}s deadline={task.deadline}")

        def _worker():
            self.socketio.sleep(delay)
            if task.cancelled:
                logger.debug(f"[timer-abort] task={task.name} cancelled")
                return
            task.fired = True
            logger.debug(f"[timer-fire] task={task.name}")
            try:
                fn(*args)
            except Exception:
                # Background tasks have no caller to report to
                logger.exception(f"[timer-error] task={task.name}")

        self.socketio.start_background_task(_worker)
        return task
