from typing import Any, Optional


class Broadcaster:
    """Emit events through the Flask-SocketIO server.

    Services only ever address one connection or one room, optionally
    skipping the sender, so this is the whole surface they need.
    """

    def __init__(self, socketio, namespace: str = '/'):
        self.socketio = socketio
        self.namespace = namespace

    def to_room(self, code: str, event: str, data: Any = None, skip: Optional[str] = None) -> None:
        args = () if data is None else (data,)
        self.socketio.emit(event, *args, to=code, skip_sid=skip, namespace=self.namespace)

    def to_connection(self, sid: str, event: str, data: Any = None) -> None:
        args = () if data is None else (data,)
        self.socketio.emit(event, *args, to=sid, namespace=self.namespace)
