import logging

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO

from playroom.config import Config

socketio = SocketIO(async_mode=None)


def _allowed_origins(raw):
    if raw == '*':
        return '*'
    return [origin.strip() for origin in raw.split(',') if origin.strip()]


def create_app(config_class=Config, clock=None, scheduler=None, code_generator=None):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    level = flask_app.config.get('LOG_LEVEL', 'INFO')
    flask_app.logger.setLevel(level)
    logging.getLogger('playroom').setLevel(level)

    allowed_origins = _allowed_origins(flask_app.config.get('CORS_ORIGINS', '*'))
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from playroom.services.container import RelayServices
    flask_app.extensions['playroom'] = RelayServices(
        flask_app.config, socketio, clock=clock, scheduler=scheduler, code_generator=code_generator
    )

    from playroom.main import main
    flask_app.register_blueprint(main)

    from playroom.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    # Importing here ensures the handlers bind to the initialized socketio instance
    from playroom.socketio_events import register_socketio_handlers
    register_socketio_handlers(namespace=flask_app.config.get('SOCKETIO_NAMESPACE', '/'))

    return flask_app
