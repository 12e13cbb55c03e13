import logging
import os

from playroom import create_app, socketio
from playroom.socketio_events import install_shutdown_handlers, notify_shutdown

logging.basicConfig(
    level=os.environ.get('LOG_LEVEL', 'INFO'),
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

app = create_app()

if __name__ == '__main__':
    port = int(os.environ.get('PORT', '3000'))
    install_shutdown_handlers(app)
    try:
        socketio.run(app, host='0.0.0.0', port=port, debug=os.environ.get('FLASK_DEBUG') == '1')
    finally:
        notify_shutdown(app)
