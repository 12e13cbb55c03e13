from flask import Blueprint, current_app, jsonify

from playroom.errors import NotFoundError, ValidationError

rooms = Blueprint('rooms', __name__)


@rooms.route('/<string:room_code>', methods=['GET'])
def get_room_state(room_code):
    """
    Returns a read-only snapshot of a room. The secret word is never included.
    """
    directory = current_app.extensions['playroom'].directory
    try:
        room = directory.require(room_code)
    except ValidationError as exc:
        return jsonify(exc.to_ack()), 400
    except NotFoundError as exc:
        return jsonify(exc.to_ack()), 404

    payload = room.to_dict()
    payload['capacity'] = directory.capacity
    payload['is_full'] = len(room.players) >= directory.capacity
    return jsonify(payload)
