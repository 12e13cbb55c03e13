"""Error taxonomy for room and round operations.

Every error carries a human-readable `message` that the socket layer sends
back through the acknowledgment callback as ``{'error': message}``.
"""


class RelayError(Exception):
    message = 'Request failed'

    def __init__(self, message=None):
        if message:
            self.message = message
        super().__init__(self.message)

    def to_ack(self):
        return {'error': self.message}


class ValidationError(RelayError):
    message = 'Invalid request'


class InvalidNameError(ValidationError):
    message = 'Invalid player name'


class NameTakenError(ValidationError):
    message = 'Name is already taken in this room'


class NotFoundError(RelayError):
    message = 'Room not found'


class CapacityError(RelayError):
    message = 'Room is full'


class AuthorizationError(RelayError):
    message = 'Not allowed'
