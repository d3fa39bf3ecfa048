class RoomError(Exception):
    """Base class for rejected room commands.

    None of these are fatal: the dispatcher drops the command (or, for
    joins, tells the caller why) and carries on.
    """

    reason = 'rejected'

    def __init__(self, message: str = ''):
        super().__init__(message or self.reason)
        self.message = message or self.reason


class AuthorizationError(RoomError):
    reason = 'not allowed'


class NotFoundError(RoomError):
    reason = 'not found'


class PhaseConflictError(RoomError):
    reason = 'wrong phase'


class DuplicateSubmissionError(RoomError):
    reason = 'already answered'


class MalformedCommandError(RoomError):
    reason = 'malformed payload'
