# domain/errors.py


class TrackerError(Exception):
    """
    Base class for every error the tracker reports to the user.
    The message is meant to be shown as-is (no stack detail).
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(TrackerError):
    pass


class AlreadyReceivedError(TrackerError):
    pass


class NotFoundError(TrackerError):
    pass


class InvalidAdjustmentError(TrackerError):
    pass


class PersistenceError(TrackerError):
    pass
