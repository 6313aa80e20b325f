class TripStateException(Exception):
    """Base class for everything that stops a trip operation."""
    pass


class NotFound(TripStateException):
    """Referenced trip or order does not exist."""
    pass


class Forbidden(TripStateException):
    """Caller is not allowed to act on this trip or order."""
    pass


class InvalidState(TripStateException):
    """
    Trip or order is not in the state the operation needs.
    The message names the actual vs expected state.
    """
    pass


class TransactionConflict(TripStateException):
    """The store reported a write conflict. Safe for the client to retry."""
    pass


class InvalidRequest(TripStateException):
    """Request is missing required fields or carries malformed ones."""
    pass
