class BusPosError(Exception):
    """Base for errors raised by services; rendered as {"error": message}."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class Unauthorized(BusPosError):
    status_code = 401


class Forbidden(BusPosError):
    status_code = 403


class NotFound(BusPosError):
    status_code = 404


class ValidationError(BusPosError):
    status_code = 400


class Conflict(BusPosError):
    status_code = 409


class InvalidState(BusPosError):
    """Entity exists but is not in a state that allows the operation."""
    status_code = 409


class InternalError(BusPosError):
    status_code = 500
