"""
Error taxonomy for the auth core.

Services raise these; a single exception handler in ``main`` turns them into
``{"detail": message}`` JSON responses with the attached status code.
"""


class ConfigurationError(RuntimeError):
    """A required setting is missing or unusable. Fatal at startup."""


class AuthError(Exception):
    status_code: int = 400
    default_message: str = "Request could not be processed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInputError(AuthError):
    status_code = 400
    default_message = "Invalid input"


class InvalidFormatError(AuthError):
    status_code = 400
    default_message = "Invalid transaction format"


class ChallengeNotFoundError(AuthError):
    status_code = 401
    default_message = "No challenge found for this public key. Please request a new challenge."


class ExpiredError(AuthError):
    default_message = "Expired"


class ChallengeExpiredError(ExpiredError):
    status_code = 401
    default_message = "Challenge has expired. Please request a new challenge."


class ResetTokenExpiredError(ExpiredError):
    status_code = 400
    default_message = "Reset token has expired. Please request a new one."


class UnauthorizedError(AuthError):
    status_code = 401
    default_message = "Unauthorized"


class InvalidTokenError(AuthError):
    status_code = 400
    default_message = "Invalid or already-used reset token."


class UserGoneError(AuthError):
    status_code = 404
    default_message = "Associated user account no longer exists."


class ConflictError(AuthError):
    status_code = 409
    default_message = "Resource already exists"
