"""Domain errors raised by the credential service and mapped to HTTP responses in main."""

from __future__ import annotations


class AuthServiceError(Exception):
    status_code = 400
    message = "Bad request"

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        if message is not None:
            self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AuthServiceError):
    message = "Missing fields"


class ConflictError(AuthServiceError):
    message = "User already exists"


class AuthError(AuthServiceError):
    message = "Invalid credentials"


class UnknownAccount(AuthError):
    message = "No user with that email"


class OtpError(AuthServiceError):
    # No match and expired are indistinguishable once the ledger purges.
    message = "Invalid or expired OTP"


class NotifierError(Exception):
    """Raised by a mail transport. Never reaches the HTTP caller."""


DuplicateAccount = ConflictError
InvalidCredentials = AuthError
InvalidOrExpiredOtp = OtpError
