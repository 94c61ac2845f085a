class OtpError(Exception):
    """Base class for failures of the OTP workflow.

    ``status_code`` is the HTTP status a router should answer with.
    """

    status_code = 500
    default_message = "OTP workflow error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidIdentifier(OtpError):
    status_code = 400
    default_message = "A valid email address or phone number is required"


class AccountNotFound(OtpError):
    status_code = 404
    default_message = "User not found"


class InvalidOrExpiredCode(OtpError):
    status_code = 400
    default_message = "Invalid or expired OTP"


class DeliveryFailed(OtpError):
    status_code = 502
    default_message = "Failed to send OTP"

    def __init__(self, reason: str | None = None) -> None:
        self.reason = reason
        message = self.default_message
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class StorageUnavailable(OtpError):
    status_code = 503
    default_message = "Storage is unavailable, try again later"
