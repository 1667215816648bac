"""Connect-Engine exception hierarchy."""


class ConnectError(Exception):
    """Base exception for all Connect-Engine errors."""

    def __init__(
        self,
        message: str = "",
        code: str = "CONNECT_ERROR",
        status_code: int = 500,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)


class MalformedRequestError(ConnectError):
    """Raised when an inbound payload is missing a required field."""

    def __init__(self, message: str = "Malformed request payload", status_code: int = 400):
        super().__init__(message, code="MALFORMED_REQUEST", status_code=status_code)


class AuthenticationError(ConnectError):
    """Raised at the HTTP boundary when a signed request fails verification."""

    def __init__(self, message: str = "Authentication failed", reason: str = "UNAUTHENTICATED"):
        self.reason = reason
        super().__init__(message, code="AUTHENTICATION_FAILED", status_code=401)


class StorageError(ConnectError):
    """Raised when the tenant store backend cannot be reached."""

    def __init__(self, message: str = "Tenant store unavailable"):
        super().__init__(message, code="STORAGE_ERROR", status_code=500)


class DuplicateWebhookError(ConnectError):
    """Raised when two webhook registrations share an event name."""

    def __init__(self, event: str):
        self.event = event
        super().__init__(
            f"A webhook handler for '{event}' is already registered",
            code="DUPLICATE_WEBHOOK",
        )
