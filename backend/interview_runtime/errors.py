class SessionError(Exception):
    """Base error carrying a message that is safe to show to the candidate."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = str(message or "Something went wrong")


class InvalidTokenError(SessionError):
    status_code = 404

    def __init__(self, message: str = "This interview link is invalid or has expired."):
        super().__init__(message)


class AttemptsExhaustedError(SessionError):
    status_code = 403

    def __init__(self, message: str = "Attempts exhausted: you have used every allowed attempt for this interview."):
        super().__init__(message)


class AttemptLockedError(SessionError):
    status_code = 409

    def __init__(self, message: str = "This attempt is already completed and can no longer be changed."):
        super().__init__(message)


class GatewayError(SessionError):
    """Transient failure talking to the runtime API."""

    status_code = 502

    def __init__(self, message: str, upstream_status: int | None = None):
        super().__init__(message)
        self.upstream_status = upstream_status
