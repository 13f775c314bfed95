"""Service-layer errors translated to HTTP responses in main."""
from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationFailed(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class NotFound(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class Forbidden(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_403_FORBIDDEN)


class Conflict(ServiceError):
    """Duplicate submissions and already-processed records."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class QRSessionExpired(ServiceError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"QR session {session_id} has expired", status.HTTP_410_GONE)
        self.session_id = session_id


class StoreWriteFailed(ServiceError):
    """A batch write was rejected; nothing from the batch was committed."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE)


class StoreUnavailable(ServiceError):
    """A read against the document store failed."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_503_SERVICE_UNAVAILABLE)
