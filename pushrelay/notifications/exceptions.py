"""
Custom exceptions for the notifications module.

Per-token delivery failures are never raised; they are reported as
DispatchOutcome values. These exceptions cover precondition and
configuration problems only.
"""
from fastapi import HTTPException, status


class NotificationError(Exception):
    """Base exception for notification-related errors."""
    pass


class InvalidNotificationError(NotificationError):
    """Raised when a notification is missing its title or body."""
    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Notification {field} is required")


class ProviderConfigurationError(NotificationError):
    """Raised at startup when a provider credential is present but unusable."""
    def __init__(self, provider: str, reason: str):
        self.provider = provider
        self.reason = reason
        super().__init__(f"Invalid {provider} configuration: {reason}")


class RecipientNotFound(NotificationError):
    """Raised when there is nobody to deliver a notification to."""
    def __init__(self, message: str = "User not found"):
        super().__init__(message)


class TokenStoreNotConfigured(NotificationError):
    """Raised when the token store database is not configured."""
    def __init__(self):
        super().__init__("Push notifications not configured")


def raise_notification_http_exception(exception: NotificationError) -> HTTPException:
    """Converts notification exceptions to FastAPI HTTPExceptions."""
    if isinstance(exception, InvalidNotificationError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exception)
        )
    elif isinstance(exception, RecipientNotFound):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exception)
        )
    elif isinstance(exception, TokenStoreNotConfigured):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exception)
        )
    else:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An unexpected error occurred while sending notifications."
        )
