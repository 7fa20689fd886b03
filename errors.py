"""
Application exceptions.

Every error raised by the store, the delivery lifecycle or the handlers derives
from AppError and carries the HTTP status the API answers with. The exception
handlers in main.py turn them into the ``{"error": message}`` envelope.
"""

from typing import Optional


class AppError(Exception):
    """Base exception for all application errors."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class ValidationError(AppError):
    """Missing or malformed request input."""

    status_code = 400


class InvalidStatusError(ValidationError):
    """Raised when a delivery status is not part of the DeliveryStatus vocabulary."""

    def __init__(self, status=None):
        self.status = status
        super().__init__("Invalid status")


class InvalidTransitionError(ValidationError):
    """Raised in strict mode when a delivery cannot move between two statuses."""

    def __init__(self, current, target):
        self.current = current
        self.target = target
        super().__init__(f"Cannot change status from {current} to {target}")


class AuthenticationError(AppError):
    status_code = 401


class NotFoundError(AppError):
    """Raised when an identifier does not match any record.

    Built from the entity name, e.g. ``NotFoundError("Recipient")`` reads
    "Recipient not found".
    """

    status_code = 404

    def __init__(self, entity: str, entity_id: Optional[str] = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found")
