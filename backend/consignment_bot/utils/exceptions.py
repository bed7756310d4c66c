"""
Custom business exceptions.

WHAT: Domain-specific exceptions that map to HTTP status codes
WHY: Consistent error handling across dispatch, click resolution and endpoints
HOW: Custom exception classes with error codes and messages
"""

from typing import Optional, List, Dict, Any


class BusinessException(Exception):
    """Base class for business logic exceptions."""

    def __init__(self, message: str, code: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details


class DispatchValidationError(BusinessException):
    """Raised when a dispatch request cannot be processed at all."""

    def __init__(self, message: str, field_errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            details={"field_errors": field_errors} if field_errors else None
        )


class DestinationNotFoundError(BusinessException):
    """Raised when a seller's category or channel is missing and creation is disabled."""

    def __init__(self, seller: str, destination: str):
        super().__init__(
            message=f"Missing {destination} for seller \"{seller}\"",
            code="DESTINATION_NOT_FOUND",
            details={"seller": seller, "destination": destination}
        )


class ClickTokenError(BusinessException):
    """Raised when a button identifier cannot be encoded or decoded."""

    def __init__(self, message: str, token: Optional[str] = None):
        super().__init__(
            message=message,
            code="INVALID_CLICK_TOKEN",
            details={"token": token} if token is not None else None
        )


class FieldShapeError(BusinessException):
    """Raised when a store field holds a value of an unexpected shape."""

    def __init__(self, field: str, expected: str, value: Any):
        super().__init__(
            message=f"Field \"{field}\" expected {expected}, got {type(value).__name__}",
            code="FIELD_SHAPE_ERROR",
            details={"field": field, "expected": expected, "value": repr(value)[:200]}
        )


class ConfigurationError(BusinessException):
    """Raised at startup when required configuration is missing or inconsistent."""

    def __init__(self, message: str, settings_names: Optional[List[str]] = None):
        super().__init__(
            message=message,
            code="CONFIGURATION_ERROR",
            details={"settings": settings_names} if settings_names else None
        )
