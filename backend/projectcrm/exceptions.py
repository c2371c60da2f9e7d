"""Domain exceptions.

Every error the services raise derives from ``CRMError`` and carries the HTTP
status the API layer answers with, so routers never build error responses
by hand.
"""


class CRMError(Exception):
    """Base exception for project CRM errors."""

    status_code: int = 500

    def __init__(self, message: str, code: str = "CRM_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(CRMError):
    """A required field is missing or a value cannot be accepted."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message=message, code="VALIDATION_ERROR")


class NotFoundError(CRMError):
    """Requested entity does not exist."""

    status_code = 404

    def __init__(self, entity: str, entity_id: object | None = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(message=f"{entity} not found", code="NOT_FOUND")


class ConflictError(CRMError):
    """A unique key is already taken (for example a tag name).

    Answered as 400 so clients can show the message next to the form field.
    """

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message=message, code="CONFLICT")


class AuthenticationError(CRMError):
    """Login code or session token was rejected."""

    status_code = 401

    def __init__(self, message: str):
        super().__init__(message=message, code="UNAUTHENTICATED")


class StoreError(CRMError):
    """The persistent store failed.

    The underlying message is passed through verbatim.
    """

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message=message, code="STORE_ERROR")


class EmailDeliveryError(CRMError):
    """The email provider refused or could not be reached."""

    status_code = 500

    def __init__(self, message: str = "Failed to send OTP. Please try again."):
        super().__init__(message=message, code="EMAIL_ERROR")
