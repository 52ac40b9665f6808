"""Domain errors raised by the store, the policy table and the routers.

Each error carries the HTTP status it maps to; ``crm.main`` renders them as
``{"error": message}``.
"""

class CRMError(Exception):
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        self.message = message
        super().__init__(message)

class Unauthorized(CRMError):
    """No valid session."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)

class Forbidden(CRMError):
    """Valid session, insufficient role or not the owner."""

    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)

class NotFound(CRMError):
    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message)

class ValidationError(CRMError):
    status_code = 400

    def __init__(self, message: str = "Invalid request"):
        super().__init__(message)

class StorageError(CRMError):
    """Persistence failure. The message is logged, never sent to clients."""

    status_code = 500

class ConstraintViolation(StorageError):
    """A unique or foreign key constraint rejected the write."""
