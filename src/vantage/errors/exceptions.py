"""Exception hierarchy for the Vantage API.

Every business-rule failure is a ``VantageError`` carrying the HTTP status
class it maps to. Handlers in ``vantage.errors.handlers`` render them; the
service layer never returns error values.
"""


class VantageError(Exception):
    """Base exception for Vantage."""

    def __init__(self, code: str, message: str, details=None, status_code: int = 500):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = status_code
        super().__init__(message)


class ValidationError(VantageError):
    """Malformed request field or payload (BadRequest)."""

    def __init__(self, message: str, details=None):
        super().__init__("VALIDATION_ERROR", message, details, status_code=400)


class NotFoundError(VantageError):
    """Referenced entity absent."""

    def __init__(self, resource: str, resource_id: str | None = None, message: str | None = None):
        if message is None:
            message = f"{resource} '{resource_id}' not found" if resource_id else f"{resource} not found"
        super().__init__("NOT_FOUND", message, status_code=404)


class AuthenticationError(VantageError):
    """Authentication required or credentials invalid."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__("AUTHENTICATION_ERROR", message, status_code=401)


class AuthorizationError(VantageError):
    """Access-control check failed (AccessDenied)."""

    def __init__(self, message: str = "Access to the specified project is forbidden"):
        super().__init__("AUTHORIZATION_ERROR", message, status_code=403)


class LatestConflictError(AuthorizationError):
    """Attempt to supersede a latest version the principal cannot access."""

    def __init__(
        self,
        message: str = "Cannot set this project version to latest. Access to current latest version is forbidden!",
    ):
        super().__init__(message)
        self.code = "LATEST_CONFLICT"


class ConflictError(VantageError):
    """Resource state conflict."""

    def __init__(self, message: str, details=None):
        super().__init__("CONFLICT", message, details, status_code=409)


class DuplicateIdentityError(ConflictError):
    """The (name, version) pair is already held by another project."""

    def __init__(self, name: str, version: str | None):
        super().__init__(
            "A project with the specified name and version already exists.",
            details={"name": name, "version": version},
        )
        self.code = "DUPLICATE_IDENTITY"


class HierarchyViolationError(ConflictError):
    """Cycle, inactive parent, or active children on deactivation."""

    def __init__(self, message: str):
        super().__init__(message)
        self.code = "HIERARCHY_VIOLATION"


class InternalError(VantageError):
    """Unexpected storage or runtime failure. The message never reaches the caller."""

    def __init__(self, message: str = "An internal error occurred"):
        super().__init__("INTERNAL_ERROR", message, status_code=500)
