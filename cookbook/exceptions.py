"""Exception classes shared by the data-access layer and the web app.

Each class carries the HTTP status the app answers with, so a single
exception handler can turn any of them into ``{"error": message}``.

Exception Hierarchy:
    CookbookError
    ├── ValidationError
    ├── Unauthorized
    ├── NotFound
    ├── SlugConflict
    ├── DatabaseError
    └── ApiError (client side)
"""


class CookbookError(Exception):
    """Base exception for request-scoped failures."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(CookbookError):
    """Raised when a payload fails validation."""

    status_code = 400


class Unauthorized(CookbookError):
    """Raised when an operation needs a session and none is present."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized."):
        super().__init__(message)


class NotFound(CookbookError):
    """Raised when a slug or id does not match a row."""

    status_code = 404


class SlugConflict(CookbookError):
    """Raised when a generated slug is already taken.

    Example:
        >>> raise SlugConflict("test-soup")
        SlugConflict: A recipe with slug 'test-soup' already exists.
    """

    status_code = 409

    def __init__(self, slug: str, kind: str = "recipe"):
        self.slug = slug
        super().__init__(f"A {kind} with slug '{slug}' already exists.")


class DatabaseError(CookbookError):
    """Raised when a database operation fails; keeps the driver's message."""

    status_code = 500

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(message)


class ApiError(CookbookError):
    """Raised by the HTTP client when the server answers with an error."""

    def __init__(self, message: str, status_code: int = 500):
        self.status_code = status_code
        super().__init__(message)
