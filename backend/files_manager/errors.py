"""Error taxonomy shared by the registry, auth and storage layers.

Each error carries the HTTP status and the message returned to the client as
``{"error": message}``. Not-visible and not-existing resources both raise
NotFoundError so callers cannot tell them apart.
"""


class FilesManagerError(Exception):
    """Base error with an HTTP status and a client-safe message."""

    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str = ""):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(FilesManagerError):
    """Bad client input (missing fields, invalid parent)."""

    status_code = 400
    default_message = "Invalid request"


class AuthError(FilesManagerError):
    """Missing or invalid credentials or token."""

    status_code = 401
    default_message = "Unauthorized"


class NotFoundError(FilesManagerError):
    """Absent resource, or one the requester may not see."""

    status_code = 404
    default_message = "Not found"


class NoContentError(FilesManagerError):
    """Content read on a node that has no content (folder)."""

    status_code = 400
    default_message = "A folder doesn't have content"


class StorageError(FilesManagerError):
    """Content medium failure (disk unavailable, I/O error)."""

    status_code = 500
    default_message = "Server error"
