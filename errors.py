"""
errors.py — Error taxonomy shared by the repositories and route handlers.

Every error carries the HTTP status used when it is reported through the
JSON API. Route handlers render `str(error)` as the user-facing message.
"""


class AdminError(Exception):
    """Base class for all errors reported to a caller."""
    status_code = 500

    def __init__(self, message, field=None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self):
        payload = {'error': self.message}
        if self.field:
            payload['field'] = self.field
        return payload


class ValidationError(AdminError):
    """A required field is missing or a value is malformed."""
    status_code = 400


class NotFoundError(AdminError):
    """The referenced identifier does not resolve to a row."""
    status_code = 404


class ConflictError(AdminError):
    """A uniqueness or referential constraint would be violated."""
    status_code = 400


class PersistenceError(AdminError):
    """Any other failure from the database layer."""
    status_code = 500
