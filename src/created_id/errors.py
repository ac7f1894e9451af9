"""Exceptions raised by the created-id index."""


class CreatedIdError(Exception):
    """Base exception for id-range index failures."""


class ValidationError(CreatedIdError, ValueError):
    """Raised when an id range row would violate a field or ordering constraint.

    Raised before anything is written, so a rejected range never leaves a
    partial row behind.
    """


class CreatedAtChangedError(CreatedIdError):
    """Raised when a created_at change contradicts an already stored id range.

    The guarded save must be aborted by the caller.
    """


class SetupError(CreatedIdError):
    """Raised when a class cannot be used with the index.

    This covers classes that were never registered and registrations whose
    id or created_at column does not exist on the mapped table.
    """
