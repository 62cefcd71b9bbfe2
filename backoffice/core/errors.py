from __future__ import annotations

from typing import Any


class ModificationError(Exception):
    pass


class DataIntegrityError(ModificationError, ValueError):
    """The order snapshot is missing or carries invalid numeric fields."""


class ValidationError(ModificationError, ValueError):
    """An operator selection violates a quantity or amount invariant."""


class CommerceAPIError(ModificationError):
    """The commerce admin API answered with an error or could not be reached.

    ``message`` is the backend-provided text, passed through unchanged.
    """

    def __init__(self, message: str, status_code: int | None = None, body: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body


class SubmissionError(CommerceAPIError):
    """The commerce backend rejected a modification request."""
