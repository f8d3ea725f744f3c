"""Error kinds surfaced by the conversation service.

The HTTP layer maps them to status codes (see ``src/api/routes.py``):
``ValidationError`` → 400, ``NotFoundError`` → 404, ``UpstreamError`` → 500.
"""

from __future__ import annotations


class MediverseError(Exception):
    """Base class for every error the service reports to its caller."""


class ValidationError(MediverseError):
    """A required field is missing or blank.  Nothing was mutated."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"{field} is required")


class NotFoundError(MediverseError):
    """The referenced conversation does not exist (or belongs to someone else)."""

    def __init__(self, conversation_id: str):
        self.conversation_id = conversation_id
        super().__init__(f"Conversation not found: {conversation_id}")


class UpstreamError(MediverseError):
    """The text-completion service (or a store) failed; the request is aborted."""

    def __init__(self, message: str, operation: str | None = None):
        self.operation = operation
        super().__init__(message)
