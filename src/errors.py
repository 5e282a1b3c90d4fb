"""Exception taxonomy shared by the stores, the orchestrator and the API."""

from __future__ import annotations


class ChatAppError(Exception):
    """Base class for every error raised by this application."""


class ValidationError(ChatAppError):
    """Input has the wrong shape or is out of range.

    Always raised before any store mutation takes place.
    """


class NotFoundError(ChatAppError):
    """An entity lookup missed."""

    def __init__(self, resource: str, resource_id: int):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} with ID {resource_id} not found")


class StoreError(ChatAppError):
    """The database rejected a write (e.g. a duplicate email)."""


class UpstreamGenerationError(ChatAppError):
    """The model or agent call failed or returned unusable output."""
