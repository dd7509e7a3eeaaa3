"""Custom exceptions for the Storyboarder API."""

from typing import Any


class StoryboardException(Exception):
    """Base exception for Storyboarder."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(StoryboardException):
    """Raised when request validation fails."""

    pass


class GenerationException(StoryboardException):
    """Raised when the prompt enhancement or image synthesis service fails."""

    pass


class ServiceUnavailableException(StoryboardException):
    """Raised when a required service is unavailable."""

    pass
