"""
Error taxonomy shared by services and HTTP routes.

- ValidationError: a required field is missing (HTTP 400)
- NotFoundError: a project, note or research map is absent (HTTP 404)
- UpstreamGenerationError: the LLM provider failed or returned unusable output (HTTP 500)
"""

from __future__ import annotations

from typing import Iterable


class BioMapError(Exception):
    """Base class for errors surfaced to API callers as ``{"error": message}``."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BioMapError):
    status_code = 400

    @classmethod
    def missing(cls, fields: Iterable[str]) -> "ValidationError":
        names = [f for f in fields if f]
        if len(names) == 1:
            return cls(f"{names[0]} is required")
        return cls(f"{' and '.join(names)} are required")


class NotFoundError(BioMapError):
    status_code = 404


class UpstreamGenerationError(BioMapError):
    status_code = 500


def require_fields(**values) -> None:
    """Raise ``ValidationError`` naming every falsy keyword argument."""
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise ValidationError.missing(missing)
