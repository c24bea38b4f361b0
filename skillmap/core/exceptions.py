"""Domain errors shared by the taxonomy services.

Every error carries a stable ``code`` and the HTTP ``status_code`` the routers
translate it to, so the service layer never imports FastAPI.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(eq=False)
class SkillMapError(Exception):
    """Base class for failures raised by the taxonomy services."""

    code: str = "skillmap_error"
    status_code: int = 400
    message: str | None = None

    def __str__(self) -> str:  # pragma: no cover - human readable message
        return self.message or self.code


@dataclass(eq=False)
class NotFoundError(SkillMapError):
    """A competency, skill or user row does not exist."""

    code: str = "not_found"
    status_code: int = 404


@dataclass(eq=False)
class ValidationError(SkillMapError):
    """Malformed generator output or an invalid structural request."""

    code: str = "validation_error"
    status_code: int = 422


@dataclass(eq=False)
class DuplicateError(SkillMapError):
    """A row with the same normalized name (or link) already exists."""

    code: str = "duplicate"
    status_code: int = 409


@dataclass(eq=False)
class TreeGenerationError(SkillMapError):
    """The external tree generator failed or returned nothing usable."""

    code: str = "tree_generation_failed"
    status_code: int = 502
