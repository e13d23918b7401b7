"""
merit.errors — Domain Error Taxonomy
=====================================

Every service raises one of these; the API layer maps them onto HTTP
status codes in :mod:`merit.api.main`.  They subclass :class:`ValueError`
so callers that only care about "bad input" can catch them generically.
"""

from __future__ import annotations


class MeritError(ValueError):
    """Base class for all domain errors."""

    status_code: int = 400


class NotFoundError(MeritError):
    """A referenced organization, user, action, or catalog entry is absent."""

    status_code = 404


class ConflictError(MeritError):
    """A uniqueness rule or a concurrent update was violated."""

    status_code = 409


class InvalidStateError(MeritError):
    """An operation is illegal in the entity's current state."""

    status_code = 409


class ForbiddenError(MeritError):
    """The caller lacks the relationship or role the operation requires."""

    status_code = 403


class ValidationError(MeritError):
    """Input violates a declared constraint."""

    status_code = 422
