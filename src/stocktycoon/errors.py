"""Error taxonomy shared by settlement, storage and the HTTP layer."""

from __future__ import annotations


class GameError(Exception):
    """Base class for all game errors. Carries the HTTP status it maps to."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(GameError):
    """Malformed request: bad shape, unknown instrument, non-positive amount."""


class NotFoundError(GameError):
    """Unknown user account or pending order."""

    status_code = 404


class BusinessRuleError(GameError):
    """Request is well-formed but not allowed (insufficient funds, cooldown)."""


class ExternalServiceError(GameError):
    """Text generation service unreachable, unauthenticated or malformed."""

    status_code = 502


class PersistenceError(GameError):
    """Store unreachable or transaction conflict."""

    status_code = 503
