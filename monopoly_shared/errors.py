"""
Error taxonomy for rejected actions.

Every error here is recoverable: the action is rejected, the acting client
receives one error event, and the room state is left exactly as it was.
"""


class GameError(Exception):
    """Base class for all rejected actions."""

    code = "GAME_ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self) -> dict:
        return {"message": self.message, "code": self.code}


class ValidationError(GameError):
    """Malformed or missing action fields, rejected before touching state."""

    code = "VALIDATION_ERROR"


class RuleViolation(GameError):
    """The action is well formed but the game rules forbid it right now."""

    code = "RULE_VIOLATION"


class NotFoundError(GameError):
    """A room, player, property, auction or trade id did not resolve."""

    code = "NOT_FOUND"


class ConcurrencyStale(GameError):
    """A condition that held when a trade or auction began no longer holds."""

    code = "STALE"
