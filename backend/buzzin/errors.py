"""Failure kinds reported back to the connection that issued a command.

Every failure is a :class:`CommandError` subclass whose ``kind`` is the name
sent over the wire in the acknowledgement (``{"ok": False, "error": kind}``).
"""

from typing import Any, Dict, Optional, Type


class CommandError(Exception):
    kind = 'CommandError'
    # Soft failures are acknowledged as ok; nothing was applied
    soft = False

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def to_ack(self) -> Dict[str, Any]:
        if self.soft:
            return {'ok': True, _soft_flag(self.kind): True}
        return {'ok': False, 'error': self.kind, 'message': self.message}


class InvalidInput(CommandError):
    kind = 'InvalidInput'


class RoomNotFound(CommandError):
    kind = 'RoomNotFound'


class RoomLocked(CommandError):
    kind = 'RoomLocked'


class BuzzersLocked(CommandError):
    kind = 'BuzzersLocked'


class ShowingScores(CommandError):
    kind = 'ShowingScores'


class Forbidden(CommandError):
    kind = 'Forbidden'


class PlayerNotFound(CommandError):
    kind = 'PlayerNotFound'


class InvalidTeam(CommandError):
    kind = 'InvalidTeam'


class AlreadyQueued(CommandError):
    kind = 'AlreadyQueued'
    soft = True


ERRORS_BY_KIND: Dict[str, Type[CommandError]] = {
    cls.kind: cls for cls in (
        InvalidInput, RoomNotFound, RoomLocked, BuzzersLocked, ShowingScores,
        Forbidden, PlayerNotFound, InvalidTeam, AlreadyQueued,
    )
}


def _soft_flag(kind: str) -> str:
    # AlreadyQueued -> alreadyQueued
    return kind[:1].lower() + kind[1:]


def error_for_kind(kind: Optional[str], message: Optional[str] = None) -> CommandError:
    """Rebuild the error instance named by an acknowledgement."""
    cls = ERRORS_BY_KIND.get(kind or '', CommandError)
    return cls(message)
