# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Error kinds surfaced by collaborators.
Backends wrap their own failures into one of these so the orchestrator
can pick the matching fallback message.
"""

from rollcall.models.domain import CommandOutcome


class RollcallError(Exception):
    """Base class for all rollcall collaborator failures."""


class RepositoryError(RollcallError):
    """Roster or history storage could not be read or written."""


class NotifierError(RollcallError):
    """A notification could not be delivered."""


def classify_error(exc: BaseException) -> CommandOutcome:
    """Map an exception to the coarse failure kind reported to users."""
    if isinstance(exc, RepositoryError):
        return CommandOutcome.REPOSITORY_ERROR
    if isinstance(exc, NotifierError):
        return CommandOutcome.NOTIFIER_ERROR
    return CommandOutcome.UNKNOWN_ERROR
