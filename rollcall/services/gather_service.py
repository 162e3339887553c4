# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: gather / join / leave commands.
Sequences read → select → record → notify. Every failure is logged and
answered with one fallback message; no command raises past this layer.
"""

from rollcall.core.errors import classify_error
from rollcall.core.logging import get_logger
from rollcall.metrics.prometheus import (
    COMMAND_FAILURES,
    GATHERS_TOTAL,
    MEMBERSHIP_CHANGES,
)
from rollcall.models.domain import CommandOutcome, CommandResult, Member
from rollcall.repositories.member_repository import MemberRepository
from rollcall.services.notifier import Notifier
from rollcall.services.selection import SelectionEngine

logger = get_logger(__name__)

GATHER_MESSAGE = "Time to gather!"
WELCOME_MESSAGE = "Thanks for joining!"
FAREWELL_MESSAGE = "See you around!"
ALREADY_JOINED_MESSAGE = "You have already joined."
NOT_JOINED_MESSAGE = "You have not joined."

FALLBACK_MESSAGES: dict[CommandOutcome, str] = {
    CommandOutcome.REPOSITORY_ERROR: "Failed to read or update the member data!",
    CommandOutcome.NOTIFIER_ERROR: "There is a problem with the notification service!",
    CommandOutcome.UNKNOWN_ERROR: "Something went wrong!",
}


class GatherService:
    """Business logic for gathering members and managing the roster."""

    def __init__(
        self,
        current_repo: MemberRepository,
        notifier: Notifier,
        engine: SelectionEngine,
        target_count: int,
        gather_url: str,
    ) -> None:
        self._current = current_repo
        self._notifier = notifier
        self._engine = engine
        self._target_count = target_count
        self._gather_url = gather_url

    @property
    def target_count(self) -> int:
        return self._target_count

    # ── Commands ──

    async def gather(self) -> CommandResult:
        """Pick this round's members and announce the gathering to them."""
        selection = None
        try:
            selection = await self._engine.pick_members(self._target_count)
            if not selection.members:
                GATHERS_TOTAL.labels(outcome=CommandOutcome.NO_TARGET.value).inc()
                return CommandResult(outcome=CommandOutcome.NO_TARGET)

            await self._notifier.notify(
                f"{GATHER_MESSAGE}\n{self._gather_url}", selection.members
            )
        except Exception as exc:
            if selection is not None and selection.members:
                # History is written before the announcement and is not rolled back.
                logger.warning(
                    "Selected members stay in history without being notified",
                    extra={"command": "gather", "members": [m.id for m in selection.members]},
                )
            outcome = await self._fail("gather", exc)
            GATHERS_TOTAL.labels(outcome=outcome.value).inc()
            return CommandResult(outcome=outcome)

        GATHERS_TOTAL.labels(outcome=CommandOutcome.OK.value).inc()
        logger.info(
            "Gathered members: %s", ", ".join(m.id for m in selection.members),
            extra={
                "command": "gather",
                "outcome": CommandOutcome.OK.value,
                "members": [m.id for m in selection.members],
            },
        )
        return CommandResult(
            outcome=CommandOutcome.OK,
            members=selection.members,
            flushed=selection.flushed,
        )

    async def join(self, member_id: str, member_name: str) -> CommandResult:
        """Add a member to the roster unless they are already in it."""
        try:
            member = Member(id=member_id, name=member_name)
            if await self._has_joined(member_id):
                await self._notifier.notify_secretly(ALREADY_JOINED_MESSAGE, member)
                outcome = CommandOutcome.ALREADY_JOINED
            else:
                await self._current.add(member)
                await self._notifier.notify(WELCOME_MESSAGE, member)
                outcome = CommandOutcome.OK
        except Exception as exc:
            outcome = await self._fail("join", exc)

        MEMBERSHIP_CHANGES.labels(action="join", outcome=outcome.value).inc()
        logger.info(
            "Join: member=%s, outcome=%s", member_id, outcome.value,
            extra={"command": "join", "outcome": outcome.value, "member_id": member_id},
        )
        return CommandResult(outcome=outcome)

    async def leave(self, member_id: str, member_name: str) -> CommandResult:
        """Remove a member from the roster if they are in it."""
        try:
            member = Member(id=member_id, name=member_name)
            if not await self._has_joined(member_id):
                await self._notifier.notify_secretly(NOT_JOINED_MESSAGE, member)
                outcome = CommandOutcome.NOT_JOINED
            else:
                await self._current.remove(member)
                await self._notifier.notify(FAREWELL_MESSAGE, member)
                outcome = CommandOutcome.OK
        except Exception as exc:
            outcome = await self._fail("leave", exc)

        MEMBERSHIP_CHANGES.labels(action="leave", outcome=outcome.value).inc()
        logger.info(
            "Leave: member=%s, outcome=%s", member_id, outcome.value,
            extra={"command": "leave", "outcome": outcome.value, "member_id": member_id},
        )
        return CommandResult(outcome=outcome)

    # ── Internal ──

    async def _has_joined(self, member_id: str) -> bool:
        return await self._current.exists(member_id)

    async def _fail(self, command: str, exc: Exception) -> CommandOutcome:
        """Log *exc*, send the matching fallback message, return its kind."""
        outcome = classify_error(exc)
        COMMAND_FAILURES.labels(command=command, kind=outcome.value).inc()
        logger.warning(
            "Command failed: %s (%s)", command, outcome.value,
            exc_info=exc, extra={"command": command, "kind": outcome.value},
        )
        try:
            await self._notifier.notify(FALLBACK_MESSAGES[outcome])
        except Exception as notify_exc:
            logger.error(
                "Fallback notification failed: %s", notify_exc,
                extra={"command": command, "kind": outcome.value},
            )
        return outcome
