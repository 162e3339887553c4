# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Selection engine, picks the members to gather.

Members not yet selected in the current rotation are preferred. When they
run short, the remainder is drawn from the already-selected ones and the
history is flushed so the next rotation starts with this selection.
"""

import random
from typing import Optional

from rollcall.core.logging import get_logger
from rollcall.metrics.prometheus import HISTORY_FLUSHES, MEMBERS_SELECTED, ROSTER_SIZE
from rollcall.models.domain import Members, Selection
from rollcall.repositories.member_repository import MemberRepository

logger = get_logger(__name__)


def compute_selection(
    current: Members,
    history: Members,
    count: int,
    rng: Optional[random.Random] = None,
) -> Selection:
    """
    Return the target members and whether the history must be flushed.
    Pure function: no I/O, no metrics, no logging.
    """
    if count <= 0:
        return Selection()

    targets = current.remove(history)

    if len(targets) > count:
        return Selection(members=targets.pick_randomized(count, rng))

    if len(targets) < count:
        # Roster fully covered: top up from the already-selected members.
        shortfall = count - len(targets)
        pool = current.remove(targets)
        return Selection(
            members=targets.add(pool.pick_randomized(shortfall, rng)),
            flushed=True,
        )

    return Selection(members=targets)


class SelectionEngine:
    """Reads roster and history, selects targets, and records them."""

    def __init__(
        self,
        current_repo: MemberRepository,
        history_repo: MemberRepository,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._current = current_repo
        self._history = history_repo
        self._rng = rng or random.Random()

    async def pick_members(self, count: int) -> Selection:
        """Select up to *count* members and write them to the history."""
        if count <= 0:
            return Selection()

        current = await self._current.get_all()
        history = await self._history.get_all()
        ROSTER_SIZE.set(len(current))

        selection = compute_selection(current, history, count, self._rng)
        if not selection.members:
            logger.info("No members to select: roster is empty")
            return Selection()

        await self._record_history(selection)
        MEMBERS_SELECTED.inc(len(selection.members))
        logger.info(
            "Selected %d/%d members (roster=%d, history=%d, flushed=%s)",
            len(selection.members), count, len(current), len(history),
            selection.flushed,
        )
        return selection

    async def _record_history(self, selection: Selection) -> None:
        if selection.flushed:
            await self._history.flush()
            HISTORY_FLUSHES.inc()
        await self._history.add(selection.members)
