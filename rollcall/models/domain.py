# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain models: pure data structures, NO FastAPI dependency.
"""

import random
from enum import Enum
from typing import Iterable, Iterator, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Member(BaseModel):
    """A roster member. Identity is the id; the name is display only."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, max_length=255, description="Stable member id")
    name: str = Field(default="", max_length=255, description="Display name")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Member):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)


class Members:
    """
    Ordered, id-unique collection of members.
    Every operation returns a new collection; nothing mutates in place.
    """

    __slots__ = ("_items",)

    def __init__(self, members: Iterable[Member] = ()) -> None:
        seen: set[str] = set()
        items: list[Member] = []
        for member in members:
            if member.id in seen:
                continue
            seen.add(member.id)
            items.append(member)
        self._items: tuple[Member, ...] = tuple(items)

    # ── Set algebra ──

    def add(self, other: Union[Member, "Members"]) -> "Members":
        return Members([*self._items, *_as_members(other)])

    def remove(self, other: Union[Member, "Members"]) -> "Members":
        excluded = _as_members(other).ids()
        return Members(m for m in self._items if m.id not in excluded)

    def pick_randomized(
        self, n: int, rng: Optional[random.Random] = None
    ) -> "Members":
        """Uniform sample without replacement of min(n, len) members."""
        size = min(n, len(self._items))
        if size <= 0:
            return Members()
        return Members((rng or random).sample(self._items, size))

    # ── Lookup ──

    def find_by_id(self, member_id: str) -> Optional[Member]:
        return next((m for m in self._items if m.id == member_id), None)

    def ids(self) -> frozenset[str]:
        return frozenset(m.id for m in self._items)

    def to_list(self) -> list[dict[str, str]]:
        return [{"id": m.id, "name": m.name} for m in self._items]

    # ── Container protocol ──

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Member]:
        return iter(self._items)

    def __contains__(self, member: object) -> bool:
        return isinstance(member, Member) and member.id in self.ids()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Members):
            return NotImplemented
        return [m.id for m in self] == [m.id for m in other]

    def __repr__(self) -> str:
        return f"Members({[m.id for m in self._items]!r})"


def _as_members(value: Union[Member, Members]) -> Members:
    return Members([value]) if isinstance(value, Member) else value


class CommandOutcome(str, Enum):
    """Every way a gather / join / leave command can end."""

    OK = "ok"
    NO_TARGET = "no_target"
    ALREADY_JOINED = "already_joined"
    NOT_JOINED = "not_joined"
    REPOSITORY_ERROR = "repository_error"
    NOTIFIER_ERROR = "notifier_error"
    UNKNOWN_ERROR = "unknown_error"


class Selection(BaseModel):
    """Result of one run of the selection engine."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    members: Members = Field(default_factory=Members)
    flushed: bool = False


class CommandResult(BaseModel):
    """Tagged outcome of an orchestrator command."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    outcome: CommandOutcome
    members: Members = Field(default_factory=Members)
    flushed: bool = False
