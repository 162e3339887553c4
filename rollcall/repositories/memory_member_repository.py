# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: in-memory member collection.
NO business rules here: pure CRUD.
"""

from rollcall.models.domain import Member, Members
from rollcall.repositories.member_repository import MemberOrMembers


class InMemoryMemberRepository:
    """Process-local member storage."""

    def __init__(self, members: Members | list[Member] | None = None) -> None:
        self._members = Members(members or ())

    # ── Read ──

    async def get_all(self) -> Members:
        return self._members

    async def exists(self, member_id: str) -> bool:
        return self._members.find_by_id(member_id) is not None

    # ── Write ──

    async def add(self, members: MemberOrMembers) -> None:
        self._members = self._members.add(members)

    async def remove(self, members: MemberOrMembers) -> None:
        self._members = self._members.remove(members)

    async def flush(self) -> None:
        self._members = Members()

    @property
    def members(self) -> Members:
        """Direct access for tests and seeding."""
        return self._members
