# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository contract: member collection storage.
One instance holds the current roster, another the selection history.
Every method may raise RepositoryError.
"""

from typing import Protocol, Union, runtime_checkable

from rollcall.models.domain import Member, Members

MemberOrMembers = Union[Member, Members]


@runtime_checkable
class MemberRepository(Protocol):
    """Async storage for one member collection."""

    async def get_all(self) -> Members: ...

    async def exists(self, member_id: str) -> bool: ...

    async def add(self, members: MemberOrMembers) -> None: ...

    async def remove(self, members: MemberOrMembers) -> None: ...

    async def flush(self) -> None: ...
