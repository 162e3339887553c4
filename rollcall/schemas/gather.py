# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Request / Response schemas: API contract definitions.
These are Pydantic models used ONLY at the controller (HTTP) boundary.
"""

from pydantic import BaseModel, Field

from rollcall.models.domain import CommandResult, Members


class MemberOut(BaseModel):
    id: str
    name: str


class JoinRequest(BaseModel):
    id: str = Field(..., min_length=1, max_length=255, description="Member id")
    name: str = Field(default="", max_length=255, description="Display name")


class CommandResponse(BaseModel):
    command: str
    outcome: str
    members: list[MemberOut] = []
    flushed: bool = False

    @classmethod
    def from_result(cls, command: str, result: CommandResult) -> "CommandResponse":
        return cls(
            command=command,
            outcome=result.outcome.value,
            members=members_out(result.members),
            flushed=result.flushed,
        )


class MembersResponse(BaseModel):
    total: int
    members: list[MemberOut]

    @classmethod
    def from_members(cls, members: Members) -> "MembersResponse":
        return cls(total=len(members), members=members_out(members))


def members_out(members: Members) -> list[MemberOut]:
    return [MemberOut(id=m.id, name=m.name) for m in members]
