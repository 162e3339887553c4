# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: JSON-file member collection.

Schema::

    {"members": [{"id": "<id>", "name": "<name>"}, ...]}

Every call re-reads the file; writes go to a temp file that is then
renamed over the target so the file is never left half-written.
"""

import asyncio
import json
import os
import tempfile

from pydantic import BaseModel, ValidationError

from rollcall.core.errors import RepositoryError
from rollcall.core.logging import get_logger
from rollcall.models.domain import Member, Members
from rollcall.repositories.member_repository import MemberOrMembers

logger = get_logger(__name__)


class MembersDocument(BaseModel):
    """On-disk shape of a member file."""

    members: list[Member] = []


class FileMemberRepository:
    """Member storage backed by a single JSON file."""

    def __init__(self, file_path: str, create: bool = False) -> None:
        self._path = file_path
        if not os.path.exists(file_path):
            if not create:
                raise RepositoryError(f"Member file does not exist: {file_path}")
            try:
                self._write(Members())
            except OSError as exc:
                raise RepositoryError(f"Cannot create member file {file_path}: {exc}") from exc
            logger.info("Created empty member file: %s", file_path)

    @property
    def path(self) -> str:
        return self._path

    # ── Read ──

    async def get_all(self) -> Members:
        return await self._run(self._read, "Failed to get the member data.")

    async def exists(self, member_id: str) -> bool:
        members = await self._run(self._read, "Failed to check the member exists.")
        return members.find_by_id(member_id) is not None

    # ── Write ──

    async def add(self, members: MemberOrMembers) -> None:
        await self._run(
            lambda: self._write(self._read().add(members)),
            "Failed to add the member data.",
        )

    async def remove(self, members: MemberOrMembers) -> None:
        await self._run(
            lambda: self._write(self._read().remove(members)),
            "Failed to remove the member data.",
        )

    async def flush(self) -> None:
        await self._run(lambda: self._write(Members()), "Failed to flush the member data.")

    # ── Internal ──

    async def _run(self, func, message: str):
        try:
            return await asyncio.to_thread(func)
        except (OSError, ValueError, ValidationError) as exc:
            raise RepositoryError(f"{message} ({self._path}: {exc})") from exc

    def _read(self) -> Members:
        with open(self._path, "r", encoding="utf-8") as fh:
            document = MembersDocument.model_validate(json.load(fh))
        return Members(document.members)

    def _write(self, members: Members) -> None:
        dir_name = os.path.dirname(os.path.abspath(self._path))
        os.makedirs(dir_name, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=dir_name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump({"members": members.to_list()}, fh, ensure_ascii=False)
            os.replace(tmp_path, self._path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
