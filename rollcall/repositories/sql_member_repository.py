# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: SQL-backed member collection.
Each collection key ("roster", "history", ...) is one logical document,
stored as ordered rows and rewritten as a whole inside a transaction.
"""

import asyncio

from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from rollcall.core.errors import RepositoryError
from rollcall.models.domain import Member, Members
from rollcall.repositories.member_repository import MemberOrMembers

SCHEMA_DDL = """
    CREATE TABLE IF NOT EXISTS rollcall_members (
        collection VARCHAR(64) NOT NULL,
        member_id  VARCHAR(255) NOT NULL,
        name       VARCHAR(255) NOT NULL DEFAULT '',
        position   INTEGER NOT NULL,
        PRIMARY KEY (collection, member_id)
    )
"""


def ensure_schema(engine: Engine) -> None:
    """Create the members table if it does not exist yet."""
    try:
        with engine.begin() as conn:
            conn.execute(text(SCHEMA_DDL))
    except SQLAlchemyError as exc:
        raise RepositoryError(f"Failed to prepare the member table: {exc}") from exc


class SqlMemberRepository:
    """Member storage for one collection key in the rollcall_members table."""

    def __init__(self, engine: Engine, collection: str) -> None:
        self._engine = engine
        self._collection = collection

    @property
    def collection(self) -> str:
        return self._collection

    # ── Read ──

    async def get_all(self) -> Members:
        return await self._run(self._get_all, "Failed to get the member data.")

    async def exists(self, member_id: str) -> bool:
        return await self._run(
            lambda: self._exists(member_id), "Failed to check the member exists."
        )

    # ── Write ──

    async def add(self, members: MemberOrMembers) -> None:
        await self._run(
            lambda: self._update(lambda current: current.add(members)),
            "Failed to add the member data.",
        )

    async def remove(self, members: MemberOrMembers) -> None:
        await self._run(
            lambda: self._update(lambda current: current.remove(members)),
            "Failed to remove the member data.",
        )

    async def flush(self) -> None:
        await self._run(
            lambda: self._update(lambda current: Members()),
            "Failed to flush the member data.",
        )

    # ── Internal ──

    async def _run(self, func, message: str):
        try:
            return await asyncio.to_thread(func)
        except (SQLAlchemyError, ValidationError) as exc:
            raise RepositoryError(f"{message} (collection={self._collection}: {exc})") from exc

    def _get_all(self) -> Members:
        with self._engine.connect() as conn:
            return self._read(conn)

    def _exists(self, member_id: str) -> bool:
        with self._engine.connect() as conn:
            row = conn.execute(
                text(
                    "SELECT 1 FROM rollcall_members "
                    "WHERE collection = :c AND member_id = :mid"
                ),
                {"c": self._collection, "mid": member_id},
            ).first()
        return row is not None

    def _update(self, change) -> None:
        with self._engine.begin() as conn:
            self._replace(conn, change(self._read(conn)))

    def _read(self, conn: Connection) -> Members:
        rows = conn.execute(
            text(
                "SELECT member_id, name FROM rollcall_members "
                "WHERE collection = :c ORDER BY position"
            ),
            {"c": self._collection},
        ).fetchall()
        return Members(Member(id=row[0], name=row[1] or "") for row in rows)

    def _replace(self, conn: Connection, members: Members) -> None:
        conn.execute(
            text("DELETE FROM rollcall_members WHERE collection = :c"),
            {"c": self._collection},
        )
        if not members:
            return
        conn.execute(
            text(
                "INSERT INTO rollcall_members (collection, member_id, name, position) "
                "VALUES (:c, :mid, :name, :pos)"
            ),
            [
                {"c": self._collection, "mid": m.id, "name": m.name, "pos": i}
                for i, m in enumerate(members)
            ],
        )
