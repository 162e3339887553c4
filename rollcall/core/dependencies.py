# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
FastAPI dependency injection: wire repositories and services.
"""

import random

from rollcall.core.config import settings
from rollcall.core.database import build_engine
from rollcall.repositories.file_member_repository import FileMemberRepository
from rollcall.repositories.member_repository import MemberRepository
from rollcall.repositories.memory_member_repository import InMemoryMemberRepository
from rollcall.repositories.sql_member_repository import SqlMemberRepository, ensure_schema
from rollcall.services.gather_service import GatherService
from rollcall.services.notifier import LogNotifier, NotificationClient, Notifier
from rollcall.services.selection import SelectionEngine


def build_repositories(backend: str) -> tuple[MemberRepository, MemberRepository]:
    """Return (current roster, selection history) for the given backend."""
    if backend == "memory":
        return InMemoryMemberRepository(), InMemoryMemberRepository()
    if backend == "file":
        return (
            FileMemberRepository(settings.ROSTER_FILE, create=settings.CREATE_MISSING_FILES),
            FileMemberRepository(settings.HISTORY_FILE, create=settings.CREATE_MISSING_FILES),
        )
    if backend == "sql":
        engine = build_engine()
        ensure_schema(engine)
        return (
            SqlMemberRepository(engine, settings.ROSTER_COLLECTION),
            SqlMemberRepository(engine, settings.HISTORY_COLLECTION),
        )
    raise ValueError(f"Unknown REPOSITORY_BACKEND '{backend}' (expected memory, file or sql)")


def build_notifier(backend: str) -> Notifier:
    if backend == "mock":
        return LogNotifier()
    if backend == "http":
        return NotificationClient()
    raise ValueError(f"Unknown NOTIFIER_BACKEND '{backend}' (expected http or mock)")


# ── Singleton instances ──
_current_repo, _history_repo = build_repositories(settings.REPOSITORY_BACKEND)
_notifier = build_notifier(settings.NOTIFIER_BACKEND)

# ── Service instances (with injected dependencies) ──
_selection_engine = SelectionEngine(
    current_repo=_current_repo,
    history_repo=_history_repo,
    rng=random.Random(settings.SELECTION_SEED),
)
_gather_service = GatherService(
    current_repo=_current_repo,
    notifier=_notifier,
    engine=_selection_engine,
    target_count=settings.TARGET_COUNT,
    gather_url=settings.GATHER_URL,
)


# ── FastAPI dependency functions ──
def get_gather_service() -> GatherService:
    return _gather_service


def get_current_repo() -> MemberRepository:
    return _current_repo


def get_history_repo() -> MemberRepository:
    return _history_repo
