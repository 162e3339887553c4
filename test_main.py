# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Tests for the Rollcall Service
==============================
Commands (gather / join / leave), fallback messaging, notifiers and the
HTTP surface.

Run:  pytest test_main.py -v --cov=rollcall --cov-report=term-missing
"""
import json
import logging
import random
import sys
from typing import Optional
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel, Field, field_validator

from main import app
from rollcall.core.config import settings
from rollcall.core.dependencies import (
    build_notifier,
    build_repositories,
    get_current_repo,
    get_gather_service,
    get_history_repo,
)
from rollcall.core.errors import NotifierError, RepositoryError
from rollcall.core.logging import JSONFormatter
from rollcall.models.domain import CommandOutcome, Member, Members
from rollcall.repositories.memory_member_repository import InMemoryMemberRepository
from rollcall.services import gather_service
from rollcall.services.gather_service import (
    ALREADY_JOINED_MESSAGE,
    FALLBACK_MESSAGES,
    FAREWELL_MESSAGE,
    GATHER_MESSAGE,
    NOT_JOINED_MESSAGE,
    WELCOME_MESSAGE,
    GatherService,
)
from rollcall.services.notifier import (
    LogNotifier,
    NotificationClient,
    compose_broadcast,
    format_mentions,
)
from rollcall.services.selection import SelectionEngine

GATHER_URL = "https://meet.example.com/room"

client = TestClient(app, raise_server_exceptions=False)


# ── Helpers ──────────────────────────────────────────────────────────────
class RecordingNotifier:
    """Notifier double that records every message it is asked to send."""

    def __init__(self, fail: bool = False) -> None:
        self.public: list[tuple[str, object]] = []
        self.private: list[tuple[str, Member]] = []
        self.fail = fail

    async def notify(self, message, target=None):
        if self.fail:
            raise NotifierError("notification service down")
        self.public.append((message, target))

    async def notify_secretly(self, message, member):
        if self.fail:
            raise NotifierError("notification service down")
        self.private.append((message, member))


class BrokenRepository(InMemoryMemberRepository):
    """Repository whose every call fails like an unreadable store."""

    def __init__(self, exc: Exception | None = None) -> None:
        super().__init__()
        self._exc = exc or RepositoryError("store unreadable")

    async def get_all(self):
        raise self._exc

    async def exists(self, member_id):
        raise self._exc

    async def add(self, members):
        raise self._exc

    async def remove(self, members):
        raise self._exc

    async def flush(self):
        raise self._exc


def _roster(*ids: str) -> Members:
    return Members(Member(id=i, name=f"Member {i}") for i in ids)


def _ids(members) -> list[str]:
    return [m.id for m in members]


def _service(current, history, notifier, count=3, seed=1) -> GatherService:
    return GatherService(
        current_repo=current,
        notifier=notifier,
        engine=SelectionEngine(current, history, random.Random(seed)),
        target_count=count,
        gather_url=GATHER_URL,
    )


@pytest.fixture
def state():
    """Fresh in-memory roster/history and recording notifier wired into the app."""
    current = InMemoryMemberRepository(_roster("A", "B", "C", "D", "E"))
    history = InMemoryMemberRepository()
    notifier = RecordingNotifier()
    service = _service(current, history, notifier)
    app.dependency_overrides[get_gather_service] = lambda: service
    app.dependency_overrides[get_current_repo] = lambda: current
    app.dependency_overrides[get_history_repo] = lambda: history
    yield {"current": current, "history": history, "notifier": notifier, "service": service}
    app.dependency_overrides.clear()


# ═══════════════════════════════════════════════════════════════════════════
# GATHER COMMAND
# ═══════════════════════════════════════════════════════════════════════════
class TestGather:
    @pytest.mark.asyncio
    async def test_gather_notifies_selected_members(self):
        current = InMemoryMemberRepository(_roster(*"ABCDE"))
        history = InMemoryMemberRepository(_roster("A", "B"))
        notifier = RecordingNotifier()

        result = await _service(current, history, notifier).gather()

        assert result.outcome == CommandOutcome.OK
        assert _ids(result.members) == ["C", "D", "E"]
        assert result.flushed is False
        assert notifier.public == [(f"{GATHER_MESSAGE}\n{GATHER_URL}", result.members)]
        assert _ids(history.members) == ["A", "B", "C", "D", "E"]

    @pytest.mark.asyncio
    async def test_gather_with_shortfall_flushes(self):
        current = InMemoryMemberRepository(_roster("A", "B", "C"))
        history = InMemoryMemberRepository(_roster("A", "B"))
        notifier = RecordingNotifier()

        result = await _service(current, history, notifier, count=2).gather()

        assert result.outcome == CommandOutcome.OK
        assert result.flushed is True
        assert _ids(result.members)[0] == "C"
        assert history.members == result.members

    @pytest.mark.asyncio
    async def test_gather_empty_roster_sends_nothing(self):
        current = InMemoryMemberRepository()
        history = InMemoryMemberRepository(_roster("Z"))
        notifier = RecordingNotifier()

        result = await _service(current, history, notifier).gather()

        assert result.outcome == CommandOutcome.NO_TARGET
        assert notifier.public == []
        assert notifier.private == []
        assert _ids(history.members) == ["Z"]

    @pytest.mark.asyncio
    async def test_gather_zero_target_count_is_noop(self):
        current = InMemoryMemberRepository(_roster("A"))
        history = InMemoryMemberRepository()
        notifier = RecordingNotifier()

        result = await _service(current, history, notifier, count=0).gather()

        assert result.outcome == CommandOutcome.NO_TARGET
        assert notifier.public == []
        assert len(history.members) == 0

    @pytest.mark.asyncio
    async def test_gather_repository_failure_sends_fallback(self):
        notifier = RecordingNotifier()
        service = _service(BrokenRepository(), InMemoryMemberRepository(), notifier)

        result = await service.gather()

        assert result.outcome == CommandOutcome.REPOSITORY_ERROR
        assert notifier.public == [(FALLBACK_MESSAGES[CommandOutcome.REPOSITORY_ERROR], None)]

    @pytest.mark.asyncio
    async def test_gather_notifier_failure_sends_fallback(self):
        current = InMemoryMemberRepository(_roster("A", "B"))
        notifier = RecordingNotifier()
        notifier.notify = AsyncMock(side_effect=[NotifierError("timeout"), None])
        service = _service(current, InMemoryMemberRepository(), notifier)

        result = await service.gather()

        assert result.outcome == CommandOutcome.NOTIFIER_ERROR
        assert notifier.notify.await_count == 2
        notifier.notify.assert_awaited_with(FALLBACK_MESSAGES[CommandOutcome.NOTIFIER_ERROR])

    @pytest.mark.asyncio
    async def test_gather_notifier_failure_keeps_selection_in_history(self):
        current = InMemoryMemberRepository(_roster("A", "B"))
        history = InMemoryMemberRepository()
        notifier = RecordingNotifier(fail=True)
        service = _service(current, history, notifier)

        with patch.object(gather_service.logger, "warning") as warning:
            result = await service.gather()

        assert result.outcome == CommandOutcome.NOTIFIER_ERROR
        assert sorted(_ids(history.members)) == ["A", "B"]
        first_call = warning.call_args_list[0]
        assert sorted(first_call.kwargs["extra"]["members"]) == ["A", "B"]

    @pytest.mark.asyncio
    async def test_gather_unknown_failure_sends_fallback(self):
        notifier = RecordingNotifier()
        service = _service(
            BrokenRepository(RuntimeError("boom")), InMemoryMemberRepository(), notifier
        )

        result = await service.gather()

        assert result.outcome == CommandOutcome.UNKNOWN_ERROR
        assert notifier.public == [(FALLBACK_MESSAGES[CommandOutcome.UNKNOWN_ERROR], None)]

    @pytest.mark.asyncio
    async def test_gather_never_raises_when_fallback_also_fails(self):
        notifier = RecordingNotifier(fail=True)
        service = _service(BrokenRepository(), InMemoryMemberRepository(), notifier)

        result = await service.gather()

        assert result.outcome == CommandOutcome.REPOSITORY_ERROR


# ═══════════════════════════════════════════════════════════════════════════
# JOIN / LEAVE COMMANDS
# ═══════════════════════════════════════════════════════════════════════════
class TestJoin:
    @pytest.mark.asyncio
    async def test_join_adds_and_welcomes(self):
        current = InMemoryMemberRepository()
        notifier = RecordingNotifier()

        result = await _service(current, InMemoryMemberRepository(), notifier).join("U1", "Alice")

        assert result.outcome == CommandOutcome.OK
        assert _ids(current.members) == ["U1"]
        assert notifier.public == [(WELCOME_MESSAGE, Member(id="U1", name="Alice"))]
        assert notifier.private == []

    @pytest.mark.asyncio
    async def test_duplicate_join_is_private_and_leaves_storage(self):
        current = InMemoryMemberRepository(_roster("U1"))
        notifier = RecordingNotifier()

        result = await _service(current, InMemoryMemberRepository(), notifier).join("U1", "Alice")

        assert result.outcome == CommandOutcome.ALREADY_JOINED
        assert _ids(current.members) == ["U1"]
        assert current.members.find_by_id("U1").name == "Member U1"
        assert notifier.private == [(ALREADY_JOINED_MESSAGE, Member(id="U1", name="Alice"))]
        assert notifier.public == []

    @pytest.mark.asyncio
    async def test_join_repository_failure(self):
        notifier = RecordingNotifier()

        result = await _service(BrokenRepository(), InMemoryMemberRepository(), notifier).join("U1", "A")

        assert result.outcome == CommandOutcome.REPOSITORY_ERROR
        assert notifier.public == [(FALLBACK_MESSAGES[CommandOutcome.REPOSITORY_ERROR], None)]

    @pytest.mark.asyncio
    async def test_join_invalid_id_is_unknown_failure(self):
        notifier = RecordingNotifier()

        result = await _service(InMemoryMemberRepository(), InMemoryMemberRepository(), notifier).join("", "A")

        assert result.outcome == CommandOutcome.UNKNOWN_ERROR


class TestLeave:
    @pytest.mark.asyncio
    async def test_leave_removes_and_says_farewell(self):
        current = InMemoryMemberRepository(_roster("U1", "U2"))
        notifier = RecordingNotifier()

        result = await _service(current, InMemoryMemberRepository(), notifier).leave("U1", "Alice")

        assert result.outcome == CommandOutcome.OK
        assert _ids(current.members) == ["U2"]
        assert notifier.public == [(FAREWELL_MESSAGE, Member(id="U1", name="Alice"))]

    @pytest.mark.asyncio
    async def test_leave_when_not_joined_is_private(self):
        current = InMemoryMemberRepository(_roster("U2"))
        notifier = RecordingNotifier()

        result = await _service(current, InMemoryMemberRepository(), notifier).leave("U1", "Alice")

        assert result.outcome == CommandOutcome.NOT_JOINED
        assert _ids(current.members) == ["U2"]
        assert notifier.private == [(NOT_JOINED_MESSAGE, Member(id="U1", name="Alice"))]
        assert notifier.public == []

    @pytest.mark.asyncio
    async def test_leave_notifier_failure(self):
        current = InMemoryMemberRepository(_roster("U1"))
        notifier = RecordingNotifier(fail=True)

        result = await _service(current, InMemoryMemberRepository(), notifier).leave("U1", "Alice")

        assert result.outcome == CommandOutcome.NOTIFIER_ERROR
        assert len(current.members) == 0


# ═══════════════════════════════════════════════════════════════════════════
# NOTIFIERS
# ═══════════════════════════════════════════════════════════════════════════
class _NotifyPayload(BaseModel):
    """Request contract enforced by notification-service's /api/v1/notify."""

    incident_id: str = Field(..., min_length=1, max_length=255)
    channel: str = Field(default="mock", max_length=50)
    recipient: str = Field(..., min_length=1, max_length=500)
    message: str = Field(..., min_length=1, max_length=5000)
    metadata: Optional[dict] = None

    @field_validator("channel")
    @classmethod
    def known_channel(cls, v: str) -> str:
        if v not in ("mock", "webhook", "email", "slack"):
            raise ValueError("unknown channel")
        return v


_notification_stub = FastAPI()
_delivered: list[dict] = []


@_notification_stub.post("/api/v1/notify")
async def _stub_notify(payload: _NotifyPayload):
    _delivered.append(payload.model_dump())
    return {"status": "sent"}


class TestNotificationClient:
    @staticmethod
    def _client(handler):
        return NotificationClient(
            base_url="http://notify.test/",
            channel="slack",
            broadcast_recipient="team-room",
            tag="rollcall",
            timeout=1.0,
            transport=httpx.MockTransport(handler),
        )

    @pytest.mark.asyncio
    async def test_broadcast_payload_mentions_targets(self):
        seen = []

        def handler(request):
            seen.append((str(request.url), json.loads(request.content)))
            return httpx.Response(200, json={"status": "sent"})

        await self._client(handler).notify("Hello", _roster("U1", "U2"))

        url, body = seen[0]
        assert url == "http://notify.test/api/v1/notify"
        assert body == {
            "incident_id": "rollcall",
            "channel": "slack",
            "recipient": "team-room",
            "message": "<@U1> <@U2>\nHello",
            "metadata": {"visibility": "public"},
        }

    @pytest.mark.asyncio
    async def test_private_payload_goes_to_member(self):
        seen = []

        def handler(request):
            seen.append(json.loads(request.content))
            return httpx.Response(200)

        await self._client(handler).notify_secretly("Psst", Member(id="U9", name="Ivy"))

        assert seen[0] == {
            "incident_id": "rollcall",
            "channel": "slack",
            "recipient": "U9",
            "message": "Psst",
            "metadata": {"visibility": "private"},
        }

    @pytest.mark.asyncio
    async def test_default_settings_accepted_by_notification_service(self):
        _delivered.clear()
        notifier = NotificationClient(
            base_url="http://notification-service",
            transport=httpx.ASGITransport(app=_notification_stub),
        )

        await notifier.notify("Time to gather!", Member(id="U1", name="Alice"))
        await notifier.notify_secretly("You have already joined.", Member(id="U1", name="Alice"))

        assert [d["recipient"] for d in _delivered] == [settings.BROADCAST_RECIPIENT, "U1"]
        assert all(d["channel"] == settings.NOTIFICATION_CHANNEL for d in _delivered)
        assert all(d["incident_id"] == settings.NOTIFICATION_TAG for d in _delivered)

    @pytest.mark.asyncio
    async def test_rejected_payload_raises_notifier_error(self):
        notifier = NotificationClient(
            base_url="http://notification-service",
            channel="carrier-pigeon",
            transport=httpx.ASGITransport(app=_notification_stub),
        )
        with pytest.raises(NotifierError):
            await notifier.notify("Hello")

    @pytest.mark.asyncio
    async def test_error_status_raises_notifier_error(self):
        with pytest.raises(NotifierError):
            await self._client(lambda request: httpx.Response(503)).notify("Hello")

    @pytest.mark.asyncio
    async def test_transport_error_raises_notifier_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NotifierError):
            await self._client(handler).notify("Hello")

    @pytest.mark.asyncio
    async def test_log_notifier_accepts_both_kinds(self):
        notifier = LogNotifier()
        await notifier.notify("Hello", Member(id="U1", name="A"))
        await notifier.notify_secretly("Psst", Member(id="U1", name="A"))


class TestMessageFormatting:
    def test_mentions_for_single_member(self):
        assert format_mentions(Member(id="U1", name="A")) == "<@U1>"

    def test_no_target_means_plain_message(self):
        assert compose_broadcast("Hi") == "Hi"

    def test_target_prefixes_mentions(self):
        assert compose_broadcast("Hi", _roster("U1", "U2")) == "<@U1> <@U2>\nHi"


class TestJSONFormatter:
    @staticmethod
    def _render(**extra):
        record = logging.LogRecord("rollcall.test", logging.WARNING, __file__, 1, "Command failed", None, None)
        record.__dict__.update(extra)
        return json.loads(JSONFormatter().format(record))

    def test_command_context_becomes_top_level_keys(self):
        line = self._render(command="join", outcome="already_joined", member_id="U1")
        assert line["command"] == "join"
        assert line["outcome"] == "already_joined"
        assert line["member_id"] == "U1"
        assert line["service"] == settings.SERVICE_NAME

    def test_absent_context_is_omitted(self):
        line = self._render()
        assert "kind" not in line
        assert "request_id" not in line
        assert line["message"] == "Command failed"

    def test_exception_is_summarised(self):
        try:
            raise RepositoryError("store unreadable")
        except RepositoryError:
            line = self._render(exc_info=sys.exc_info(), kind="repository_error")
        assert line["error"] == "store unreadable"
        assert line["error_type"] == "RepositoryError"
        assert line["kind"] == "repository_error"


# ═══════════════════════════════════════════════════════════════════════════
# WIRING
# ═══════════════════════════════════════════════════════════════════════════
class TestWiring:
    def test_memory_backend(self):
        current, history = build_repositories("memory")
        assert current is not history

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValueError):
            build_repositories("carrier-pigeon")

    def test_notifier_backends(self):
        assert isinstance(build_notifier("mock"), LogNotifier)
        assert isinstance(build_notifier("http"), NotificationClient)
        with pytest.raises(ValueError):
            build_notifier("smoke-signal")


# ═══════════════════════════════════════════════════════════════════════════
# HTTP API
# ═══════════════════════════════════════════════════════════════════════════
class TestHealth:
    def test_health_ok(self, state):
        r = client.get("/health")
        assert r.status_code == 200
        data = r.json()
        assert data["status"] == "ok"
        assert data["service"] == settings.SERVICE_NAME
        assert data["target_count"] == 3

    def test_readiness_reports_roster_size(self, state):
        r = client.get("/health/ready")
        assert r.status_code == 200
        assert r.json()["roster_size"] == 5

    def test_readiness_fails_when_store_unreadable(self, state):
        app.dependency_overrides[get_current_repo] = lambda: BrokenRepository()
        r = client.get("/health/ready")
        assert r.status_code == 503
        assert r.json()["status"] == "unavailable"

    def test_metrics_endpoint(self, state):
        client.post("/api/v1/gather")
        r = client.get("/metrics")
        assert r.status_code == 200
        assert "rollcall_gathers_total" in r.text

    def test_request_id_propagated(self, state):
        r = client.get("/api/v1/members", headers={"X-Request-ID": "req-42"})
        assert r.headers["X-Request-ID"] == "req-42"

    def test_request_id_generated(self, state):
        r = client.get("/health")
        assert r.headers["X-Request-ID"]


class TestGatherEndpoint:
    def test_gather_returns_selection(self, state):
        r = client.post("/api/v1/gather")
        assert r.status_code == 200
        data = r.json()
        assert data["command"] == "gather"
        assert data["outcome"] == "ok"
        assert len(data["members"]) == 3
        assert data["flushed"] is False
        assert len(state["notifier"].public) == 1

    def test_gather_history_endpoint_reflects_selection(self, state):
        selected = {m["id"] for m in client.post("/api/v1/gather").json()["members"]}
        r = client.get("/api/v1/history")
        assert r.status_code == 200
        assert {m["id"] for m in r.json()["members"]} == selected

    def test_gather_twice_covers_roster_and_flushes(self, state):
        first = client.post("/api/v1/gather").json()
        second = client.post("/api/v1/gather").json()
        assert second["flushed"] is True
        first_ids = {m["id"] for m in first["members"]}
        second_ids = {m["id"] for m in second["members"]}
        assert first_ids | second_ids == {"A", "B", "C", "D", "E"}
        history = client.get("/api/v1/history").json()
        assert {m["id"] for m in history["members"]} == second_ids

    def test_gather_empty_roster(self, state):
        app.dependency_overrides[get_gather_service] = lambda: _service(
            InMemoryMemberRepository(), InMemoryMemberRepository(), state["notifier"]
        )
        r = client.post("/api/v1/gather")
        assert r.status_code == 200
        assert r.json()["outcome"] == "no_target"
        assert r.json()["members"] == []


class TestMembersEndpoints:
    def test_list_members(self, state):
        r = client.get("/api/v1/members")
        assert r.status_code == 200
        assert r.json()["total"] == 5
        assert r.json()["members"][0] == {"id": "A", "name": "Member A"}

    def test_join(self, state):
        r = client.post("/api/v1/members", json={"id": "U1", "name": "Alice"})
        assert r.status_code == 200
        assert r.json()["outcome"] == "ok"
        assert state["current"].members.find_by_id("U1").name == "Alice"

    def test_join_duplicate(self, state):
        r = client.post("/api/v1/members", json={"id": "A", "name": "Again"})
        assert r.json()["outcome"] == "already_joined"
        assert len(state["current"].members) == 5

    def test_join_validation(self, state):
        r = client.post("/api/v1/members", json={"id": "", "name": "Nobody"})
        assert r.status_code == 422

    def test_leave(self, state):
        r = client.delete("/api/v1/members/A", params={"name": "Member A"})
        assert r.status_code == 200
        assert r.json()["outcome"] == "ok"
        assert "A" not in state["current"].members.ids()

    def test_leave_not_joined(self, state):
        r = client.delete("/api/v1/members/ZZ")
        assert r.json()["outcome"] == "not_joined"
        assert len(state["current"].members) == 5

    def test_list_members_store_failure(self, state):
        app.dependency_overrides[get_current_repo] = lambda: BrokenRepository()
        r = client.get("/api/v1/members")
        assert r.status_code == 503
