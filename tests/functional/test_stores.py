"""Functional tests for the data stores."""

from __future__ import annotations

import json

import httpx
import pytest

from conftest import make_action, make_branch
from config.settings import Settings
from models.schemas import DecisionLogEntry
from stores.action_store import RestActionStore
from stores.base import StoreError
from stores.branch_store import RestBranchStore
from stores.log_sink import RestLogSink
from stores.memory import InMemoryStore


SETTINGS = Settings(
    supabase_url="https://project.supabase.co/",
    supabase_anon_key="anon-key",
    request_timeout=5,
)


def _transport(handler, seen: list[httpx.Request]) -> httpx.MockTransport:
    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    return httpx.MockTransport(record)


class TestRestBranchStore:
    """Test the branch table reader."""

    @pytest.mark.asyncio
    async def test_query_and_parse(self) -> None:
        """Test: Branches are filtered by workflow and ordered by priority."""
        seen: list[httpx.Request] = []
        rows = [
            {"id": "b1", "branch_name": "High", "conditions": {"a": 1}, "priority": 10,
             "is_default": False, "workflow_id": "wf-1", "created_at": "2024-01-01"},
            {"id": "b2", "branch_name": "Default", "conditions": None, "priority": 0,
             "is_default": True, "workflow_id": "wf-1"},
        ]
        store = RestBranchStore(SETTINGS, _transport(lambda r: httpx.Response(200, json=rows), seen))

        branches = await store.list_branches("wf-1")
        await store.close()

        request = seen[0]
        assert request.method == "GET"
        assert request.url.path == "/rest/v1/decision_branches"
        assert request.url.params["workflow_id"] == "eq.wf-1"
        assert request.url.params["order"] == "priority.desc"
        assert request.headers["apikey"] == "anon-key"
        assert request.headers["Authorization"] == "Bearer anon-key"
        assert [b.id for b in branches] == ["b1", "b2"]
        assert branches[1].conditions == {}

    @pytest.mark.asyncio
    async def test_integer_ids(self) -> None:
        """Test: Integer id columns are returned as strings."""
        rows = [{"id": 7, "branch_name": "Only", "conditions": {}, "workflow_id": 3}]
        store = RestBranchStore(SETTINGS, _transport(lambda r: httpx.Response(200, json=rows), []))

        branches = await store.list_branches("3")

        assert branches[0].id == "7"
        assert branches[0].workflow_id == "3"

    @pytest.mark.asyncio
    async def test_empty_result(self) -> None:
        """Test: No rows is an empty list, not an error."""
        store = RestBranchStore(SETTINGS, _transport(lambda r: httpx.Response(200, json=[]), []))
        assert await store.list_branches("wf-1") == []

    @pytest.mark.asyncio
    async def test_http_error(self) -> None:
        """Test: Error status becomes StoreError."""
        store = RestBranchStore(
            SETTINGS,
            _transport(lambda r: httpx.Response(500, json={"message": "boom"}), []),
        )
        with pytest.raises(StoreError, match="HTTP error 500"):
            await store.list_branches("wf-1")

    @pytest.mark.asyncio
    async def test_transport_error(self) -> None:
        """Test: Connection failures become StoreError."""

        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        store = RestBranchStore(SETTINGS, _transport(refuse, []))
        with pytest.raises(StoreError, match="Request failed"):
            await store.list_branches("wf-1")

    @pytest.mark.asyncio
    async def test_invalid_rows(self) -> None:
        """Test: Rows that are not branches become StoreError."""
        store = RestBranchStore(
            SETTINGS, _transport(lambda r: httpx.Response(200, json=[{"id": "x"}]), [])
        )
        with pytest.raises(StoreError, match="Invalid branch row"):
            await store.list_branches("wf-1")

    @pytest.mark.asyncio
    async def test_unconfigured_url(self) -> None:
        """Test: Missing SUPABASE_URL is a store error."""
        store = RestBranchStore(Settings(), _transport(lambda r: httpx.Response(200, json=[]), []))
        with pytest.raises(StoreError, match="SUPABASE_URL"):
            await store.list_branches("wf-1")

    @pytest.mark.asyncio
    async def test_custom_table_name(self) -> None:
        """Test: Table name comes from settings."""
        seen: list[httpx.Request] = []
        settings = SETTINGS.model_copy(update={"branches_table": "routing_branches"})
        store = RestBranchStore(settings, _transport(lambda r: httpx.Response(200, json=[]), seen))
        await store.list_branches("wf-1")
        assert seen[0].url.path == "/rest/v1/routing_branches"


class TestRestLogSink:
    """Test the decision log writer."""

    @pytest.mark.asyncio
    async def test_insert(self) -> None:
        """Test: Entry is posted as JSON with minimal return."""
        seen: list[httpx.Request] = []
        sink = RestLogSink(SETTINGS, _transport(lambda r: httpx.Response(201), seen))
        entry = DecisionLogEntry(
            workflow_id="wf-1",
            contact_id="c1",
            branch_selected="b1",
            decision_context={"form_data": {"a": 1}, "current_date": "2024-03-01T00:00:00.000Z"},
            confidence_score=0.75,
            execution_time_ms=3.2,
        )

        await sink.append(entry)

        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/rest/v1/decision_logs"
        assert request.headers["Prefer"] == "return=minimal"
        body = json.loads(request.content)
        assert body["branch_selected"] == "b1"
        assert body["confidence_score"] == 0.75
        assert body["decision_context"]["form_data"] == {"a": 1}

    @pytest.mark.asyncio
    async def test_insert_failure(self) -> None:
        """Test: Rejected insert raises StoreError."""
        sink = RestLogSink(SETTINGS, _transport(lambda r: httpx.Response(403, text="denied"), []))
        entry = DecisionLogEntry(
            workflow_id="wf-1",
            contact_id="c1",
            branch_selected="b1",
            confidence_score=1.0,
            execution_time_ms=1.0,
        )
        with pytest.raises(StoreError, match="403"):
            await sink.append(entry)


class TestRestActionStore:
    """Test the action table reader."""

    @pytest.mark.asyncio
    async def test_query_and_payload(self) -> None:
        """Test: Actions are ordered by execution_order and keep their payload."""
        seen: list[httpx.Request] = []
        rows = [
            {"id": "a1", "branch_id": "b1", "execution_order": 1,
             "action_type": "send_email", "action_config": {"template": "welcome"}},
        ]
        store = RestActionStore(SETTINGS, _transport(lambda r: httpx.Response(200, json=rows), seen))

        actions = await store.list_actions("b1")

        assert seen[0].url.params["branch_id"] == "eq.b1"
        assert seen[0].url.params["order"] == "execution_order.asc"
        assert actions[0].model_dump()["action_config"] == {"template": "welcome"}

    @pytest.mark.asyncio
    async def test_integer_ids(self) -> None:
        """Test: Integer id columns are returned as strings."""
        rows = [{"id": 11, "branch_id": 7, "execution_order": 1, "action_type": "tag"}]
        store = RestActionStore(SETTINGS, _transport(lambda r: httpx.Response(200, json=rows), []))

        actions = await store.list_actions("7")

        assert actions[0].id == "11"
        assert actions[0].branch_id == "7"

    @pytest.mark.asyncio
    async def test_non_list_body(self) -> None:
        """Test: Unexpected body shape raises StoreError."""
        store = RestActionStore(
            SETTINGS, _transport(lambda r: httpx.Response(200, json={"rows": []}), [])
        )
        with pytest.raises(StoreError, match="Expected a list"):
            await store.list_actions("b1")


class TestInMemoryStore:
    """Test the in-process store."""

    @pytest.mark.asyncio
    async def test_branch_ordering_is_stable(self) -> None:
        """Test: Priority descending, insertion order within a priority."""
        store = InMemoryStore(
            branches=[
                make_branch("low", priority=1),
                make_branch("tie-a", priority=5),
                make_branch("tie-b", priority=5),
                make_branch("other", priority=9, workflow_id="wf-2"),
            ]
        )
        branches = await store.list_branches("wf-1")
        assert [b.id for b in branches] == ["tie-a", "tie-b", "low"]

    @pytest.mark.asyncio
    async def test_actions_sorted(self) -> None:
        """Test: Actions are returned in execution order."""
        store = InMemoryStore(
            actions=[make_action("x2", "b", 2), make_action("x1", "b", 1), make_action("y", "c", 0)]
        )
        assert [a.id for a in await store.list_actions("b")] == ["x1", "x2"]

    def test_from_dict(self) -> None:
        """Test: Store loads a workflow document."""
        store = InMemoryStore.from_dict(
            {
                "branches": [{"id": "b", "branch_name": "B", "conditions": {"a": 1}}],
                "actions": [{"id": "x", "branch_id": "b", "execution_order": 1, "kind": "tag"}],
            }
        )
        assert store.branches[0].conditions == {"a": 1}
        assert store.actions[0].model_dump()["kind"] == "tag"
