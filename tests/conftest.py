"""Pytest configuration and fixtures."""

from __future__ import annotations

import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

os.environ.setdefault("LOG_LEVEL", "WARNING")

from models.schemas import Action, Branch, DecisionLogEntry  # noqa: E402
from stores.base import StoreError  # noqa: E402
from stores.memory import InMemoryStore  # noqa: E402


FIXED_NOW = datetime(2024, 3, 1, 12, 30, 45, 123000, tzinfo=timezone.utc)


def make_branch(
    branch_id: str,
    conditions: dict[str, Any] | None = None,
    priority: float = 0,
    is_default: bool = False,
    name: str | None = None,
    workflow_id: str | None = "wf-1",
) -> Branch:
    """Factory for creating Branch test fixtures."""
    return Branch(
        id=branch_id,
        branch_name=name or f"Branch {branch_id}",
        conditions=conditions or {},
        priority=priority,
        is_default=is_default,
        workflow_id=workflow_id,
    )


def make_action(
    action_id: str,
    branch_id: str,
    execution_order: int,
    action_type: str = "send_email",
    **payload: Any,
) -> Action:
    """Factory for creating Action test fixtures."""
    return Action(
        id=action_id,
        branch_id=branch_id,
        execution_order=execution_order,
        action_type=action_type,
        **payload,
    )


class FailingLogSink(InMemoryStore):
    """In-memory store whose log writes always fail."""

    async def append(self, entry: DecisionLogEntry) -> None:
        raise StoreError("insert rejected", "log_sink")


class FailingActionStore(InMemoryStore):
    """In-memory store whose action reads always fail."""

    async def list_actions(self, branch_id: str) -> list[Action]:
        raise StoreError("select timed out", "action_store")


class FailingBranchStore(InMemoryStore):
    """In-memory store whose branch reads always fail."""

    async def list_branches(self, workflow_id: str) -> list[Branch]:
        raise StoreError("connection refused", "branch_store")


@pytest.fixture
def fixed_clock():
    """Clock returning a constant instant."""
    return lambda: FIXED_NOW


@pytest.fixture
def lead_branches() -> list[Branch]:
    """Lead routing workflow: two rule branches and a default."""
    return [
        make_branch(
            "hot",
            {
                "form_data.budget": {"operator": "greater_than", "value": 10000},
                "form_data.timeline": {"operator": "in_array", "value": ["now", "this_month"]},
            },
            priority=20,
            name="Hot Lead",
        ),
        make_branch(
            "nurture",
            {
                "interest": {"operator": "exists", "field": "form_data.interest"},
                "form_data.company": {"operator": "contains", "value": "inc"},
            },
            priority=10,
            name="Nurture",
        ),
        make_branch("fallback", priority=0, is_default=True, name="General Queue"),
    ]


@pytest.fixture
def lead_actions() -> list[Action]:
    """Actions for the lead routing workflow, deliberately out of order."""
    return [
        make_action("a3", "hot", 3, action_type="create_task"),
        make_action("a1", "hot", 1, action_type="assign_owner", owner="sales"),
        make_action("a2", "hot", 2),
        make_action("a4", "fallback", 1, action_type="tag_contact"),
    ]


@pytest.fixture
def lead_store(lead_branches: list[Branch], lead_actions: list[Action]) -> InMemoryStore:
    """In-memory store holding the lead routing workflow."""
    return InMemoryStore(branches=lead_branches, actions=lead_actions)
