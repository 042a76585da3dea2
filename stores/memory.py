"""In-process store implementing every collaborator contract."""

from __future__ import annotations

from typing import Any, Iterable

from models.schemas import Action, Branch, DecisionLogEntry
from stores.base import ActionStore, BranchStore, LogSink


class InMemoryStore(BranchStore, LogSink, ActionStore):
    """Holds branches and actions in lists and records appended log entries."""

    def __init__(
        self,
        branches: Iterable[Branch] = (),
        actions: Iterable[Action] = (),
    ) -> None:
        self.branches = list(branches)
        self.actions = list(actions)
        self.logs: list[DecisionLogEntry] = []

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> InMemoryStore:
        """Build a store from ``{"branches": [...], "actions": [...]}``."""
        return cls(
            branches=[Branch.model_validate(row) for row in data.get("branches", [])],
            actions=[Action.model_validate(row) for row in data.get("actions", [])],
        )

    async def list_branches(self, workflow_id: str) -> list[Branch]:
        rows = [
            b for b in self.branches if b.workflow_id is None or b.workflow_id == workflow_id
        ]
        # stable: rows sharing a priority keep their insertion order
        return sorted(rows, key=lambda b: b.priority, reverse=True)

    async def append(self, entry: DecisionLogEntry) -> None:
        self.logs.append(entry)

    async def list_actions(self, branch_id: str) -> list[Action]:
        rows = [a for a in self.actions if a.branch_id == branch_id]
        return sorted(rows, key=lambda a: a.execution_order)

    async def close(self) -> None:
        """Nothing to release."""
