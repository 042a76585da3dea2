"""Branch store backed by the decision branches table."""

from __future__ import annotations

from pydantic import ValidationError

from models.schemas import Branch
from stores.base import BaseStore, BranchStore, StoreError


class RestBranchStore(BaseStore, BranchStore):
    """Reads a workflow's branches, highest priority first."""

    @property
    def name(self) -> str:
        return "branch_store"

    @property
    def table(self) -> str:
        return self.settings.branches_table

    async def list_branches(self, workflow_id: str) -> list[Branch]:
        """
        Fetch the branches of a workflow.

        Args:
            workflow_id: Workflow to read branches for

        Returns:
            Branches ordered by priority descending, empty if none are configured
        """
        rows = await self._select(
            {"workflow_id": f"eq.{workflow_id}", "order": "priority.desc"}
        )
        try:
            return [Branch.model_validate(row) for row in rows]
        except ValidationError as e:
            raise StoreError(f"Invalid branch row: {e}", self.name) from e
