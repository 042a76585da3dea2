"""Action store backed by the workflow actions table."""

from __future__ import annotations

from pydantic import ValidationError

from models.schemas import Action
from stores.base import ActionStore, BaseStore, StoreError


class RestActionStore(BaseStore, ActionStore):
    """Reads the actions of a branch in execution order."""

    @property
    def name(self) -> str:
        return "action_store"

    @property
    def table(self) -> str:
        return self.settings.actions_table

    async def list_actions(self, branch_id: str) -> list[Action]:
        rows = await self._select(
            {"branch_id": f"eq.{branch_id}", "order": "execution_order.asc"}
        )
        try:
            return [Action.model_validate(row) for row in rows]
        except ValidationError as e:
            raise StoreError(f"Invalid action row: {e}", self.name) from e
