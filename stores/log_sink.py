"""Decision log sink backed by the decision logs table."""

from __future__ import annotations

from models.schemas import DecisionLogEntry
from stores.base import BaseStore, LogSink


class RestLogSink(BaseStore, LogSink):
    """Inserts one row per decision."""

    @property
    def name(self) -> str:
        return "log_sink"

    @property
    def table(self) -> str:
        return self.settings.decision_logs_table

    async def append(self, entry: DecisionLogEntry) -> None:
        await self._request(
            "POST",
            json=entry.model_dump(mode="json"),
            headers={"Prefer": "return=minimal"},
        )
