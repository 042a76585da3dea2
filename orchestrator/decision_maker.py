"""Decision maker orchestrating stores and the decision engine."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from pydantic import ValidationError

from config.settings import Settings, get_settings
from decision_engine.errors import (
    ActionFetchError,
    BranchFetchError,
    DecisionError,
    InvalidRequestError,
    LogWriteError,
    NoBranchesConfiguredError,
)
from decision_engine.rules import DecisionEngine
from models.schemas import (
    Action,
    Branch,
    DecisionEnvelope,
    DecisionFailure,
    DecisionLogEntry,
    DecisionRequest,
    DecisionResponse,
    SideEffectOutcome,
)
from stores.action_store import RestActionStore
from stores.base import ActionStore, BranchStore, LogSink
from stores.branch_store import RestBranchStore
from stores.log_sink import RestLogSink


logger = logging.getLogger(__name__)

REQUIRED_IDS = ("workflow_id", "contact_id")
CONTEXT_SECTIONS = ("form_data", "contact_history", "custom_data")
INTERNAL_ERROR = "internal_error"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DecisionMaker:
    """Selects one branch of a workflow for a contact and returns its actions."""

    def __init__(
        self,
        branch_store: BranchStore,
        log_sink: LogSink,
        action_store: ActionStore,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.branch_store = branch_store
        self.log_sink = log_sink
        self.action_store = action_store
        self.clock = clock
        self.decision_engine = DecisionEngine()

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> DecisionMaker:
        """Build a decision maker wired to the configured REST stores."""
        settings = settings or get_settings()
        return cls(
            branch_store=RestBranchStore(settings),
            log_sink=RestLogSink(settings),
            action_store=RestActionStore(settings),
        )

    async def close(self) -> None:
        """Close every store that holds a connection."""
        closed: set[int] = set()
        for store in (self.branch_store, self.log_sink, self.action_store):
            close = getattr(store, "close", None)
            if close is not None and id(store) not in closed:
                closed.add(id(store))
                await close()

    async def decide(self, request: DecisionRequest | Mapping[str, Any]) -> DecisionEnvelope:
        """
        Make one decision.

        Steps:
        1. Validate the request identifiers
        2. Fetch the workflow's branches
        3. Assemble the evaluation context
        4. Select a branch with the decision engine
        5. Log the decision (best effort)
        6. Fetch the branch's actions (best effort)
        """
        start_time = time.perf_counter()
        try:
            return await self._decide(request, start_time)
        except DecisionError as e:
            logger.error("Decision failed (%s): %s", e.code, e.message)
            return DecisionFailure(error=e.message, error_code=e.code)
        except Exception as e:
            logger.exception("Unexpected error while deciding")
            return DecisionFailure(error=f"Unexpected error: {e}", error_code=INTERNAL_ERROR)

    async def _decide(
        self, request: DecisionRequest | Mapping[str, Any], start_time: float
    ) -> DecisionResponse:
        decision_request = self.validate_request(request)
        branches = await self._fetch_branches(decision_request.workflow_id)
        context = self.build_context(decision_request, self.clock())

        selected = self.decision_engine.select_branch(branches, context)
        branch = selected.branch
        execution_time_ms = (time.perf_counter() - start_time) * 1000

        logger.info(
            "Workflow %s contact %s -> branch %s (%s) confidence %.2f",
            decision_request.workflow_id,
            decision_request.contact_id,
            branch.id,
            branch.branch_name,
            selected.confidence,
        )

        log_outcome = await self._record_decision(
            DecisionLogEntry(
                workflow_id=decision_request.workflow_id,
                contact_id=decision_request.contact_id,
                branch_selected=branch.id,
                decision_context=context,
                confidence_score=selected.confidence,
                execution_time_ms=execution_time_ms,
            )
        )
        actions, action_outcome = await self._fetch_actions(branch.id)

        warnings = [
            f"{outcome.error_code}: {outcome.error_message}"
            for outcome in (log_outcome, action_outcome)
            if not outcome.ok
        ]

        return DecisionResponse(
            branch_selected=branch.branch_name,
            branch_id=branch.id,
            confidence_score=selected.confidence,
            execution_time_ms=execution_time_ms,
            actions_to_execute=[action.model_dump() for action in actions],
            warnings=warnings,
        )

    @staticmethod
    def validate_request(request: DecisionRequest | Mapping[str, Any]) -> DecisionRequest:
        """Parse the request, raising InvalidRequestError on bad input."""
        if isinstance(request, DecisionRequest):
            return request
        if not isinstance(request, Mapping):
            raise InvalidRequestError("Request body must be an object")

        try:
            return DecisionRequest.model_validate(dict(request))
        except ValidationError as e:
            errors = e.errors()
            id_errors = [err for err in errors if err["loc"] and err["loc"][0] in REQUIRED_IDS]
            if any(
                err["type"] in ("missing", "string_too_short") or err.get("input") is None
                for err in id_errors
            ):
                raise InvalidRequestError("workflow_id and contact_id are required") from e
            if id_errors:
                raise InvalidRequestError("workflow_id and contact_id must be strings") from e
            fields = {str(err["loc"][0]) for err in errors if err["loc"]}
            raise InvalidRequestError(
                f"Invalid request fields: {', '.join(sorted(fields))}"
            ) from e

    @staticmethod
    def build_context(request: DecisionRequest, now: datetime) -> dict[str, Any]:
        """Assemble the evaluation context; sections not supplied stay absent."""
        context: dict[str, Any] = {}
        for section in CONTEXT_SECTIONS:
            value = getattr(request, section)
            if value is not None:
                context[section] = value

        timestamp = now.astimezone(timezone.utc).isoformat(timespec="milliseconds")
        context["current_date"] = timestamp.replace("+00:00", "Z")
        return context

    async def _fetch_branches(self, workflow_id: str) -> list[Branch]:
        try:
            branches = await self.branch_store.list_branches(workflow_id)
        except Exception as e:
            raise BranchFetchError(f"Failed to fetch branches: {e}") from e

        if not branches:
            raise NoBranchesConfiguredError("No branches found for workflow")
        return branches

    async def _record_decision(self, entry: DecisionLogEntry) -> SideEffectOutcome:
        try:
            await self.log_sink.append(entry)
        except Exception as e:
            error = LogWriteError(f"Failed to log decision: {e}")
            logger.warning(error.message)
            return SideEffectOutcome(
                name="log_decision", ok=False, error_code=error.code, error_message=error.message
            )
        return SideEffectOutcome(name="log_decision")

    async def _fetch_actions(self, branch_id: str) -> tuple[list[Action], SideEffectOutcome]:
        try:
            actions = await self.action_store.list_actions(branch_id)
        except Exception as e:
            error = ActionFetchError(f"Failed to fetch actions: {e}")
            logger.warning(error.message)
            return [], SideEffectOutcome(
                name="fetch_actions", ok=False, error_code=error.code, error_message=error.message
            )
        return actions, SideEffectOutcome(name="fetch_actions")
