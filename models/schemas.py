"""Pydantic schemas for branches, decisions and response envelopes."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# Workflow Schemas (stored rows)
# =============================================================================


class Branch(BaseModel):
    """A candidate outcome of a decision point."""

    id: str = Field(description="Branch identifier")
    branch_name: str = Field(description="Display name of the branch")
    conditions: dict[str, Any] = Field(
        default_factory=dict, description="Field key to condition mapping"
    )
    priority: float = Field(default=0, description="Higher priority branches are fetched first")
    is_default: bool = Field(default=False, description="Fallback branch flag")
    workflow_id: str | None = Field(default=None, description="Owning workflow")

    model_config = {"extra": "ignore", "coerce_numbers_to_str": True}

    @field_validator("conditions", mode="before")
    @classmethod
    def _null_conditions(cls, value: Any) -> Any:
        return {} if value is None else value


class Action(BaseModel):
    """A step attached to a branch; everything beyond the ordering is opaque."""

    id: str | None = Field(default=None, description="Action identifier")
    branch_id: str | None = Field(default=None, description="Owning branch")
    execution_order: int = Field(default=0, description="Position in the action sequence")

    model_config = {"extra": "allow", "coerce_numbers_to_str": True}


# =============================================================================
# Evaluation Schemas
# =============================================================================


class ScoredBranch(BaseModel):
    """A branch paired with its confidence for one evaluation."""

    branch: Branch = Field(description="Scored branch")
    confidence: float = Field(ge=0.0, le=1.0, description="Fraction of matched conditions")
    matched: int = Field(default=0, description="Conditions that matched")
    total: int = Field(default=0, description="Conditions evaluated")


class DecisionLogEntry(BaseModel):
    """Append-only record of one decision."""

    workflow_id: str = Field(description="Workflow the decision belongs to")
    contact_id: str = Field(description="Contact the decision was made for")
    branch_selected: str = Field(description="Selected branch id")
    decision_context: dict[str, Any] = Field(
        default_factory=dict, description="Evaluation context snapshot"
    )
    confidence_score: float = Field(description="Confidence of the selected branch")
    execution_time_ms: float = Field(description="Processing time before logging")


class SideEffectOutcome(BaseModel):
    """Result of a best-effort store call."""

    name: str = Field(description="Side effect performed")
    ok: bool = Field(default=True, description="Whether the call succeeded")
    error_code: str | None = Field(default=None, description="Error code if failed")
    error_message: str | None = Field(default=None, description="Error if failed")


# =============================================================================
# Request / Response Schemas
# =============================================================================


class DecisionRequest(BaseModel):
    """Input to a single decision."""

    workflow_id: str = Field(min_length=1, description="Workflow to decide for")
    contact_id: str = Field(min_length=1, description="Contact being routed")
    form_data: dict[str, Any] | None = Field(default=None, description="Form submission")
    contact_history: dict[str, Any] | None = Field(
        default=None, description="Historical records for the contact"
    )
    custom_data: dict[str, Any] | None = Field(default=None, description="Arbitrary fields")

    model_config = {"extra": "ignore", "coerce_numbers_to_str": True}


class DecisionResponse(BaseModel):
    """Success envelope."""

    success: Literal[True] = Field(default=True)
    branch_selected: str = Field(description="Selected branch name")
    branch_id: str = Field(description="Selected branch id")
    confidence_score: float = Field(ge=0.0, le=1.0, description="Selection confidence")
    execution_time_ms: float = Field(description="Processing time in ms")
    actions_to_execute: list[dict[str, Any]] = Field(
        default_factory=list, description="Actions of the selected branch in order"
    )
    warnings: list[str] = Field(
        default_factory=list, exclude=True, description="Best-effort failures"
    )


class DecisionFailure(BaseModel):
    """Failure envelope."""

    success: Literal[False] = Field(default=False)
    error: str = Field(description="Human-readable error message")
    error_code: str = Field(description="Machine-readable error code")


DecisionEnvelope = DecisionResponse | DecisionFailure
