"""Models module containing Pydantic schemas for all data structures."""

from models.schemas import (
    Action,
    Branch,
    DecisionEnvelope,
    DecisionFailure,
    DecisionLogEntry,
    DecisionRequest,
    DecisionResponse,
    ScoredBranch,
    SideEffectOutcome,
)

__all__ = [
    "Action",
    "Branch",
    "DecisionEnvelope",
    "DecisionFailure",
    "DecisionLogEntry",
    "DecisionRequest",
    "DecisionResponse",
    "ScoredBranch",
    "SideEffectOutcome",
]
