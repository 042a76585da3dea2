"""Decision engine module for deterministic rule-based branch selection."""

from decision_engine.rules import MISSING, DecisionEngine

__all__ = ["DecisionEngine", "MISSING"]
