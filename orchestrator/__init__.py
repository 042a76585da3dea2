"""Orchestrator module for end-to-end branch decisions."""

from orchestrator.decision_maker import DecisionMaker

__all__ = ["DecisionMaker"]
