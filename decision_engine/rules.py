"""Decision engine with deterministic rules for branch selection."""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Iterable, Mapping, Sequence

from decision_engine.conditions import (
    Condition,
    EqualsCondition,
    Operator,
    OperatorCondition,
    parse_condition_set,
)
from decision_engine.errors import NoSuitableBranchError
from models.schemas import Branch, ScoredBranch


logger = logging.getLogger(__name__)


class _Missing:
    """Marker for a path that does not resolve; distinct from ``None``."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


class DecisionEngine:
    """Deterministic engine that scores branches against an evaluation context."""

    CONFIDENCE_THRESHOLD = 0.5
    DEFAULT_CONFIDENCE = 1.0

    # ==========================================================================
    # Path Resolution
    # ==========================================================================

    @staticmethod
    def resolve_path(root: Mapping[str, Any], path: str) -> Any:
        """
        Resolve a dotted path against nested mappings.

        Returns MISSING when an intermediate value is not a mapping or a key
        is absent. A present ``None`` is returned as ``None``.
        """
        value: Any = root
        for segment in path.split("."):
            if not isinstance(value, Mapping) or segment not in value:
                return MISSING
            value = value[segment]
        return value

    # ==========================================================================
    # Condition Rules
    # ==========================================================================

    @staticmethod
    def evaluate_condition(condition: Condition, context: Mapping[str, Any]) -> bool:
        """
        Evaluate one condition against the context.

        Rules:
        - bare value: strict equality with the field named by its key
        - operator object: dispatch on the operator, unknown operators never match
        - malformed operands never raise, they simply do not match
        """
        if isinstance(condition, EqualsCondition):
            actual = DecisionEngine.resolve_path(context, condition.key)
            return DecisionEngine._strict_equals(actual, condition.expected)

        actual = DecisionEngine.resolve_path(context, condition.path)
        return DecisionEngine._apply_operator(condition, actual)

    @staticmethod
    def _apply_operator(condition: OperatorCondition, actual: Any) -> bool:
        operator = condition.operator
        expected = condition.value

        if operator is Operator.EQUALS:
            return DecisionEngine._strict_equals(actual, expected)

        if operator is Operator.CONTAINS:
            needle = DecisionEngine._to_text(expected).lower()
            return needle in DecisionEngine._to_text(actual).lower()

        if operator is Operator.GREATER_THAN:
            return DecisionEngine._to_number(actual) > DecisionEngine._to_number(expected)

        if operator is Operator.LESS_THAN:
            return DecisionEngine._to_number(actual) < DecisionEngine._to_number(expected)

        if operator is Operator.EXISTS:
            return actual is not MISSING and actual is not None

        if operator is Operator.REGEX:
            if not isinstance(expected, str):
                logger.debug("Regex operand for %r is not a string", condition.key)
                return False
            if actual is MISSING:
                return False
            try:
                pattern = re.compile(expected)
            except re.error as e:
                logger.debug("Invalid regex for %r: %s", condition.key, e)
                return False
            return pattern.search(DecisionEngine._to_text(actual)) is not None

        if operator is Operator.IN_ARRAY:
            if not isinstance(expected, (list, tuple)):
                logger.debug("in_array operand for %r is not a list", condition.key)
                return False
            return any(DecisionEngine._strict_equals(actual, item) for item in expected)

        logger.debug("Unknown operator for condition %r", condition.key)
        return False

    @staticmethod
    def _strict_equals(left: Any, right: Any) -> bool:
        """Equality without coercion between booleans, numbers and strings."""
        if left is MISSING or right is MISSING:
            return False
        if isinstance(left, bool) or isinstance(right, bool):
            return isinstance(left, bool) and isinstance(right, bool) and left == right
        if isinstance(left, (int, float)) and isinstance(right, (int, float)):
            return left == right
        if isinstance(left, Mapping) and isinstance(right, Mapping):
            return left.keys() == right.keys() and all(
                DecisionEngine._strict_equals(left[k], right[k]) for k in left
            )
        if isinstance(left, (list, tuple)) and isinstance(right, (list, tuple)):
            return len(left) == len(right) and all(
                DecisionEngine._strict_equals(a, b) for a, b in zip(left, right)
            )
        if type(left) is not type(right):
            return False
        return left == right

    @staticmethod
    def _to_number(value: Any) -> float:
        """Coerce a value to a float; non-numeric values become NaN."""
        if isinstance(value, bool):
            return float(value)
        if isinstance(value, (int, float)):
            try:
                return float(value)
            except OverflowError:
                return math.inf if value > 0 else -math.inf
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                return math.nan
        return math.nan

    @staticmethod
    def _to_text(value: Any) -> str:
        """Text form used by substring and regex matching."""
        if value is MISSING:
            return ""
        if isinstance(value, str):
            return value
        if value is None or isinstance(value, (bool, Mapping, list, tuple)):
            return json.dumps(value, default=str)
        return str(value)

    # ==========================================================================
    # Scoring Rules
    # ==========================================================================

    @staticmethod
    def score_conditions(
        conditions: Iterable[Condition], context: Mapping[str, Any]
    ) -> tuple[int, int]:
        """Count (matched, total) over every condition; no short-circuiting."""
        matched = 0
        total = 0
        for condition in conditions:
            total += 1
            if DecisionEngine.evaluate_condition(condition, context):
                matched += 1
        return matched, total

    @staticmethod
    def score(raw_conditions: Mapping[str, Any] | None, context: Mapping[str, Any]) -> float:
        """Fraction of a condition set that matches, 0.0 for an empty set."""
        matched, total = DecisionEngine.score_conditions(
            parse_condition_set(raw_conditions), context
        )
        return matched / total if total > 0 else 0.0

    @staticmethod
    def score_branch(branch: Branch, context: Mapping[str, Any]) -> ScoredBranch:
        """Score a single branch, keeping the match counts."""
        matched, total = DecisionEngine.score_conditions(
            parse_condition_set(branch.conditions), context
        )
        confidence = matched / total if total > 0 else 0.0
        return ScoredBranch(branch=branch, confidence=confidence, matched=matched, total=total)

    @staticmethod
    def score_branches(
        branches: Sequence[Branch], context: Mapping[str, Any]
    ) -> list[ScoredBranch]:
        """Score every non-default branch in the given order."""
        return [
            DecisionEngine.score_branch(branch, context)
            for branch in branches
            if not branch.is_default
        ]

    # ==========================================================================
    # Selection Rules
    # ==========================================================================

    @staticmethod
    def select_branch(branches: Sequence[Branch], context: Mapping[str, Any]) -> ScoredBranch:
        """
        Select exactly one branch.

        Rules:
        - branches are taken in the order given (priority descending), never re-sorted
        - the best non-default branch wins; an equal later score never displaces it
        - IF nothing scored or the best is below the threshold: first default branch
          with confidence 1.0
        - IF no default branch exists: raise NoSuitableBranchError
        """
        best: ScoredBranch | None = None
        for scored in DecisionEngine.score_branches(branches, context):
            if best is None or scored.confidence > best.confidence:
                best = scored

        if best is not None and best.confidence >= DecisionEngine.CONFIDENCE_THRESHOLD:
            return best

        default = next((b for b in branches if b.is_default), None)
        if default is None:
            raise NoSuitableBranchError(
                "No suitable branch found and no default branch configured"
            )

        if best is not None:
            logger.debug(
                "Best branch %s scored %.2f, falling back to default %s",
                best.branch.id,
                best.confidence,
                default.id,
            )
        return ScoredBranch(
            branch=default,
            confidence=DecisionEngine.DEFAULT_CONFIDENCE,
            matched=0,
            total=0,
        )
