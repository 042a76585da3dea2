"""Condition types for branch rules."""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Union

from pydantic import BaseModel, Field


class Operator(str, Enum):
    """Operators understood by the condition evaluator."""

    EQUALS = "equals"
    CONTAINS = "contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    EXISTS = "exists"
    REGEX = "regex"
    IN_ARRAY = "in_array"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Any) -> Operator:
        """Map a stored operator name to a member, UNKNOWN if unrecognized."""
        if isinstance(raw, str):
            try:
                return cls(raw)
            except ValueError:
                pass
        return cls.UNKNOWN


class EqualsCondition(BaseModel):
    """Bare value: the field named by ``key`` must equal ``expected``."""

    key: str = Field(description="Field key the condition is declared under")
    expected: Any = Field(default=None, description="Value the field must equal")


class OperatorCondition(BaseModel):
    """Declared condition object with an explicit operator."""

    key: str = Field(description="Field key the condition is declared under")
    operator: Operator = Field(default=Operator.UNKNOWN, description="Comparison operator")
    value: Any = Field(default=None, description="Operator-specific operand")
    field: str | None = Field(default=None, description="Dotted path overriding the key")

    @property
    def path(self) -> str:
        """Path to resolve against the context."""
        return self.field or self.key


Condition = Union[EqualsCondition, OperatorCondition]


def parse_condition(key: str, raw: Any) -> Condition:
    """
    Turn one stored condition into its typed form.

    Mappings are operator objects; lists carry no operator and so never match;
    anything else is a bare value compared for equality.
    """
    if isinstance(raw, Mapping):
        field = raw.get("field")
        return OperatorCondition(
            key=key,
            operator=Operator.parse(raw.get("operator")),
            value=raw.get("value"),
            field=field if isinstance(field, str) and field else None,
        )
    if isinstance(raw, (list, tuple)):
        return OperatorCondition(key=key, operator=Operator.UNKNOWN, value=list(raw))
    return EqualsCondition(key=key, expected=raw)


def parse_condition_set(raw: Mapping[str, Any] | None) -> list[Condition]:
    """Parse every entry of a branch's stored conditions."""
    if not raw:
        return []
    return [parse_condition(str(key), value) for key, value in raw.items()]
