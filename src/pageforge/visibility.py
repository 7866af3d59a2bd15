"""
PageForge Conditional Visibility Compiler

Turns visibility expression text into a condition tree and its compact
JSON form, the document consumed by the runtime visibility evaluator.

Output shapes:
    {"var": "wave", "op": "eq", "val": "1"}                      leaf
    {"op": "and", "conditions": [<condition>, <condition>, ...]}  composite

Key components:
- VisibilityCondition: composable AND/OR tree with comparison leaves
- compile_visibility(): expression text -> VisibilityCondition
- evaluate_condition(): reference evaluation against input state
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional

from .expressions import Comparison, Expression, parse_expression
from .models import ConditionOperator

logger = logging.getLogger(__name__)


# =============================================================================
# Condition Tree
# =============================================================================

@dataclass(frozen=True)
class VisibilityCondition:
    """
    A compiled visibility condition.

    For logical operators (AND, OR) use `conditions`.
    For comparisons use `var` and `value`.

    Examples:
        VisibilityCondition(ConditionOperator.EQ, var="wave", value="1")

        VisibilityCondition(
            ConditionOperator.AND,
            conditions=(condition1, condition2),
        )
    """
    op: ConditionOperator
    var: Optional[str] = None
    value: Any = None
    conditions: tuple[VisibilityCondition, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        """Validate condition structure."""
        if self.op.is_logical:
            if len(self.conditions) < 2:
                raise ValueError(f"Logical operator '{self.op.value}' requires two or more conditions")
            if self.var is not None:
                raise ValueError(f"Logical operator '{self.op.value}' cannot name a variable")
        else:
            if not self.var:
                raise ValueError(f"Comparison operator '{self.op.value}' requires a variable")
            if self.conditions:
                raise ValueError(f"Comparison operator '{self.op.value}' cannot have conditions")

    @property
    def is_leaf(self) -> bool:
        return not self.op.is_logical

    def to_dict(self) -> dict[str, Any]:
        if self.op.is_logical:
            return {
                "op": self.op.value,
                "conditions": [condition.to_dict() for condition in self.conditions],
            }
        return {"var": self.var, "op": self.op.value, "val": self.value}

    def to_json(self) -> str:
        """Compact JSON, keys in emission order."""
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)

    def variables(self) -> list[str]:
        """Variable names referenced anywhere in the tree."""
        if self.is_leaf:
            return [self.var] if self.var else []
        names: list[str] = []
        for condition in self.conditions:
            for name in condition.variables():
                if name not in names:
                    names.append(name)
        return names


# =============================================================================
# Compilation
# =============================================================================

def _from_expression(expression: Expression) -> VisibilityCondition:
    if isinstance(expression, Comparison):
        return VisibilityCondition(
            op=ConditionOperator(expression.operator),
            var=expression.var,
            value=expression.value,
        )
    return VisibilityCondition(
        op=ConditionOperator(expression.operator),
        conditions=tuple(_from_expression(operand) for operand in expression.operands),
    )


def compile_visibility(text: str) -> VisibilityCondition:
    """
    Compile visibility expression text.

    Args:
        text: Expression such as `status == "active" & wave == "1"`

    Returns:
        The condition tree

    Raises:
        ExpressionSyntaxError: If the text is malformed
        UnsupportedOperatorError: If the text uses an operator outside the DSL
    """
    return _from_expression(parse_expression(text))


def check_variables(
    condition: VisibilityCondition,
    known_inputs: Iterable[str],
    insertion_index: Optional[int] = None,
) -> list[str]:
    """
    Report visibility variables that no input control declares.

    A condition on such a variable can never change at runtime. Unknown
    names are logged as warnings and returned.
    """
    known = set(known_inputs)
    unknown = [name for name in condition.variables() if name not in known]
    for name in unknown:
        logger.warning(
            "Visibility of item #%s references '%s', which no input control declares",
            insertion_index, name,
        )
    return unknown


# =============================================================================
# Reference Evaluation
# =============================================================================

def _compare(op: ConditionOperator, actual: Any, expected: Any) -> bool:
    # Multi-select inputs hold lists; a leaf matches if any selection matches
    if isinstance(actual, (list, tuple)) and op is not ConditionOperator.NEQ:
        return any(_compare(op, value, expected) for value in actual)

    if op is ConditionOperator.EQ:
        return str(actual) == str(expected)
    if op is ConditionOperator.NEQ:
        if isinstance(actual, (list, tuple)):
            return all(str(value) != str(expected) for value in actual)
        return str(actual) != str(expected)
    if op is ConditionOperator.IN:
        return str(actual) in {str(value) for value in expected}

    try:
        left, right = float(actual), float(expected)
    except (TypeError, ValueError):
        return False
    if op is ConditionOperator.GT:
        return left > right
    if op is ConditionOperator.GTE:
        return left >= right
    if op is ConditionOperator.LT:
        return left < right
    return left <= right


def evaluate_condition(condition: VisibilityCondition, inputs: Mapping[str, Any]) -> bool:
    """
    Evaluate a condition against current input values.

    Values compare as strings for eq/neq/in (input controls report strings)
    and as numbers for ordering operators. A variable missing from
    `inputs` makes its leaf false.

    Args:
        condition: Compiled condition
        inputs: Input id -> current value (scalar or list of selections)
    """
    if condition.op is ConditionOperator.AND:
        return all(evaluate_condition(child, inputs) for child in condition.conditions)
    if condition.op is ConditionOperator.OR:
        return any(evaluate_condition(child, inputs) for child in condition.conditions)
    if condition.var not in inputs:
        return False
    return _compare(condition.op, inputs[condition.var], condition.value)
