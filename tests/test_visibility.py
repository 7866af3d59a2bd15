"""
Tests for the expression parser and visibility compiler

Tests cover:
- Operator precedence and flattening of AND/OR chains
- Literal values: strings, numbers, booleans and sets
- Unsupported operators and malformed input
- Compact JSON emission
- Reference evaluation against input state
"""
import json
import logging

import pytest

from pageforge.exceptions import ExpressionSyntaxError, UnsupportedOperatorError
from pageforge.expressions import BoolOp, Comparison, expression_variables, parse_expression
from pageforge.models import ConditionOperator
from pageforge.visibility import (
    VisibilityCondition,
    check_variables,
    compile_visibility,
    evaluate_condition,
)


# =============================================================================
# Parsing
# =============================================================================

class TestParseExpression:
    """Tests for parse_expression()."""

    def test_single_comparison(self):
        """A lone comparison parses to a leaf."""
        assert parse_expression('status == "active"') == Comparison("status", "eq", "active")

    def test_and_binds_tighter_than_or(self):
        """`a | b & c` groups as `a | (b & c)`."""
        expr = parse_expression("a == 1 | b == 2 & c == 3")
        assert expr == BoolOp("or", (
            Comparison("a", "eq", 1),
            BoolOp("and", (Comparison("b", "eq", 2), Comparison("c", "eq", 3))),
        ))

    def test_parentheses_override_precedence(self):
        """Parenthesized OR becomes an operand of AND."""
        expr = parse_expression("(a == 1 | b == 2) & c == 3")
        assert expr.operator == "and"
        assert expr.operands[0].operator == "or"

    def test_chains_are_flattened(self):
        """Nested nodes of the same operator collapse into one."""
        expr = parse_expression("(a == 1 & b == 2) & c == 3 && d == 4")
        assert expr.operator == "and"
        assert [operand.var for operand in expr.operands] == ["a", "b", "c", "d"]

    def test_word_operators(self):
        """`and` / `or` are accepted alongside the symbols."""
        assert parse_expression("a == 1 and b == 2 or c == 3") == parse_expression(
            "a == 1 & b == 2 | c == 3"
        )

    def test_formula_prefix(self):
        """A leading `~` is ignored."""
        assert parse_expression("~ wave == 1") == Comparison("wave", "eq", 1)

    @pytest.mark.parametrize("text,value", [
        ("x == 'single'", "single"),
        ('x == "esc\\"aped"', 'esc"aped'),
        ("x == 42", 42),
        ("x == 1.5", 1.5),
        ("x > -3", -3),
        ("x == TRUE", True),
        ("x == false", False),
    ])
    def test_literals(self, text, value):
        """Strings, numbers and booleans parse to Python values."""
        assert parse_expression(text).value == value

    @pytest.mark.parametrize("text", [
        "region %in% c('north', 'south')",
        "region in ('north', 'south')",
        "region in ['north', 'south']",
    ])
    def test_set_forms(self, text):
        """Sets may be written with c(), parentheses or brackets."""
        assert parse_expression(text) == Comparison("region", "in", ["north", "south"])

    def test_scalar_membership_is_wrapped(self):
        """`x %in% 'a'` means membership in a one-element set."""
        assert parse_expression("x %in% 'a'").value == ["a"]

    def test_dotted_identifiers(self):
        """Variable names may contain dots."""
        assert parse_expression("filters.wave == 1").var == "filters.wave"

    def test_expression_variables(self):
        """Variables are listed once, in first-seen order."""
        expr = parse_expression("b == 1 & (a == 2 | b == 3)")
        assert expression_variables(expr) == ["b", "a"]


class TestExpressionErrors:
    """Tests for rejected expressions."""

    @pytest.mark.parametrize("text,operator", [
        ("!status == 'a'", "!"),
        ("not status == 'a'", "not"),
        ("a + 1 == 2", "+"),
        ("name =~ 'x'", "=~"),
        ("name %like% 'x'", "%like%"),
    ])
    def test_unsupported_operators(self, text, operator):
        """Operators outside the language name themselves in the error."""
        with pytest.raises(UnsupportedOperatorError) as exc_info:
            parse_expression(text)
        assert exc_info.value.operator == operator
        assert exc_info.value.code == "PF_UNSUPPORTED_OPERATOR"

    @pytest.mark.parametrize("text", [
        "",
        "   ",
        "status ==",
        "(a == 1",
        "a == 1 &",
        "== 1",
        "a == b",
        "a == 1 #",
        "a == c(1 2)",
    ])
    def test_syntax_errors(self, text):
        """Malformed text raises ExpressionSyntaxError."""
        with pytest.raises(ExpressionSyntaxError):
            parse_expression(text)


# =============================================================================
# Compilation
# =============================================================================

class TestCompileVisibility:
    """Tests for compile_visibility() and its JSON form."""

    def test_compact_json(self):
        """A two-leaf AND serializes to the runtime document shape."""
        condition = compile_visibility('status == "active" & wave == "1"')
        assert condition.to_json() == (
            '{"op":"and","conditions":['
            '{"var":"status","op":"eq","val":"active"},'
            '{"var":"wave","op":"eq","val":"1"}]}'
        )

    def test_leaf_dict(self):
        """Leaves carry var, op and val."""
        condition = compile_visibility("score >= 3")
        assert condition.to_dict() == {"var": "score", "op": "gte", "val": 3}

    def test_json_is_parseable(self):
        """Set values stay JSON arrays."""
        condition = compile_visibility("region %in% c('north', 'south') | score < 2")
        data = json.loads(condition.to_json())
        assert data["op"] == "or"
        assert data["conditions"][0]["val"] == ["north", "south"]

    def test_structure_is_validated(self):
        """Logical nodes need operands; leaves need a variable."""
        with pytest.raises(ValueError):
            VisibilityCondition(ConditionOperator.AND, conditions=())
        with pytest.raises(ValueError):
            VisibilityCondition(ConditionOperator.EQ, value=1)

    def test_unknown_variables_warn(self, caplog):
        """Variables no input control declares are logged and returned."""
        condition = compile_visibility("wave == 1 & region == 'north'")
        with caplog.at_level(logging.WARNING, logger="pageforge.visibility"):
            unknown = check_variables(condition, ["wave"], insertion_index=4)

        assert unknown == ["region"]
        assert "region" in caplog.text
        assert "#4" in caplog.text


# =============================================================================
# Evaluation
# =============================================================================

class TestEvaluateCondition:
    """Tests for evaluate_condition()."""

    def test_string_comparison(self):
        """Equality compares string forms."""
        condition = compile_visibility("wave == 1")
        assert evaluate_condition(condition, {"wave": "1"}) is True
        assert evaluate_condition(condition, {"wave": "2"}) is False

    def test_missing_input_is_false(self):
        """A variable without a value fails its comparison."""
        assert evaluate_condition(compile_visibility("wave == 1"), {}) is False

    def test_numeric_ordering(self):
        """Ordering operators compare numerically."""
        condition = compile_visibility("score > 9")
        assert evaluate_condition(condition, {"score": "10"}) is True
        assert evaluate_condition(condition, {"score": "abc"}) is False

    def test_multi_select(self):
        """A list input matches when any selection matches."""
        condition = compile_visibility("region == 'north'")
        assert evaluate_condition(condition, {"region": ["south", "north"]}) is True
        negated = compile_visibility("region != 'north'")
        assert evaluate_condition(negated, {"region": ["south", "north"]}) is False

    def test_composite(self):
        """AND/OR combine their children."""
        condition = compile_visibility("a == 1 | b %in% c(2, 3) & c == 'x'")
        assert evaluate_condition(condition, {"a": "1"}) is True
        assert evaluate_condition(condition, {"b": "3", "c": "x"}) is True
        assert evaluate_condition(condition, {"b": "3", "c": "y"}) is False
