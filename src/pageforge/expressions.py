"""
PageForge Boolean Expression Parser

Tokenizes and parses the small boolean DSL used by item `visibility`
conditions into an explicit AST.

Grammar (AND binds tighter than OR):

    expression  := or_expr
    or_expr     := and_expr ( ("|" | "||" | "or") and_expr )*
    and_expr    := term ( ("&" | "&&" | "and") term )*
    term        := "(" expression ")" | comparison
    comparison  := IDENT comparator value
    comparator  := "==" | "!=" | "<" | "<=" | ">" | ">=" | "%in%" | "in"
    value       := STRING | NUMBER | TRUE | FALSE | set
    set         := "c(" values ")" | "(" values ")" | "[" values "]"

A leading "~" marks the text as a formula and is ignored. Anything else
that looks like an operator (`!`, `not`, `+`, `=~`, `%like%`, ...) raises
UnsupportedOperatorError naming the operator.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from .exceptions import ExpressionSyntaxError, UnsupportedOperatorError


# =============================================================================
# AST
# =============================================================================

@dataclass(frozen=True)
class Comparison:
    """A leaf comparison `var <operator> value`."""
    var: str
    operator: str
    value: Any


@dataclass(frozen=True)
class BoolOp:
    """An n-ary AND/OR node; `operator` is "and" or "or"."""
    operator: str
    operands: tuple[Expression, ...] = field(default_factory=tuple)


Expression = Union[Comparison, BoolOp]


# =============================================================================
# Tokens
# =============================================================================

@dataclass(frozen=True)
class Token:
    kind: str
    text: str
    position: int


# Comparators written in source, mapped to their canonical name
COMPARATORS: dict[str, str] = {
    "==": "eq",
    "!=": "neq",
    "<": "lt",
    "<=": "lte",
    ">": "gt",
    ">=": "gte",
    "%in%": "in",
    "in": "in",
}

AND_TOKENS = frozenset({"&", "&&", "and"})
OR_TOKENS = frozenset({"|", "||", "or"})
BOOLEAN_LITERALS = {"TRUE": True, "true": True, "FALSE": False, "false": False}

# Words that read as operators but are not part of the language
_UNSUPPORTED_WORDS = frozenset({"not", "xor", "is", "like"})

_TOKEN_PATTERNS = [
    ("WS", r"\s+"),
    ("STRING", r"\"(?:[^\"\\]|\\.)*\"|'(?:[^'\\]|\\.)*'"),
    ("NUMBER", r"\d+(?:\.\d+)?(?:[eE][+-]?\d+)?|\.\d+"),
    ("IDENT", r"[A-Za-z_][A-Za-z0-9_.]*"),
    ("OP", r"%[^%\s]*%|==|!=|<=|>=|=~|&&|\|\||[<>&|!+\-*/^~=$@?:]"),
    ("LPAREN", r"\("),
    ("RPAREN", r"\)"),
    ("LBRACKET", r"\["),
    ("RBRACKET", r"\]"),
    ("COMMA", r","),
]
_TOKEN_RE = re.compile("|".join(f"(?P<{name}>{pattern})" for name, pattern in _TOKEN_PATTERNS))
_ESCAPE_RE = re.compile(r"\\(.)")


def tokenize(text: str) -> list[Token]:
    """
    Split expression text into tokens.

    Raises:
        ExpressionSyntaxError: On characters no token can start with
    """
    tokens: list[Token] = []
    position = 0
    while position < len(text):
        match = _TOKEN_RE.match(text, position)
        if match is None:
            raise ExpressionSyntaxError(
                message=f"Unexpected character {text[position]!r} at position {position}",
                details={"expression": text, "position": position},
            )
        kind = match.lastgroup or ""
        if kind != "WS":
            tokens.append(Token(kind=kind, text=match.group(), position=position))
        position = match.end()
    return tokens


# =============================================================================
# Parser
# =============================================================================

class _Parser:
    """Recursive-descent parser over a token list."""

    def __init__(self, text: str, tokens: list[Token]):
        self.text = text
        self.tokens = tokens
        self.index = 0

    # -- token helpers -------------------------------------------------------

    def peek(self) -> Optional[Token]:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def advance(self) -> Token:
        token = self.peek()
        if token is None:
            raise self.syntax_error("Unexpected end of expression")
        self.index += 1
        return token

    def syntax_error(self, message: str, token: Optional[Token] = None) -> ExpressionSyntaxError:
        details: dict[str, Any] = {"expression": self.text}
        if token is not None:
            details["position"] = token.position
            details["token"] = token.text
        return ExpressionSyntaxError(message=message, details=details)

    def unsupported(self, token: Token) -> UnsupportedOperatorError:
        return UnsupportedOperatorError(
            message=(
                f"Unsupported operator '{token.text}'. Supported: ==, !=, %in%, "
                "<, <=, >, >=, & (and), | (or), parentheses"
            ),
            details={"expression": self.text, "position": token.position},
            operator=token.text,
        )

    def is_operator_token(self, token: Optional[Token], words: frozenset[str]) -> bool:
        return token is not None and token.kind in ("OP", "IDENT") and token.text in words

    # -- grammar -------------------------------------------------------------

    def parse(self) -> Expression:
        token = self.peek()
        if token is not None and token.text == "~":
            self.advance()
        if self.peek() is None:
            raise self.syntax_error("Expression is empty")

        expression = self.parse_or()
        trailing = self.peek()
        if trailing is not None:
            if trailing.kind == "OP" or trailing.text in _UNSUPPORTED_WORDS:
                raise self.unsupported(trailing)
            raise self.syntax_error(f"Unexpected '{trailing.text}'", trailing)
        return expression

    def parse_or(self) -> Expression:
        operands = [self.parse_and()]
        while self.is_operator_token(self.peek(), OR_TOKENS):
            self.advance()
            operands.append(self.parse_and())
        return _combine("or", operands)

    def parse_and(self) -> Expression:
        operands = [self.parse_term()]
        while self.is_operator_token(self.peek(), AND_TOKENS):
            self.advance()
            operands.append(self.parse_term())
        return _combine("and", operands)

    def parse_term(self) -> Expression:
        token = self.advance()
        if token.kind == "LPAREN":
            inner = self.parse_or()
            closing = self.advance()
            if closing.kind != "RPAREN":
                raise self.syntax_error("Expected ')'", closing)
            return inner
        if token.kind == "OP" and token.text in COMPARATORS:
            raise self.syntax_error(f"Comparison '{token.text}' is missing its variable", token)
        if token.kind == "OP" or (token.kind == "IDENT" and token.text in _UNSUPPORTED_WORDS):
            raise self.unsupported(token)
        if token.kind != "IDENT":
            raise self.syntax_error(f"Expected a variable name, got '{token.text}'", token)
        return self.parse_comparison(token)

    def parse_comparison(self, var: Token) -> Comparison:
        token = self.advance()
        if token.text not in COMPARATORS or token.kind not in ("OP", "IDENT"):
            if token.kind == "OP" or token.text in _UNSUPPORTED_WORDS:
                raise self.unsupported(token)
            raise self.syntax_error(f"Expected a comparison after '{var.text}'", token)
        operator = COMPARATORS[token.text]
        value = self.parse_value()
        if operator == "in" and not isinstance(value, list):
            value = [value]
        return Comparison(var=var.text, operator=operator, value=value)

    def parse_value(self) -> Any:
        token = self.advance()
        if token.kind == "STRING":
            return _ESCAPE_RE.sub(r"\1", token.text[1:-1])
        if token.kind == "NUMBER":
            return _number(token.text)
        if token.kind == "OP" and token.text == "-":
            number = self.advance()
            if number.kind != "NUMBER":
                raise self.unsupported(token)
            return -_number(number.text)
        if token.kind == "IDENT":
            if token.text in BOOLEAN_LITERALS:
                return BOOLEAN_LITERALS[token.text]
            if token.text == "c" and self.peek() is not None and self.peek().kind == "LPAREN":
                self.advance()
                return self.parse_set("RPAREN")
            raise self.syntax_error(
                f"Expected a literal value, got identifier '{token.text}'", token
            )
        if token.kind == "LPAREN":
            return self.parse_set("RPAREN")
        if token.kind == "LBRACKET":
            return self.parse_set("RBRACKET")
        if token.kind == "OP":
            raise self.unsupported(token)
        raise self.syntax_error(f"Expected a literal value, got '{token.text}'", token)

    def parse_set(self, closing_kind: str) -> list[Any]:
        values: list[Any] = []
        token = self.peek()
        if token is not None and token.kind == closing_kind:
            self.advance()
            return values
        while True:
            values.append(self.parse_value())
            token = self.advance()
            if token.kind == closing_kind:
                return values
            if token.kind != "COMMA":
                raise self.syntax_error("Expected ',' or end of set", token)


def _number(text: str) -> Union[int, float]:
    if re.fullmatch(r"\d+", text):
        return int(text)
    return float(text)


def _combine(operator: str, operands: list[Expression]) -> Expression:
    """Build an n-ary node, flattening nested nodes of the same operator."""
    if len(operands) == 1:
        return operands[0]
    flat: list[Expression] = []
    for operand in operands:
        if isinstance(operand, BoolOp) and operand.operator == operator:
            flat.extend(operand.operands)
        else:
            flat.append(operand)
    return BoolOp(operator=operator, operands=tuple(flat))


def parse_expression(text: str) -> Expression:
    """
    Parse boolean expression text into an AST.

    Args:
        text: Expression such as `status == "active" & wave %in% c(1, 2)`

    Returns:
        Comparison for a single test, BoolOp for compositions

    Raises:
        ExpressionSyntaxError: If the text is malformed
        UnsupportedOperatorError: If an operator outside the language is used

    Example:
        'a == 1 | b == 2 & c == 3' parses to
        BoolOp("or", (Comparison("a", "eq", 1), BoolOp("and", (...))))
    """
    return _Parser(text, tokenize(text)).parse()


def expression_variables(expression: Expression) -> list[str]:
    """Variable names referenced by an expression, in first-seen order."""
    if isinstance(expression, Comparison):
        return [expression.var]
    names: list[str] = []
    for operand in expression.operands:
        for name in expression_variables(operand):
            if name not in names:
                names.append(name)
    return names
