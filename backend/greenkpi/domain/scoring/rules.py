"""Score ceiling rules and their condition language.

A ceiling rule caps a page's score when its condition holds, e.g.::

    - if: "errors > 5"
      max_score: 50
    - if: "hstsMissing && (redirects >= 3 || requests > 150)"
      max_score: 70

Conditions are parsed once, when the configuration is loaded, into an
immutable expression tree.  Evaluation walks that tree against a metrics
record.  Nothing in a condition is ever executed as code.

Grammar::

    expr       := and_expr ( ("||" | "or") and_expr )*
    and_expr   := not_expr ( ("&&" | "and") not_expr )*
    not_expr   := ("!" | "not") not_expr | primary
    primary    := "(" expr ")" | operand [ OP operand ]
    operand    := identifier | number | "true" | "false"
    OP         := "<" | "<=" | ">" | ">=" | "==" | "!="

A comparison needs a metric on exactly one side; a bare metric name tests
its truthiness.  A condition may nest parentheses and negations at most
``MAX_NESTING`` deep and hold at most ``MAX_CLAUSES`` comparisons.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import Union

from ..common.errors import ConfigurationError

logger = logging.getLogger(__name__)

MAX_SCORE = 100
MIN_SCORE = 0

# Upper bounds on the shape of a parsed condition
MAX_NESTING = 32
MAX_CLAUSES = 64


# ---------------------------------------------------------------------------
# Expression tree
# ---------------------------------------------------------------------------


Literal = Union[float, bool]


@dataclass(frozen=True)
class Comparison:
    """``metric <op> literal``."""

    metric: str
    op: str
    literal: Literal

    def __str__(self) -> str:
        literal = str(self.literal).lower() if isinstance(self.literal, bool) else _fmt(self.literal)
        return f"{self.metric} {self.op} {literal}"


@dataclass(frozen=True)
class Truthy:
    """A bare metric name: true when the value is true or non-zero."""

    metric: str

    def __str__(self) -> str:
        return self.metric


@dataclass(frozen=True)
class And:
    left: "Expression"
    right: "Expression"

    def __str__(self) -> str:
        return f"({self.left} && {self.right})"


@dataclass(frozen=True)
class Or:
    left: "Expression"
    right: "Expression"

    def __str__(self) -> str:
        return f"({self.left} || {self.right})"


@dataclass(frozen=True)
class Not:
    operand: "Expression"

    def __str__(self) -> str:
        return f"!{self.operand}"


Expression = Union[Comparison, Truthy, And, Or, Not]


def _fmt(number: float) -> str:
    return str(int(number)) if float(number).is_integer() else repr(number)


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------


_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<number>-?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][+-]?\d+)?)
  | (?P<op>===|!==|<=|>=|==|!=|&&|\|\||<|>|!|\(|\))
  | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
    """,
    re.VERBOSE,
)

_COMPARISON_OPS = frozenset({"<", "<=", ">", ">=", "==", "!="})
_FLIPPED = {"<": ">", "<=": ">=", ">": "<", ">=": "<=", "==": "==", "!=": "!="}
_KEYWORDS = {"and": "&&", "or": "||", "not": "!"}


@dataclass(frozen=True)
class _Token:
    kind: str  # number | op | ident | bool
    text: str
    pos: int


def _tokenize(text: str) -> list[_Token]:
    tokens: list[_Token] = []
    pos = 0
    while pos < len(text):
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise ConfigurationError(
                f"unexpected character {text[pos]!r} at position {pos} in {text!r}"
            )
        kind = match.lastgroup
        value = match.group()
        if kind == "number" and value.startswith("-") and tokens:
            # "a-1" is not a supported arithmetic form; "x > -1" is fine
            if tokens[-1].kind != "op" or tokens[-1].text == ")":
                raise ConfigurationError(
                    f"arithmetic is not supported (position {pos} in {text!r})"
                )
        if kind == "op":
            value = {"===": "==", "!==": "!="}.get(value, value)
        elif kind == "ident":
            lowered = value.lower()
            if lowered in _KEYWORDS:
                kind, value = "op", _KEYWORDS[lowered]
            elif lowered in ("true", "false"):
                kind, value = "bool", lowered
        if kind != "ws":
            tokens.append(_Token(kind, value, pos))
        pos = match.end()
    return tokens


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


class _Parser:
    """Recursive-descent parser over the token list."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.tokens = _tokenize(text)
        self.index = 0
        self.depth = 0
        self.clauses = 0

    def parse(self) -> Expression:
        if not self.tokens:
            raise ConfigurationError("empty ceiling condition")
        expr = self._or()
        if self.index < len(self.tokens):
            token = self.tokens[self.index]
            raise ConfigurationError(
                f"unexpected {token.text!r} at position {token.pos} in {self.text!r}"
            )
        return expr

    def _peek(self) -> _Token | None:
        return self.tokens[self.index] if self.index < len(self.tokens) else None

    def _accept_op(self, *ops: str) -> str | None:
        token = self._peek()
        if token is not None and token.kind == "op" and token.text in ops:
            self.index += 1
            return token.text
        return None

    def _next(self) -> _Token:
        token = self._peek()
        if token is None:
            raise ConfigurationError(f"unexpected end of condition {self.text!r}")
        self.index += 1
        return token

    def _or(self) -> Expression:
        expr = self._and()
        while self._accept_op("||"):
            expr = Or(expr, self._and())
        return expr

    def _and(self) -> Expression:
        expr = self._not()
        while self._accept_op("&&"):
            expr = And(expr, self._not())
        return expr

    def _enter(self) -> None:
        self.depth += 1
        if self.depth > MAX_NESTING:
            raise ConfigurationError(
                f"condition nests deeper than {MAX_NESTING} levels: {self.text!r}"
            )

    def _not(self) -> Expression:
        if self._accept_op("!"):
            self._enter()
            expr = Not(self._not())
            self.depth -= 1
            return expr
        return self._primary()

    def _primary(self) -> Expression:
        if self._accept_op("("):
            self._enter()
            expr = self._or()
            if not self._accept_op(")"):
                raise ConfigurationError(f"missing ')' in {self.text!r}")
            self.depth -= 1
            return expr

        self.clauses += 1
        if self.clauses > MAX_CLAUSES:
            raise ConfigurationError(
                f"condition has more than {MAX_CLAUSES} clauses: {self.text!r}"
            )
        left = self._operand()
        op = self._accept_op(*_COMPARISON_OPS)
        if op is None:
            if left.kind != "ident":
                raise ConfigurationError(
                    f"literal {left.text!r} is not a condition in {self.text!r}"
                )
            return Truthy(left.text)

        right = self._operand()
        if left.kind == "ident" and right.kind != "ident":
            return Comparison(left.text, op, _literal(right))
        if right.kind == "ident" and left.kind != "ident":
            return Comparison(right.text, _FLIPPED[op], _literal(left))
        if left.kind == "ident":
            raise ConfigurationError(
                f"comparing two metrics is not supported: {self.text!r}"
            )
        raise ConfigurationError(
            f"comparison needs a metric name: {self.text!r}"
        )

    def _operand(self) -> _Token:
        token = self._next()
        if token.kind not in ("ident", "number", "bool"):
            raise ConfigurationError(
                f"expected a metric or a value, got {token.text!r} "
                f"at position {token.pos} in {self.text!r}"
            )
        return token


def _literal(token: _Token) -> Literal:
    if token.kind == "bool":
        return token.text == "true"
    return float(token.text)


def parse_condition(text: str) -> Expression:
    """Parse a ceiling condition; raise ConfigurationError if malformed."""
    if not isinstance(text, str):
        raise ConfigurationError(f"ceiling condition must be a string, got {text!r}")
    return _Parser(text).parse()


def referenced_metrics(expr: Expression) -> frozenset[str]:
    """All metric names an expression reads."""
    return frozenset(_walk_metrics(expr))


def _walk_metrics(expr: Expression) -> Iterator[str]:
    if isinstance(expr, (Comparison, Truthy)):
        yield expr.metric
    elif isinstance(expr, (And, Or)):
        yield from _walk_metrics(expr.left)
        yield from _walk_metrics(expr.right)
    elif isinstance(expr, Not):
        yield from _walk_metrics(expr.operand)


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


class _Unresolved(Exception):
    """A referenced metric is absent or holds an unusable value."""


def _lookup(metrics: Mapping[str, object], name: str) -> float | bool:
    if name not in metrics:
        raise _Unresolved(name)
    value = metrics[name]
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value
    raise _Unresolved(name)


def _compare(value: float | bool, op: str, literal: Literal) -> bool:
    if op == "<":
        return value < literal
    if op == "<=":
        return value <= literal
    if op == ">":
        return value > literal
    if op == ">=":
        return value >= literal
    if op == "==":
        return value == literal
    return value != literal


def _eval(expr: Expression, metrics: Mapping[str, object]) -> bool:
    if isinstance(expr, Comparison):
        return _compare(_lookup(metrics, expr.metric), expr.op, expr.literal)
    if isinstance(expr, Truthy):
        value = _lookup(metrics, expr.metric)
        return bool(value) and not (isinstance(value, float) and math.isnan(value))
    if isinstance(expr, And):
        return _eval(expr.left, metrics) and _eval(expr.right, metrics)
    if isinstance(expr, Or):
        return _eval(expr.left, metrics) or _eval(expr.right, metrics)
    if isinstance(expr, Not):
        return not _eval(expr.operand, metrics)
    raise _Unresolved(repr(expr))


def evaluate_condition(expr: Expression, metrics: Mapping[str, object]) -> bool:
    """Evaluate *expr* against *metrics*; never raises.

    If evaluation needs a metric that is missing or not a number/boolean,
    the whole condition is treated as not matching.  So is a tree built by
    hand too deep to walk.
    """
    try:
        return _eval(expr, metrics)
    except _Unresolved as exc:
        logger.debug("Ceiling condition %s not evaluable: missing metric %s", expr, exc)
        return False
    except RecursionError:
        logger.warning("Ceiling condition too deeply nested to evaluate; treated as not matching")
        return False


# ---------------------------------------------------------------------------
# Ceiling rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CeilingRule:
    """Cap the score at ``max_score`` whenever ``condition`` holds."""

    condition: Expression
    max_score: int
    source: str = ""

    @classmethod
    def parse(cls, condition: str, max_score: object) -> "CeilingRule":
        """Build a rule from its configuration form, validating both parts."""
        if isinstance(max_score, bool) or not isinstance(max_score, (int, float)):
            raise ConfigurationError(
                f"max_score must be a number, got {max_score!r}", key=str(condition)
            )
        if not math.isfinite(max_score) or not float(max_score).is_integer():
            raise ConfigurationError(
                f"max_score must be a whole number, got {max_score!r}",
                key=str(condition),
            )
        if not MIN_SCORE <= max_score <= MAX_SCORE:
            logger.warning(
                "Ceiling rule %r has max_score %s outside [0, 100]; it will be clamped",
                condition, max_score,
            )
        return cls(parse_condition(condition), int(max_score), condition)

    def matches(self, metrics: Mapping[str, object]) -> bool:
        return evaluate_condition(self.condition, metrics)


def evaluate_ceiling(
    metrics: Mapping[str, object], rules: Iterable[CeilingRule]
) -> int:
    """Strictest ``max_score`` among matching rules, clamped to [0, 100].

    Returns 100 when no rule matches.
    """
    ceiling = MAX_SCORE
    for rule in rules:
        if rule.matches(metrics):
            capped = max(MIN_SCORE, min(MAX_SCORE, rule.max_score))
            ceiling = min(ceiling, capped)
            logger.debug("Ceiling rule %r matched (max_score=%d)", rule.source, capped)
    return ceiling


__all__ = [
    "And",
    "CeilingRule",
    "Comparison",
    "Expression",
    "Not",
    "Or",
    "MAX_CLAUSES",
    "MAX_NESTING",
    "Truthy",
    "evaluate_ceiling",
    "evaluate_condition",
    "parse_condition",
    "referenced_metrics",
]
