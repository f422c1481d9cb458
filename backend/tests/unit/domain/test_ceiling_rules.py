"""Tests for ceiling conditions and ceiling rule evaluation.

Verifies:
- Comparison, boolean and logical forms parse into the expression tree
- Operator aliases (===, and/or/not) and literal-on-the-left flipping
- Malformed conditions raise ConfigurationError at parse time
- Missing metrics make a condition non-matching
- The strictest matching rule wins and is clamped to [0, 100]
"""

from __future__ import annotations

import pytest

from greenkpi.domain.common.errors import ConfigurationError
from greenkpi.domain.scoring.composite import ScoringConfig, compute_composite_score
from greenkpi.domain.scoring.rules import (
    MAX_CLAUSES,
    MAX_NESTING,
    And,
    CeilingRule,
    Comparison,
    Not,
    Or,
    Truthy,
    evaluate_ceiling,
    evaluate_condition,
    parse_condition,
    referenced_metrics,
)


# ── Parsing ──────────────────────────────────────────────────────────


class TestParse:
    def test_simple_comparison(self):
        assert parse_condition("errors > 5") == Comparison("errors", ">", 5.0)

    def test_bare_metric_is_truthiness(self):
        assert parse_condition("hstsMissing") == Truthy("hstsMissing")

    def test_boolean_literal(self):
        assert parse_condition("fontsExternal == true") == Comparison(
            "fontsExternal", "==", True
        )

    def test_and_binds_tighter_than_or(self):
        expr = parse_condition("a > 1 || b > 2 && c > 3")
        assert isinstance(expr, Or)
        assert isinstance(expr.right, And)

    def test_parentheses_override_precedence(self):
        expr = parse_condition("(a > 1 || b > 2) && c > 3")
        assert isinstance(expr, And)
        assert isinstance(expr.left, Or)

    def test_negation(self):
        assert parse_condition("!hstsMissing") == Not(Truthy("hstsMissing"))

    def test_keyword_aliases(self):
        assert parse_condition("a > 1 and not b") == parse_condition("a > 1 && !b")
        assert parse_condition("a > 1 OR b") == parse_condition("a > 1 || b")

    def test_strict_equality_aliases(self):
        assert parse_condition("errors === 0") == Comparison("errors", "==", 0.0)
        assert parse_condition("errors !== 0") == Comparison("errors", "!=", 0.0)

    def test_literal_on_left_is_flipped(self):
        assert parse_condition("5 < errors") == Comparison("errors", ">", 5.0)

    def test_negative_and_decimal_literals(self):
        assert parse_condition("delta >= -1.5") == Comparison("delta", ">=", -1.5)

    def test_referenced_metrics(self):
        expr = parse_condition("hstsMissing && (redirects >= 3 || requests > 150)")
        assert referenced_metrics(expr) == frozenset({"hstsMissing", "redirects", "requests"})

    def test_str_round_trips_through_parser(self):
        expr = parse_condition("!(a > 1 || b <= 2.5) && c")
        assert parse_condition(str(expr)) == expr


class TestParseErrors:
    @pytest.mark.parametrize(
        "text",
        [
            "",
            "   ",
            "errors >",
            "errors > 5)",
            "(errors > 5",
            "5",
            "5 > 3",
            "requests > transferKB",
            "errors > 5 &&",
            "errors - 1 > 3",
            "errors > 5; import os",
            "__import__('os')",
        ],
    )
    def test_malformed(self, text):
        with pytest.raises(ConfigurationError):
            parse_condition(text)

    def test_non_string(self):
        with pytest.raises(ConfigurationError):
            parse_condition(5)  # type: ignore[arg-type]


class TestConditionLimits:
    def test_clause_limit_accepted(self):
        text = " && ".join(["errors >= 0"] * MAX_CLAUSES)
        assert evaluate_condition(parse_condition(text), {"errors": 1}) is True

    def test_too_many_clauses_rejected(self):
        text = " && ".join(["errors >= 0"] * 1500)
        with pytest.raises(ConfigurationError, match="clauses"):
            parse_condition(text)

    def test_nesting_limit_accepted(self):
        text = "(" * MAX_NESTING + "errors > 5" + ")" * MAX_NESTING
        assert parse_condition(text) == Comparison("errors", ">", 5.0)

    @pytest.mark.parametrize(
        "text",
        [
            "(" * 400 + "errors > 5" + ")" * 400,
            "!" * 400 + "hstsMissing",
        ],
    )
    def test_deep_nesting_rejected(self, text):
        with pytest.raises(ConfigurationError, match="nests deeper"):
            parse_condition(text)

    def test_hand_built_deep_tree_does_not_match(self):
        expr = Comparison("errors", ">=", 0.0)
        for _ in range(5000):
            expr = And(expr, Comparison("errors", ">=", 0.0))
        assert evaluate_condition(expr, {"errors": 1}) is False

    def test_hand_built_deep_tree_never_breaks_scoring(self, perfect_metrics):
        expr = Truthy("errors")
        for _ in range(5000):
            expr = Or(expr, Truthy("errors"))
        config = ScoringConfig(ceiling_rules=(CeilingRule(expr, 50, "deep"),))
        result = compute_composite_score({**perfect_metrics, "errors": 6}, config)
        assert result.ceiling_applied == 100


# ── Evaluation ───────────────────────────────────────────────────────


class TestEvaluate:
    @pytest.mark.parametrize(
        ("text", "metrics", "expected"),
        [
            ("errors > 5", {"errors": 6}, True),
            ("errors > 5", {"errors": 5}, False),
            ("errors >= 5", {"errors": 5}, True),
            ("hstsMissing", {"hstsMissing": True}, True),
            ("hstsMissing", {"hstsMissing": False}, False),
            ("!hstsMissing", {"hstsMissing": False}, True),
            ("hstsMissing == true", {"hstsMissing": True}, True),
            ("redirects", {"redirects": 0}, False),
            ("redirects", {"redirects": 2}, True),
            (
                "hstsMissing && (redirects >= 3 || requests > 150)",
                {"hstsMissing": True, "redirects": 1, "requests": 200},
                True,
            ),
            (
                "hstsMissing && (redirects >= 3 || requests > 150)",
                {"hstsMissing": True, "redirects": 1, "requests": 100},
                False,
            ),
        ],
    )
    def test_matches(self, text, metrics, expected):
        assert evaluate_condition(parse_condition(text), metrics) is expected

    def test_missing_metric_does_not_match(self):
        assert evaluate_condition(parse_condition("errors > 5"), {}) is False

    def test_missing_metric_under_negation_does_not_match(self):
        assert evaluate_condition(parse_condition("!(errors > 5)"), {}) is False

    def test_non_numeric_value_does_not_match(self):
        assert evaluate_condition(parse_condition("errors > 5"), {"errors": "many"}) is False

    def test_short_circuit_skips_missing_metric(self):
        expr = parse_condition("requests > 100 || errors > 5")
        assert evaluate_condition(expr, {"requests": 150}) is True


# ── Ceiling rules ────────────────────────────────────────────────────


class TestCeilingRule:
    def test_parse(self):
        rule = CeilingRule.parse("errors > 5", 50)
        assert rule.max_score == 50
        assert rule.source == "errors > 5"
        assert rule.matches({"errors": 9})

    def test_whole_float_accepted(self):
        assert CeilingRule.parse("errors > 5", 50.0).max_score == 50

    @pytest.mark.parametrize("bad", ["50", None, True, 49.5, float("inf")])
    def test_bad_max_score(self, bad):
        with pytest.raises(ConfigurationError):
            CeilingRule.parse("errors > 5", bad)

    def test_bad_condition(self):
        with pytest.raises(ConfigurationError):
            CeilingRule.parse("errors >", 50)


class TestEvaluateCeiling:
    RULES = (
        CeilingRule.parse("errors > 5", 50),
        CeilingRule.parse("hstsMissing", 70),
    )

    def test_no_match_is_100(self):
        assert evaluate_ceiling({"errors": 0, "hstsMissing": False}, self.RULES) == 100

    def test_single_match(self):
        assert evaluate_ceiling({"errors": 0, "hstsMissing": True}, self.RULES) == 70

    def test_strictest_match_wins(self):
        assert evaluate_ceiling({"errors": 9, "hstsMissing": True}, self.RULES) == 50

    def test_rule_order_is_irrelevant(self):
        metrics = {"errors": 9, "hstsMissing": True}
        assert evaluate_ceiling(metrics, tuple(reversed(self.RULES))) == 50

    def test_no_rules(self):
        assert evaluate_ceiling({"errors": 9}, ()) == 100

    def test_out_of_range_max_score_is_clamped(self):
        rules = (CeilingRule.parse("errors > 5", -20), CeilingRule.parse("errors > 1", 150))
        assert evaluate_ceiling({"errors": 9}, rules) == 0
        assert evaluate_ceiling({"errors": 3}, rules) == 100
