"""Tests for the shunting-yard parser and the postfix evaluator."""

import math

import pytest
from sympy import sympify

from eqsolver import Context, EvalError, ParseError, evaluate, eval_str
from eqsolver.shunting import TokenKind, parse


# ── Plain arithmetic ─────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "expr,expected",
    [
        ("2 + 3 * 4", 14.0),
        ("(2 + 3) * 4", 20.0),
        ("2 ^ 3 ^ 2", 512.0),
        ("2 ** 3", 8.0),
        ("10 - 4 - 3", 3.0),
        ("100 / 10 / 5", 2.0),
        ("-2 ^ 2", -4.0),
        ("2 ^ -1", 0.5),
        ("-(3 + 4) * 2", -14.0),
        ("3 * -2", -6.0),
        ("+5 - -5", 10.0),
        ("1.5e2 + .5", 150.5),
    ],
)
def test_arithmetic(expr: str, expected: float) -> None:
    assert evaluate(expr) == pytest.approx(expected)


@pytest.mark.parametrize(
    "expr",
    ["2 + 3 * 4 - 5 / 2", "(1 + 2) ^ 2 / 3", "7 - 2 ^ 3 ^ 0.5", "4 * (2 - 9) / (1 + 1)"],
)
def test_matches_sympy(expr: str) -> None:
    expected = float(sympify(expr.replace("^", "**")))
    assert evaluate(expr) == pytest.approx(expected)


class TestBuiltins:
    def test_trig_and_constants(self):
        assert abs(eval_str("sin(-1 + 2 + 2 + 0.14)")) < 0.01
        assert eval_str("cos(pi)") == pytest.approx(-1.0)
        assert eval_str("ln(e)") == pytest.approx(1.0)

    def test_two_argument_log(self):
        assert eval_str("log(8, 2)") == pytest.approx(3.0)
        assert eval_str("log10(1000)") == pytest.approx(3.0)

    def test_nested_calls(self):
        assert eval_str("sqrt(abs(-16)) + exp(0)") == pytest.approx(5.0)

    @pytest.mark.parametrize(
        "op,expected",
        [(1, 20.0), (2, 10.0), (3, 20.0), (4, 10.0), (5, 20.0), (0, 10.0)],
    )
    def test_conditional(self, op, expected):
        # compares 1 against 2
        assert eval_str(f"if(1, {op}, 2, 10, 20)") == expected

    def test_function_argument_expressions(self):
        assert eval_str("log(2 ^ 10, 1 + 1) * 2") == pytest.approx(20.0)


# ── Variables ────────────────────────────────────────────────────────────

class TestVariables:
    def test_evaluate_with_context_variable(self):
        ctx = Context()
        ctx.add_const("x", 0.0)
        assert evaluate("3 + 4 + x", ctx) == 7.0

    def test_reuse_with_changing_values(self, ctx):
        ctx.add_var("x", 2.0)
        expr = parse("x ^ 2 + 1", ctx)
        assert expr.evaluate(ctx) == 5.0
        ctx.get_var("x").set(3.0)
        assert expr.evaluate(ctx) == 10.0

    def test_values_shadow_context(self, ctx):
        ctx.add_var("x", 2.0)
        expr = parse("x * 10", ctx)
        assert expr.evaluate(ctx, {"x": 4.0}) == 40.0
        assert ctx.get_value("x") == 2.0

    def test_free_variables_without_values(self, ctx):
        expr = parse("a * sin(b) + pi - a", ctx)
        assert expr.variables() == {"a", "b"}

    def test_constants_are_inlined(self, ctx):
        expr = parse("2 * pi", ctx)
        assert all(tok.kind is not TokenKind.VAR for tok in expr)

    def test_unbound_variable_is_eval_error(self, ctx):
        expr = parse("y + 1", ctx)
        with pytest.raises(EvalError, match="Unbound variable 'y'"):
            expr.evaluate(ctx)


# ── Parse failures ───────────────────────────────────────────────────────

class TestParseErrors:
    @pytest.mark.parametrize(
        "expr,token,position",
        [
            ("(1 + 2", "(", 0),
            ("1 + 2)", ")", 5),
            ("2 $ 3", "$", 2),
            ("2 3", "3", 2),
            ("* 3", "*", 0),
            ("foo(2)", "foo", 0),
            ("log(2)", "log", 0),
            ("()", ")", 1),
            ("sin 2", "sin", 0),
            ("1, 2", ",", 1),
            ("sin(1,)", ")", 6),
        ],
    )
    def test_reports_token_and_position(self, ctx, expr, token, position):
        with pytest.raises(ParseError) as info:
            parse(expr, ctx)
        assert info.value.token == token
        assert info.value.position == position

    def test_empty_expression(self, ctx):
        with pytest.raises(ParseError, match="Empty expression"):
            parse("   ", ctx)

    def test_dangling_operator(self, ctx):
        with pytest.raises(ParseError, match="Unexpected end"):
            parse("2 +", ctx)

    def test_parse_error_is_value_error(self, ctx):
        with pytest.raises(ValueError):
            parse("2 +* 3", ctx)


# ── Evaluation failures ──────────────────────────────────────────────────

class TestEvalErrors:
    @pytest.mark.parametrize("expr", ["1 / 0", "1 / (2 - 2)", "sqrt(-1)", "ln(0)", "(-8) ^ (1 / 3)"])
    def test_domain_errors(self, expr):
        with pytest.raises(EvalError):
            eval_str(expr)

    def test_overflow(self):
        with pytest.raises(EvalError):
            eval_str("exp(1000)")

    def test_arity_changed_after_parse(self, ctx):
        expr = parse("sin(1)", ctx)
        ctx.functions["sin"] = ctx.functions["log"]
        with pytest.raises(EvalError, match="takes 2 argument"):
            expr.evaluate(ctx)

    def test_custom_function(self, ctx):
        ctx.add_func("hyp", lambda a, b: math.hypot(a, b), 2)
        assert evaluate("hyp(3, 4)", ctx) == 5.0
