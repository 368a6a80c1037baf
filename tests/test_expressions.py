"""Tests for sandboxed pattern expressions."""

import math

import pytest

from hapticsync.common.exceptions import ExpressionError
from hapticsync.patterns.expressions import MAX_EXPRESSION_LENGTH, compile_expression


class TestEvaluation:
    """Expressions evaluate over phase and intensity"""

    def test_sine_expression(self):
        fn = compile_expression("sin(phase * pi * 2) * intensity")
        assert fn(0.25, 1.0) == pytest.approx(1.0)
        assert fn(0.75, 0.5) == pytest.approx(-0.5)

    def test_conditional_expression(self):
        fn = compile_expression("intensity if phase < 0.5 else intensity * 0.2")
        assert fn(0.1, 1.0) == 1.0
        assert fn(0.9, 1.0) == pytest.approx(0.2)

    def test_math_prefix_return_and_semicolon(self):
        """Script-style spellings are accepted"""
        fn = compile_expression("return Math.sin(phase * Math.PI) * intensity;")
        assert fn(0.5, 1.0) == pytest.approx(1.0)

    def test_whitelisted_functions(self):
        fn = compile_expression(
            "clamp(abs(phase - 0.5) * 4) + floor(phase * 3) + max(0, min(1, 2))"
        )
        assert fn(0.0, 1.0) == pytest.approx(1.0 + 0 + 1)

    def test_chained_comparison_and_bool_ops(self):
        fn = compile_expression("0.2 < phase < 0.8 and intensity or 0")
        assert fn(0.5, 0.7) == pytest.approx(0.7)
        assert fn(0.9, 0.7) == 0.0

    def test_power_operator(self):
        fn = compile_expression("phase ** 2 * intensity")
        assert fn(0.5, 1.0) == pytest.approx(0.25)


class TestRuntimeFailures:
    """Arithmetic failures evaluate to zero"""

    def test_domain_error(self):
        fn = compile_expression("sqrt(phase - 2)")
        assert fn(0.5, 1.0) == 0.0

    def test_division_by_zero(self):
        fn = compile_expression("intensity / (phase - phase)")
        assert fn(0.5, 1.0) == 0.0

    def test_overflow(self):
        fn = compile_expression("10 ** 1000 * intensity")
        assert fn(0.5, 1.0) == 0.0

    def test_result_is_float(self):
        fn = compile_expression("1")
        value = fn(0.0, 1.0)
        assert isinstance(value, float)
        assert math.isfinite(value)


class TestRejection:
    """Anything outside the whitelist is refused at compile time"""

    @pytest.mark.parametrize(
        "source",
        [
            "__import__('os')",
            "open('secrets')",
            "phase.real",
            "(lambda: 1)()",
            "'text'",
            "[phase, intensity]",
            "sin(x=phase)",
            "unknown_name * 2",
            "Math.system",
            "sin(phase",
        ],
    )
    def test_rejected(self, source):
        with pytest.raises(ExpressionError):
            compile_expression(source)

    def test_empty(self):
        with pytest.raises(ExpressionError):
            compile_expression("   ")

    def test_too_long(self):
        source = "phase + " * (MAX_EXPRESSION_LENGTH // 8 + 1) + "1"
        with pytest.raises(ExpressionError):
            compile_expression(source)
