"""Tests for canonical text rendering."""

import mpmath
import pytest
from tessera.expression import (
    BinaryOp, Boolean, Call, Complex, Index, Integer, Matrix, Rational, Real,
    UnaryOp, Variable, Vector, Wildcard, ONE, ZERO,
)
from tessera.evaluator import evaluate
from tessera.parser import parse
from tessera.printer import decimal_string, format_expr

x, y = Variable("x"), Variable("y")


class TestScalars:
    """Tests for number and boolean rendering."""

    def test_integers(self):
        """Integers print in full."""
        assert format_expr(Integer(-12)) == "-12"
        assert format_expr(Integer(2 ** 70)) == str(2 ** 70)

    def test_rationals(self):
        """Rationals print as p/q."""
        assert format_expr(Rational(1, 2)) == "1/2"
        assert format_expr(Rational(-18, 5)) == "-18/5"

    def test_decimal_rationals(self):
        """Decimal-flagged rationals print as decimals when finite."""
        assert format_expr(Rational(3, 2, decimal=True)) == "1.5"
        assert format_expr(Rational(-123, 40, decimal=True)) == "-3.075"
        assert format_expr(Rational(1, 3, decimal=True)) == "1/3"

    def test_real(self):
        """Reals print through mpmath."""
        assert format_expr(Real(mpmath.mpf("2.5"), 10)) == "2.5"

    def test_booleans(self):
        """true and false."""
        assert format_expr(Boolean(True)) == "true"
        assert format_expr(Boolean(False)) == "false"

    @pytest.mark.parametrize("z, text", [
        (Complex(ZERO, Integer(2)), "2*i"),
        (Complex(ZERO, ONE), "i"),
        (Complex(ZERO, Integer(-1)), "-i"),
        (Complex(Integer(3), Integer(-4)), "3 - 4*i"),
        (Complex(Integer(3), ONE), "3 + i"),
        (Complex(Integer(-3), Integer(4)), "4*i - 3"),
        (Complex(ZERO, Rational(1, 2)), "1/2*i"),
    ])
    def test_complex(self, z, text):
        """Complex values print as a sum with an i term."""
        assert format_expr(z) == text


class TestDecimalString:
    """Tests for finite decimal expansion."""

    @pytest.mark.parametrize("p, q, text", [
        (3, 2, "1.5"),
        (1, 8, "0.125"),
        (-1, 20, "-0.05"),
        (7, 1, "7"),
        (1, 3, None),
        (1, 6, None),
    ])
    def test_expansion(self, p, q, text):
        """Only denominators of the form 2^a 5^b expand."""
        assert decimal_string(p, q) == text


class TestParentheses:
    """Tests for minimal parenthesization."""

    @pytest.mark.parametrize("text", [
        "1 + 2 * x",
        "(1 + x) * 2",
        "x - y - 1",
        "x - (y - 1)",
        "x / (y * 2)",
        "x ^ y ^ 2",
        "(x ^ y) ^ 2",
        "-x ^ 2",
        "(-x) ^ 2",
        "--x",
        "-(x + 1)",
        "x * -y",
        "!x == y",
        "!(a && b)",
        "a || b && c",
        "(a || b) && c",
        "x < y == true",
        "f(x, 1)[0]",
        "(a + b)[0, 1]",
        "[1, x + 1]",
        "[[1, 2], [3, 4]]",
        "det([[a, b], [c, d]])",
    ])
    def test_canonical_text_is_stable(self, text):
        """Canonical text prints back unchanged."""
        assert format_expr(parse(text)) == text

    @pytest.mark.parametrize("tree", [
        BinaryOp("^", Integer(-2), Integer(2)),
        BinaryOp("^", Integer(2), UnaryOp("-", ONE)),
        BinaryOp("^", Rational(1, 2), Integer(2)),
        BinaryOp("-", x, BinaryOp("+", y, ONE)),
        Index(UnaryOp("-", x), (ZERO,)),
        BinaryOp("/", ONE, Integer(2)),
        BinaryOp("*", Integer(2), Complex(ZERO, ONE)),
    ])
    def test_printed_text_is_a_fixed_point(self, tree):
        """Printing, parsing and printing again gives the same text."""
        reparsed = parse(format_expr(tree))
        assert format_expr(reparsed) == format_expr(tree)

    def test_negative_base(self):
        """A negative literal base is parenthesized."""
        assert format_expr(BinaryOp("^", Integer(-2), Integer(2))) == "(-2) ^ 2"

    def test_rational_operand(self):
        """A rational is a division at product level."""
        assert format_expr(BinaryOp("^", Rational(1, 2), Integer(2))) == "(1/2) ^ 2"
        assert format_expr(BinaryOp("*", Rational(1, 2), x)) == "1/2 * x"

    def test_complex_operand(self):
        """A complex with a real part is a sum."""
        tree = BinaryOp("*", Integer(2), Complex(Integer(3), Integer(4)))
        assert format_expr(tree) == "2 * (3 + 4*i)"


class TestLiteralRoundTrip:
    """Rendered exact values parse back to the same value and text."""

    @pytest.mark.parametrize("value", [
        Integer(7),
        Integer(-12),
        Rational(1, 2),
        Rational(-18, 5),
        Rational(3, 2, decimal=True),
        Rational(-123, 40, decimal=True),
        Rational(1, 3, decimal=True),
        Boolean(True),
        Complex(ZERO, ONE),
        Complex(ZERO, Integer(-1)),
        Complex(ZERO, Integer(2)),
        Complex(ZERO, Rational(-1, 2)),
        Complex(Integer(3), Integer(4)),
        Complex(Integer(3), Integer(-1)),
        Complex(Integer(-3), Integer(-2)),
        Complex(Integer(-3), Integer(4)),
        Complex(Rational(-1, 2), ONE),
        Complex(Rational(1, 2), Rational(1, 2)),
        Complex(Rational(3, 2, decimal=True), Rational(-5, 2, decimal=True)),
        Vector((Rational(1, 2), Complex(Integer(3), Integer(-4)))),
        Matrix(((Rational(2, 3), ONE), (ZERO, Complex(ZERO, Rational(1, 3))))),
    ])
    def test_round_trip(self, value):
        """format, parse, format gives the same text and the same value."""
        text = format_expr(value)
        assert format_expr(parse(text)) == text
        assert evaluate(parse(text)) == value

    def test_positive_literals_parse_to_values(self):
        """Unsigned rationals and complex numbers need no evaluation."""
        for value in (Rational(1, 2), Complex(Integer(3), Integer(4)),
                      Complex(ZERO, Rational(1, 2))):
            assert parse(format_expr(value)) == value


class TestStructures:
    """Tests for the remaining node kinds."""

    def test_collections(self):
        """Vectors and matrices print as bracket lists."""
        assert format_expr(Vector(())) == "[]"
        assert format_expr(Matrix(((ONE,),))) == "[[1]]"

    def test_call_and_wildcard(self):
        """Calls and pattern wildcards."""
        assert format_expr(Call("f", ())) == "f()"
        assert format_expr(BinaryOp("+", Wildcard("x"), ZERO)) == "?x + 0"

    def test_str(self):
        """str() of any expression is its canonical text."""
        assert str(BinaryOp("+", x, ONE)) == "x + 1"
