"""Tests for the expression model and context."""

import copy
import pickle
import subprocess
import sys

import pytest
from tessera.context import Context, UserFunction
from tessera.errors import DivisionByZero, ShapeError
from tessera.expression import (
    BinaryOp, Boolean, Call, Complex, Index, Integer, Matrix, Rational, Real,
    UnaryOp, Variable, Vector, IMAGINARY_UNIT, ONE, ZERO,
    children, complex_number, free_in, is_exact, is_symbolic, map_children,
    rational, size, substitute,
)


class TestRational:
    """Tests for the reduced-form invariant of Rational."""

    @pytest.mark.parametrize("p, q, num, den", [
        (6, 4, 3, 2),
        (-6, 4, -3, 2),
        (6, -4, -3, 2),
        (-6, -4, 3, 2),
        (1, 3, 1, 3),
        (10 ** 30, 3 * 10 ** 29, 10, 3),
    ])
    def test_reduced_and_sign_normalized(self, p, q, num, den):
        """Denominator is positive and shares no factor with the numerator."""
        r = Rational(p, q)
        assert (r.numerator, r.denominator) == (num, den)

    def test_collapses_to_integer(self):
        """A reduced denominator of 1 yields an Integer."""
        assert Rational(8, 4) == Integer(2)
        assert isinstance(Rational(-8, 4), Integer)
        assert rational(5) == Integer(5)

    def test_zero_denominator(self):
        """A zero denominator is a division by zero."""
        with pytest.raises(DivisionByZero):
            Rational(1, 0)

    def test_decimal_flag_ignored_by_equality(self):
        """The decimal display flag does not take part in equality."""
        assert Rational(3, 2, decimal=True) == Rational(3, 2)
        assert hash(Rational(3, 2, decimal=True)) == hash(Rational(3, 2))

    def test_pickle_and_copy(self):
        """Rationals survive pickling and copying."""
        r = Rational(3, 2, decimal=True)
        assert pickle.loads(pickle.dumps(r)) == r
        assert copy.deepcopy(r).decimal is True


class TestComplex:
    """Tests for Complex construction."""

    def test_collapses_on_exact_zero(self):
        """A Complex with exact zero imaginary part is its real part."""
        assert Complex(Integer(3), ZERO) == Integer(3)
        assert complex_number(Rational(1, 2), Integer(0)) == Rational(1, 2)

    def test_keeps_nonzero_imaginary(self):
        """A nonzero imaginary part stays."""
        z = Complex(Integer(1), Integer(2))
        assert isinstance(z, Complex)
        assert z.imag == Integer(2)

    def test_rejects_non_scalar_parts(self):
        """Parts must be real scalars."""
        with pytest.raises(TypeError):
            Complex(Variable("x"), ONE)

    def test_imaginary_unit(self):
        """The imaginary unit is 0 + 1i."""
        assert isinstance(IMAGINARY_UNIT, Complex)
        assert IMAGINARY_UNIT == Complex(ZERO, ONE)

    def test_fresh_import(self):
        """The module imports cleanly in a new interpreter."""
        result = subprocess.run(
            [sys.executable, "-c", "import tessera; print(tessera.evaluate(tessera.parse('6/5 * 3')))"],
            capture_output=True, text=True
        )
        assert result.returncode == 0, result.stderr
        assert result.stdout.strip() == "18/5"

    def test_pickle(self):
        """Complex values survive pickling."""
        z = Complex(Integer(1), Integer(-2))
        assert pickle.loads(pickle.dumps(z)) == z


class TestArrays:
    """Tests for Vector and Matrix."""

    def test_vector_shape(self):
        """Vectors report their length."""
        v = Vector((ONE, ZERO, ONE))
        assert len(v) == 3
        assert v.shape == (3,)
        assert list(v) == [ONE, ZERO, ONE]

    def test_matrix_shape(self):
        """Matrices report rows and columns."""
        m = Matrix(((ONE, ZERO, ONE), (ZERO, ONE, ZERO)))
        assert m.shape == (2, 3)
        assert not m.is_square()
        assert m.columns()[2] == (ONE, ZERO)

    def test_ragged_matrix(self):
        """Rows of different lengths are rejected."""
        with pytest.raises(ShapeError):
            Matrix(((ONE, ZERO), (ONE,)))

    def test_empty_matrix(self):
        """The empty matrix is 0 x 0 and square."""
        m = Matrix(())
        assert m.shape == (0, 0)
        assert m.is_square()


class TestStructuralEquality:
    """Tests for syntactic equality of trees."""

    def test_variables(self):
        """Variables are equal iff their names are."""
        assert Variable("x") == Variable("x")
        assert Variable("x") != Variable("y")

    def test_calls(self):
        """Calls compare name and arguments."""
        assert Call("f", (ONE,)) == Call("f", [ONE])
        assert Call("f", (ONE,)) != Call("g", (ONE,))
        assert Call("f", (ONE,)) != Call("f", (ZERO,))

    def test_not_semantic(self):
        """x + 1 and 1 + x are different trees."""
        x = Variable("x")
        assert BinaryOp("+", x, ONE) != BinaryOp("+", ONE, x)

    def test_hashable(self):
        """Trees can be used as dict keys."""
        tree = BinaryOp("*", Integer(2), Variable("y"))
        assert {tree: 1}[BinaryOp("*", Integer(2), Variable("y"))] == 1


class TestTraversal:
    """Tests for children, map_children, substitute and friends."""

    def test_children(self):
        """Direct subexpressions of each node kind."""
        x = Variable("x")
        assert children(BinaryOp("+", x, ONE)) == (x, ONE)
        assert children(UnaryOp("-", x)) == (x,)
        assert children(Index(x, (ONE, ZERO))) == (x, ONE, ZERO)
        assert children(Integer(5)) == ()

    def test_map_children(self):
        """map_children rebuilds the node."""
        tree = Call("f", (Integer(1), Integer(2)))
        doubled = map_children(tree, lambda e: Integer(e.value * 2))
        assert doubled == Call("f", (Integer(2), Integer(4)))

    def test_free_in(self):
        """free_in finds variables at any depth."""
        tree = BinaryOp("+", Call("f", (Variable("x"),)), ONE)
        assert free_in("x", tree)
        assert not free_in("y", tree)

    def test_substitute(self):
        """substitute replaces every occurrence."""
        x = Variable("x")
        tree = BinaryOp("*", x, BinaryOp("+", x, ONE))
        assert substitute(tree, {"x": Integer(3)}) == BinaryOp(
            "*", Integer(3), BinaryOp("+", Integer(3), ONE)
        )

    def test_size(self):
        """size counts nodes."""
        assert size(BinaryOp("+", Variable("x"), ONE)) == 3

    def test_predicates(self):
        """Exactness and symbolic checks."""
        assert is_exact(Rational(1, 2))
        assert not is_exact(Real(1))
        assert is_symbolic(Variable("x"))
        assert not is_symbolic(Vector((Variable("x"),)))
        assert not is_symbolic(Boolean(True))


class TestContext:
    """Tests for the immutable Context."""

    def test_bind_returns_new_context(self):
        """bind returns a new context and leaves the receiver untouched."""
        ctx = Context()
        bound = ctx.bind("x", ONE)
        assert "x" in bound
        assert "x" not in ctx

    def test_define(self):
        """define stores a UserFunction."""
        ctx = Context().define("f", ["x"], Variable("x"))
        assert ctx.function("f") == UserFunction(("x",), Variable("x"))
        assert ctx.function("f").arity == 1
        assert ctx.value("f") is None

    def test_value_and_get(self):
        """Lookups of bound and unbound names."""
        ctx = Context({"x": ONE})
        assert ctx.value("x") == ONE
        assert ctx["x"] == ONE
        assert ctx.get("y") is None
        assert ctx.value("y") is None

    def test_without(self):
        """without drops names."""
        ctx = Context({"x": ONE, "y": ZERO})
        assert set(ctx.without("x")) == {"y"}
        assert ctx.without("z") is ctx

    def test_mapping_protocol(self):
        """len, iteration, equality and to_dict."""
        ctx = Context([("a", ONE), ("b", ZERO)])
        assert len(ctx) == 2
        assert sorted(ctx) == ["a", "b"]
        assert ctx == Context({"b": ZERO, "a": ONE})
        assert ctx.to_dict() == {"a": ONE, "b": ZERO}
