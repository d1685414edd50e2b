"""Tests for the vector and matrix routines."""

import pytest
from tessera import linalg
from tessera.errors import ExpressionIndexError, ExpressionTypeError, ShapeError
from tessera.evaluator import Evaluator
from tessera.expression import (
    BinaryOp, Boolean, Integer, Matrix, Rational, Variable, Vector, ONE, ZERO,
)
from tessera.parser import parse


@pytest.fixture
def reduce():
    return Evaluator().reduce


def ints(*values):
    return tuple(Integer(v) for v in values)


def matrix(*rows):
    return Matrix(tuple(ints(*row) for row in rows))


class TestShapes:
    """Tests for shape helpers."""

    def test_shape(self):
        assert linalg.shape(Vector(ints(1, 2))) == (2,)
        assert linalg.shape(matrix((1, 2, 3))) == (1, 3)
        assert linalg.shape(Integer(1)) == ()

    def test_as_matrix(self):
        """A vector is a column."""
        assert linalg.as_matrix(Vector(ints(1, 2))) == matrix((1,), (2,))
        assert linalg.as_matrix(Vector(())) == Matrix(())

    def test_as_matrix_rejects_scalars(self):
        with pytest.raises(ExpressionTypeError):
            linalg.as_matrix(ONE)

    def test_identity(self):
        assert linalg.identity(2) == matrix((1, 0), (0, 1))

    def test_sum_of(self, reduce):
        """The empty sum is 0."""
        assert linalg.sum_of([], reduce) == ZERO
        assert linalg.sum_of(list(ints(1, 2, 3)), reduce) == Integer(6)


class TestProducts:
    """Tests for matrix and vector products."""

    def test_matmul_vector(self, reduce):
        """Matrix times column vector is a vector."""
        result = linalg.matmul(matrix((1, 2), (3, 4)), Vector(ints(5, 6)), reduce)
        assert result == Vector(ints(17, 39))

    def test_vector_times_row(self, reduce):
        """Column times row is an outer product."""
        result = linalg.matmul(Vector(ints(1, 2)), matrix((3, 4)), reduce)
        assert result == matrix((3, 4), (6, 8))

    def test_matmul_shape_error(self, reduce):
        with pytest.raises(ShapeError):
            linalg.matmul(matrix((1, 2)), matrix((1, 2)), reduce)

    def test_symbolic_entries(self, reduce):
        """Symbolic entries build simplified trees."""
        a = Variable("a")
        result = linalg.matmul(Matrix(((a, ONE),)), Vector((ONE, ZERO)), reduce)
        assert result == Vector((a,))

    def test_matrix_power(self, reduce):
        """Repeated multiplication from the identity."""
        fib = matrix((1, 1), (1, 0))
        assert linalg.matrix_power(fib, Integer(10), reduce) == matrix((89, 55), (55, 34))

    @pytest.mark.parametrize("exponent", [Integer(-1), Rational(1, 2), Boolean(True)])
    def test_matrix_power_exponent(self, reduce, exponent):
        """Only non-negative integer exponents."""
        with pytest.raises(ExpressionTypeError):
            linalg.matrix_power(matrix((1, 0), (0, 1)), exponent, reduce)

    def test_dot(self, reduce):
        assert linalg.dot(Vector(ints(1, 2, 3)), Vector(ints(4, 5, 6)), reduce) == Integer(32)


class TestMatrixFunctions:
    """Tests for determinant, transpose and trace."""

    def test_determinant_3x3(self, reduce):
        m = matrix((2, 0, 1), (1, 3, 2), (1, 1, 2))
        assert linalg.determinant(m, reduce) == Integer(6)

    def test_determinant_exact_rationals(self, reduce):
        m = Matrix(((Rational(1, 2), ONE), (ONE, Integer(4))))
        assert linalg.determinant(m, reduce) == Integer(1)

    def test_determinant_symbolic(self, reduce):
        """det([[a, b], [c, d]]) == a * d - b * c."""
        m = parse("[[a, b], [c, d]]")
        assert linalg.determinant(m, reduce) == parse("a * d - b * c")

    def test_determinant_empty(self, reduce):
        assert linalg.determinant(Matrix(()), reduce) == ONE

    def test_transpose(self):
        assert linalg.transpose(matrix((1, 2, 3), (4, 5, 6))) == matrix((1, 4), (2, 5), (3, 6))

    def test_trace(self, reduce):
        assert linalg.trace(matrix((1, 2), (3, 4)), reduce) == Integer(5)

    def test_trace_non_square(self, reduce):
        with pytest.raises(ShapeError):
            linalg.trace(matrix((1, 2)), reduce)


class TestElementwise:
    """Tests for entrywise operations."""

    def test_add(self, reduce):
        result = linalg.elementwise("+", matrix((1, 2)), matrix((3, 4)), reduce)
        assert result == matrix((4, 6))

    def test_vector_and_matrix_differ(self, reduce):
        """A vector and a column matrix are different shapes for +."""
        with pytest.raises(ShapeError):
            linalg.elementwise("+", Vector(ints(1, 2)), matrix((1,), (2,)), reduce)

    def test_equal(self, reduce):
        """Entry comparisons are joined with &&."""
        assert linalg.equal("==", Vector(ints(1, 2)), Vector(ints(1, 2)), reduce) == Boolean(True)
        assert linalg.equal("!=", Vector(ints(1, 2)), Vector(ints(1, 2)), reduce) == Boolean(False)
        assert linalg.equal("==", Vector(ints(1)), matrix((1,)), reduce) == Boolean(False)

    def test_equal_symbolic(self, reduce):
        a, b = Variable("a"), Variable("b")
        result = linalg.equal("==", Vector((a, ONE)), Vector((b, ONE)), reduce)
        assert result == BinaryOp("==", a, b)


class TestElement:
    """Tests for indexing."""

    def test_vector(self):
        assert linalg.element(Vector(ints(4, 5)), ints(1)) == Integer(5)

    def test_matrix_row_and_entry(self):
        m = matrix((1, 2), (3, 4))
        assert linalg.element(m, ints(0)) == Vector(ints(1, 2))
        assert linalg.element(m, ints(1, 0)) == Integer(3)

    def test_out_of_range(self):
        with pytest.raises(ExpressionIndexError) as info:
            linalg.element(Vector(ints(4, 5)), ints(2))
        assert info.value.bound == 2

    def test_too_many_indices(self):
        with pytest.raises(ShapeError):
            linalg.element(matrix((1,)), ints(0, 0, 0))

    def test_non_integer_index(self):
        with pytest.raises(ExpressionIndexError):
            linalg.element(Vector(ints(4, 5)), (Boolean(True),))
