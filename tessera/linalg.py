"""
Vector and matrix routines for TESSERA.

Entries may be any expressions, so nothing here does arithmetic itself:
every routine takes a reduce(op, a, b) callback (the evaluator's binary
operator reduction) and combines entries through it. Numeric entries fold
to numbers, symbolic entries build simplified operator trees.

A Vector taking part in a matrix operation is treated as a column (n x 1).
"""

from typing import Callable, List, Sequence, Tuple

from .errors import ExpressionIndexError, ExpressionTypeError, ShapeError
from .expression import (
    Boolean, Expression, Integer, Matrix, ONE, Vector, ZERO,
    FALSE, TRUE, is_number,
)

Reducer = Callable[[str, Expression, Expression], Expression]


def shape(expr: Expression) -> Tuple[int, ...]:
    """Shape of an array; scalars and symbols have shape ()."""
    if isinstance(expr, (Vector, Matrix)):
        return expr.shape
    return ()


def as_matrix(expr: Expression) -> Matrix:
    """View a Vector as a column matrix; the empty vector is the empty matrix."""
    if isinstance(expr, Matrix):
        return expr
    if isinstance(expr, Vector):
        return Matrix(tuple((e,) for e in expr.elements))
    raise ExpressionTypeError("matrix", ("vector", "matrix"), expr.kind)


def identity(n: int) -> Matrix:
    return Matrix(tuple(
        tuple(ONE if i == j else ZERO for j in range(n)) for i in range(n)
    ))


def map_entries(array: Expression, f: Callable[[Expression], Expression]) -> Expression:
    """Apply f to every entry of a Vector or Matrix."""
    if isinstance(array, Vector):
        return Vector(tuple(f(e) for e in array.elements))
    return Matrix(tuple(tuple(f(e) for e in row) for row in array.rows))


def sum_of(terms: Sequence[Expression], reduce: Reducer) -> Expression:
    """Left fold of terms with +; the empty sum is 0."""
    if not terms:
        return ZERO
    total = terms[0]
    for term in terms[1:]:
        total = reduce("+", total, term)
    return total


# ============================================================
# Elementwise and Scalar Operations
# ============================================================

def elementwise(op: str, a: Expression, b: Expression, reduce: Reducer) -> Expression:
    """a op b entry by entry; both operands must have the same shape."""
    if type(a) is not type(b) or a.shape != b.shape:
        raise ShapeError(shape(a), shape(b), op)
    if isinstance(a, Vector):
        return Vector(tuple(reduce(op, x, y) for x, y in zip(a.elements, b.elements)))
    return Matrix(tuple(
        tuple(reduce(op, x, y) for x, y in zip(row_a, row_b))
        for row_a, row_b in zip(a.rows, b.rows)
    ))


def scale(a: Expression, b: Expression, reduce: Reducer) -> Expression:
    """Scalar times array (either order)."""
    if isinstance(a, (Vector, Matrix)):
        return map_entries(a, lambda entry: reduce("*", entry, b))
    return map_entries(b, lambda entry: reduce("*", a, entry))


def equal(op: str, a: Expression, b: Expression, reduce: Reducer) -> Expression:
    """
    Compare two arrays with == or !=.

    Arrays of different shape are simply unequal. Otherwise the entry
    comparisons are joined with && (for ==) or || (for !=), so a comparison
    between symbolic entries stays symbolic.
    """
    if type(a) is not type(b) or a.shape != b.shape:
        return Boolean(op == "!=")
    joiner, result = ("&&", TRUE) if op == "==" else ("||", FALSE)
    if isinstance(a, Vector):
        pairs = zip(a.elements, b.elements)
    else:
        pairs = zip(
            (e for row in a.rows for e in row),
            (e for row in b.rows for e in row),
        )
    for x, y in pairs:
        result = reduce(joiner, result, reduce(op, x, y))
    return result


# ============================================================
# Products
# ============================================================

def matmul(a: Expression, b: Expression, reduce: Reducer) -> Expression:
    """
    Matrix product with column-vector conventions.

    Examples:
        [[1, 2], [3, 4]] * [5, 6]   -> [17, 39]
        [1, 2] * [[3, 4]]           -> [[3, 4], [6, 8]]

    Raises:
        ShapeError: If the inner dimensions differ
    """
    left, right = as_matrix(a), as_matrix(b)
    if left.ncols != right.nrows:
        raise ShapeError((left.nrows, left.ncols), (right.nrows, right.ncols), "*")
    columns = right.columns()
    rows = tuple(
        tuple(
            sum_of([reduce("*", x, y) for x, y in zip(row, column)], reduce)
            for column in columns
        )
        for row in left.rows
    )
    if isinstance(b, Vector):
        return Vector(tuple(row[0] for row in rows))
    return Matrix(rows)


def matrix_power(base: Expression, exponent: Expression, reduce: Reducer) -> Expression:
    """
    Raise a square matrix to a non-negative integer power by repeated multiplication.

    Raises:
        ExpressionTypeError: If base is not a matrix or exponent not an integer
        ShapeError: If base is not square
    """
    if not isinstance(base, Matrix):
        raise ExpressionTypeError("^", ("square matrix",), base.kind)
    if not base.is_square():
        raise ShapeError((base.nrows, base.nrows), base.shape, "^")
    if not isinstance(exponent, Integer) or exponent.value < 0:
        raise ExpressionTypeError("^", ("non-negative integer",), exponent.kind, parameter=2)
    result: Expression = identity(base.nrows)
    for _ in range(exponent.value):
        result = matmul(result, base, reduce)
    return result


def dot(a: Vector, b: Vector, reduce: Reducer) -> Expression:
    if len(a) != len(b):
        raise ShapeError(a.shape, b.shape, "dot")
    return sum_of([reduce("*", x, y) for x, y in zip(a, b)], reduce)


# ============================================================
# Matrix Functions
# ============================================================

def _minor(rows: Sequence[Sequence[Expression]], column: int) -> List[List[Expression]]:
    """Drop the first row and the given column."""
    return [list(row[:column]) + list(row[column + 1:]) for row in rows[1:]]


def _cofactor_expansion(rows: Sequence[Sequence[Expression]], reduce: Reducer) -> Expression:
    n = len(rows)
    if n == 0:
        return ONE
    if n == 1:
        return rows[0][0]
    result = None
    for column, entry in enumerate(rows[0]):
        term = reduce("*", entry, _cofactor_expansion(_minor(rows, column), reduce))
        if result is None:
            result = term
        else:
            result = reduce("-" if column % 2 else "+", result, term)
    return result


def determinant(matrix: Matrix, reduce: Reducer) -> Expression:
    """
    Determinant by cofactor expansion along the first row.

    Works on symbolic entries: det([[a, b], [c, d]]) is a * d - b * c.
    The determinant of the empty matrix is 1.
    """
    if not matrix.is_square():
        raise ShapeError((matrix.nrows, matrix.nrows), matrix.shape, "det")
    return _cofactor_expansion(matrix.rows, reduce)


def transpose(matrix: Matrix) -> Matrix:
    return Matrix(matrix.columns())


def trace(matrix: Matrix, reduce: Reducer) -> Expression:
    if not matrix.is_square():
        raise ShapeError((matrix.nrows, matrix.nrows), matrix.shape, "trace")
    return sum_of([matrix.rows[i][i] for i in range(matrix.nrows)], reduce)


# ============================================================
# Indexing
# ============================================================

def _position(index: Expression, bound: int) -> int:
    if not isinstance(index, Integer):
        raise ExpressionIndexError(index, bound if is_number(index) else None)
    if not 0 <= index.value < bound:
        raise ExpressionIndexError(index.value, bound)
    return index.value


def element(target: Expression, indices: Sequence[Expression]) -> Expression:
    """
    Look up v[i], m[i] (a row) or m[i, j].

    Raises:
        ExpressionTypeError: If target is not a vector or matrix
        ShapeError: If the number of indices does not fit the target
        ExpressionIndexError: If an index is not an integer in range
    """
    if isinstance(target, Vector):
        if len(indices) != 1:
            raise ShapeError(1, len(indices), "[]")
        return target.elements[_position(indices[0], len(target))]
    if isinstance(target, Matrix):
        if len(indices) == 1:
            return Vector(target.rows[_position(indices[0], target.nrows)])
        if len(indices) == 2:
            row = target.rows[_position(indices[0], target.nrows)]
            return row[_position(indices[1], target.ncols)]
        raise ShapeError(2, len(indices), "[]")
    raise ExpressionTypeError("[]", ("vector", "matrix"), target.kind)
