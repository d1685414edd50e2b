"""Tests for the built-in function registry."""

import mpmath
import pytest
from tessera.errors import ArityError, DomainError, ExpressionTypeError, ShapeError
from tessera.evaluator import Evaluator
from tessera.expression import Call, Complex, Integer, Real, Variable
from tessera.functions import FUNCTIONS, Function, categories, check_arguments
from tessera.parser import parse
from tessera.printer import format_expr

EXAMPLES = [
    (function.name, source, expected)
    for function in FUNCTIONS.values()
    for source, expected in function.examples
]


@pytest.fixture
def evaluator():
    return Evaluator()


def run(evaluator, text):
    return evaluator.evaluate(parse(text))


class TestRegistry:
    """Tests for the registry itself."""

    def test_expected_functions(self):
        """Every documented builtin is registered."""
        expected = {
            "abs", "sqrt", "exp", "ln", "sin", "cos", "tan", "floor", "ceil",
            "re", "im", "conj", "gcd", "lcm", "factorial", "is_prime",
            "nth_prime", "prime_pi", "det", "transpose", "trace", "dot",
            "and", "or", "not",
        }
        assert expected <= set(FUNCTIONS)

    def test_metadata(self):
        """Every builtin has a description and at least one example."""
        for function in FUNCTIONS.values():
            assert isinstance(function, Function)
            assert function.description
            assert function.examples, function.name

    def test_signature(self):
        """signature() lists the parameter kinds."""
        assert FUNCTIONS["gcd"].signature() == "gcd(integer, integer)"
        assert FUNCTIONS["det"].arity == 1

    def test_categories(self):
        """Functions are grouped by category."""
        grouped = categories()
        assert "det" in grouped["linear algebra"]
        assert "nth_prime" in grouped["primes"]


class TestExamples:
    """Each documented example evaluates to its documented output."""

    @pytest.mark.parametrize("name, source, expected", EXAMPLES,
                             ids=[source for _, source, _ in EXAMPLES])
    def test_example(self, evaluator, name, source, expected):
        assert format_expr(run(evaluator, source)) == expected


class TestDispatch:
    """Tests for arity, type and shape validation."""

    def test_arity(self, evaluator):
        """Wrong argument counts raise ArityError."""
        with pytest.raises(ArityError) as info:
            run(evaluator, "gcd(1)")
        assert info.value.name == "gcd"
        assert (info.value.expected, info.value.actual) == (2, 1)

    def test_arity_checked_before_symbols(self, evaluator):
        """A symbolic argument does not hide an arity error."""
        with pytest.raises(ArityError):
            run(evaluator, "sqrt(a, b)")

    @pytest.mark.parametrize("text, parameter", [
        ("gcd(1.5, 2)", 1),
        ("gcd(2, [1])", 2),
        ("not(1)", 1),
        ("floor(1 + i)", 1),
        ("det(5)", 1),
        ("dot([1], [[1]])", 2),
    ])
    def test_type_error_names_argument(self, evaluator, text, parameter):
        """Type errors carry the 1-based argument position."""
        with pytest.raises(ExpressionTypeError) as info:
            run(evaluator, text)
        assert info.value.parameter == parameter

    def test_symbolic_argument_stays_call(self, evaluator):
        """Unresolved arguments leave the call unevaluated."""
        assert run(evaluator, "gcd(a, 4)") == Call("gcd", (Variable("a"), Integer(4)))

    def test_boolean_coerces_to_integer(self, evaluator):
        """Numeric parameters accept booleans as 0 and 1."""
        assert run(evaluator, "gcd(true, 4)") == Integer(1)

    def test_vector_as_column(self, evaluator):
        """A vector is a column matrix for matrix parameters."""
        assert format_expr(run(evaluator, "det([7])")) == "7"

    @pytest.mark.parametrize("text", [
        "det([[1, 2, 3], [4, 5, 6]])",
        "trace([1, 2])",
        "dot([1, 2], [1])",
    ])
    def test_shape_errors(self, evaluator, text):
        """Non-square and mismatched arguments raise ShapeError."""
        with pytest.raises(ShapeError):
            run(evaluator, text)

    def test_check_arguments(self):
        """check_arguments returns None for symbolic input."""
        assert check_arguments(FUNCTIONS["abs"], (Variable("x"),)) is None
        assert check_arguments(FUNCTIONS["abs"], (Integer(-2),)) == [Integer(-2)]


class TestDomain:
    """Tests for arguments outside a function's domain."""

    @pytest.mark.parametrize("text", [
        "factorial(-1)",
        "nth_prime(0)",
        "prime_pi(-5)",
        "is_prime(-2)",
        "ln(0)",
    ])
    def test_domain_error(self, evaluator, text):
        """Out-of-domain arguments raise DomainError."""
        with pytest.raises(DomainError):
            run(evaluator, text)

    def test_domain_error_is_value_error(self, evaluator):
        """Domain errors are also built-in ValueErrors."""
        with pytest.raises(ValueError):
            run(evaluator, "factorial(-3)")


class TestTranscendental:
    """Tests for the mpmath-backed functions."""

    def test_exp(self, evaluator):
        """exp(1) is e at the working precision."""
        result = run(evaluator, "exp(1)")
        assert isinstance(result, Real)
        with mpmath.workdps(60):
            assert mpmath.almosteq(result.value, mpmath.e, 1e-25)

    def test_ln_of_negative(self, evaluator):
        """ln of a negative number is on the principal branch."""
        result = run(evaluator, "ln(-1)")
        assert isinstance(result, Complex)
        with mpmath.workdps(60):
            assert mpmath.almosteq(result.imag.value, mpmath.pi, 1e-25)

    def test_irrational_sqrt(self, evaluator):
        """sqrt of a non-square is a Real."""
        result = run(evaluator, "sqrt(2)")
        assert isinstance(result, Real)
        assert mpmath.almosteq(result.value ** 2, 2, 1e-25)

    def test_large_prime(self, evaluator):
        """Primality of large integers."""
        assert format_expr(run(evaluator, "is_prime(2 ^ 61 - 1)")) == "true"
        assert format_expr(run(evaluator, "is_prime(2 ^ 61 + 1)")) == "false"

    def test_factorial_exact(self, evaluator):
        """factorial is exact for large n."""
        assert run(evaluator, "factorial(25)") == Integer(15511210043330985984000000)
