#!/usr/bin/env python3
"""
TESSERA Feature Demonstration

This script walks through the major features of the TESSERA library.
"""

from pathlib import Path
from tessera import (
    Context, E, Engine, Evaluator, Simplifier, TesseraError,
    evaluate, format_expr, parse,
)


def section(title: str):
    """Print a section header."""
    print(f"\n{'='*60}")
    print(f" {title}")
    print('='*60)


def show(text: str, context=None):
    """Evaluate one line and print it with its result."""
    result = evaluate(parse(text), context)
    print(f"  {text} => {format_expr(result)}")


def demo_exact_arithmetic():
    """Demonstrate exact numbers."""
    section("Exact Arithmetic")

    for text in ["1 + 1", "6/5 * 3", "0.1 + 0.2", "2 ^ 100", "-7 % 3",
                 "(1 + 2i) * (3 - i)", "sqrt(-4)", "8 ^ (2/3)"]:
        show(text)

    print("\n  Inexact results use mpmath at the working precision:")
    for digits in (15, 40):
        result = Evaluator(precision=digits).evaluate(parse("sqrt(2)"))
        print(f"    sqrt(2) at {digits} digits => {format_expr(result)}")


def demo_symbols():
    """Demonstrate symbolic results."""
    section("Symbolic Evaluation")

    examples = [
        "a && true",
        "a || !a",
        "a || !b",
        "x * (1 + 0) + 0",
        "x + x",
        "h(2 * 3, y)",
    ]
    for text in examples:
        show(text)


def demo_linear_algebra():
    """Demonstrate vectors and matrices."""
    section("Linear Algebra")

    examples = [
        "[[1, 2], [3, 4]] * [5, 6]",
        "[[1, 1], [1, 0]] ^ 10",
        "det([[a, 2], [3, a]])",
        "det([[a, b], [c, d]])",
        "transpose([[1, 2, 3], [4, 5, 6]])",
        "dot([1, 2, 3], [x, y, z])",
    ]
    for text in examples:
        show(text)

    ctx = Context().bind("v", parse("[1, 2, 3]")).bind("m", parse("[[1, 2], [3, 4]]"))
    print("\n  With v = [1, 2, 3] and m = [[1, 2], [3, 4]]:")
    for text in ["v[1]", "m[1]", "m[0, 1]", "[v, v]"]:
        show(text, ctx)


def demo_functions():
    """Demonstrate user functions and builtins."""
    section("Functions")

    ctx = (Context()
           .define("f", ["x"], parse("x ^ 2 + 1"))
           .define("dist", ["p", "q"], parse("sqrt(dot(p - q, p - q))")))

    for text in ["f(3)", "f(a)", "dist([0, 0], [3, 4])", "gcd(12, 18)",
                 "nth_prime(10)", "is_prime(97)"]:
        show(text, ctx)


def demo_errors():
    """Demonstrate structured errors."""
    section("Errors")

    for text in ["1 / 0", "[1, 2] + [1, 2, 3]", "gcd(1.5, 2)", "v[5]", "1 +"]:
        try:
            evaluate(parse(text), {"v": parse("[1, 2, 3]")})
        except TesseraError as e:
            print(f"  {text} => {type(e).__name__}: {e}")


def demo_rules():
    """Demonstrate the rule table."""
    section("Simplification Rules")

    simplifier = Simplifier()
    print(f"  {len(simplifier)} rules, for example:")
    for line in simplifier.list_rules()[:5]:
        print(f"    {line}")

    tree = parse("0 * 0")
    names = [rule.name for rule in simplifier.rules_matching(tree)]
    print(f"\n  Rules matching 0 * 0: {', '.join(names)}")


def demo_session():
    """Demonstrate the Engine and the out vector."""
    section("Sessions")

    engine = Engine()
    for line in ["v = [1, 2, 3]", "f(x) = x ^ 2", "f(v[2])", "out[0] + 1", "?gcd"]:
        result = engine.execute(line)
        print(f"  in: {line}")
        if result:
            for output in result.splitlines():
                print(f"    {output}")

    print("\n  Building trees without parsing:")
    x, y = E.vars("x", "y")
    tree = E.call("det", E.matrix([x, 1], [2, y]))
    print(f"    {format_expr(tree)} => {format_expr(engine.evaluate(tree))}")


def demo_script():
    """Run the example script."""
    section("Script Mode")

    script = Path(__file__).parent / "session.tess"
    engine = Engine()
    for line in script.read_text().splitlines():
        if line.strip() and not line.lstrip().startswith("#"):
            result = engine.execute(line)
            if result:
                print(f"  {result}")


def main():
    """Run all demonstrations."""
    print("TESSERA - exact and symbolic expression evaluation")
    print("Feature Demonstration")

    demo_exact_arithmetic()
    demo_symbols()
    demo_linear_algebra()
    demo_functions()
    demo_errors()
    demo_rules()
    demo_session()
    demo_script()

    print("\n" + "="*60)
    print(" Demo complete!")
    print("="*60)


if __name__ == "__main__":
    main()
