"""
Prime-number oracle.

Thin wrapper around sympy's number theory routines. The registry treats
these as a black box; this module only guards their domain so that bad
input surfaces as a DomainError rather than a sympy exception or a
silently wrong answer.
"""

from sympy import prime, primepi
from sympy.ntheory import isprime

from .errors import DomainError


def is_prime(n: int) -> bool:
    if n < 0:
        raise DomainError(n, "is_prime", "negative")
    return bool(isprime(n))


def nth_prime(n: int) -> int:
    """The n-th prime, counting from nth_prime(1) == 2."""
    if n < 1:
        raise DomainError(n, "nth_prime", "primes are counted from 1")
    return int(prime(n))


def prime_pi(n: int) -> int:
    """Number of primes less than or equal to n."""
    if n < 0:
        raise DomainError(n, "prime_pi", "negative")
    return int(primepi(n))
