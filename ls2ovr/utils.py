"""General utility functions"""

import random
import string
from itertools import count
from typing import AbstractSet, Callable, Iterator, Optional, TypeVar

A = TypeVar("A")
B = TypeVar("B")

# Monadic stuff !
def none_or(c: Callable[[A], B], e: Optional[A]) -> Optional[B]:
    if e is None:
        return None
    else:
        return c(e)


def align_next_multiple(value: int, multiple: int = 16) -> int:
    """Round value up to the nearest multiple"""
    remainder = value % multiple
    if remainder == 0:
        return value

    return value + multiple - remainder


SUFFIX_ALPHABET = string.digits + string.ascii_uppercase


def random_suffixes(
    rng: Optional[random.Random] = None, length: int = 5
) -> Iterator[str]:
    """Endless supply of random [0-9A-Z] strings used to dedup file names"""
    rng = rng or random.Random()
    while True:
        yield "".join(rng.choice(SUFFIX_ALPHABET) for _ in range(length))


def counting_suffixes(length: int = 5) -> Iterator[str]:
    """Deterministic counterpart of random_suffixes, handy in tests"""
    for i in count():
        yield to_base36(i).rjust(length, "0")


def to_base36(n: int) -> str:
    digits = []
    while True:
        n, d = divmod(n, len(SUFFIX_ALPHABET))
        digits.append(SUFFIX_ALPHABET[d])
        if n == 0:
            break

    return "".join(reversed(digits))


def allocate_filename(
    first_choice: Optional[str],
    template: str,
    taken: AbstractSet[str],
    suffixes: Iterator[str],
) -> str:
    """Return first_choice if it's free, otherwise keep formatting template
    with new suffixes until the name is not in taken"""
    if first_choice is not None and first_choice not in taken:
        return first_choice

    while True:
        name = template.format(suffix=next(suffixes))
        if name not in taken:
            return name
