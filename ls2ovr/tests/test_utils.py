import random

from ls2ovr.utils import (
    align_next_multiple,
    allocate_filename,
    counting_suffixes,
    random_suffixes,
)


def test_align_next_multiple() -> None:
    assert align_next_multiple(0) == 0
    assert align_next_multiple(1) == 16
    assert align_next_multiple(16) == 16
    assert align_next_multiple(17) == 16 * 2


def test_counting_suffixes() -> None:
    suffixes = counting_suffixes()
    assert [next(suffixes) for _ in range(3)] == ["00000", "00001", "00002"]


def test_random_suffixes_are_reproducible() -> None:
    a = random_suffixes(random.Random(42))
    b = random_suffixes(random.Random(42))
    for _ in range(10):
        suffix = next(a)
        assert suffix == next(b)
        assert len(suffix) == 5
        assert suffix.isalnum() and suffix.upper() == suffix


def test_allocating_the_same_name_many_times_never_collides() -> None:
    taken: dict = {}
    suffixes = counting_suffixes()
    for _ in range(50):
        name = allocate_filename(
            "cover.png", "cover-{suffix}.png", taken.keys(), suffixes
        )
        assert name not in taken
        taken[name] = b""

    assert "cover.png" in taken
    assert len(taken) == 50


def test_allocation_without_first_choice() -> None:
    name = allocate_filename(None, "audio-{suffix}.ogg", set(), counting_suffixes())
    assert name == "audio-00000.ogg"
