from hypothesis import given
from hypothesis import strategies as st

from ls2ovr import ranks
from ls2ovr.beatmap import BeatmapData, BeatmapTimingMap
from ls2ovr.testutils import strategies as lsst


def plain_notes(count: int) -> list:
    return [BeatmapTimingMap(time=i + 1.0, position=5) for i in range(count)]


def test_ten_plain_notes() -> None:
    notes = plain_notes(10)
    assert ranks.compute_score_info(notes) == (2110, 5280, 6330, 7390)
    assert ranks.compute_combo_info(notes) == (3, 5, 7, 10)


def test_swing_notes_are_worth_less() -> None:
    notes = [
        BeatmapTimingMap(time=1.0, position=1, swing=True, note_group=1),
        BeatmapTimingMap(time=2.0, position=2),
    ]
    assert ranks.compute_score_info(notes)[3] == 370 + 739


def test_rank_info_is_filled_when_missing() -> None:
    data = BeatmapData(star=4, star_random=4, notes=plain_notes(10))
    assert data.score_info == (2110, 5280, 6330, 7390)
    assert data.combo_info == (3, 5, 7, 10)


def test_explicit_rank_info_is_kept() -> None:
    data = BeatmapData(
        star=4, star_random=4, notes=plain_notes(10), combo_info=(1, 2, 3, 4)
    )
    assert data.combo_info == (1, 2, 3, 4)


@given(
    st.lists(st.integers(), min_size=4, max_size=4).filter(
        lambda r: not ranks.is_valid_rank_info(r)
    )
)
def test_invalid_arrays_are_rejected_as_a_whole(values: list) -> None:
    assert ranks.explicit_or_none(values) is None


def test_wrong_sizes_are_rejected() -> None:
    assert ranks.explicit_or_none([1, 2, 3]) is None
    assert ranks.explicit_or_none([1, 2, 3, 4, 5]) is None


def test_equal_neighbours_are_rejected() -> None:
    assert ranks.explicit_or_none([1, 2, 2, 4]) is None


@given(lsst.notes())
def test_computed_ranks_are_valid(notes: list) -> None:
    assert ranks.is_valid_rank_info(ranks.compute_score_info(notes))
    combo = ranks.compute_combo_info(notes)
    assert combo[3] == len(notes)
    assert list(combo) == sorted(combo)
