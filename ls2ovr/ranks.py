"""Score and combo rank thresholds (C, B, A, S) derived from the notes when a
file doesn't define them"""

import math
from typing import TYPE_CHECKING, Iterable, Optional, Sequence, Tuple

if TYPE_CHECKING:
    from ls2ovr.beatmap import BeatmapTimingMap

RankInfo = Tuple[int, int, int, int]

SWING_NOTE_POINTS = 370
NOTE_POINTS = 739


def note_points(note: "BeatmapTimingMap") -> int:
    return SWING_NOTE_POINTS if note.swing else NOTE_POINTS


def compute_combo_info(notes: Iterable["BeatmapTimingMap"]) -> RankInfo:
    total = sum(1 for _ in notes)
    return (
        math.ceil(total * 0.3),
        math.ceil(total * 0.5),
        math.ceil(total * 0.7),
        total,
    )


def compute_score_info(notes: Iterable["BeatmapTimingMap"]) -> RankInfo:
    total = sum(note_points(n) for n in notes)
    return (
        round(total * 211 / 739),
        round(total * 528 / 739),
        round(total * 633 / 739),
        total,
    )


def is_valid_rank_info(ranks: Sequence[int]) -> bool:
    """Exactly 4 strictly increasing positive values"""
    if len(ranks) != 4:
        return False

    if ranks[0] <= 0:
        return False

    return all(a < b for a, b in zip(ranks, ranks[1:]))


def explicit_or_none(ranks: Optional[Sequence[int]]) -> Optional[RankInfo]:
    """An invalid explicit rank array counts as no rank array at all, the
    whole thing is rejected, never just the faulty entries"""
    if ranks is None or not is_valid_rank_info(ranks):
        return None

    a, b, c, s = ranks
    return (a, b, c, s)
