"""
Hypothesis strategies to generate notes and beatmaps
"""

from typing import Dict, List, Optional

import hypothesis.strategies as st

from ls2ovr.beatmap import (
    CUSTOM_COLOR_ATTRIBUTE,
    BackgroundInfo,
    Beatmap,
    BeatmapData,
    BeatmapTimingMap,
    ComplexBackground,
    ComposerData,
    CustomUnitInfo,
    Metadata,
    NoteType,
    NumberedBackground,
    SimpleBackground,
    mark_simultaneous_notes,
)
from ls2ovr.ranks import compute_score_info

# Millisecond precision, like the legacy formats
seconds = st.integers(min_value=1, max_value=600_000).map(lambda ms: ms / 1000)
# Only the 512 values a color channel can be encoded to survive a round trip
color_channel = st.integers(min_value=0, max_value=511).map(lambda k: k / 511)
position = st.integers(min_value=1, max_value=9)


def name(max_size: int = 30) -> st.SearchStrategy[str]:
    return st.text(min_size=1, max_size=max_size)


@st.composite
def timing_map(
    draw: st.DrawFn, time_strat: st.SearchStrategy[float] = seconds
) -> BeatmapTimingMap:
    note_type = draw(st.sampled_from(list(NoteType)))
    swing = note_type != NoteType.STAR and draw(st.booleans())
    attribute = draw(st.integers(min_value=0, max_value=15))
    red = green = blue = 1.0
    if attribute == CUSTOM_COLOR_ATTRIBUTE:
        red, green, blue = draw(st.tuples(color_channel, color_channel, color_channel))

    return BeatmapTimingMap(
        time=draw(time_strat),
        position=draw(position),
        attribute=attribute,
        red=red,
        green=green,
        blue=blue,
        note_type=note_type,
        swing=swing,
        note_group=draw(st.integers(min_value=0, max_value=1000)) if swing else 0,
        length=draw(seconds) if note_type == NoteType.LONG else 0.0,
    )


@st.composite
def notes(draw: st.DrawFn, max_size: int = 30) -> List[BeatmapTimingMap]:
    raw = draw(st.lists(timing_map(), min_size=1, max_size=max_size))
    return mark_simultaneous_notes(raw)


@st.composite
def background(draw: st.DrawFn) -> BackgroundInfo:
    kind = draw(st.sampled_from(["numbered", "simple", "complex"]))
    if kind == "numbered":
        return NumberedBackground(draw(st.integers(min_value=1, max_value=1000)))
    elif kind == "simple":
        # A leading colon means a numbered background
        return SimpleBackground(draw(name().filter(lambda s: not s.startswith(":"))))

    main = draw(name())
    left_right = draw(st.one_of(st.none(), st.tuples(name(), name())))
    if left_right is None:
        top_bottom = draw(st.tuples(name(), name()))
    else:
        top_bottom = draw(st.one_of(st.none(), st.tuples(name(), name())))

    left, right = left_right or (None, None)
    top, bottom = top_bottom or (None, None)
    return ComplexBackground(main, left=left, right=right, top=top, bottom=bottom)


@st.composite
def custom_units(draw: st.DrawFn) -> List[CustomUnitInfo]:
    positions = draw(st.lists(position, unique=True, max_size=9))
    return [CustomUnitInfo(p, draw(name())) for p in positions]


@st.composite
def beatmap_data(draw: st.DrawFn) -> BeatmapData:
    notes_ = draw(notes())
    score_info = None
    if draw(st.booleans()):
        # Any valid explicit value has to survive, not just the computed one
        c, b, a, s = compute_score_info(notes_)
        score_info = (c + 1, b + 2, a + 3, s + 4)

    return BeatmapData(
        star=draw(st.integers(min_value=1, max_value=15)),
        star_random=draw(st.integers(min_value=1, max_value=15)),
        notes=notes_,
        difficulty_name=draw(st.one_of(st.none(), name())),
        background=draw(st.one_of(st.none(), background())),
        background_random=draw(st.one_of(st.none(), background())),
        custom_units=draw(custom_units()),
        score_info=score_info,
        base_score_per_tap=draw(st.integers(min_value=0, max_value=65535)),
        initial_stamina=draw(st.integers(min_value=0, max_value=127)),
        simultaneous_flag_properly_marked=True,
    )


@st.composite
def metadata(draw: st.DrawFn) -> Metadata:
    composers = draw(
        st.lists(st.builds(ComposerData, role=name(), name=name()), max_size=3)
    )
    tags: Optional[List[str]] = draw(st.one_of(st.none(), st.lists(name(), max_size=5)))
    return Metadata(
        title=draw(name()),
        artist=draw(st.one_of(st.none(), name())),
        source=draw(st.one_of(st.none(), name())),
        composers=composers,
        audio=draw(st.one_of(st.none(), name())),
        artwork=draw(st.one_of(st.none(), name())),
        tags=tags,
    )


@st.composite
def files(draw: st.DrawFn) -> Dict[str, bytes]:
    return draw(st.dictionaries(name(), st.binary(max_size=64), max_size=5))


@st.composite
def beatmap(draw: st.DrawFn, max_beatmaps: int = 3) -> Beatmap:
    return Beatmap(
        metadata=draw(metadata()),
        beatmaps=draw(st.lists(beatmap_data(), max_size=max_beatmaps)),
        files=draw(files()),
    )
