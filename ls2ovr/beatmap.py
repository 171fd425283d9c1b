"""Provides the Beatmap class, the central model for beatmap files
Every input format is converted to a Beatmap instance
Every output format is created from a Beatmap instance

All timing info is stored as a float number of seconds"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import (
    Callable,
    Dict,
    Iterable,
    List,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from more_itertools import pairwise

from ls2ovr import ranks

# Two notes closer than this (in seconds) are simultaneous
SIMULTANEOUS_THRESHOLD = 0.001

CUSTOM_COLOR_ATTRIBUTE = 15


def check_position(position: int) -> None:
    if not 1 <= position <= 9:
        raise ValueError(f"position out of [1, 9] range : {position}")


def check_non_empty(name: str, value: str) -> None:
    if not value:
        raise ValueError(f"{name} cannot be empty")


@dataclass(frozen=True)
class ComposerData:
    role: str
    name: str

    def __post_init__(self) -> None:
        check_non_empty("role", self.role)
        check_non_empty("name", self.name)


@dataclass
class Metadata:
    title: str
    artist: Optional[str] = None
    # Either anime name, album name, etc.
    source: Optional[str] = None
    composers: List[ComposerData] = field(default_factory=list)
    audio: Optional[str] = None
    artwork: Optional[str] = None
    tags: Optional[List[str]] = None

    def __post_init__(self) -> None:
        check_non_empty("title", self.title)
        self.composers = list(self.composers)
        if self.tags is not None:
            self.tags = list(self.tags)


@dataclass(frozen=True)
class NumberedBackground:
    """One of the backgrounds built into the game"""

    number: int

    def __post_init__(self) -> None:
        if self.number <= 0:
            raise ValueError(f"Background number must be positive : {self.number}")


@dataclass(frozen=True)
class SimpleBackground:
    filename: str

    def __post_init__(self) -> None:
        check_non_empty("filename", self.filename)
        # A leading colon marks a numbered background in the string form
        if self.filename.startswith(":"):
            raise ValueError(
                f"Background filename can't start with ':' : {self.filename!r}"
            )


@dataclass(frozen=True)
class ComplexBackground:
    """A main background extended by left & right parts, top & bottom parts,
    or both. Parts only ever come in pairs"""

    main: str
    left: Optional[str] = None
    right: Optional[str] = None
    top: Optional[str] = None
    bottom: Optional[str] = None

    def __post_init__(self) -> None:
        check_non_empty("main", self.main)
        if (self.left is None) != (self.right is None):
            raise ValueError("left and right background parts must be used together")
        if (self.top is None) != (self.bottom is None):
            raise ValueError("top and bottom background parts must be used together")
        if not (self.has_left_right() or self.has_top_bottom()):
            raise ValueError(
                "A complex background needs left & right or top & bottom parts"
            )

    def has_left_right(self) -> bool:
        return self.left is not None and self.right is not None

    def has_top_bottom(self) -> bool:
        return self.top is not None and self.bottom is not None

    def filenames(self) -> List[str]:
        parts = [self.main, self.left, self.right, self.top, self.bottom]
        return [p for p in parts if p is not None]


BackgroundInfo = Union[NumberedBackground, SimpleBackground, ComplexBackground]


def is_complex(background: BackgroundInfo) -> bool:
    return isinstance(background, ComplexBackground)


def background_to_string(background: BackgroundInfo) -> str:
    """Numbered backgrounds become ":<number>", simple ones their filename"""
    if isinstance(background, NumberedBackground):
        return f":{background.number}"
    elif isinstance(background, SimpleBackground):
        return background.filename
    else:
        raise ValueError("A complex background can't be represented as a string")


def background_from_string(value: str) -> BackgroundInfo:
    if value.startswith(":"):
        try:
            number = int(value[1:])
        except ValueError:
            raise ValueError(f"Invalid background number : {value!r}")
        return NumberedBackground(number)
    else:
        return SimpleBackground(value)


@dataclass(frozen=True)
class CustomUnitInfo:
    # 1 is the rightmost unit, 9 the leftmost
    position: int
    filename: str

    def __post_init__(self) -> None:
        check_position(self.position)
        check_non_empty("filename", self.filename)


class NoteType(int, Enum):
    NORMAL = 0
    TOKEN = 1
    STAR = 2
    LONG = 3


@dataclass
class BeatmapTimingMap:
    """A single note (hit point)"""

    time: float
    position: int
    attribute: int = 1
    red: float = 1.0
    green: float = 1.0
    blue: float = 1.0
    note_type: NoteType = NoteType.NORMAL
    swing: bool = False
    simultaneous: bool = False
    # Only meaningful for swing notes
    note_group: int = 0
    # Only meaningful for long notes
    length: float = 0.0

    def __post_init__(self) -> None:
        if not math.isfinite(self.time) or self.time <= 0:
            raise ValueError(f"Note time must be positive and finite : {self.time}")
        if not 0 <= self.attribute <= 15:
            raise ValueError(f"attribute out of [0, 15] range : {self.attribute}")
        check_position(self.position)
        self.note_type = NoteType(self.note_type)
        if self.attribute != CUSTOM_COLOR_ATTRIBUTE:
            self.red = self.green = self.blue = 1.0

        # Star notes can't be swing notes
        if self.note_type == NoteType.STAR:
            self.swing = False

        if self.swing:
            if self.note_group < 0:
                raise ValueError(f"Negative note group : {self.note_group}")
        else:
            self.note_group = 0

        if self.note_type == NoteType.LONG:
            if not math.isfinite(self.length) or self.length <= 0:
                raise ValueError(
                    f"Long note length must be positive and finite : {self.length}"
                )
        else:
            self.length = 0.0


def simultaneous_flags(notes: Sequence[BeatmapTimingMap]) -> List[bool]:
    """Flags for notes already sorted by time, a note is simultaneous if it is
    close enough to either of its neighbors"""
    flags = [False] * len(notes)
    for i, (a, b) in enumerate(pairwise(notes)):
        if abs(b.time - a.time) <= SIMULTANEOUS_THRESHOLD:
            flags[i] = flags[i + 1] = True

    return flags


def mark_simultaneous_notes(
    notes: Iterable[BeatmapTimingMap],
) -> List[BeatmapTimingMap]:
    """Return a new list of the notes sorted by time with their simultaneous
    flag set (or cleared) according to their neighbors"""
    ordered = sorted(notes, key=lambda n: n.time)
    flags = simultaneous_flags(ordered)
    return [replace(n, simultaneous=f) for n, f in zip(ordered, flags)]


@dataclass
class BeatmapData:
    """One difficulty of a song"""

    star: int
    star_random: int
    notes: List[BeatmapTimingMap]
    difficulty_name: Optional[str] = None
    background: Optional[BackgroundInfo] = None
    background_random: Optional[BackgroundInfo] = None
    custom_units: List[CustomUnitInfo] = field(default_factory=list)
    # Filled by the rank calculator when left undefined
    score_info: Optional[Tuple[int, int, int, int]] = None
    combo_info: Optional[Tuple[int, int, int, int]] = None
    # 0 means "use the game default" for both of these
    base_score_per_tap: int = 0
    initial_stamina: int = 0
    simultaneous_flag_properly_marked: bool = False

    def __post_init__(self) -> None:
        if not 1 <= self.star <= 15:
            raise ValueError(f"star out of [1, 15] range : {self.star}")
        if not 1 <= self.star_random <= 15:
            raise ValueError(f"star_random out of [1, 15] range : {self.star_random}")
        if not -(2 ** 15) <= self.initial_stamina < 2 ** 15:
            raise ValueError(f"initial_stamina out of range : {self.initial_stamina}")
        if not -(2 ** 31) <= self.base_score_per_tap < 2 ** 31:
            raise ValueError(
                f"base_score_per_tap out of range : {self.base_score_per_tap}"
            )

        self.notes = list(self.notes)
        if not self.notes:
            raise ValueError("A beatmap needs at least one note")
        if any(a.time > b.time for a, b in pairwise(self.notes)):
            raise ValueError("Notes must be sorted by time")
        if self.simultaneous_flag_properly_marked:
            actual = [n.simultaneous for n in self.notes]
            if actual != simultaneous_flags(self.notes):
                raise ValueError(
                    "Simultaneous flags are said to be properly marked but "
                    "they don't match the note timings"
                )

        if self.background is not None and self.background_random is None:
            self.background_random = self.background

        self.custom_units = list(self.custom_units)
        self.score_info = self._rank_info_or_computed(
            "score_info", self.score_info, ranks.compute_score_info
        )
        self.combo_info = self._rank_info_or_computed(
            "combo_info", self.combo_info, ranks.compute_combo_info
        )

    def _rank_info_or_computed(
        self,
        name: str,
        value: Optional[Sequence[int]],
        compute: Callable[[List[BeatmapTimingMap]], ranks.RankInfo],
    ) -> ranks.RankInfo:
        if value is None:
            return compute(self.notes)

        explicit = ranks.explicit_or_none(value)
        if explicit is None:
            raise ValueError(
                f"{name} must hold 4 strictly increasing positive values : {value}"
            )
        return explicit


@dataclass
class Beatmap:
    """The abstract representation of a beatmap file : song metadata, one or
    more difficulties and the files they reference"""

    metadata: Metadata
    beatmaps: List[BeatmapData] = field(default_factory=list)
    files: Dict[str, bytes] = field(default_factory=dict)
    format_version: int = 0
