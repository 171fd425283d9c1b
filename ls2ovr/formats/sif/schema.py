"""The note arrays of the original game, as they appear once decrypted,
are json arrays of objects like this one :

{"timing_sec": 2.5, "position": 6, "effect": 1, "effect_value": 2,
"notes_attribute": 3, "notes_level": 1}"""

from dataclasses import dataclass
from enum import Enum

from marshmallow import EXCLUDE, Schema
from marshmallow.validate import OneOf, Range
from marshmallow_dataclass import NewType, class_schema


class Effect(int, Enum):
    NORMAL = 1
    TOKEN = 2
    LONG = 3
    STAR = 4


# Added to the effect of swing notes
SWING_EFFECT_OFFSET = 10
# What the game puts in effect_value for everything but long notes
DEFAULT_EFFECT_VALUE = 2.0

StrictlyPositiveFloat = NewType(
    "StrictlyPositiveFloat", float, validate=Range(min=0, min_inclusive=False)
)
Position = NewType("Position", int, validate=Range(min=1, max=9))
EffectCode = NewType(
    "EffectCode",
    int,
    validate=OneOf([e.value + s for e in Effect for s in (0, SWING_EFFECT_OFFSET)]),
)
NonNegativeFloat = NewType("NonNegativeFloat", float, validate=Range(min=0))
# colour bits : rrrrrrrr rggggggg ggbbbbbb bbb0aaaa
Attribute = NewType("Attribute", int, validate=Range(min=0, max=0xFFFFFFFF))


@dataclass
class Note:
    timing_sec: StrictlyPositiveFloat
    position: Position
    effect: EffectCode
    # Length of long notes in seconds
    effect_value: NonNegativeFloat = DEFAULT_EFFECT_VALUE
    notes_attribute: Attribute = 1
    # Group of swing notes
    notes_level: int = 1


class BaseSchema(Schema):
    class Meta:
        ordered = True
        unknown = EXCLUDE


NOTE_SCHEMA = class_schema(Note, base_schema=BaseSchema)
NOTES_SCHEMA = NOTE_SCHEMA(many=True)
