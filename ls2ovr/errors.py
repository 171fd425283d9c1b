"""Exceptions raised when a beatmap file can't be decoded

All of them derive from ValueError so callers that only care about "the
input was bad" can keep catching that"""


class InvalidBeatmapFile(ValueError):
    """The file is not a valid beatmap, decoding stops right there"""


class UnsupportedFeature(InvalidBeatmapFile):
    """The file is well formed but uses something this library can't handle
    (reserved compression codes, tempo-relative timing, compressed
    storyboards ...)"""


class ProblematicRequiredField(InvalidBeatmapFile):
    def __init__(self, field_name: str, message: str):
        super().__init__(f"{message}: {field_name}")
        self.field_name = field_name


class MissingRequiredField(ProblematicRequiredField):
    def __init__(self, field_name: str):
        super().__init__(field_name, "Missing required field")


class FieldInvalidValue(ProblematicRequiredField):
    def __init__(self, field_name: str, reason: str = "invalid value"):
        super().__init__(field_name, f"Invalid field ({reason})")
