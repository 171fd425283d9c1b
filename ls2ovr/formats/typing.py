from pathlib import Path
from typing import Any, Dict, Protocol

from ls2ovr.beatmap import Beatmap


class Dumper(Protocol):
    """A Dumper is a callable that takes in a Beatmap object, a Path hint and
    potential options, then gives back a dict that maps file paths to the
    binary content of the file"""

    def __call__(
        self, beatmap: Beatmap, path: Path, **kwargs: Any
    ) -> Dict[Path, bytes]:
        ...


class Loader(Protocol):
    """A Loader deserializes a Path to a Beatmap object and possibly takes in
    some options via the kwargs.
    The Path can be a file or a folder depending on the format"""

    def __call__(self, path: Path, **kwargs: Any) -> Beatmap:
        ...
