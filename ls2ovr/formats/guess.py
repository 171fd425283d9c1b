from pathlib import Path

import simplejson as json

from .enum import Format
from .ls2.construct import SIGNATURE as LS2_SIGNATURE
from .ls2ovr.construct import SIGNATURE as LS2OVR_SIGNATURE

SIGNATURES = {
    LS2OVR_SIGNATURE: Format.LS2OVR,
    LS2_SIGNATURE: Format.LS2,
}


def guess_format(path: Path) -> Format:
    if path.is_dir():
        if any(path.glob("*.json")):
            return Format.SIF
        raise ValueError("Can't guess the beatmap format of a folder")

    with path.open("rb") as f:
        magic = f.read(8)

    try:
        return SIGNATURES[magic]
    except KeyError:
        pass

    if looks_like_sif(path):
        return Format.SIF

    raise ValueError("Unrecognized file format")


def looks_like_sif(path: Path) -> bool:
    try:
        with path.open(encoding="utf-8") as f:
            obj = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return False

    if not isinstance(obj, list):
        return False

    return all(isinstance(e, dict) and "timing_sec" in e for e in obj)
