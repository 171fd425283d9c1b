from pathlib import Path

import pytest

from ls2ovr.formats import Format
from ls2ovr.formats.guess import guess_format


@pytest.mark.parametrize(
    "contents,format_",
    [
        (b"livesim3\x80\x00\x00\x00", Format.LS2OVR),
        (b"livesim2\x00\x00", Format.LS2),
        (b'[{"timing_sec": 1.5, "position": 5, "effect": 1}]', Format.SIF),
        (b"[]", Format.SIF),
    ],
)
def test_formats_are_recognized(
    tmp_path: Path, contents: bytes, format_: Format
) -> None:
    path = tmp_path / "beatmap"
    path.write_bytes(contents)
    assert guess_format(path) == format_


@pytest.mark.parametrize(
    "contents",
    [b"livesim4", b'{"timing_sec": 1.5}', b"\xff\xfe\x00", b""],
)
def test_unknown_files(tmp_path: Path, contents: bytes) -> None:
    path = tmp_path / "beatmap"
    path.write_bytes(contents)
    with pytest.raises(ValueError):
        guess_format(path)


def test_folders_of_note_arrays(tmp_path: Path) -> None:
    (tmp_path / "a.json").write_text("[]")
    assert guess_format(tmp_path) == Format.SIF
