from pathlib import Path

from click.testing import CliRunner

from ls2ovr.beatmap import (
    Beatmap,
    BeatmapData,
    BeatmapTimingMap,
    Metadata,
    mark_simultaneous_notes,
)
from ls2ovr.formats import LOADERS, Format
from ls2ovr.formats.ls2ovr import Compression, dump_ls2ovr_bytes

from ..cli import convert, ls2ovr


def sample_beatmap() -> Beatmap:
    notes = [BeatmapTimingMap(time=1.0 + i / 4, position=1 + i % 9) for i in range(20)]
    return Beatmap(
        metadata=Metadata(title="Yume no Tobira"),
        beatmaps=[
            BeatmapData(
                star=5,
                star_random=5,
                notes=mark_simultaneous_notes(notes),
                simultaneous_flag_properly_marked=True,
            )
        ],
        files={"cover.png": b"png", "../evil.sh": b"echo hi"},
    )


def test_that_ls2ovr_files_convert_to_sif() -> None:
    runner = CliRunner()
    with runner.isolated_filesystem():
        beatmap = sample_beatmap()
        Path("in.ls2ovr").write_bytes(dump_ls2ovr_bytes(beatmap))
        result = runner.invoke(
            ls2ovr, ["convert", "in.ls2ovr", "out.json", "-f", "sif"]
        )
        if result.exception:
            raise result.exception
        assert result.exit_code == 0

        recovered = LOADERS[Format.SIF](Path("out.json"))
        assert recovered.beatmaps[0].notes == beatmap.beatmaps[0].notes


def test_that_loader_options_reach_the_loader() -> None:
    runner = CliRunner()
    with runner.isolated_filesystem():
        Path("in.ls2ovr").write_bytes(dump_ls2ovr_bytes(sample_beatmap()))
        first = runner.invoke(
            ls2ovr, ["convert", "in.ls2ovr", "notes.json", "-f", "sif"]
        )
        assert first.exit_code == 0

        result = runner.invoke(
            ls2ovr,
            [
                "convert",
                "notes.json",
                "out.ls2ovr",
                "--title",
                "Susume Tomorrow",
                "--star",
                "7",
                "--compression",
                "zlib",
            ],
        )
        if result.exception:
            raise result.exception
        assert result.exit_code == 0

        recovered = LOADERS[Format.LS2OVR](Path("out.ls2ovr"))
        assert recovered.metadata.title == "Susume Tomorrow"
        assert recovered.beatmaps[0].star == 7


def test_that_default_options_are_not_forwarded() -> None:
    runner = CliRunner()
    with runner.isolated_filesystem():
        Path("in.ls2ovr").write_bytes(dump_ls2ovr_bytes(sample_beatmap()))
        with_option = convert.make_context(
            "convert", ["in.ls2ovr", "out.ls2ovr", "--compression", "none"]
        )
        assert with_option.params["dumper_options"] == {
            "compression": Compression.NONE
        }

        without_option = convert.make_context("convert", ["in.ls2ovr", "out.ls2ovr"])
        assert "dumper_options" not in without_option.params
        assert "loader_options" not in without_option.params


def test_unpack() -> None:
    runner = CliRunner()
    with runner.isolated_filesystem():
        Path("in.ls2ovr").write_bytes(dump_ls2ovr_bytes(sample_beatmap()))
        result = runner.invoke(ls2ovr, ["unpack", "in.ls2ovr", "out"])
        if result.exception:
            raise result.exception
        assert result.exit_code == 0

        assert Path("out/cover.png").read_bytes() == b"png"
        assert Path("out/beatmap-0.json").exists()
        assert not Path("evil.sh").exists()


def test_that_unpacked_note_arrays_keep_embedded_files() -> None:
    runner = CliRunner()
    with runner.isolated_filesystem():
        beatmap = sample_beatmap()
        beatmap.files = {"beatmap-0.json": b"embedded"}
        Path("in.ls2ovr").write_bytes(dump_ls2ovr_bytes(beatmap))
        result = runner.invoke(ls2ovr, ["unpack", "in.ls2ovr", "out"])
        if result.exception:
            raise result.exception
        assert result.exit_code == 0

        assert Path("out/beatmap-0.json").read_bytes() == b"embedded"
        [note_array] = Path("out").glob("beatmap-0-*.json")
        recovered = LOADERS[Format.SIF](note_array)
        assert recovered.beatmaps[0].notes == beatmap.beatmaps[0].notes


def test_that_unknown_files_fail_cleanly() -> None:
    runner = CliRunner()
    with runner.isolated_filesystem():
        Path("garbage.bin").write_bytes(b"\x00" * 64)
        result = runner.invoke(ls2ovr, ["convert", "garbage.bin", "out.ls2ovr"])
        assert result.exit_code == 1
        assert "Unrecognized file format" in result.output


def test_that_corrupted_files_fail_cleanly() -> None:
    runner = CliRunner()
    with runner.isolated_filesystem():
        data = bytearray(dump_ls2ovr_bytes(sample_beatmap()))
        data[12] = 0
        Path("broken.ls2ovr").write_bytes(bytes(data))
        result = runner.invoke(ls2ovr, ["convert", "broken.ls2ovr", "out.json"])
        assert result.exit_code == 1
        assert "Could not load" in result.output
