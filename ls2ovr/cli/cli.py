"""Command Line Interface"""

from pathlib import Path
from typing import Any, Dict, Optional

import click

from ls2ovr.beatmap import Beatmap
from ls2ovr.formats import DUMPERS, LOADERS
from ls2ovr.formats.enum import Format
from ls2ovr.formats.guess import guess_format
from ls2ovr.formats.ls2ovr import Compression
from ls2ovr.formats.sif import dump_sif_bytes
from ls2ovr.utils import allocate_filename, none_or, random_suffixes

from .helpers import dumper_option, loader_option

COMPRESSIONS = {
    "none": Compression.NONE,
    "gzip": Compression.GZIP,
    "zlib": Compression.ZLIB,
}


@click.group()
@click.version_option(package_name="ls2ovr")
def ls2ovr() -> None:
    """Live Simulator: 2 beatmap tools"""


def load(src: Path, input_format: Optional[Format], **options: Any) -> Beatmap:
    if input_format is None:
        try:
            input_format = guess_format(src)
        except ValueError as e:
            raise click.ClickException(str(e))
        click.echo(f"Detected input file format : {input_format.value}")

    try:
        loader = LOADERS[Format(input_format)]
    except KeyError:
        raise click.ClickException(f"Unsupported input format : {input_format}")

    try:
        return loader(src, **options)
    except ValueError as e:
        raise click.ClickException(f"Could not load {src} : {e}")


def write_files(files: Dict[Path, bytes]) -> None:
    for path, contents in files.items():
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as f:
            f.write(contents)


input_format_option = click.option(
    "--input-format",
    "input_format",
    type=click.Choice([f.value for f in LOADERS.keys()]),
    help="Input file format, guessed from the file contents if omitted",
)


@ls2ovr.command()
@click.argument("src", type=click.Path(exists=True))
@click.argument("dst", type=click.Path())
@input_format_option
@click.option(
    "-f",
    "--format",
    "output_format",
    default=Format.LS2OVR.value,
    show_default=True,
    type=click.Choice([f.value for f in DUMPERS.keys()]),
    help="Output file format",
)
@dumper_option(
    "--compression",
    type=click.Choice(list(COMPRESSIONS)),
    convert=COMPRESSIONS.get,
    help="How the beatmaps of an LS2OVR file are compressed",
)
@loader_option("--title", help="Song title for formats that don't store one")
@loader_option(
    "--star",
    type=click.IntRange(min=1, max=15),
    help="Difficulty for formats that don't store one",
)
def convert(
    src: str,
    dst: str,
    input_format: Optional[str],
    output_format: str,
    loader_options: Optional[Dict[str, Any]] = None,
    dumper_options: Optional[Dict[str, Any]] = None,
) -> None:
    """Convert SRC to DST using the format specified by -f"""
    beatmap = load(Path(src), none_or(Format, input_format), **(loader_options or {}))
    dumper = DUMPERS[Format(output_format)]
    try:
        files = dumper(beatmap, Path(dst), **(dumper_options or {}))
    except ValueError as e:
        raise click.ClickException(f"Could not convert {src} : {e}")

    write_files(files)


@ls2ovr.command()
@click.argument("src", type=click.Path(exists=True, dir_okay=False))
@click.argument("dst_dir", type=click.Path(file_okay=False))
@input_format_option
def unpack(src: str, dst_dir: str, input_format: Optional[str]) -> None:
    """Extract the embedded files of SRC to DST_DIR along with one note
    array per beatmap"""
    beatmap = load(Path(src), none_or(Format, input_format))
    root = Path(dst_dir)
    files: Dict[Path, bytes] = {}
    for name, data in beatmap.files.items():
        if Path(name).is_absolute() or ".." in Path(name).parts:
            click.echo(f"Skipping file with an unsafe name : {name!r}", err=True)
            continue
        files[root / name] = data

    taken = set(beatmap.files)
    suffixes = random_suffixes()
    for i, beatmap_data in enumerate(beatmap.beatmaps):
        name = allocate_filename(
            f"beatmap-{i}.json", f"beatmap-{i}-{{suffix}}.json", taken, suffixes
        )
        taken.add(name)
        files[root / name] = dump_sif_bytes(beatmap_data)

    write_files(files)
    click.echo(
        f"{beatmap.metadata.title} : {len(beatmap.beatmaps)} beatmap(s), "
        f"{len(beatmap.files)} file(s)"
    )


if __name__ == "__main__":
    ls2ovr()
