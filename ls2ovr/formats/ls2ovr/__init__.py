"""LS2OVR is the beatmap container of Live Simulator: 2 : a signed, versioned
binary file holding the song metadata, one or more beatmaps and every file
they reference (audio, artwork, backgrounds ...).

Metadata and beatmaps are stored as tagged value trees, the beatmaps can be
compressed as a whole and every embedded file is aligned on 16 bytes"""

from .construct import Compression
from .dump import dump_ls2ovr, dump_ls2ovr_bytes, write_ls2ovr
from .load import load_ls2ovr, read_ls2ovr
