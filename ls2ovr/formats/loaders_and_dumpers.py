from typing import Dict

from . import ls2, ls2ovr, sif
from .enum import Format
from .typing import Dumper, Loader

LOADERS: Dict[Format, Loader] = {
    Format.LS2OVR: ls2ovr.load_ls2ovr,
    Format.LS2: ls2.load_ls2,
    Format.SIF: sif.load_sif,
}

# LS2 can only be read
DUMPERS: Dict[Format, Dumper] = {
    Format.LS2OVR: ls2ovr.dump_ls2ovr,
    Format.SIF: sif.dump_sif,
}
