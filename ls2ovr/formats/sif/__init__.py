"""Bare note arrays in the json format used by the original game. They are
what beatmaps are usually authored or ripped as before being packed into an
LS2OVR file"""

from .dump import dump_sif, dump_sif_bytes
from .load import load_sif
