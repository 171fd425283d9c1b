from enum import Enum


class Format(str, Enum):
    LS2OVR = "ls2ovr"
    LS2 = "ls2"
    SIF = "sif"
