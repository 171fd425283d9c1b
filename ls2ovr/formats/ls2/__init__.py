"""LS2 is the beatmap format Live Simulator: 2 used before LS2OVR. It only
holds a single beatmap, comes in two flavors (v1 and v2) that lay out note
data differently, and can embed audio, cover art, backgrounds, custom unit
images and a storyboard as separate sections.

Only reading is supported, LS2OVR supersedes it"""

from .load import load_ls2, read_ls2
