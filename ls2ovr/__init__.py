"""Read and write Live Simulator: 2 beatmaps"""

__version__ = "0.1.0"
