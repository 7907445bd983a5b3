"""Scene files, audio mixing, PNG images and game modes for a small 3D chase game."""

__version__ = "0.1.0"