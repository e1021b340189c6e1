"""CamSpin - pick a winner from a live, photo-bearing roster."""

__version__ = "0.1.0"
