# This project was developed with assistance from AI tools.
"""Application wizard service: progress resolution and per-tab state."""

__version__ = "0.1.0"
