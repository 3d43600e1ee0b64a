"""scorecraft: music notation layout, rendering and editing engine."""

__version__ = "0.1.0"
