"""Ad creative guidelines, layout compatibility and rendering service."""

__version__ = "1.0.0"
