"""VidGen — multi-provider text-to-video proxy."""

__version__ = "3.2.0"
