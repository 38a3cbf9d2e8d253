"""crunch: parallel batch media compression driven by ffmpeg."""

__version__ = "0.1.0"
