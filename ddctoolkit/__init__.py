"""Design, analyse and convert biquad audio filter banks and classic VDC files."""

__version__ = "2.0.0"