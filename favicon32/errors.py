"""
Error kinds raised by the conversion pipeline.
Every stage raises exactly one of these and the pipeline stops there.
"""


class Favicon32Error(Exception):
    """Base class for every conversion failure."""

    @property
    def kind(self):
        return type(self).__name__


class UnsupportedFormat(Favicon32Error):
    """Input format not recognized or not available."""


class DecodeError(Favicon32Error):
    """Input payload is malformed."""


class RasterizationError(Favicon32Error):
    """Vector rendering failed or resampling produced the wrong size."""


class QuantizationError(Favicon32Error):
    """Palette reduction could not run on the given buffer."""


class EncodingInvariantError(Favicon32Error):
    """Bitmap handed to the encoder breaks the icon layout rules."""


class IoError(Favicon32Error):
    """Input could not be read or output could not be written."""
