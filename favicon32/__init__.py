"""
Convert any raster image or SVG into a 32x32 ICO favicon.
"""

__version__ = '0.1.0'

from .buffer import PixelBuffer
from .convert import convert_bytes, convert_file
from .errors import (
    DecodeError,
    EncodingInvariantError,
    Favicon32Error,
    IoError,
    QuantizationError,
    RasterizationError,
    UnsupportedFormat,
)
from .loader import RasterSource, VectorSource, load_bytes, load_source
from .quantize import IndexedBitmap, Palette, quantize
from .rasterize import rasterize
from .encoder import encode_icon, encode_truecolor, write_icon

__all__ = [
    'DecodeError',
    'EncodingInvariantError',
    'Favicon32Error',
    'IndexedBitmap',
    'IoError',
    'Palette',
    'PixelBuffer',
    'QuantizationError',
    'RasterSource',
    'RasterizationError',
    'UnsupportedFormat',
    'VectorSource',
    'convert_bytes',
    'convert_file',
    'encode_icon',
    'encode_truecolor',
    'load_bytes',
    'load_source',
    'quantize',
    'rasterize',
    'write_icon',
]
