"""
Conversion pipeline: load -> rasterize -> quantize -> encode -> write.
"""

import logging
import os

from .encoder import encode_icon, encode_truecolor, write_icon
from .loader import load_bytes, load_source
from .quantize import MAX_COLORS, quantize
from .rasterize import rasterize

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT = 'favicon.ico'


def encode_source(source, colors=MAX_COLORS, truecolor=False):
    buffer = rasterize(source)
    logger.debug("Rasterized to %sx%s", buffer.width, buffer.height)

    if truecolor:
        return encode_truecolor(buffer)

    palette, bitmap = quantize(buffer, colors)
    logger.debug("Quantized to %d palette colors", len(palette))
    return encode_icon(palette, bitmap)


def convert_bytes(data, name=None, colors=MAX_COLORS, truecolor=False):
    """Convert an in-memory image to the bytes of a 32x32 ICO file."""
    return encode_source(load_bytes(data, name), colors, truecolor)


def convert_file(input_path, output_path=DEFAULT_OUTPUT, colors=MAX_COLORS, truecolor=False):
    """
    Convert input_path into a 32x32 icon at output_path.
    The output is only written once the whole icon has been assembled.
    """
    source = load_source(input_path)
    data = encode_source(source, colors, truecolor)
    write_icon(output_path, data)
    logger.debug("Wrote %d bytes to %s", len(data), os.fspath(output_path))
    return output_path
