"""
Render or resample a loaded source into an exact 32x32 RGBA buffer.

Raster sources are stretched independently on each axis: the aspect ratio
is not preserved and nothing is cropped or letterboxed.
"""

import io
import logging

import cairosvg
from PIL import Image

from .buffer import PixelBuffer
from .errors import RasterizationError
from .loader import RasterSource, VectorSource

logger = logging.getLogger(__name__)

ICON_SIZE = 32


def render_vector(source, size=ICON_SIZE):
    """Render an SVG scene straight onto a size x size transparent canvas."""
    try:
        png_bytes = cairosvg.svg2png(
            bytestring=source.data,
            output_width=size,
            output_height=size,
            # Scenes without width/height/viewBox resolve against the canvas
            parent_width=size,
            parent_height=size,
        )
        img = Image.open(io.BytesIO(png_bytes))
        img.load()
    except Exception as exc:
        raise RasterizationError(f"Failed to render SVG: {exc}") from exc

    # cairosvg rounds its surface size, keep the canvas exact
    if img.size != (size, size):
        logger.debug("Renderer returned %sx%s, fitting to %sx%s", img.width, img.height, size, size)
        img = img.convert('RGBA').resize((size, size), Image.Resampling.BILINEAR)
    return PixelBuffer.from_image(img)


def choose_filter(width, height, size=ICON_SIZE):
    """BOX (area average) when shrinking both axes, BILINEAR otherwise."""
    if width >= size and height >= size:
        return Image.Resampling.BOX
    return Image.Resampling.BILINEAR


def resample_raster(source, size=ICON_SIZE):
    buffer = source.buffer
    if buffer.size == (size, size):
        return buffer
    if buffer.width == 0 or buffer.height == 0:
        raise RasterizationError(f"Cannot resample an empty {buffer.width}x{buffer.height} image")

    resample = choose_filter(buffer.width, buffer.height, size)
    logger.debug(
        "Resampling %sx%s to %sx%s with %s", buffer.width, buffer.height, size, size, resample.name
    )
    resized = buffer.to_image().resize((size, size), resample)
    return PixelBuffer.from_image(resized)


def rasterize(source, size=ICON_SIZE):
    """Produce the size x size RGBA buffer for either source variant."""
    if isinstance(source, VectorSource):
        buffer = render_vector(source, size)
    elif isinstance(source, RasterSource):
        buffer = resample_raster(source, size)
    else:
        raise RasterizationError(f"Unknown source type {type(source).__name__}")

    if buffer.size != (size, size):
        raise RasterizationError(
            f"Rasterized buffer is {buffer.width}x{buffer.height}, expected {size}x{size}"
        )
    return buffer
