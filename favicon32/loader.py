"""
Load an input image as either a vector scene or a decoded RGBA raster.
"""

import gzip
import io
import logging
import os
import re
import zlib
from dataclasses import dataclass
from xml.etree.ElementTree import ParseError

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import fromstring
from PIL import Image, UnidentifiedImageError

from .buffer import PixelBuffer
from .errors import DecodeError, IoError, UnsupportedFormat

logger = logging.getLogger(__name__)

SVG_EXTENSIONS = ('.svg', '.svgz')
GZIP_MAGIC = b'\x1f\x8b'
UTF8_BOM = b'\xef\xbb\xbf'
SNIFF_BYTES = 4096

# Optional prolog, comments and doctype before the <svg> root element
SVG_ROOT = re.compile(
    rb'^(?:\s|<\?xml[^>]*\?>|<!--.*?-->|<!DOCTYPE[^>]*>)*<svg[\s>/]',
    re.DOTALL | re.IGNORECASE,
)


@dataclass(frozen=True)
class VectorSource:
    """Uncompressed SVG document, rendered later at the target size."""

    data: bytes


@dataclass(frozen=True)
class RasterSource:
    """Raster image decoded at its native resolution."""

    buffer: PixelBuffer
    format: str


def _extension(name):
    return os.path.splitext(name or '')[1].lower()


def sniff_svg(data):
    """Return True when the payload looks like an SVG document."""
    head = data[:SNIFF_BYTES]
    if head.startswith(UTF8_BOM):
        head = head[len(UTF8_BOM):]
    return SVG_ROOT.match(head) is not None


def is_vector(data, name=None):
    if _extension(name) in SVG_EXTENSIONS:
        return True
    return sniff_svg(data)


def load_vector(data):
    if data.startswith(GZIP_MAGIC):
        try:
            data = gzip.decompress(data)
        except (OSError, EOFError, zlib.error) as exc:
            raise DecodeError(f"Compressed SVG is corrupt: {exc}") from exc

    try:
        root = fromstring(data)
    except (ParseError, DefusedXmlException) as exc:
        raise DecodeError(f"SVG document is not well-formed: {exc}") from exc

    tag = root.tag.rsplit('}', 1)[-1]
    if tag != 'svg':
        raise DecodeError(f"Expected an <svg> root element, found <{tag}>")

    logger.debug("Vector source: %d bytes of SVG", len(data))
    return VectorSource(data)


def load_raster(data):
    try:
        img = Image.open(io.BytesIO(data))
    except UnidentifiedImageError as exc:
        raise UnsupportedFormat("Image format not recognized") from exc
    except Image.DecompressionBombError as exc:
        raise DecodeError(str(exc)) from exc
    except (OSError, SyntaxError, ValueError) as exc:
        # recognized format with a header its plugin rejects
        raise DecodeError(f"Failed to decode image header: {exc}") from exc

    image_format = img.format or 'unknown'
    try:
        img.load()
        rgba = img.convert('RGBA')
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
        raise DecodeError(f"Failed to decode {image_format} image: {exc}") from exc

    logger.debug("Raster source: %s %sx%s, mode: %s", image_format, img.width, img.height, img.mode)
    return RasterSource(PixelBuffer.from_image(rgba), image_format)


def load_bytes(data, name=None):
    """Turn an in-memory payload into a VectorSource or RasterSource."""
    if not data:
        raise UnsupportedFormat("Input is empty")
    if is_vector(data, name):
        return load_vector(data)
    return load_raster(data)


def load_source(path):
    """Read the whole input file and load it."""
    try:
        with open(path, 'rb') as f:
            data = f.read()
    except OSError as exc:
        raise IoError(f"Error reading the input image '{path}': {exc.strerror or exc}") from exc
    return load_bytes(data, os.fspath(path))
