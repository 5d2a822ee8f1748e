"""
Serialize a 32x32 bitmap into a single-image ICO file.

Layout (little-endian):
    ICONDIR          6 bytes   reserved, type=1, count=1
    ICONDIRENTRY    16 bytes   width, height, colors, reserved, planes, bpp, size, offset=22
    BITMAPINFOHEADER 40 bytes  height doubled for the AND mask
    palette          4 bytes per color (B, G, R, 0), indexed only
    XOR rows         bottom-to-top, padded to 4 bytes
    AND rows         bottom-to-top, 1 bit per pixel, padded to 4 bytes
"""

import logging
import os
import struct
import tempfile

from .errors import EncodingInvariantError, IoError
from .quantize import build_mask, mask_stride

logger = logging.getLogger(__name__)

ICON_SIZE = 32
ICONDIR_SIZE = 6
ICONDIRENTRY_SIZE = 16
DATA_OFFSET = ICONDIR_SIZE + ICONDIRENTRY_SIZE
BITMAPINFOHEADER_SIZE = 40
ICON_TYPE = 1
INDEXED_BPP = 8
TRUECOLOR_BPP = 32


def row_stride(width, bit_count):
    """Bytes per bitmap row, padded to a 4-byte boundary."""
    return ((width * bit_count + 31) // 32) * 4


def _bottom_up(data, stride, height):
    return b''.join(data[y * stride:(y + 1) * stride] for y in reversed(range(height)))


def _check_size(width, height):
    if (width, height) != (ICON_SIZE, ICON_SIZE):
        raise EncodingInvariantError(
            f"Icon bitmap must be {ICON_SIZE}x{ICON_SIZE}, got {width}x{height}"
        )


def _assemble(width, height, bit_count, color_count, palette_bytes, xor_bytes, and_bytes):
    image_size = len(xor_bytes) + len(and_bytes)
    info_header = struct.pack('<IiiHHIIiiII',
        BITMAPINFOHEADER_SIZE,  # Header size
        width,                  # Width
        height * 2,             # Height, XOR + AND mask
        1,                      # Planes
        bit_count,              # Bits per pixel
        0,                      # Compression (BI_RGB)
        image_size,             # Size of pixel data
        0,                      # Horizontal resolution
        0,                      # Vertical resolution
        len(palette_bytes) // 4,  # Colors used
        0                       # Important colors
    )
    block = info_header + palette_bytes + xor_bytes + and_bytes

    # ICO header: Reserved (2) + Type (2) + Count (2)
    ico_header = struct.pack('<HHH', 0, ICON_TYPE, 1)

    # Width, Height, ColorCount, Reserved, Planes, BitCount, BytesInRes, ImageOffset
    dir_entry = struct.pack('<BBBBHHII',
        width % 256,   # Width (0 = 256)
        height % 256,  # Height (0 = 256)
        color_count,   # Color count (0 = 256 or more)
        0,             # Reserved
        1,             # Color planes
        bit_count,     # Bits per pixel
        len(block),    # Size of bitmap block
        DATA_OFFSET    # Offset to bitmap block
    )
    return ico_header + dir_entry + block


def encode_icon(palette, bitmap):
    """Encode an 8-bit indexed icon from a Palette and IndexedBitmap."""
    width, height = bitmap.width, bitmap.height
    _check_size(width, height)
    if len(bitmap.indices) != width * height:
        raise EncodingInvariantError("Index grid does not match the bitmap size")
    if max(bitmap.indices) >= len(palette):
        raise EncodingInvariantError(
            f"Index {max(bitmap.indices)} outside a palette of {len(palette)} colors"
        )
    stride = mask_stride(width)
    if len(bitmap.mask) != stride * height:
        raise EncodingInvariantError("Mask does not match the bitmap size")

    palette_bytes = b''.join(struct.pack('<BBBB', b, g, r, 0) for r, g, b in palette)

    padding = b'\x00' * (row_stride(width, INDEXED_BPP) - width)
    xor_bytes = b''.join(
        bitmap.indices[y * width:(y + 1) * width] + padding for y in reversed(range(height))
    )
    and_bytes = _bottom_up(bitmap.mask, stride, height)

    color_count = len(palette) if len(palette) < 256 else 0
    data = _assemble(width, height, INDEXED_BPP, color_count, palette_bytes, xor_bytes, and_bytes)
    logger.debug("Encoded %d-color indexed icon: %d bytes", len(palette), len(data))
    return data


def encode_truecolor(buffer):
    """Encode a 32-bit BGRA icon straight from an RGBA PixelBuffer."""
    width, height = buffer.width, buffer.height
    _check_size(width, height)

    stride = row_stride(width, TRUECOLOR_BPP)
    bgra = bytearray(buffer.data)
    bgra[0::4], bgra[2::4] = buffer.data[2::4], buffer.data[0::4]
    xor_bytes = _bottom_up(bytes(bgra), stride, height)
    and_bytes = _bottom_up(build_mask(buffer), mask_stride(width), height)

    data = _assemble(width, height, TRUECOLOR_BPP, 0, b'', xor_bytes, and_bytes)
    logger.debug("Encoded truecolor icon: %d bytes", len(data))
    return data


def write_icon(path, data):
    """Write the finished icon in one pass, replacing any existing file atomically."""
    path = os.fspath(path)
    directory = os.path.dirname(os.path.abspath(path))
    tmp_path = None
    try:
        with tempfile.NamedTemporaryFile('wb', dir=directory, prefix='.favicon32-',
                                         suffix='.tmp', delete=False) as f:
            tmp_path = f.name
            f.write(data)
        # NamedTemporaryFile is created 0600
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except OSError as exc:
        if tmp_path and os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise IoError(f"Error saving the output image '{path}': {exc.strerror or exc}") from exc
    return path
