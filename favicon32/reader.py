"""
Read back ICO files: directory structure and the pixels of an embedded bitmap.
"""

import io
import struct
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

from .buffer import PixelBuffer
from .encoder import ICON_TYPE, ICONDIR_SIZE, ICONDIRENTRY_SIZE, row_stride
from .errors import DecodeError
from .quantize import mask_stride

PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'
MAX_ICON_DIMENSION = 256


@dataclass(frozen=True)
class IconEntry:
    width: int
    height: int
    color_count: int
    planes: int
    bit_count: int
    size: int
    offset: int
    is_png: bool


def read_directory(data):
    """Parse the ICO header and directory entries."""
    if len(data) < ICONDIR_SIZE:
        raise DecodeError("File too short for an icon header")
    reserved, ico_type, count = struct.unpack('<HHH', data[0:ICONDIR_SIZE])
    if reserved != 0 or ico_type != ICON_TYPE:
        raise DecodeError(f"Not an icon file (reserved={reserved}, type={ico_type})")
    if len(data) < ICONDIR_SIZE + ICONDIRENTRY_SIZE * count:
        raise DecodeError(f"Directory of {count} entries is truncated")

    entries = []
    offset = ICONDIR_SIZE
    for i in range(count):
        width, height, colors, _, planes, bits, size, img_offset = \
            struct.unpack_from('<BBBBHHII', data, offset)
        if img_offset + size > len(data):
            raise DecodeError(f"Entry {i} points past the end of the file")

        entries.append(IconEntry(
            width=256 if width == 0 else width,
            height=256 if height == 0 else height,
            color_count=colors,
            planes=planes,
            bit_count=bits,
            size=size,
            offset=img_offset,
            is_png=data[img_offset:img_offset + 8] == PNG_SIGNATURE,
        ))
        offset += ICONDIRENTRY_SIZE
    return entries


def _decode_png(block):
    try:
        img = Image.open(io.BytesIO(block))
        img.load()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise DecodeError(f"Embedded PNG is corrupt: {exc}") from exc
    return PixelBuffer.from_image(img)


def _decode_bmp(block):
    if len(block) < 40:
        raise DecodeError("Embedded bitmap header is truncated")
    header_size, width, double_height, _, bit_count, compression, _, _, _, colors_used, _ = \
        struct.unpack_from('<IiiHHIIiiII', block, 0)
    if compression != 0:
        raise DecodeError(f"Compressed bitmaps are not supported (compression={compression})")
    if bit_count not in (1, 4, 8, 24, 32):
        raise DecodeError(f"Unsupported bit count {bit_count}")
    height = abs(double_height) // 2
    if not 1 <= width <= MAX_ICON_DIMENSION or not 1 <= height <= MAX_ICON_DIMENSION:
        raise DecodeError(f"Invalid bitmap size {width}x{height}")

    palette = []
    pos = header_size
    if bit_count <= 8:
        colors = colors_used or (1 << bit_count)
        if header_size + colors * 4 > len(block):
            raise DecodeError("Embedded bitmap palette is truncated")
        for _ in range(colors):
            b, g, r, _ = struct.unpack_from('<BBBB', block, pos)
            palette.append((r, g, b))
            pos += 4

    stride = row_stride(width, bit_count)
    and_stride = mask_stride(width)
    xor_start, and_start = pos, pos + stride * height
    if and_start + and_stride * height > len(block):
        raise DecodeError("Embedded bitmap pixel data is truncated")

    out = bytearray(width * height * 4)
    for row in range(height):
        # rows are stored bottom-to-top
        y = height - 1 - row
        xor_row = block[xor_start + row * stride:xor_start + (row + 1) * stride]
        and_row = block[and_start + row * and_stride:and_start + (row + 1) * and_stride]
        for x in range(width):
            if bit_count == 32:
                b, g, r, a = xor_row[x * 4:x * 4 + 4]
            elif bit_count == 24:
                b, g, r = xor_row[x * 3:x * 3 + 3]
                a = 255
            else:
                bit = x * bit_count
                shift = 8 - bit_count - bit % 8
                index = (xor_row[bit // 8] >> shift) & ((1 << bit_count) - 1)
                if index >= len(palette):
                    raise DecodeError(f"Pixel index {index} outside a palette of {len(palette)}")
                r, g, b = palette[index]
                a = 255
            if bit_count != 32 and and_row[x // 8] & (0x80 >> (x % 8)):
                a = 0
            pos = (y * width + x) * 4
            out[pos:pos + 4] = bytes((r, g, b, a))
    return PixelBuffer(width, height, bytes(out))


def decode_icon(data, index=0):
    """Decode entry `index` of an ICO file into an RGBA PixelBuffer."""
    entries = read_directory(data)
    if not 0 <= index < len(entries):
        raise DecodeError(f"Icon has no entry {index}")
    entry = entries[index]
    block = data[entry.offset:entry.offset + entry.size]
    if entry.is_png:
        return _decode_png(block)
    return _decode_bmp(block)


def describe_icon(data):
    """Human readable summary of the ICO structure."""
    entries = read_directory(data)
    lines = ["ICO Structure:", f"  Image count: {len(entries)}"]
    for i, entry in enumerate(entries):
        format_type = "PNG" if entry.is_png else "BMP"
        colors = entry.color_count or "truecolor/256"
        lines.append(
            f"  [{i + 1}] {entry.width}x{entry.height}, {entry.bit_count}-bit, "
            f"colors: {colors}, {entry.size:,} bytes, {format_type} format"
        )
    return lines
