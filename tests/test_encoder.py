from __future__ import annotations

import io
import os
from pathlib import Path
import struct
import sys
import tempfile
import unittest

from PIL import Image

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from favicon32.buffer import PixelBuffer  # noqa: E402
from favicon32.encoder import encode_icon, encode_truecolor, write_icon  # noqa: E402
from favicon32.errors import EncodingInvariantError, IoError  # noqa: E402
from favicon32.quantize import IndexedBitmap, Palette, quantize  # noqa: E402

RED = (255, 0, 0, 255)


def solid(color, size: int = 32) -> PixelBuffer:
    return PixelBuffer(size, size, bytes(color) * size * size)


def top_row_buffer(top, rest) -> PixelBuffer:
    """32x32 buffer whose first (top) row differs from the others."""
    return PixelBuffer(32, 32, bytes(top) * 32 + bytes(rest) * 32 * 31)


def unpack_entry(data: bytes):
    return struct.unpack_from("<BBBBHHII", data, 6)


def unpack_info(data: bytes):
    return struct.unpack_from("<IiiHHIIiiII", data, 22)


class IndexedEncoderTests(unittest.TestCase):
    def test_single_red_icon_layout(self) -> None:
        data = encode_icon(*quantize(solid(RED)))

        self.assertEqual((0, 1, 1), struct.unpack_from("<HHH", data, 0))
        width, height, colors, reserved, planes, bits, size, offset = unpack_entry(data)
        self.assertEqual((32, 32, 1, 0, 1, 8, 22), (width, height, colors, reserved, planes, bits, offset))
        self.assertEqual(len(data) - 22, size)

        info = unpack_info(data)
        self.assertEqual((40, 32, 64, 1, 8, 0), info[:6])
        self.assertEqual(32 * 32 + 4 * 32, info[6])
        self.assertEqual(1, info[9])

        self.assertEqual(b"\x00\x00\xff\x00", data[62:66])
        self.assertEqual(22 + 40 + 4 + 32 * 32 + 4 * 32, len(data))

    def test_encoding_is_deterministic(self) -> None:
        palette, bitmap = quantize(top_row_buffer((1, 2, 3, 255), (4, 5, 6, 0)))

        self.assertEqual(encode_icon(palette, bitmap), encode_icon(palette, bitmap))

    def test_rows_are_stored_bottom_to_top(self) -> None:
        palette, bitmap = quantize(top_row_buffer((0, 0, 255, 0), (0, 255, 0, 255)))
        data = encode_icon(palette, bitmap)

        pixels_start = 22 + 40 + 4 * len(palette)
        mask_start = pixels_start + 32 * 32
        self.assertEqual(b"\x00" * 4, data[mask_start:mask_start + 4])
        self.assertEqual(b"\xff" * 4, data[-4:])

    def test_index_rows_are_stored_bottom_to_top(self) -> None:
        palette, bitmap = quantize(top_row_buffer((0, 0, 255, 255), (0, 255, 0, 255)))
        data = encode_icon(palette, bitmap)

        pixels_start = 22 + 40 + 4 * len(palette)
        self.assertEqual(bytes([1]) * 32, data[pixels_start:pixels_start + 32])
        self.assertEqual(bytes([0]) * 32, data[pixels_start + 31 * 32:pixels_start + 32 * 32])

    def test_full_palette_declares_zero_colors(self) -> None:
        palette = Palette(tuple((i, 255 - i, i // 2) for i in range(256)))
        bitmap = IndexedBitmap(32, 32, bytes(range(256)) * 4, bytes(4 * 32))

        data = encode_icon(palette, bitmap)

        self.assertEqual(0, unpack_entry(data)[2])
        self.assertEqual(256, unpack_info(data)[9])

    def test_wrong_size_is_invariant_error(self) -> None:
        palette, bitmap = quantize(solid(RED, 16))

        with self.assertRaises(EncodingInvariantError):
            encode_icon(palette, bitmap)

    def test_index_out_of_palette_is_invariant_error(self) -> None:
        bitmap = IndexedBitmap(32, 32, bytes([5]) * 32 * 32, bytes(4 * 32))

        with self.assertRaises(EncodingInvariantError):
            encode_icon(Palette(((0, 0, 0),)), bitmap)

    def test_readable_by_pillow(self) -> None:
        data = encode_icon(*quantize(top_row_buffer((0, 0, 0, 0), RED)))

        with Image.open(io.BytesIO(data)) as img:
            self.assertEqual("ICO", img.format)
            self.assertEqual((32, 32), img.size)
            rgba = img.convert("RGBA")
            self.assertEqual(RED, rgba.getpixel((5, 5)))
            self.assertEqual(0, rgba.getpixel((5, 0))[3])


class TruecolorEncoderTests(unittest.TestCase):
    def test_truecolor_layout(self) -> None:
        buffer = top_row_buffer((10, 20, 30, 255), (40, 50, 60, 0))

        data = encode_truecolor(buffer)

        width, height, colors, _, planes, bits, size, offset = unpack_entry(data)
        self.assertEqual((32, 32, 0, 1, 32, 22), (width, height, colors, planes, bits, offset))
        self.assertEqual(40 + 32 * 32 * 4 + 4 * 32, size)
        info = unpack_info(data)
        self.assertEqual((40, 32, 64, 1, 32, 0), info[:6])
        self.assertEqual(0, info[9])

        # first stored row is the bottom one, BGRA
        self.assertEqual(bytes((60, 50, 40, 0)), data[62:66])
        top_start = 62 + 31 * 32 * 4
        self.assertEqual(bytes((30, 20, 10, 255)), data[top_start:top_start + 4])
        self.assertEqual(b"\xff" * 4, data[62 + 4096:62 + 4096 + 4])
        self.assertEqual(b"\x00" * 4, data[-4:])

    def test_wrong_size_is_invariant_error(self) -> None:
        with self.assertRaises(EncodingInvariantError):
            encode_truecolor(solid(RED, 8))


class WriteIconTests(unittest.TestCase):
    def test_overwrites_existing_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "out.ico"
            path.write_bytes(b"old")

            write_icon(path, b"new icon")

            self.assertEqual(b"new icon", path.read_bytes())
            self.assertEqual(["out.ico"], os.listdir(tmp))

    def test_missing_directory_is_io_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "missing" / "out.ico"

            with self.assertRaises(IoError):
                write_icon(path, b"data")

            self.assertEqual([], os.listdir(tmp))


if __name__ == "__main__":
    unittest.main()
