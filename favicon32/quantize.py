"""
Reduce an RGBA buffer to an indexed palette bitmap plus a 1-bit transparency mask.

Colors are reduced with median cut: the distinct opaque colors, weighted by
how often they occur, are split along the channel with the widest range until
the palette bound is reached or every bucket holds a single color. Each bucket
is represented by its weighted average color.
"""

import heapq
import itertools
import logging
from collections import Counter
from dataclasses import dataclass

from .errors import QuantizationError

logger = logging.getLogger(__name__)

MAX_COLORS = 256
ALPHA_THRESHOLD = 128
PLACEHOLDER_COLOR = (0, 0, 0)


def mask_stride(width):
    """Bytes per 1-bit mask row, padded to a 4-byte boundary."""
    return ((width + 31) // 32) * 4


@dataclass(frozen=True)
class Palette:
    """Ordered, duplicate-free RGB colors. Position is the bitmap index."""

    colors: tuple

    def __post_init__(self):
        if not 1 <= len(self.colors) <= MAX_COLORS:
            raise QuantizationError(f"Palette must hold 1 to {MAX_COLORS} colors, got {len(self.colors)}")
        if len(set(self.colors)) != len(self.colors):
            raise QuantizationError("Palette contains duplicate colors")

    def __len__(self):
        return len(self.colors)

    def __iter__(self):
        return iter(self.colors)

    def __getitem__(self, index):
        return self.colors[index]

    def nearest(self, color):
        """Index of the closest color by squared RGB distance, lowest index on ties."""
        r, g, b = color[:3]
        best_index = 0
        best_distance = None
        for index, (pr, pg, pb) in enumerate(self.colors):
            distance = (r - pr) ** 2 + (g - pg) ** 2 + (b - pb) ** 2
            if best_distance is None or distance < best_distance:
                best_index = index
                best_distance = distance
                if distance == 0:
                    break
        return best_index


@dataclass(frozen=True)
class IndexedBitmap:
    """
    Palette indices (one byte per pixel, row-major, top-to-bottom) and an
    AND mask with one bit per pixel where 1 marks a transparent pixel.
    Mask rows are padded to 4 bytes and also stored top-to-bottom.
    """

    width: int
    height: int
    indices: bytes
    mask: bytes

    def __post_init__(self):
        if len(self.indices) != self.width * self.height:
            raise QuantizationError(
                f"Expected {self.width * self.height} indices, got {len(self.indices)}"
            )
        if len(self.mask) != self.mask_stride * self.height:
            raise QuantizationError(
                f"Expected {self.mask_stride * self.height} mask bytes, got {len(self.mask)}"
            )

    @property
    def mask_stride(self):
        return mask_stride(self.width)

    def index(self, x, y):
        return self.indices[y * self.width + x]

    def is_transparent(self, x, y):
        byte = self.mask[y * self.mask_stride + x // 8]
        return bool(byte & (0x80 >> (x % 8)))


def build_mask(buffer):
    """Pack alpha < 128 as set bits, MSB first, rows padded to 4 bytes."""
    stride = mask_stride(buffer.width)
    mask = bytearray(stride * buffer.height)
    data = buffer.data
    for y in range(buffer.height):
        row = y * buffer.width
        for x in range(buffer.width):
            if data[(row + x) * 4 + 3] < ALPHA_THRESHOLD:
                mask[y * stride + x // 8] |= 0x80 >> (x % 8)
    return bytes(mask)


def _widest_axis(bucket):
    """Return (range, channel) of the widest channel, R before G before B on ties."""
    best_spread, best_axis = -1, 0
    for axis in range(3):
        values = [color[axis] for color, _ in bucket]
        spread = max(values) - min(values)
        if spread > best_spread:
            best_spread, best_axis = spread, axis
    return best_spread, best_axis


def _split(bucket, axis):
    """Split at the weighted median along axis. Both halves are non-empty."""
    ordered = sorted(bucket, key=lambda entry: (entry[0][axis], entry[0]))
    half = sum(count for _, count in ordered) / 2
    running = 0
    cut = len(ordered) - 1
    for position, (_, count) in enumerate(ordered[:-1]):
        running += count
        if running >= half:
            cut = position + 1
            break
    return ordered[:cut], ordered[cut:]


def _average(bucket):
    total = sum(count for _, count in bucket)
    return tuple(
        (sum(color[axis] * count for color, count in bucket) + total // 2) // total
        for axis in range(3)
    )


def median_cut(histogram, max_colors):
    """Reduce a {color: count} histogram to at most max_colors representative colors."""
    order = itertools.count()
    queue = []

    def push(bucket):
        spread, axis = _widest_axis(bucket)
        heapq.heappush(queue, (-spread, next(order), axis, bucket))

    push(sorted(histogram.items()))
    while len(queue) < max_colors:
        if queue[0][0] == 0:
            # widest bucket is a single color, so all of them are
            break
        _, _, axis, bucket = heapq.heappop(queue)
        low, high = _split(bucket, axis)
        push(low)
        push(high)

    colors = []
    for _, _, _, bucket in sorted(queue, key=lambda item: item[1]):
        color = _average(bucket)
        if color not in colors:
            colors.append(color)
    return colors


def build_palette(buffer, max_colors=MAX_COLORS):
    """Palette for the opaque pixels of buffer, or the placeholder when there are none."""
    histogram = Counter(
        (r, g, b) for r, g, b, a in buffer.pixels() if a >= ALPHA_THRESHOLD
    )
    if not histogram:
        logger.debug("No opaque pixels, using placeholder palette")
        return Palette((PLACEHOLDER_COLOR,))

    if len(histogram) <= max_colors:
        # Counter keeps first-seen order
        logger.debug("%d distinct colors fit the palette as-is", len(histogram))
        return Palette(tuple(histogram))

    colors = median_cut(histogram, max_colors)
    logger.debug("Median cut reduced %d colors to %d", len(histogram), len(colors))
    return Palette(tuple(colors))


def quantize(buffer, max_colors=MAX_COLORS):
    """Return (Palette, IndexedBitmap) approximating buffer. The buffer is not modified."""
    if not 1 <= max_colors <= MAX_COLORS:
        raise QuantizationError(f"Palette size must be between 1 and {MAX_COLORS}, got {max_colors}")
    if buffer.width == 0 or buffer.height == 0:
        raise QuantizationError("Cannot quantize an empty buffer")

    palette = build_palette(buffer, max_colors)
    mask = build_mask(buffer)

    lookup = {}
    indices = bytearray(buffer.width * buffer.height)
    for position, (r, g, b, a) in enumerate(buffer.pixels()):
        if a < ALPHA_THRESHOLD:
            continue
        color = (r, g, b)
        index = lookup.get(color)
        if index is None:
            index = lookup[color] = palette.nearest(color)
        indices[position] = index

    bitmap = IndexedBitmap(buffer.width, buffer.height, bytes(indices), mask)
    return palette, bitmap
