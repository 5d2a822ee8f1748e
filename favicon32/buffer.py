"""
RGBA pixel buffer shared by the loader, rasterizer and quantizer.
"""

from dataclasses import dataclass

from PIL import Image


@dataclass(frozen=True)
class PixelBuffer:
    """Row-major, top-to-bottom RGBA pixels packed as bytes (4 per pixel)."""

    width: int
    height: int
    data: bytes

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Negative buffer size {self.width}x{self.height}")
        expected = self.width * self.height * 4
        if len(self.data) != expected:
            raise ValueError(
                f"Buffer of {self.width}x{self.height} needs {expected} bytes, got {len(self.data)}"
            )

    @property
    def size(self):
        return (self.width, self.height)

    def pixel(self, x, y):
        pos = (y * self.width + x) * 4
        return tuple(self.data[pos:pos + 4])

    def pixels(self):
        data = self.data
        for pos in range(0, len(data), 4):
            yield (data[pos], data[pos + 1], data[pos + 2], data[pos + 3])

    @classmethod
    def from_image(cls, img):
        if img.mode != 'RGBA':
            img = img.convert('RGBA')
        return cls(img.width, img.height, img.tobytes())

    def to_image(self):
        return Image.frombytes('RGBA', self.size, self.data)
