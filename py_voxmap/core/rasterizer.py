"""
Integer thick-line rasterization.

Bresenham's algorithm drives the center line; a band of width w repeats it on
w offsets along the minor axis. Each emitted cell carries its column within
the band (0 = left edge relative to the direction of travel) and its row
(step index along the major axis), which is what road rendering uses to tell
sidewalk columns from carriageway columns.
"""

from dataclasses import dataclass
from typing import Iterator

from .models import GridCell


@dataclass(frozen=True)
class RasterCell:
    cell: GridCell
    column: int
    row: int
    overlap: bool = False


class ThickLineRasterizer:
    """Width-aware Bresenham line walker."""

    @staticmethod
    def offsets(width: int):
        """Minor-axis offset range of a band; even widths lean negative."""
        low = -(width // 2)
        return low, low + width - 1

    def plot_line(self, start: GridCell, end: GridCell, width: int = 1) -> Iterator[RasterCell]:
        if width < 1:
            raise ValueError(f"width must be >= 1, got {width}")

        dx = end.x - start.x
        dz = end.z - start.z
        x_major = abs(dx) >= abs(dz)
        if x_major:
            major, minor = start.x, start.z
            d_major, d_minor = abs(dx), abs(dz)
            s_major = 1 if dx >= 0 else -1
            s_minor = 1 if dz >= 0 else -1
        else:
            major, minor = start.z, start.x
            d_major, d_minor = abs(dz), abs(dx)
            s_major = 1 if dz >= 0 else -1
            s_minor = 1 if dx >= 0 else -1

        k_low, k_high = self.offsets(width)
        # +x travel and -z travel keep the left edge on the low offset side
        left_is_low = s_major > 0 if x_major else s_major < 0

        def column(k):
            return k - k_low if left_is_low else k_high - k

        def make(m, n):
            return GridCell(m, n) if x_major else GridCell(n, m)

        err = 2 * d_minor - d_major
        for row in range(d_major + 1):
            for k in range(k_low, k_high + 1):
                yield RasterCell(make(major, minor + k), column(k), row)

            if row == d_major:
                break
            if err > 0:
                if width > 1:
                    k = k_low if s_minor > 0 else k_high
                    yield RasterCell(make(major + s_major, minor + k), column(k), row, True)
                minor += s_minor
                err -= 2 * d_major
            err += 2 * d_minor
            major += s_major


def plot_line(start: GridCell, end: GridCell, width: int = 1) -> Iterator[RasterCell]:
    return ThickLineRasterizer().plot_line(start, end, width)
