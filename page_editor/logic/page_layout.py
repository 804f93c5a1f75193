# PDFPageEditor/page_editor/logic/page_layout.py
"""
Pure layout generation logic for merged pages.
No file I/O, no rendering, no PDF operations.
Just rectangles describing where each source page lands on a target page.

Rectangles use a top-left origin (y grows downward), matching raster
canvases. Use LayoutRect.flipped() before drawing into PDF user space.
"""

from dataclasses import dataclass
from typing import List

# Outer margin and inter-cell gap, in the units of the page passed in
MARGIN = 15
GAP = 10


@dataclass(frozen=True)
class LayoutRect:
    """Axis-aligned rectangle (x, y is the top-left corner)."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    def flipped(self, page_height: float) -> "LayoutRect":
        """
        Convert to a bottom-left origin so the rectangle keeps its visual
        position when drawn in PDF user space.

        Args:
            page_height: Height of the page the rectangle lives on
        """
        return LayoutRect(
            self.x, page_height - self.y - self.height, self.width, self.height
        )

    def intersects(self, other: "LayoutRect") -> bool:
        """True if the two rectangles share any interior area."""
        return (
            self.x < other.right
            and other.x < self.right
            and self.y < other.bottom
            and other.y < self.bottom
        )


def compute_layout(count: int, page_width: float, page_height: float) -> List[LayoutRect]:
    """
    Generate target rectangles for a merged page.

    Layouts:
    - 2 pages: two full-width cells stacked vertically
    - 3 pages: three full-width cells stacked vertically
    - 4 pages: 2x2 grid (top-left, top-right, bottom-left, bottom-right)
    - anything else: one cell spanning the page inside the margins

    Args:
        count: Number of pages to place
        page_width: Target page width
        page_height: Target page height

    Returns:
        List of rectangles in reading order
    """
    rects = []
    full_width = page_width - 2 * MARGIN

    if count == 2:
        h = (page_height - 2 * MARGIN - GAP) / 2
        rects.append(LayoutRect(MARGIN, MARGIN, full_width, h))
        rects.append(LayoutRect(MARGIN, MARGIN + h + GAP, full_width, h))

    elif count == 3:
        h = (page_height - 2 * MARGIN - 2 * GAP) / 3
        for row in range(3):
            rects.append(LayoutRect(MARGIN, MARGIN + row * (h + GAP), full_width, h))

    elif count == 4:
        w = (page_width - 2 * MARGIN - GAP) / 2
        h = (page_height - 2 * MARGIN - GAP) / 2
        for row in range(2):
            for col in range(2):
                rects.append(
                    LayoutRect(MARGIN + col * (w + GAP), MARGIN + row * (h + GAP), w, h)
                )

    else:
        # Not reachable through merge, which requires 2-4 pages
        rects.append(LayoutRect(MARGIN, MARGIN, full_width, page_height - 2 * MARGIN))

    return rects


def fit_rect(content_width: float, content_height: float, rect: LayoutRect) -> LayoutRect:
    """
    Scale content to fit a rectangle while preserving aspect ratio, centered.
    Never crops and never stretches.

    Args:
        content_width: Width of the content to place
        content_height: Height of the content to place
        rect: Cell to place it in

    Returns:
        The rectangle the content should be drawn into
    """
    content_aspect = content_width / content_height
    rect_aspect = rect.width / rect.height

    if content_aspect > rect_aspect:
        draw_width = rect.width
        draw_height = draw_width / content_aspect
    else:
        draw_height = rect.height
        draw_width = draw_height * content_aspect

    return LayoutRect(
        rect.x + (rect.width - draw_width) / 2,
        rect.y + (rect.height - draw_height) / 2,
        draw_width,
        draw_height,
    )
