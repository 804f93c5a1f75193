# PDFPageEditor/page_editor/logic/page_sizes.py
from enum import Enum
from typing import Tuple

# Portrait dimensions in points
_PRESETS_PT = {
    "A4": (595.28, 841.89),
    "Letter": (612.0, 792.0),
}


class PageSize(str, Enum):
    """Output page sizes offered for merged pages."""

    A4_PORTRAIT = "A4_portrait"
    A4_LANDSCAPE = "A4_landscape"
    LETTER_PORTRAIT = "Letter_portrait"
    LETTER_LANDSCAPE = "Letter_landscape"

    @property
    def dimensions(self) -> Tuple[float, float]:
        """(width, height) in points, with orientation applied."""
        preset, orientation = self.value.split("_")
        width, height = _PRESETS_PT[preset]
        if orientation == "landscape":
            width, height = height, width
        return width, height
