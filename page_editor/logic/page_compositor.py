# PDFPageEditor/page_editor/logic/page_compositor.py
"""
Raster compositing of merged pages using Pillow.
Tiles 2-4 page images onto one canvas using the layout engine, applies the
background colour and the colour inversion, and encodes the result as JPEG.
"""

import io
import logging
from enum import Enum
from typing import Sequence, Tuple, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from .errors import CompositorPrecondition, PageRenderFailed
from .page_layout import compute_layout, fit_rect
from .page_sizes import PageSize

logger = logging.getLogger(__name__)

# Supersampling factor for composites
SUPERSAMPLE_SCALE = 1.5
COMPOSITE_QUALITY = 90

ImageSource = Union[bytes, Image.Image]


class BackgroundColor(str, Enum):
    """Background fill for merged pages."""

    WHITE = "white"
    BLACK = "black"

    @property
    def rgb(self) -> Tuple[int, int, int]:
        """8-bit RGB triple for raster canvases."""
        return (255, 255, 255) if self is BackgroundColor.WHITE else (0, 0, 0)

    @property
    def pdf_rgb(self) -> Tuple[float, float, float]:
        """0-1 RGB triple for PDF fill operators."""
        return (1.0, 1.0, 1.0) if self is BackgroundColor.WHITE else (0.0, 0.0, 0.0)


def open_image(source: ImageSource) -> Image.Image:
    """
    Decode an encoded image (or pass through a PIL image) as RGB.

    Raises:
        PageRenderFailed: If the bytes are not a decodable image
    """
    if isinstance(source, Image.Image):
        return source if source.mode == "RGB" else source.convert("RGB")

    try:
        image = Image.open(io.BytesIO(source))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise PageRenderFailed(None, f"Could not decode page image: {e}") from e

    return image if image.mode == "RGB" else image.convert("RGB")


def invert_image(image: Image.Image) -> Image.Image:
    """
    Exact per-channel inversion: every channel value v becomes 255 - v.
    This is the only inversion technique used anywhere in the editor.
    """
    return ImageOps.invert(image if image.mode == "RGB" else image.convert("RGB"))


def encode_jpeg(image: Image.Image, quality: int = COMPOSITE_QUALITY) -> bytes:
    """Encode an image as baseline RGB JPEG."""
    buffer = io.BytesIO()
    if image.mode != "RGB":
        image = image.convert("RGB")
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def invert_encoded(source: ImageSource, quality: int = COMPOSITE_QUALITY) -> bytes:
    """Decode, invert once, and re-encode a single page image."""
    return encode_jpeg(invert_image(open_image(source)), quality)


def render_composite(
    images: Sequence[ImageSource],
    page_size: PageSize,
    background_color: BackgroundColor,
    invert: bool,
    scale: float = SUPERSAMPLE_SCALE,
) -> Image.Image:
    """
    Build the composite canvas for a merged page.

    Args:
        images: 2-4 page images in placement order
        page_size: Target page size
        background_color: Canvas fill
        invert: Invert the whole canvas once after drawing
        scale: Supersampling factor applied to the page size

    Returns:
        RGB canvas of size page_size * scale

    Raises:
        CompositorPrecondition: If fewer than 2 or more than 4 images are given
        PageRenderFailed: If an image cannot be decoded
    """
    if not 2 <= len(images) <= 4:
        raise CompositorPrecondition(
            f"Compositor requires 2-4 images, got {len(images)}"
        )

    page_width, page_height = page_size.dimensions
    canvas_width = int(page_width * scale)
    canvas_height = int(page_height * scale)

    canvas = Image.new("RGB", (canvas_width, canvas_height), background_color.rgb)
    rects = compute_layout(len(images), canvas_width, canvas_height)

    for source, rect in zip(images, rects):
        image = open_image(source)
        target = fit_rect(image.width, image.height, rect)

        scaled = image.resize(
            (max(1, round(target.width)), max(1, round(target.height))),
            Image.Resampling.LANCZOS,
        )
        canvas.paste(scaled, (round(target.x), round(target.y)))
        scaled.close()
        if image is not source:
            image.close()

    if invert:
        canvas = invert_image(canvas)

    return canvas


def compose(
    images: Sequence[ImageSource],
    page_size: PageSize,
    background_color: BackgroundColor,
    invert: bool,
    scale: float = SUPERSAMPLE_SCALE,
    quality: int = COMPOSITE_QUALITY,
) -> bytes:
    """
    Composite 2-4 page images onto one page and encode it as JPEG.
    See render_composite() for the arguments.

    Returns:
        Encoded JPEG bytes
    """
    canvas = render_composite(images, page_size, background_color, invert, scale)
    encoded = encode_jpeg(canvas, quality)
    logger.debug(
        "Composed %d images onto %s (%s background, invert=%s)",
        len(images),
        page_size.value,
        background_color.value,
        invert,
    )
    return encoded
