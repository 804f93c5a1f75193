# PDFPageEditor/page_editor/logic/pdf_renderer.py
"""
Pure PDF rasterization logic using PyMuPDF (fitz).
Handles ONLY turning source pages into images - no layout, no saving.
Keeps the source document open for fast repeated rendering.
"""

import io
import logging
from typing import Callable, Optional, Tuple

import fitz
from PIL import Image

from .errors import PageRenderFailed, SourceUnreadable

logger = logging.getLogger(__name__)

# Scale used for the cached page images (1.5x of 72 dpi)
DEFAULT_RENDER_SCALE = 1.5
DEFAULT_THUMBNAIL_QUALITY = 80


class PDFRenderer:
    """
    Page rasterizer for a single source document.
    Use as a context manager so the document is closed when done.
    """

    def __init__(self, pdf_bytes: bytes):
        """
        Open a source document from memory.

        Args:
            pdf_bytes: Raw bytes of the source PDF

        Raises:
            SourceUnreadable: If the bytes cannot be opened as a PDF
        """
        self.doc = PDFRenderer.open_document(pdf_bytes)
        self.page_count = self.doc.page_count

    def __enter__(self) -> "PDFRenderer":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        """Close the PDF document. Call this when done rendering."""
        if self.doc is not None and not self.doc.is_closed:
            self.doc.close()

    def rasterize(self, page_index: int, scale: float = DEFAULT_RENDER_SCALE) -> Image.Image:
        """
        Render one source page to an RGB image.

        Args:
            page_index: 0-based index in the source document
            scale: Zoom factor relative to 72 dpi

        Returns:
            PIL image of the rendered page

        Raises:
            PageRenderFailed: If the page index is invalid or MuPDF fails
        """
        if not 0 <= page_index < self.page_count:
            raise PageRenderFailed(
                page_index + 1, f"Source page index {page_index} out of range"
            )

        try:
            pix = self.doc.load_page(page_index).get_pixmap(
                matrix=fitz.Matrix(scale, scale), alpha=False
            )
            return Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
        except RuntimeError as e:
            raise PageRenderFailed(page_index + 1, f"Could not render page: {e}") from e

    def page_size(self, page_index: int) -> Tuple[float, float]:
        """Size of a source page in points (width, height)."""
        rect = self.doc[page_index].rect
        return rect.width, rect.height

    def render_pages(
        self,
        scale: float = DEFAULT_RENDER_SCALE,
        quality: int = DEFAULT_THUMBNAIL_QUALITY,
        progress_callback: Optional[Callable[[int, str], None]] = None,
    ) -> Tuple[bytes, ...]:
        """
        Render every page once and encode each as JPEG.
        Pages are processed one at a time; each page's raster is released
        before the next is rendered.

        Args:
            scale: Zoom factor relative to 72 dpi
            quality: JPEG quality (1-95)
            progress_callback: Optional callback(percent, message)

        Returns:
            Tuple of encoded images, one per source page
        """
        encoded = []
        total = self.page_count

        for page_index in range(total):
            if progress_callback:
                percent = int((page_index / total) * 100)
                progress_callback(
                    percent, f"Rendering page {page_index + 1} of {total}..."
                )

            image = self.rasterize(page_index, scale)
            buffer = io.BytesIO()
            image.save(buffer, format="JPEG", quality=quality)
            image.close()
            encoded.append(buffer.getvalue())

        if progress_callback:
            progress_callback(100, "Rendering complete")

        logger.debug("Rendered %d pages at scale %.2f", total, scale)
        return tuple(encoded)

    @staticmethod
    def open_document(pdf_bytes: bytes) -> fitz.Document:
        """
        Open a PDF from memory.

        Raises:
            SourceUnreadable: If MuPDF rejects the data or it has no pages
        """
        try:
            doc = fitz.open(stream=pdf_bytes, filetype="pdf")
        except (RuntimeError, ValueError) as e:
            raise SourceUnreadable(
                "Could not read or render the PDF file. "
                "It might be corrupted or protected."
            ) from e

        if doc.needs_pass:
            doc.close()
            raise SourceUnreadable("The PDF file is password protected.")

        if doc.page_count == 0:
            doc.close()
            raise SourceUnreadable("The PDF file has no pages.")

        return doc

    @staticmethod
    def get_page_count(pdf_bytes: bytes) -> int:
        """
        Get the number of pages in a PDF (stateless - opens and closes it).

        Raises:
            SourceUnreadable: If the bytes cannot be opened as a PDF
        """
        doc = PDFRenderer.open_document(pdf_bytes)
        count = doc.page_count
        doc.close()
        return count
