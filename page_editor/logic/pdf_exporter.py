# PDFPageEditor/page_editor/logic/pdf_exporter.py
"""
Export of the edited page sequence to a new PDF.

For every logical page this module decides between vector passthrough and a
regenerated raster:
- Original page: verbatim copy, or an inverted raster when the document-wide
  invert is on.
- Merged page: effective invert = page invert XOR document invert. Vector
  placement of the source pages when false, a freshly composed inverted
  raster when true.
"""

import logging
import os
from typing import Callable, Optional, Sequence

from pypdf import PdfReader

from .errors import CompositorPrecondition, PageEditorError, PageRenderFailed, SelectionInvalid
from .page_compositor import (
    COMPOSITE_QUALITY,
    SUPERSAMPLE_SCALE,
    ImageSource,
    compose,
    invert_encoded,
)
from .page_layout import compute_layout, fit_rect
from .page_model import LogicalPage, MergedPage, OriginalPage
from .pdf_writer import OutputDocument, PdfDocumentWriter

logger = logging.getLogger(__name__)


def suggest_output_name(source_name: str) -> str:
    """File name offered for the exported document, e.g. 'report_modified.pdf'."""
    stem, ext = os.path.splitext(os.path.basename(source_name))
    if ext.lower() != ".pdf":
        stem = os.path.basename(source_name)
    return f"{stem or 'document'}_modified.pdf"


class PDFExporter:
    """
    Walks the working document once and produces the output PDF bytes.
    Any page failure aborts the whole export; no partial output is returned.
    """

    @staticmethod
    def export_document(
        pages: Sequence[LogicalPage],
        source_bytes: bytes,
        original_images: Sequence[ImageSource],
        global_invert: bool,
        writer: Optional[PdfDocumentWriter] = None,
        progress_callback: Optional[Callable[[int, str], None]] = None,
        scale: float = SUPERSAMPLE_SCALE,
        quality: int = COMPOSITE_QUALITY,
    ) -> bytes:
        """
        Build the output document.

        Args:
            pages: Working document in order
            source_bytes: Raw bytes of the source PDF
            original_images: Cached image per source index (never mutated)
            global_invert: Document-wide invert flag
            writer: Document writer (defaults to PdfDocumentWriter)
            progress_callback: Optional callback(percent, message)
            scale: Supersampling factor for raster composites
            quality: JPEG quality for regenerated rasters

        Returns:
            Serialized PDF bytes

        Raises:
            SelectionInvalid: The working document is empty
            SourceUnreadable: The source PDF cannot be opened
            PageRenderFailed: A page could not be rendered or embedded
        """
        if not pages:
            raise SelectionInvalid("There are no pages to export.")

        writer = writer or PdfDocumentWriter()

        if progress_callback:
            progress_callback(0, "Opening source PDF...")

        source = writer.open_source(source_bytes)
        output = writer.create_output()
        total_pages = len(pages)

        logger.info(
            "Exporting %d page(s), global invert %s",
            total_pages,
            "on" if global_invert else "off",
        )

        for i, page in enumerate(pages):
            position = i + 1
            if progress_callback:
                percent = int(5 + (i / max(total_pages, 1)) * 90)
                progress_callback(
                    percent, f"Processing page {position} of {total_pages}..."
                )

            try:
                if isinstance(page, OriginalPage):
                    PDFExporter._export_original(
                        writer, output, source, page, original_images, global_invert, quality
                    )
                elif isinstance(page, MergedPage):
                    PDFExporter._export_merged(
                        writer, output, source, page, original_images, global_invert, scale, quality
                    )
                else:
                    raise TypeError(f"Unknown page variant: {type(page).__name__}")

            except CompositorPrecondition:
                raise
            except PageRenderFailed as e:
                raise PageRenderFailed(position, e.detail) from e
            except PageEditorError:
                raise
            except Exception as e:
                logger.exception("Export failed on page %d", position)
                raise PageRenderFailed(position, str(e)) from e

        if progress_callback:
            progress_callback(95, "Writing PDF...")

        try:
            data = writer.serialize(output)
        except Exception as e:
            logger.exception("Could not serialize the output document")
            raise PageRenderFailed(None, f"Could not write the output PDF: {e}") from e

        if progress_callback:
            progress_callback(100, "Export complete!")

        logger.info("Export finished, %d bytes", len(data))
        return data

    @staticmethod
    def _export_original(
        writer: PdfDocumentWriter,
        output: OutputDocument,
        source: PdfReader,
        page: OriginalPage,
        original_images: Sequence[ImageSource],
        global_invert: bool,
        quality: int,
    ):
        """Copy the page verbatim, or embed its inverted raster."""
        if not global_invert:
            logger.debug("Source page %d: vector copy", page.source_index)
            writer.copy_vector_page(output, source, page.source_index)
            return

        logger.debug("Source page %d: inverted raster", page.source_index)
        width, height = writer.source_page_size(source, page.source_index)
        inverted = invert_encoded(original_images[page.source_index], quality)

        image_ref = writer.embed_image(output, inverted)
        out_page = writer.add_page(output, width, height)
        writer.draw_image(out_page, image_ref, 0, 0, width, height)

    @staticmethod
    def _export_merged(
        writer: PdfDocumentWriter,
        output: OutputDocument,
        source: PdfReader,
        page: MergedPage,
        original_images: Sequence[ImageSource],
        global_invert: bool,
        scale: float,
        quality: int,
    ):
        """
        Render a merged page at final quality.

        NOTE: page.preview_image is deliberately not used here. It carries the
        inversion baked in at merge time; reusing it would apply the
        document-wide invert on top of it, or lose vector fidelity. Both
        branches below start again from the source pages.
        """
        width, height = page.page_size.dimensions
        out_page = writer.add_page(output, width, height)
        writer.draw_rect(out_page, 0, 0, width, height, page.background_color.pdf_rgb)

        effective_invert = page.invert_colors != global_invert

        if not effective_invert:
            logger.debug("Merged page %s: vector placement", page.id)
            rects = compute_layout(len(page.source_indices), width, height)
            for source_index, rect in zip(page.source_indices, rects):
                embedded = writer.embed_vector_page(output, source, source_index)
                target = fit_rect(embedded.width, embedded.height, rect).flipped(height)
                writer.draw_embedded_page(
                    out_page, embedded, target.x, target.y, target.width, target.height
                )
            return

        logger.debug("Merged page %s: inverted raster composite", page.id)
        composite = compose(
            [original_images[i] for i in page.source_indices],
            page.page_size,
            page.background_color,
            True,
            scale=scale,
            quality=quality,
        )
        image_ref = writer.embed_image(output, composite)
        writer.draw_image(out_page, image_ref, 0, 0, width, height)
