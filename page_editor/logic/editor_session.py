# PDFPageEditor/page_editor/logic/editor_session.py
"""
Coordinator for one page-editing session.
Owns the source bytes, the cached page images, the page model and the
document-wide invert flag. Delegates rasterizing to PDFRenderer,
compositing to page_compositor and output to PDFExporter.
"""

import logging
from contextlib import contextmanager
from functools import partial
from typing import Callable, FrozenSet, Optional, Tuple

from .editor_settings import EditorSettings
from .errors import PageEditorError, PageRenderFailed, SelectionInvalid, SourceUnreadable
from .page_compositor import COMPOSITE_QUALITY, SUPERSAMPLE_SCALE, compose
from .page_model import LogicalPage, MergeConfig, MergedPage, OriginalPage, PageId, PageModel
from .pdf_exporter import PDFExporter, suggest_output_name
from .pdf_renderer import DEFAULT_RENDER_SCALE, DEFAULT_THUMBNAIL_QUALITY, PDFRenderer
from .pdf_writer import PdfDocumentWriter

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]


class EditorSession:
    """
    Thin coordinator that manages editing state and delegates work.

    Responsibilities:
    - Load a source PDF and cache one rendered image per page (once)
    - Hold the working document and selection via PageModel
    - Hold the document-wide invert flag
    - Keep the single current condition reported to the operator
    - Coordinate export via PDFExporter
    """

    def __init__(
        self,
        renderer_factory: Callable[[bytes], PDFRenderer] = PDFRenderer,
        writer: Optional[PdfDocumentWriter] = None,
        settings: Optional[EditorSettings] = None,
    ):
        """
        Args:
            renderer_factory: Opens a rasterizer for the source bytes
            writer: Document writer used on export
            settings: Stored preferences; built-in defaults when None
        """
        self._renderer_factory = renderer_factory
        self._writer = writer or PdfDocumentWriter()
        self.settings = settings

        if settings is not None:
            self._render_scale = settings.render_scale
            self._thumbnail_quality = settings.thumbnail_quality
            self._composite_scale = settings.composite_scale
            self._composite_quality = settings.composite_quality
        else:
            self._render_scale = DEFAULT_RENDER_SCALE
            self._thumbnail_quality = DEFAULT_THUMBNAIL_QUALITY
            self._composite_scale = SUPERSAMPLE_SCALE
            self._composite_quality = COMPOSITE_QUALITY

        self.condition: Optional[PageEditorError] = None
        self.reset()

    def reset(self):
        """Return to the empty state (no document loaded)."""
        self.file_name = ""
        self._source_bytes: Optional[bytes] = None
        self._original_images: Tuple[bytes, ...] = ()
        self.model: Optional[PageModel] = None
        self.global_invert = self.settings.global_invert if self.settings else False

    @contextmanager
    def _operation(self):
        """Clear the current condition, and record a new one if raised."""
        self.condition = None
        try:
            yield
        except PageEditorError as e:
            logger.warning("Operation rejected: %s", e)
            self.condition = e
            raise

    def _compositor(self):
        return partial(compose, scale=self._composite_scale, quality=self._composite_quality)

    def _require_model(self) -> PageModel:
        if self.model is None:
            raise SelectionInvalid("No PDF is loaded.")
        return self.model

    # ==================== Loading ====================

    def load(
        self,
        source_bytes: bytes,
        file_name: str = "",
        progress_callback: Optional[ProgressCallback] = None,
    ):
        """
        Load a source PDF and render the page image cache.

        Args:
            source_bytes: Raw bytes of the PDF
            file_name: Name shown to the user and used for the output name
            progress_callback: Optional callback(percent, message)

        Raises:
            SourceUnreadable: The data is not a readable PDF; the session is reset
        """
        with self._operation():
            self.reset()

            if not source_bytes or b"%PDF" not in source_bytes[:1024]:
                raise SourceUnreadable("Please select a valid PDF file.")

            if progress_callback:
                progress_callback(0, "Loading your PDF...")

            try:
                with self._renderer_factory(source_bytes) as renderer:
                    images = renderer.render_pages(
                        self._render_scale, self._thumbnail_quality, progress_callback
                    )
            except PageRenderFailed as e:
                self.reset()
                raise SourceUnreadable(
                    "Could not read or render the PDF file. "
                    "It might be corrupted or protected."
                ) from e
            except SourceUnreadable:
                self.reset()
                raise

            self.file_name = file_name
            self._source_bytes = source_bytes
            self._original_images = images
            self.model = PageModel.from_page_count(len(images), self._compositor())

            logger.info("Loaded %s with %d page(s)", file_name or "document", len(images))

    # ==================== Accessors ====================

    @property
    def is_loaded(self) -> bool:
        return self.model is not None

    @property
    def page_count(self) -> int:
        """Number of pages in the source document."""
        return len(self._original_images)

    @property
    def original_images(self) -> Tuple[bytes, ...]:
        """Cached source page images, indexed by source index."""
        return self._original_images

    @property
    def pages(self) -> Tuple[LogicalPage, ...]:
        return self.model.pages if self.model else ()

    @property
    def selection(self) -> FrozenSet[PageId]:
        return self.model.selection if self.model else frozenset()

    def page_image(self, page: LogicalPage) -> bytes:
        """Image to show for a logical page (cached render or merge preview)."""
        if isinstance(page, OriginalPage):
            return self._original_images[page.source_index]
        if isinstance(page, MergedPage):
            return page.preview_image
        raise TypeError(f"Unknown page variant: {type(page).__name__}")

    def output_file_name(self) -> str:
        return suggest_output_name(self.file_name)

    def set_global_invert(self, enabled: bool):
        self.global_invert = bool(enabled)
        if self.settings is not None:
            self.settings.global_invert = self.global_invert

    # ==================== Selection ====================

    def select(self, page_id: PageId):
        with self._operation():
            self._require_model().select(page_id)

    def deselect(self, page_id: PageId):
        with self._operation():
            self._require_model().deselect(page_id)

    def toggle(self, page_id: PageId):
        with self._operation():
            self._require_model().toggle(page_id)

    def clear_selection(self):
        with self._operation():
            self._require_model().clear_selection()

    # ==================== Editing ====================

    def _merge_config(self, config: Optional[MergeConfig]) -> MergeConfig:
        if config is not None:
            return config
        return self.settings.default_merge_config() if self.settings else MergeConfig()

    def delete_selected(self) -> int:
        with self._operation():
            return self._require_model().delete()

    def preview_merge(self, config: Optional[MergeConfig] = None) -> bytes:
        """
        Compose a preview of merging the current selection.
        Always built fresh from the current selection and config; nothing is
        kept between previews and nothing is mutated.

        Raises:
            SelectionInvalid: The selection cannot be merged
        """
        with self._operation():
            model = self._require_model()
            if not model.can_merge():
                raise SelectionInvalid("Please select 2 to 4 original pages to merge.")

            config = self._merge_config(config)
            images = [self._original_images[page.source_index] for page in model.selected_pages()]
            return self._compositor()(
                images, config.page_size, config.background_color, config.invert_colors
            )

    def merge_selected(self, config: Optional[MergeConfig] = None) -> MergedPage:
        with self._operation():
            config = self._merge_config(config)
            merged = self._require_model().merge(config, self._original_images)
            if self.settings is not None:
                self.settings.save_merge_config(config)
            return merged

    def demerge_selected(self):
        with self._operation():
            return self._require_model().demerge()

    # ==================== Export ====================

    def export(self, progress_callback: Optional[ProgressCallback] = None) -> bytes:
        """
        Produce the output PDF for the current working document.

        Raises:
            SelectionInvalid: No document loaded, or no pages left to export
            SourceUnreadable: The source cannot be reopened
            PageRenderFailed: A page failed to render; nothing is returned
        """
        with self._operation():
            model = self._require_model()
            return PDFExporter.export_document(
                model.pages,
                self._source_bytes,
                self._original_images,
                self.global_invert,
                writer=self._writer,
                progress_callback=progress_callback,
                scale=self._composite_scale,
                quality=self._composite_quality,
            )
