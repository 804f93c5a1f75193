# PDFPageEditor/page_editor/logic/page_model.py
"""
Editable page sequence and selection.

A working document is an ordered sequence of logical pages. Each logical page
is either an OriginalPage (one source page, id derived from its source index)
or a MergedPage (2-4 source pages composited onto one page, fresh id).
Merges are flat: a MergedPage can never be merged again, so demerge always
restores Original pages in a single step.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Iterable, List, Optional, Sequence, Set, Tuple, Union

from .errors import SelectionInvalid
from .page_compositor import BackgroundColor, ImageSource, compose
from .page_sizes import PageSize

logger = logging.getLogger(__name__)

MIN_MERGE_PAGES = 2
MAX_MERGE_PAGES = 4

PageId = str

# compose(images, page_size, background_color, invert) -> encoded preview
Compositor = Callable[[Sequence[ImageSource], PageSize, BackgroundColor, bool], bytes]


def original_page_id(source_index: int) -> PageId:
    """Deterministic id of the Original page for a source index."""
    return f"original-{source_index}"


def new_merged_page_id() -> PageId:
    """Fresh, never reused id for a Merged page."""
    return f"merged-{uuid.uuid4().hex}"


@dataclass(frozen=True)
class MergeConfig:
    """User choices for a merge."""

    page_size: PageSize = PageSize.A4_PORTRAIT
    background_color: BackgroundColor = BackgroundColor.WHITE
    invert_colors: bool = False


@dataclass(frozen=True)
class OriginalPage:
    """A logical page wrapping exactly one source page."""

    source_index: int

    @property
    def id(self) -> PageId:
        return original_page_id(self.source_index)


@dataclass(frozen=True)
class MergedPage:
    """
    A composite of 2-4 source pages.

    invert_colors records the setting at creation time and never changes.
    preview_image is for on-screen display only; export re-renders from the
    source pages instead.
    """

    id: PageId
    source_indices: Tuple[int, ...]
    preview_image: bytes = field(repr=False, compare=False)
    page_size: PageSize = PageSize.A4_PORTRAIT
    background_color: BackgroundColor = BackgroundColor.WHITE
    invert_colors: bool = False


LogicalPage = Union[OriginalPage, MergedPage]


def page_label(page: LogicalPage) -> str:
    """Short human readable description, using 1-based page numbers."""
    if isinstance(page, OriginalPage):
        return f"Page {page.source_index + 1}"
    if isinstance(page, MergedPage):
        return "Merged: " + ", ".join(str(i + 1) for i in page.source_indices)
    raise TypeError(f"Unknown page variant: {type(page).__name__}")


class PageModel:
    """
    State machine over the working document and the current selection.

    Every mutating operation is all-or-nothing: preconditions and the
    preview composite are evaluated before the document is touched.
    """

    def __init__(self, pages: Iterable[LogicalPage], compositor: Compositor = compose):
        """
        Args:
            pages: Initial page sequence (ids must be unique)
            compositor: Callable used to build merge previews
        """
        self._pages: List[LogicalPage] = list(pages)
        self._selected_ids: Set[PageId] = set()
        self._compositor = compositor

        ids = [page.id for page in self._pages]
        if len(ids) != len(set(ids)):
            raise ValueError("Page ids must be unique within a document")

    @classmethod
    def from_page_count(cls, page_count: int, compositor: Compositor = compose) -> "PageModel":
        """Create the initial all-Original document for a freshly loaded source."""
        return cls((OriginalPage(i) for i in range(page_count)), compositor)

    # ==================== Accessors ====================

    @property
    def pages(self) -> Tuple[LogicalPage, ...]:
        return tuple(self._pages)

    @property
    def selection(self) -> FrozenSet[PageId]:
        return frozenset(self._selected_ids)

    def __len__(self) -> int:
        return len(self._pages)

    def find(self, page_id: PageId) -> Optional[LogicalPage]:
        """Return the page with the given id, or None."""
        for page in self._pages:
            if page.id == page_id:
                return page
        return None

    def selected_pages(self) -> List[LogicalPage]:
        """Selected pages in document order (not selection order)."""
        return [page for page in self._pages if page.id in self._selected_ids]

    def selection_status(self) -> str:
        return f"{len(self._selected_ids)} of {len(self._pages)} pages selected"

    def can_delete(self) -> bool:
        return bool(self._selected_ids)

    def can_merge(self) -> bool:
        selected = self.selected_pages()
        return MIN_MERGE_PAGES <= len(selected) <= MAX_MERGE_PAGES and all(
            isinstance(page, OriginalPage) for page in selected
        )

    def can_demerge(self) -> bool:
        selected = self.selected_pages()
        return len(selected) == 1 and isinstance(selected[0], MergedPage)

    # ==================== Selection ====================

    def select(self, page_id: PageId):
        """Add a page to the selection. Unknown ids are ignored."""
        if self.find(page_id) is not None:
            self._selected_ids.add(page_id)

    def deselect(self, page_id: PageId):
        """Remove a page from the selection. Unknown ids are ignored."""
        self._selected_ids.discard(page_id)

    def toggle(self, page_id: PageId):
        """Flip selection membership of a page."""
        if page_id in self._selected_ids:
            self.deselect(page_id)
        else:
            self.select(page_id)

    def clear_selection(self):
        self._selected_ids.clear()

    # ==================== Editing ====================

    def delete(self) -> int:
        """
        Remove every selected page, keeping the order of the rest.

        Returns:
            Number of pages removed (0 when nothing is selected)
        """
        if not self._selected_ids:
            return 0

        remaining = [page for page in self._pages if page.id not in self._selected_ids]
        removed = len(self._pages) - len(remaining)
        self._pages = remaining
        self._selected_ids.clear()

        logger.info("Deleted %d page(s), %d remaining", removed, len(remaining))
        return removed

    def merge(self, config: MergeConfig, original_images: Sequence[ImageSource]) -> MergedPage:
        """
        Fold the selected Original pages into one MergedPage.

        The merged page takes the position of the first selected page and
        keeps the source indices in document order.

        Args:
            config: Page size, background and invert choice for the new page
            original_images: Cached image per source index

        Returns:
            The new MergedPage

        Raises:
            SelectionInvalid: Selection is not 2-4 Original pages
        """
        selected = self.selected_pages()

        if not MIN_MERGE_PAGES <= len(selected) <= MAX_MERGE_PAGES:
            raise SelectionInvalid(
                f"Please select {MIN_MERGE_PAGES} to {MAX_MERGE_PAGES} pages to merge."
            )
        if not all(isinstance(page, OriginalPage) for page in selected):
            raise SelectionInvalid(
                "Merging already merged pages is not supported. "
                "Please unselect merged pages."
            )

        source_indices = tuple(page.source_index for page in selected)
        preview = self._compositor(
            [original_images[i] for i in source_indices],
            config.page_size,
            config.background_color,
            config.invert_colors,
        )

        merged = MergedPage(
            id=new_merged_page_id(),
            source_indices=source_indices,
            preview_image=preview,
            page_size=config.page_size,
            background_color=config.background_color,
            invert_colors=config.invert_colors,
        )

        first_selected = selected[0].id
        new_pages: List[LogicalPage] = []
        for page in self._pages:
            if page.id == first_selected:
                new_pages.append(merged)
            elif page.id not in self._selected_ids:
                new_pages.append(page)

        self._pages = new_pages
        self._selected_ids.clear()

        logger.info("Merged source pages %s into %s", list(source_indices), merged.id)
        return merged

    def demerge(self) -> List[OriginalPage]:
        """
        Replace the single selected MergedPage with its Original pages.

        Returns:
            The restored Original pages, in stored order

        Raises:
            SelectionInvalid: Selection is not exactly one MergedPage
        """
        selected = self.selected_pages()
        if len(selected) != 1 or not isinstance(selected[0], MergedPage):
            raise SelectionInvalid("Please select exactly one merged page to demerge.")

        merged = selected[0]
        restored = [OriginalPage(i) for i in merged.source_indices]

        position = self._pages.index(merged)
        self._pages = self._pages[:position] + restored + self._pages[position + 1 :]
        self._selected_ids.clear()

        logger.info("Demerged %s into source pages %s", merged.id, list(merged.source_indices))
        return restored
