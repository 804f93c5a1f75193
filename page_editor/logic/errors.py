# PDFPageEditor/page_editor/logic/errors.py
"""
Conditions raised by the page editor core.
Every operator-facing failure derives from PageEditorError so callers can
surface it through a single condition slot.
"""

from typing import Optional


class PageEditorError(Exception):
    """Base class for conditions reported to the operator."""


class SourceUnreadable(PageEditorError):
    """The source document cannot be parsed or rendered."""


class SelectionInvalid(PageEditorError):
    """The current selection does not satisfy an operation's precondition."""


class PageRenderFailed(PageEditorError):
    """
    Rendering or embedding of a specific page failed.

    Args:
        position: 1-based position of the page in the working document,
            or None when the failure happened outside a page walk
        detail: Human readable reason
    """

    def __init__(self, position: Optional[int], detail: str):
        self.position = position
        self.detail = detail
        if position is None:
            super().__init__(detail)
        else:
            super().__init__(f"Page {position}: {detail}")


class CompositorPrecondition(AssertionError):
    """The compositor was called with an image count outside 2-4."""
