# PDFPageEditor/page_editor/logic/editor_settings.py
"""
Persisted editor preferences stored with QSettings.
"""

from typing import Optional

from PyQt6.QtCore import QSettings

from .page_compositor import COMPOSITE_QUALITY, SUPERSAMPLE_SCALE, BackgroundColor
from .page_model import MergeConfig
from .page_sizes import PageSize
from .pdf_renderer import DEFAULT_RENDER_SCALE, DEFAULT_THUMBNAIL_QUALITY


class EditorSettings:
    """Typed access to the editor's QSettings keys."""

    ORGANIZATION = "PDFPageEditor"
    APPLICATION = "PDFPageEditor"

    def __init__(self, settings: Optional[QSettings] = None):
        """
        Args:
            settings: QSettings to use; defaults to the per-user store
        """
        self.settings = settings if settings is not None else QSettings(
            self.ORGANIZATION, self.APPLICATION
        )

    # ==================== Merge defaults ====================

    def default_merge_config(self) -> MergeConfig:
        """Merge configuration last confirmed by the user."""
        page_size = self.settings.value(
            "merge/page_size", PageSize.A4_PORTRAIT.value, type=str
        )
        background = self.settings.value(
            "merge/background_color", BackgroundColor.WHITE.value, type=str
        )
        invert = self.settings.value("merge/invert_colors", False, type=bool)

        try:
            page_size = PageSize(page_size)
        except ValueError:
            page_size = PageSize.A4_PORTRAIT
        try:
            background = BackgroundColor(background)
        except ValueError:
            background = BackgroundColor.WHITE

        return MergeConfig(page_size, background, invert)

    def save_merge_config(self, config: MergeConfig):
        self.settings.setValue("merge/page_size", config.page_size.value)
        self.settings.setValue("merge/background_color", config.background_color.value)
        self.settings.setValue("merge/invert_colors", config.invert_colors)

    # ==================== Rendering ====================

    @property
    def render_scale(self) -> float:
        """Zoom factor for the cached page images."""
        return self.settings.value("render/scale", DEFAULT_RENDER_SCALE, type=float)

    @property
    def thumbnail_quality(self) -> int:
        return self.settings.value(
            "render/thumbnail_quality", DEFAULT_THUMBNAIL_QUALITY, type=int
        )

    @property
    def composite_scale(self) -> float:
        return self.settings.value("render/composite_scale", SUPERSAMPLE_SCALE, type=float)

    @property
    def composite_quality(self) -> int:
        return self.settings.value("render/composite_quality", COMPOSITE_QUALITY, type=int)

    # ==================== Export ====================

    @property
    def global_invert(self) -> bool:
        return self.settings.value("export/global_invert", False, type=bool)

    @global_invert.setter
    def global_invert(self, value: bool):
        self.settings.setValue("export/global_invert", bool(value))

    @property
    def last_dir(self) -> str:
        return self.settings.value("last_dir", "", type=str)

    @last_dir.setter
    def last_dir(self, value: str):
        self.settings.setValue("last_dir", value)

    def sync(self):
        """Write pending changes to permanent storage."""
        self.settings.sync()
