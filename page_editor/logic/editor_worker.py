# PDFPageEditor/page_editor/logic/editor_worker.py

import logging

from PyQt6.QtCore import QObject, pyqtSignal

from .editor_session import EditorSession
from .errors import PageEditorError

logger = logging.getLogger(__name__)


class EditorWorker(QObject):
    """
    A worker object to perform heavy PDF processing (loading or exporting)
    on a separate thread. Move it to a QThread and connect started -> run.
    """

    processing_finished = pyqtSignal(
        object
    )  # Emits the session (for load) or the PDF bytes (for export)
    processing_failed = pyqtSignal(str)  # Emits error message
    progress_updated = pyqtSignal(int, str)  # Emits percentage and message

    def __init__(
        self,
        session: EditorSession,
        source_bytes: bytes = None,
        file_name: str = "",
        export: bool = False,
    ):
        super().__init__()
        self.session = session

        # Parameters for Loading (Initial PDF Open)
        self.source_bytes = source_bytes
        self.file_name = file_name

        # Parameters for Exporting
        self.export = export

    def run(self):
        """
        Loads the PDF document OR exports the edited document.
        This method runs on the worker thread.
        """
        if self.source_bytes is not None and not self.export:
            self._run_load_pdf()
        elif self.export:
            self._run_export()
        else:
            self.processing_failed.emit(
                "Worker initialized with insufficient parameters."
            )

    def _run_load_pdf(self):
        """Render the page image cache for a new source document."""
        try:
            self.session.load(
                self.source_bytes,
                self.file_name,
                progress_callback=self.progress_updated.emit,
            )
            self.progress_updated.emit(100, "Processing complete.")
            self.processing_finished.emit(self.session)

        except PageEditorError as e:
            self.processing_failed.emit(str(e))
        except Exception as e:
            logger.exception("Unexpected error while loading PDF")
            self.processing_failed.emit(f"Error processing PDF: {e}")

    def _run_export(self):
        """Build the output document from the session's working pages."""
        try:
            data = self.session.export(progress_callback=self.progress_updated.emit)
            self.processing_finished.emit(data)

        except PageEditorError as e:
            self.processing_failed.emit(f"Failed to generate the PDF. {e}")
        except Exception as e:
            logger.exception("Unexpected error while exporting PDF")
            self.processing_failed.emit(f"Critical error during export: {e}")
