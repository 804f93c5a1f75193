"""
Tests for logic.editor_session

Test Coverage:
- load() / reset() lifecycle and the page image cache
- Current condition slot
- Merge preview, merge, demerge and delete pass-throughs
- End-to-end export
"""
import io

import pytest
from pypdf import PdfReader

from page_editor.logic.editor_session import EditorSession
from page_editor.logic.errors import SelectionInvalid, SourceUnreadable
from page_editor.logic.page_compositor import BackgroundColor
from page_editor.logic.page_model import MergeConfig, MergedPage, OriginalPage, original_page_id
from page_editor.logic.page_sizes import PageSize


@pytest.fixture
def session(sample_pdf_bytes):
    session = EditorSession()
    session.load(sample_pdf_bytes, "sample.pdf")
    return session


def _select(session, *source_indices):
    for index in source_indices:
        session.select(original_page_id(index))


def test_load_builds_cache_and_initial_document(session):
    assert session.is_loaded
    assert session.page_count == 5
    assert len(session.original_images) == 5
    assert session.pages == tuple(OriginalPage(i) for i in range(5))
    assert session.condition is None


def test_load_reports_progress(sample_pdf_bytes):
    updates = []
    EditorSession().load(sample_pdf_bytes, progress_callback=lambda p, m: updates.append(m))
    assert updates[0] == "Loading your PDF..."
    assert "Rendering page 5 of 5..." in updates


def test_load_rejects_non_pdf():
    session = EditorSession()
    with pytest.raises(SourceUnreadable):
        session.load(b"\x89PNG\r\n\x1a\n", "image.png")

    assert isinstance(session.condition, SourceUnreadable)
    assert not session.is_loaded


def test_failed_load_resets_previous_document(session):
    with pytest.raises(SourceUnreadable):
        session.load(b"%PDF-1.7 truncated", "broken.pdf")

    assert not session.is_loaded
    assert session.pages == ()
    assert session.file_name == ""


def test_reset_clears_everything(session):
    session.set_global_invert(True)
    session.reset()
    assert not session.is_loaded
    assert session.original_images == ()
    assert session.global_invert is False


def test_condition_slot_is_cleared_by_next_operation(session):
    _select(session, 0)
    with pytest.raises(SelectionInvalid):
        session.merge_selected()
    assert isinstance(session.condition, SelectionInvalid)

    session.delete_selected()
    assert session.condition is None


def test_merge_preview_does_not_mutate(session):
    _select(session, 0, 1)
    preview = session.preview_merge(MergeConfig(invert_colors=True))

    assert preview[:2] == b"\xff\xd8"
    assert session.pages == tuple(OriginalPage(i) for i in range(5))
    assert session.selection == {original_page_id(0), original_page_id(1)}


def test_merge_preview_requires_mergeable_selection(session):
    _select(session, 0)
    with pytest.raises(SelectionInvalid):
        session.preview_merge()


def test_merge_and_demerge_through_session(session):
    _select(session, 4, 2)
    merged = session.merge_selected(MergeConfig(PageSize.A4_LANDSCAPE, BackgroundColor.BLACK, False))

    assert isinstance(merged, MergedPage)
    assert merged.source_indices == (2, 4)
    assert session.page_image(merged) == merged.preview_image
    assert session.page_image(session.pages[0]) == session.original_images[0]

    session.select(merged.id)
    session.demerge_selected()
    assert [p.source_index for p in session.pages] == [0, 1, 2, 4, 3]


def test_operations_without_document_raise():
    session = EditorSession()
    with pytest.raises(SelectionInvalid):
        session.export()
    assert isinstance(session.condition, SelectionInvalid)

    with pytest.raises(SelectionInvalid):
        session.select(original_page_id(0))


def test_selection_change_clears_condition(session):
    _select(session, 0)
    with pytest.raises(SelectionInvalid):
        session.merge_selected()
    assert session.condition is not None

    session.select(original_page_id(1))
    assert session.condition is None

    with pytest.raises(SelectionInvalid):
        session.demerge_selected()
    session.clear_selection()
    assert session.condition is None


def test_export_refuses_empty_document(session):
    _select(session, *range(5))
    session.delete_selected()
    assert session.pages == ()

    with pytest.raises(SelectionInvalid, match="no pages to export"):
        session.export()
    assert isinstance(session.condition, SelectionInvalid)


def test_export_end_to_end(session):
    _select(session, 0, 1)
    session.merge_selected(MergeConfig(invert_colors=True))
    _select(session, 4)
    session.delete_selected()
    session.set_global_invert(True)

    reader = PdfReader(io.BytesIO(session.export()))

    # [Merged(0, 1), Orig(2), Orig(3)]
    assert len(reader.pages) == 3
    assert float(reader.pages[0].mediabox.width) == pytest.approx(595.28)
    assert float(reader.pages[1].mediabox.width) == pytest.approx(300)
    assert session.output_file_name() == "sample_modified.pdf"


def test_source_cache_is_unchanged_by_editing(session):
    before = session.original_images
    _select(session, 0, 1, 2)
    session.merge_selected(MergeConfig(invert_colors=True))
    session.set_global_invert(True)
    session.export()
    assert session.original_images == before
