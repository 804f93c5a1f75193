"""
Tests for logic.pdf_exporter

Test Coverage:
- Original pages: vector copy vs inverted raster
- Merged pages: XOR resolution between page and document invert
- Vector placement keeps reading order in PDF space
- Cached previews are never used at export time
- Failure handling (unreadable source, page failures, empty document) and progress
- Rotated source pages keep their displayed orientation
"""
import io
import re

import pytest
from PIL import Image
from pypdf import PdfReader

from page_editor.logic.errors import PageRenderFailed, SelectionInvalid, SourceUnreadable
from page_editor.logic.page_compositor import BackgroundColor
from page_editor.logic.page_model import MergedPage, OriginalPage
from page_editor.logic.page_sizes import PageSize
from page_editor.logic.pdf_exporter import PDFExporter, suggest_output_name
from page_editor.logic.pdf_renderer import PDFRenderer

from conftest import make_pdf

CM_PATTERN = re.compile(
    rb"re W n (-?[\d.]+) 0 0 (-?[\d.]+) (-?[\d.]+) (-?[\d.]+) cm /(Fm\d+) Do"
)


@pytest.fixture
def rendered_images(sample_pdf_bytes):
    with PDFRenderer(sample_pdf_bytes) as renderer:
        return renderer.render_pages()


def _merged(indices, invert, background=BackgroundColor.WHITE, preview=b"stale preview"):
    return MergedPage(
        id="merged-test",
        source_indices=tuple(indices),
        preview_image=preview,
        page_size=PageSize.A4_PORTRAIT,
        background_color=background,
        invert_colors=invert,
    )


def _export(pages, source, images, global_invert, **kwargs):
    data = PDFExporter.export_document(pages, source, images, global_invert, **kwargs)
    return PdfReader(io.BytesIO(data))


def _content(page) -> bytes:
    """Raw content stream bytes, as written."""
    return page["/Contents"].get_object().get_data()


def _xobject_subtypes(page):
    resources = page.get("/Resources")
    if resources is None:
        return []
    xobjects = resources.get_object().get("/XObject")
    if xobjects is None:
        return []
    return sorted(str(ref.get_object()["/Subtype"]) for ref in xobjects.get_object().values())


def test_original_pages_are_copied_as_vectors(sample_pdf_bytes, rendered_images):
    pages = [OriginalPage(i) for i in (4, 0, 2)]
    reader = _export(pages, sample_pdf_bytes, rendered_images, False)

    assert len(reader.pages) == 3
    for out_page, source_index in zip(reader.pages, (4, 0, 2)):
        assert _xobject_subtypes(out_page) == []
        assert f"Source page {source_index + 1}" in out_page.extract_text()
        assert float(out_page.mediabox.width) == pytest.approx(300)


def test_original_pages_become_inverted_rasters_with_global_invert(sample_pdf_bytes, rendered_images):
    reader = _export([OriginalPage(1)], sample_pdf_bytes, rendered_images, True)
    out_page = reader.pages[0]

    assert _xobject_subtypes(out_page) == ["/Image"]
    assert float(out_page.mediabox.width) == pytest.approx(300)
    assert float(out_page.mediabox.height) == pytest.approx(400)
    assert "Source page" not in out_page.extract_text()

    # White page corner becomes black
    image = out_page.images[0].image.convert("RGB")
    assert max(image.getpixel((2, 2))) < 40


def test_merged_page_without_effective_invert_embeds_vector_pages(sample_pdf_bytes, rendered_images):
    reader = _export([_merged([0, 1, 2], False)], sample_pdf_bytes, rendered_images, False)
    out_page = reader.pages[0]

    assert _xobject_subtypes(out_page) == ["/Form", "/Form", "/Form"]
    assert float(out_page.mediabox.width) == pytest.approx(595.28)
    assert float(out_page.mediabox.height) == pytest.approx(841.89)


def test_vector_placement_puts_first_page_on_top(sample_pdf_bytes, rendered_images):
    reader = _export([_merged([3, 1], False)], sample_pdf_bytes, rendered_images, False)
    content = _content(reader.pages[0])

    placements = CM_PATTERN.findall(content)
    assert [name for *_, name in placements] == [b"Fm0", b"Fm1"]
    first_ty, second_ty = float(placements[0][3]), float(placements[1][3])
    assert first_ty > second_ty


def test_background_rect_is_drawn_first(sample_pdf_bytes, rendered_images):
    reader = _export(
        [_merged([0, 1], False, background=BackgroundColor.BLACK)],
        sample_pdf_bytes,
        rendered_images,
        False,
    )
    content = _content(reader.pages[0])
    assert content.startswith(b"q 0 0 0 rg 0 0 595.28 841.89 re f Q")


def test_page_invert_xor_global_invert_cancels_to_vector_path(sample_pdf_bytes, rendered_images):
    both_on = _export([_merged([0, 2], True)], sample_pdf_bytes, rendered_images, True)
    both_off = _export([_merged([0, 2], False)], sample_pdf_bytes, rendered_images, False)

    assert _xobject_subtypes(both_on.pages[0]) == ["/Form", "/Form"]
    assert _content(both_on.pages[0]) == _content(both_off.pages[0])


@pytest.mark.parametrize("page_invert,global_invert", [(True, False), (False, True)])
def test_effective_invert_builds_single_raster(sample_pdf_bytes, rendered_images, page_invert, global_invert):
    reader = _export([_merged([0, 1], page_invert)], sample_pdf_bytes, rendered_images, global_invert)
    out_page = reader.pages[0]

    assert _xobject_subtypes(out_page) == ["/Image"]
    image = out_page.images[0].image.convert("RGB")
    assert image.size == (int(595.28 * 1.5), int(841.89 * 1.5))
    # White background inverted exactly once
    assert max(image.getpixel((3, 3))) < 40


def test_cached_preview_is_never_reused(sample_pdf_bytes, rendered_images):
    pages = [_merged([0, 1], True, preview=b"not an image at all")]
    # Raster path rebuilds from the page cache, so the broken preview is irrelevant
    reader = _export(pages, sample_pdf_bytes, rendered_images, False)
    assert _xobject_subtypes(reader.pages[0]) == ["/Image"]


def test_mixed_document_keeps_order(sample_pdf_bytes, rendered_images):
    pages = [OriginalPage(4), _merged([0, 1], False), OriginalPage(2)]
    reader = _export(pages, sample_pdf_bytes, rendered_images, False)

    assert len(reader.pages) == 3
    assert "Source page 5" in reader.pages[0].extract_text()
    assert float(reader.pages[1].mediabox.width) == pytest.approx(595.28)
    assert "Source page 3" in reader.pages[2].extract_text()


def test_unreadable_source_aborts(rendered_images):
    with pytest.raises(SourceUnreadable):
        PDFExporter.export_document([OriginalPage(0)], b"%PDF-garbage", rendered_images, False)


def test_page_failure_names_position(sample_pdf_bytes, rendered_images):
    images = list(rendered_images)
    images[2] = b"corrupt"
    pages = [OriginalPage(0), OriginalPage(1), OriginalPage(2)]

    with pytest.raises(PageRenderFailed) as excinfo:
        PDFExporter.export_document(pages, sample_pdf_bytes, images, True)

    assert excinfo.value.position == 3
    assert str(excinfo.value).startswith("Page 3:")


def test_progress_is_reported_per_page(sample_pdf_bytes, rendered_images):
    updates = []
    PDFExporter.export_document(
        [OriginalPage(0), OriginalPage(1)],
        sample_pdf_bytes,
        rendered_images,
        False,
        progress_callback=lambda percent, message: updates.append((percent, message)),
    )

    messages = [message for _, message in updates]
    assert "Processing page 1 of 2..." in messages
    assert "Processing page 2 of 2..." in messages
    assert updates[-1][0] == 100
    percents = [percent for percent, _ in updates]
    assert percents == sorted(percents)


def test_landscape_source_pages_keep_their_size():
    source = make_pdf(2, width=500, height=250)
    with PDFRenderer(source) as renderer:
        images = renderer.render_pages()

    reader = _export([OriginalPage(0), OriginalPage(1)], source, images, True)
    assert float(reader.pages[1].mediabox.width) == pytest.approx(500)
    assert float(reader.pages[1].mediabox.height) == pytest.approx(250)


@pytest.mark.parametrize(
    "source_name,expected",
    [
        ("report.pdf", "report_modified.pdf"),
        ("REPORT.PDF", "REPORT_modified.pdf"),
        ("/tmp/scans/notes.pdf", "notes_modified.pdf"),
        ("", "document_modified.pdf"),
    ],
)
def test_suggest_output_name(source_name, expected):
    assert suggest_output_name(source_name) == expected


def test_empty_document_is_refused(sample_pdf_bytes, rendered_images):
    with pytest.raises(SelectionInvalid):
        PDFExporter.export_document([], sample_pdf_bytes, rendered_images, False)


@pytest.fixture
def rotated_source():
    """Two 300x600 pages with /Rotate 90, displayed as 600x300."""
    source = make_pdf(2, width=300, height=600, rotation=90)
    with PDFRenderer(source) as renderer:
        images = renderer.render_pages()
    return source, images


def test_rotated_page_raster_keeps_displayed_orientation(rotated_source):
    source, images = rotated_source
    assert Image.open(io.BytesIO(images[0])).size == (900, 450)

    out_page = _export([OriginalPage(0)], source, images, True).pages[0]

    assert float(out_page.mediabox.width) == pytest.approx(600)
    assert float(out_page.mediabox.height) == pytest.approx(300)
    assert "/Rotate" not in out_page
    assert b"600 0 0 300 0 0 cm" in _content(out_page)


def test_rotated_page_vector_copy_keeps_rotate(rotated_source):
    source, images = rotated_source
    out_page = _export([OriginalPage(1)], source, images, False).pages[0]
    assert out_page.rotation == 90


def test_rotated_pages_are_placed_upright_in_vector_merge(rotated_source):
    source, images = rotated_source
    out_page = _export([_merged([0, 1], False)], source, images, False).pages[0]

    xobjects = out_page["/Resources"]["/XObject"]
    form = xobjects["/Fm0"].get_object()
    assert [float(v) for v in form["/Matrix"]] == [0, -1, 1, 0, 0, 300]
    assert [float(v) for v in form["/BBox"]] == [0, 0, 300, 600]

    # Displayed 600x300 fitted into a 565.28 wide cell
    sx, sy, _, _, _ = CM_PATTERN.findall(_content(out_page))[0]
    assert float(sx) == pytest.approx(565.28 / 600, rel=1e-3)
    assert float(sy) == pytest.approx(float(sx))
