# PDFPageEditor/page_editor/logic/pdf_writer.py
"""
PDF writing primitives using pypdf.
Copies vector pages verbatim, wraps source pages in Form XObjects so they can
be placed anywhere on a new page, embeds JPEG images and draws filled
rectangles. All coordinates are PDF user space (origin bottom-left).
"""

import io
import logging
from dataclasses import dataclass, field
from typing import List, Tuple

from PIL import Image
from pypdf import PageObject, PdfReader, PdfWriter
from pypdf.errors import PyPdfError
from pypdf.generic import (
    ArrayObject,
    DecodedStreamObject,
    DictionaryObject,
    FloatObject,
    IndirectObject,
    NameObject,
    NumberObject,
)

from .errors import SourceUnreadable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageRef:
    """An image XObject added to the output document."""

    reference: IndirectObject
    width: int
    height: int


@dataclass(frozen=True)
class EmbeddedPage:
    """A source page wrapped in a Form XObject in the output document."""

    reference: IndirectObject
    width: float
    height: float


@dataclass
class OutputPage:
    """A page being assembled; content operators are flushed on serialize."""

    page: PageObject
    xobjects: DictionaryObject
    operations: List[str] = field(default_factory=list)

    def register(self, prefix: str, reference: IndirectObject) -> str:
        """Add an XObject to the page resources and return its name."""
        name = f"/{prefix}{len(self.xobjects)}"
        self.xobjects[NameObject(name)] = reference
        return name


@dataclass
class OutputDocument:
    writer: PdfWriter = field(default_factory=PdfWriter)
    pages: List[OutputPage] = field(default_factory=list)


def _num(value: float) -> str:
    """Format a number for a content stream (no exponent notation)."""
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return text if text not in ("", "-0") else "0"


def _rotation(page: PageObject) -> int:
    """The page's /Rotate value normalized to 0, 90, 180 or 270."""
    return int(page.rotation) % 360


def _display_matrix(
    rotation: int, left: float, bottom: float, right: float, top: float
) -> Tuple[float, ...]:
    """
    Matrix mapping a page box to its displayed orientation with the
    lower-left corner at the origin. /Rotate turns the page clockwise.
    """
    if rotation == 90:
        return (0, -1, 1, 0, -bottom, right)
    if rotation == 180:
        return (-1, 0, 0, -1, right, top)
    if rotation == 270:
        return (0, 1, -1, 0, top, -left)
    return (1, 0, 0, 1, -left, -bottom)


class PdfDocumentWriter:
    """
    Document writer used by the export pipeline.
    Stateless; all state lives in the PdfReader / OutputDocument handles.
    """

    def open_source(self, pdf_bytes: bytes) -> PdfReader:
        """
        Parse the source document.

        Raises:
            SourceUnreadable: If pypdf cannot read the document
        """
        try:
            reader = PdfReader(io.BytesIO(pdf_bytes))
            if len(reader.pages) == 0:
                raise SourceUnreadable("The PDF file has no pages.")
        except (PyPdfError, ValueError, KeyError, OSError) as e:
            raise SourceUnreadable(f"Could not open the source PDF: {e}") from e

        return reader

    def create_output(self) -> OutputDocument:
        return OutputDocument()

    def source_page_size(self, source: PdfReader, page_index: int) -> Tuple[float, float]:
        """
        (width, height) of a source page as displayed, in points.
        Uses the crop box and swaps the sides for quarter-turn rotations.
        """
        page = source.pages[page_index]
        box = page.cropbox
        width, height = float(box.width), float(box.height)
        if _rotation(page) % 180 == 90:
            width, height = height, width
        return width, height

    def copy_vector_page(self, output: OutputDocument, source: PdfReader, page_index: int):
        """Append a source page verbatim (vector passthrough)."""
        output.writer.add_page(source.pages[page_index])

    def add_page(self, output: OutputDocument, width: float, height: float) -> OutputPage:
        """Append a blank page and return a handle for drawing on it."""
        page = output.writer.add_blank_page(width=width, height=height)

        xobjects = DictionaryObject()
        resources = DictionaryObject()
        resources[NameObject("/XObject")] = xobjects
        page[NameObject("/Resources")] = resources

        handle = OutputPage(page=page, xobjects=xobjects)
        output.pages.append(handle)
        return handle

    def embed_image(self, output: OutputDocument, jpeg_bytes: bytes) -> ImageRef:
        """
        Add a JPEG as an image XObject. The data is stored as-is (DCTDecode),
        so it is not re-encoded.
        """
        with Image.open(io.BytesIO(jpeg_bytes)) as image:
            width, height = image.size

        stream = DecodedStreamObject()
        stream.set_data(jpeg_bytes)
        stream[NameObject("/Type")] = NameObject("/XObject")
        stream[NameObject("/Subtype")] = NameObject("/Image")
        stream[NameObject("/Width")] = NumberObject(width)
        stream[NameObject("/Height")] = NumberObject(height)
        stream[NameObject("/Filter")] = NameObject("/DCTDecode")
        stream[NameObject("/ColorSpace")] = NameObject("/DeviceRGB")
        stream[NameObject("/BitsPerComponent")] = NumberObject(8)

        return ImageRef(output.writer._add_object(stream), width, height)

    def embed_vector_page(
        self, output: OutputDocument, source: PdfReader, page_index: int
    ) -> EmbeddedPage:
        """
        Wrap a source page in a Form XObject.
        This isolates the page's content and resources from the output page.
        The form is clipped to the crop box and its /Matrix applies the page
        rotation, so it draws upright at (0, 0) with the displayed size.
        """
        source_page = source.pages[page_index]
        box = source_page.cropbox
        left, bottom = float(box.left), float(box.bottom)
        right, top = float(box.right), float(box.top)
        rotation = _rotation(source_page)

        contents = source_page.get_contents()
        data = contents.get_data() if contents is not None else b""

        form = DecodedStreamObject()
        form.set_data(data)
        form[NameObject("/Type")] = NameObject("/XObject")
        form[NameObject("/Subtype")] = NameObject("/Form")
        form[NameObject("/FormType")] = NumberObject(1)
        form[NameObject("/BBox")] = ArrayObject(
            [FloatObject(left), FloatObject(bottom), FloatObject(right), FloatObject(top)]
        )
        form[NameObject("/Matrix")] = ArrayObject(
            [FloatObject(v) for v in _display_matrix(rotation, left, bottom, right, top)]
        )

        # Resources are cloned so their indirect objects are owned by the output
        if "/Resources" in source_page:
            resources = source_page["/Resources"].get_object()
            form[NameObject("/Resources")] = resources.clone(output.writer)

        width, height = right - left, top - bottom
        if rotation % 180 == 90:
            width, height = height, width
        return EmbeddedPage(output.writer._add_object(form), width, height)

    def draw_rect(
        self,
        page: OutputPage,
        x: float,
        y: float,
        width: float,
        height: float,
        color: Tuple[float, float, float],
    ):
        """Fill a rectangle with an RGB colour (components 0-1)."""
        r, g, b = color
        page.operations.append(
            f"q {_num(r)} {_num(g)} {_num(b)} rg "
            f"{_num(x)} {_num(y)} {_num(width)} {_num(height)} re f Q"
        )

    def draw_image(
        self, page: OutputPage, image: ImageRef, x: float, y: float, width: float, height: float
    ):
        """Draw an embedded image stretched to the given rectangle."""
        name = page.register("Im", image.reference)
        page.operations.append(
            f"q {_num(width)} 0 0 {_num(height)} {_num(x)} {_num(y)} cm {name} Do Q"
        )

    def draw_embedded_page(
        self,
        page: OutputPage,
        embedded: EmbeddedPage,
        x: float,
        y: float,
        width: float,
        height: float,
    ):
        """Draw an embedded source page scaled into the given rectangle."""
        name = page.register("Fm", embedded.reference)
        sx = width / embedded.width
        sy = height / embedded.height

        # Clip to the target so content outside the crop box stays hidden
        page.operations.append(
            f"q {_num(x)} {_num(y)} {_num(width)} {_num(height)} re W n "
            f"{_num(sx)} 0 0 {_num(sy)} {_num(x)} {_num(y)} cm {name} Do Q"
        )

    def serialize(self, output: OutputDocument) -> bytes:
        """Flush pending drawing operations and write the document to bytes."""
        for handle in output.pages:
            if not handle.operations:
                continue
            content = DecodedStreamObject()
            content.set_data("\n".join(handle.operations).encode("ascii"))
            handle.page[NameObject("/Contents")] = output.writer._add_object(content)

        logger.debug("Serializing %d page(s)", len(output.writer.pages))
        buffer = io.BytesIO()
        output.writer.write(buffer)
        return buffer.getvalue()
