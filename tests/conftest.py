import io
import os
import sys
from pathlib import Path

# Run Qt headless when no display is available
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import fitz
import pytest
from PIL import Image

# Make page_editor importable without installing the project
ROOT_PATH = Path(__file__).resolve().parent.parent
if ROOT_PATH.as_posix() not in sys.path:
    sys.path.insert(0, ROOT_PATH.as_posix())


def make_pdf(page_count: int, width: float = 300, height: float = 400, rotation: int = 0) -> bytes:
    """Build a small vector PDF with a label and a filled box on every page."""
    doc = fitz.open()
    for i in range(page_count):
        page = doc.new_page(width=width, height=height)
        page.insert_text((30, 50), f"Source page {i + 1}", fontsize=18)
        page.draw_rect(fitz.Rect(30, 80, width - 30, height - 30), color=(0, 0, 1), fill=(0.2, 0.6, 0.2))
        if rotation:
            page.set_rotation(rotation)
    data = doc.tobytes()
    doc.close()
    return data


def solid_jpeg(color, size=(120, 160)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="JPEG", quality=95)
    return buffer.getvalue()


@pytest.fixture
def sample_pdf_bytes():
    """Five-page source document."""
    return make_pdf(5)


@pytest.fixture
def original_images():
    """Cached page images for a five-page document, one colour per page."""
    colors = ["red", "green", "blue", "yellow", "purple"]
    return tuple(solid_jpeg(color) for color in colors)


@pytest.fixture
def fake_compositor():
    """Records compositor calls and returns a marker preview."""
    calls = []

    def compositor(images, page_size, background_color, invert):
        calls.append((list(images), page_size, background_color, invert))
        return b"preview"

    compositor.calls = calls
    return compositor
