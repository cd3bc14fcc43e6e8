"""
I/O utilities for the layout reconstruction engine.

Handles:
- Input-contract JSON loading into Page objects
- PDF reading (glyph runs, image placements, annotations) via PyMuPDF
- Page rasterization for image-only reconstruction via pdf2image
- JSON serialization
- Directory management
"""

import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union
from dataclasses import asdict

import numpy as np

from .page import (
    Annotation,
    DrawingInstruction,
    GlyphRun,
    ImageSample,
    Opcode,
    Page,
    PageReadError,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Input Contract
# ============================================================================

def pages_from_dicts(records: Sequence[Dict[str, Any]]) -> List[Optional[Page]]:
    """
    Build pages from input-contract records.

    An unreadable record yields None in its slot so the assembler can report
    it as a failed page without shifting the numbering of later pages.
    """
    pages: List[Optional[Page]] = []
    for index, record in enumerate(records, 1):
        try:
            pages.append(Page.from_dict(record))
        except PageReadError as e:
            logger.error(f"Page record {index} unreadable: {e}")
            pages.append(None)
    return pages


def load_pages_json(json_path: Union[str, Path]) -> List[Optional[Page]]:
    """
    Load pages from an input-contract JSON file.

    The file holds either a list of page records or an object with a
    ``pages`` list.
    """
    data = load_json(json_path)
    if isinstance(data, dict):
        data = data.get("pages", [])
    if not isinstance(data, list):
        raise ValueError(f"Expected a list of pages in {json_path}")
    return pages_from_dicts(data)


# ============================================================================
# PDF Reading
# ============================================================================

def _pixmap_sample(doc: Any, xref: int) -> ImageSample:
    import fitz

    pix = fitz.Pixmap(doc, xref)
    # Gray, RGB and RGBA pass through; CMYK, gray+alpha and indexed go to RGB
    if pix.n - pix.alpha not in (1, 3) or pix.n == 2:
        pix = fitz.Pixmap(fitz.csRGB, pix)
    return ImageSample(width=pix.width, height=pix.height, data=bytes(pix.samples))


def _read_pdf_page(doc: Any, number: int) -> Page:
    page = doc[number - 1]
    width, height = page.rect.width, page.rect.height

    runs = []
    for block in page.get_text("dict")["blocks"]:
        if block.get("type") != 0:
            continue
        for line in block["lines"]:
            for span in line["spans"]:
                x, y = span["origin"]
                size = span["size"]
                x0, _, x1, _ = span["bbox"]
                runs.append(GlyphRun(
                    text=span["text"],
                    font_size=size,
                    transform=(size, 0.0, 0.0, size, x, height - y),
                    width=x1 - x0,
                ))

    instructions: List[DrawingInstruction] = []
    resources: Dict[str, ImageSample] = {}
    for info in page.get_images(full=True):
        xref = info[0]
        name = info[7] or f"xref{xref}"
        try:
            resources[name] = _pixmap_sample(doc, xref)
        except Exception as e:
            logger.warning(f"Page {number}: cannot decode image {name}: {e}")
            continue
        for rect in page.get_image_rects(xref):
            instructions.extend([
                DrawingInstruction(Opcode.SAVE.value),
                DrawingInstruction(Opcode.TRANSFORM.value, (
                    rect.width, 0.0, 0.0, rect.height, rect.x0, height - rect.y1
                )),
                DrawingInstruction(Opcode.PAINT_IMAGE.value, (name,)),
                DrawingInstruction(Opcode.RESTORE.value),
            ])

    annotations = []
    for annot in page.annots() or []:
        info = annot.info
        r = annot.rect
        annotations.append(Annotation(
            subtype=annot.type[1],
            contents=info.get("content", ""),
            rect=(r.x0, height - r.y1, r.x1, height - r.y0),
            author=info.get("title") or None,
        ))

    return Page(
        page_number=number,
        width=width,
        height=height,
        glyph_runs=runs,
        instructions=instructions,
        annotations=annotations,
        image_resources=resources,
    )


def load_pdf_pages(
    pdf_path: Union[str, Path],
    page_numbers: Optional[Sequence[int]] = None
) -> List[Optional[Page]]:
    """
    Read a PDF into pages using PyMuPDF.

    Text spans become glyph runs, image placements become
    save/transform/paint/restore instruction groups and Text/FreeText
    annotations are carried along. Coordinates are converted to PDF user
    space (bottom-left origin).

    Args:
        pdf_path: Path to the PDF file
        page_numbers: 1-indexed pages to read (None = all)

    Returns:
        Pages in the requested order; None for pages that failed to read

    Raises:
        FileNotFoundError: If the PDF file doesn't exist
        RuntimeError: If the PDF cannot be opened
    """
    pdf_path = Path(pdf_path)
    if not pdf_path.exists():
        raise FileNotFoundError(f"PDF file not found: {pdf_path}")

    import fitz

    try:
        doc = fitz.open(str(pdf_path))
    except Exception as e:
        raise RuntimeError(f"Failed to open PDF: {e}")

    pages: List[Optional[Page]] = []
    with doc:
        numbers = page_numbers or range(1, doc.page_count + 1)
        logger.info(f"Reading {len(numbers)} page(s) from {pdf_path}")
        for number in numbers:
            try:
                pages.append(_read_pdf_page(doc, number))
            except Exception as e:
                logger.error(f"Failed to read page {number}: {e}")
                pages.append(None)
    return pages


def get_pdf_page_count(pdf_path: Union[str, Path]) -> int:
    """Get the number of pages in a PDF file."""
    import fitz

    try:
        with fitz.open(str(pdf_path)) as doc:
            return doc.page_count
    except Exception as e:
        logger.warning(f"Could not get PDF page count: {e}")
        return 0


def rasterize_pdf_pages(
    pdf_path: Union[str, Path],
    dpi: int = 150,
    page_numbers: Optional[Sequence[int]] = None
) -> Iterator[Optional[Page]]:
    """
    Render PDF pages with pdf2image (poppler backend) as full-page images.

    Each page becomes one inline image painted over the whole page, for
    image-only reconstruction. Pages are rendered one at a time so only one
    raster is alive while the consumer works on it.

    Args:
        pdf_path: Path to the PDF file
        dpi: Render resolution
        page_numbers: 1-indexed pages to render (None = all)

    Yields:
        One Page per rendered page (None if rendering failed)

    Raises:
        FileNotFoundError: If the PDF file doesn't exist
        ImportError: If pdf2image is not installed
    """
    pdf_path = Path(pdf_path)
    if not pdf_path.exists():
        raise FileNotFoundError(f"PDF file not found: {pdf_path}")

    try:
        from pdf2image import convert_from_path
    except ImportError:
        raise ImportError(
            "pdf2image is required. Install with: pip install pdf2image\n"
            "Also ensure poppler is installed on your system."
        )

    numbers = page_numbers or range(1, get_pdf_page_count(pdf_path) + 1)
    for number in numbers:
        try:
            pil_images = convert_from_path(
                pdf_path, dpi=dpi, first_page=number, last_page=number, fmt='png'
            )
        except Exception as e:
            logger.error(f"Failed to render page {number}: {e}")
            yield None
            continue

        pixels = np.array(pil_images[0].convert("RGB"))
        h, w = pixels.shape[:2]
        width_pt, height_pt = w * 72.0 / dpi, h * 72.0 / dpi
        sample = ImageSample(width=w, height=h, data=pixels.tobytes())
        yield Page(
            page_number=number,
            width=width_pt,
            height=height_pt,
            instructions=[
                DrawingInstruction(Opcode.SAVE.value),
                DrawingInstruction(Opcode.TRANSFORM.value, (width_pt, 0.0, 0.0, height_pt, 0.0, 0.0)),
                DrawingInstruction(Opcode.PAINT_INLINE_IMAGE.value, (sample,)),
                DrawingInstruction(Opcode.RESTORE.value),
            ],
        )


# ============================================================================
# JSON Serialization
# ============================================================================

class EnhancedJSONEncoder(json.JSONEncoder):
    """JSON encoder that handles numpy values, enums and dataclasses."""

    def default(self, obj):
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.integer):
            return int(obj)
        if isinstance(obj, np.floating):
            return float(obj)
        if isinstance(obj, Enum):
            return obj.value
        if hasattr(obj, '__dataclass_fields__'):
            return asdict(obj)
        if isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


def save_json(
    data: Any,
    output_path: Union[str, Path],
    indent: int = 2,
    ensure_ascii: bool = False
) -> Path:
    """
    Save data to a JSON file.

    Args:
        data: Data to serialize (dict, list, dataclass, etc.)
        output_path: Path to save the JSON file
        indent: Indentation level for pretty printing
        ensure_ascii: If True, escape non-ASCII characters

    Returns:
        Path to the saved file
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        json.dump(data, f, indent=indent, ensure_ascii=ensure_ascii, cls=EnhancedJSONEncoder)

    logger.debug(f"Saved JSON: {output_path}")
    return output_path


def load_json(json_path: Union[str, Path]) -> Any:
    """Load data from a JSON file."""
    json_path = Path(json_path)
    if not json_path.exists():
        raise FileNotFoundError(f"JSON file not found: {json_path}")

    with open(json_path, 'r', encoding='utf-8') as f:
        return json.load(f)


# ============================================================================
# Directory Management
# ============================================================================

def ensure_dir(path: Union[str, Path]) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path = Path(path)
    path.mkdir(parents=True, exist_ok=True)
    return path


# ============================================================================
# File Type Detection
# ============================================================================

def detect_input_type(input_path: Union[str, Path]) -> str:
    """
    Detect the type of input file.

    Returns:
        One of: 'pdf', 'json', 'unknown'
    """
    input_path = Path(input_path)
    if not input_path.is_file():
        return 'unknown'

    suffix = input_path.suffix.lower()
    if suffix == '.pdf':
        return 'pdf'
    if suffix == '.json':
        return 'json'
    return 'unknown'
