"""
Document assembler module for layout reconstruction.

Provides:
- Output data model (PageElement, PageBreak, Comment, DocumentModel)
- Page element composition (Y-ordered paragraphs and images)
- Pipeline orchestration over all pages
- Document statistics
"""

import itertools
import logging
import time
from pathlib import Path
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Dict, Any, Iterable, Sequence, Tuple, Union

from .annotations import match_annotations
from .classify import classify_paragraph
from .fonts import FontSizeHistogram, build_font_histogram
from .images import ImageElement, extract_images
from .layout import ListKind, Paragraph, assemble_paragraphs
from .page import Annotation, Page, PageReadError

logger = logging.getLogger(__name__)


# ============================================================================
# Data Classes
# ============================================================================

class ElementKind(Enum):
    """Kinds of page elements."""
    PARAGRAPH = "paragraph"
    IMAGE = "image"


@dataclass
class PageElement:
    """A paragraph or an image with its normalized vertical position."""
    kind: ElementKind
    y_position: float
    page_number: int
    paragraph: Optional[Paragraph] = None
    image: Optional[ImageElement] = None

    @classmethod
    def from_paragraph(cls, paragraph: Paragraph, page_number: int) -> 'PageElement':
        return cls(ElementKind.PARAGRAPH, paragraph.y_normalized, page_number, paragraph=paragraph)

    @classmethod
    def from_image(cls, image: ImageElement, page_number: int) -> 'PageElement':
        return cls(ElementKind.IMAGE, image.y_normalized, page_number, image=image)

    def to_dict(self, include_pixels: bool = False) -> Dict[str, Any]:
        result: Dict[str, Any] = {"type": self.kind.value, "page": self.page_number}
        if self.paragraph is not None:
            result.update(self.paragraph.to_dict())
        if self.image is not None:
            result.update(self.image.to_dict(include_pixels=include_pixels))
        return result


@dataclass
class PageBreak:
    """Explicit break between two consecutive pages."""
    after_page: int

    def to_dict(self, include_pixels: bool = False) -> Dict[str, Any]:
        return {"type": "pageBreak", "afterPage": self.after_page}


@dataclass
class Comment:
    """A matched annotation, referenced from its paragraph by id."""
    comment_id: int
    author: str
    text: str
    page_number: int

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.comment_id, "author": self.author, "text": self.text}


@dataclass
class PageResult:
    """Outcome of processing one page."""
    page_number: int
    status: str = "success"
    elements: List[PageElement] = field(default_factory=list)
    bindings: List[Tuple[Annotation, Paragraph]] = field(default_factory=list)
    num_columns: int = 1
    error: Optional[str] = None

    @property
    def paragraphs(self) -> List[Paragraph]:
        return [e.paragraph for e in self.elements if e.paragraph is not None]

    @property
    def images(self) -> List[ImageElement]:
        return [e.image for e in self.elements if e.image is not None]

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "page_number": self.page_number,
            "status": self.status,
            "paragraphs": len(self.paragraphs),
            "images": len(self.images),
            "num_columns": self.num_columns,
        }
        if self.error:
            result["error"] = self.error
        return result


@dataclass
class DocumentStats:
    """Counts describing a reconstructed document."""
    pages_processed: int = 0
    pages_failed: int = 0
    paragraphs_total: int = 0
    headings: Dict[int, int] = field(default_factory=lambda: {1: 0, 2: 0, 3: 0})
    list_items: int = 0
    images_total: int = 0
    comments_total: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pages_processed": self.pages_processed,
            "pages_failed": self.pages_failed,
            "paragraphs": self.paragraphs_total,
            "headings": {f"h{level}": count for level, count in self.headings.items()},
            "list_items": self.list_items,
            "images": self.images_total,
            "comments": self.comments_total,
        }


@dataclass
class DocumentModel:
    """Complete reconstructed document: ordered elements plus comments."""
    elements: List[Union[PageElement, PageBreak]] = field(default_factory=list)
    comments: List[Comment] = field(default_factory=list)
    pages: List[PageResult] = field(default_factory=list)
    histogram: Optional[FontSizeHistogram] = None
    source_file: str = ""
    stats: DocumentStats = field(default_factory=DocumentStats)

    @property
    def page_breaks(self) -> List[PageBreak]:
        return [e for e in self.elements if isinstance(e, PageBreak)]

    @property
    def paragraphs(self) -> List[Paragraph]:
        return [e.paragraph for e in self.elements
                if isinstance(e, PageElement) and e.paragraph is not None]

    @property
    def images(self) -> List[ImageElement]:
        return [e.image for e in self.elements
                if isinstance(e, PageElement) and e.image is not None]

    def to_dict(self, include_pixels: bool = False) -> Dict[str, Any]:
        return {
            "source_file": self.source_file,
            "elements": [e.to_dict(include_pixels=include_pixels) for e in self.elements],
            "comments": [c.to_dict() for c in self.comments],
            "pages": [p.to_dict() for p in self.pages],
            "fonts": self.histogram.to_dict() if self.histogram else None,
            "stats": self.stats.to_dict(),
        }


# ============================================================================
# Composition
# ============================================================================

def compose_page(
    paragraphs: Sequence[Paragraph],
    images: Sequence[ImageElement],
    page_number: int
) -> List[PageElement]:
    """
    Interleave a page's paragraphs and images by normalized Y.

    The sort is stable: paragraphs keep their column-major order among equal
    positions and precede images at the same position. An image can land
    between paragraphs of different columns.
    """
    elements = [PageElement.from_paragraph(p, page_number) for p in paragraphs]
    elements.extend(PageElement.from_image(i, page_number) for i in images)
    return sorted(elements, key=lambda e: e.y_position)


def compose_document(
    page_elements: Sequence[Sequence[PageElement]],
    page_numbers: Optional[Sequence[int]] = None
) -> List[Union[PageElement, PageBreak]]:
    """Concatenate per-page element lists with a break between pages."""
    if page_numbers is None:
        page_numbers = list(range(1, len(page_elements) + 1))

    elements: List[Union[PageElement, PageBreak]] = []
    for index, page in enumerate(page_elements):
        if index > 0:
            elements.append(PageBreak(after_page=page_numbers[index - 1]))
        elements.extend(page)
    return elements


# ============================================================================
# Document Assembler
# ============================================================================

class DocumentAssembler:
    """
    Orchestrates the reconstruction pipeline.

    Coordinates:
    - Font histogram pre-pass over the whole document
    - Column detection and line/paragraph assembly
    - Paragraph classification
    - Image extraction
    - Annotation matching
    - Composition of pages into one document
    """

    def __init__(
        self,
        config: Any = None,
        output_dir: Optional[Union[str, Path]] = None
    ):
        if config is None:
            from ..config import get_config
            config = get_config()
        self.config = config
        self.output_dir = Path(output_dir) if output_dir else None

    @property
    def text_enabled(self) -> bool:
        return not self.config.image_only

    @property
    def headings_enabled(self) -> bool:
        return self.text_enabled and self.config.smart_headings

    def build_histogram(self, pages: Sequence[Optional[Page]]) -> Optional[FontSizeHistogram]:
        """Run the document-wide font pass, or None when headings are off."""
        if not self.headings_enabled:
            return None
        hc = self.config.histogram
        return build_font_histogram(
            pages,
            bucket=hc.bucket,
            heading_frequency_limit=hc.heading_frequency_limit,
            max_heading_levels=hc.max_heading_levels
        )

    def process_page(
        self,
        page: Optional[Page],
        histogram: Optional[FontSizeHistogram] = None,
        page_number: Optional[int] = None
    ) -> PageResult:
        """
        Process a single page.

        Args:
            page: Source page (None when the page could not be read)
            histogram: Document font histogram from build_histogram
            page_number: Number to report when the page is missing

        Returns:
            PageResult with Y-ordered elements

        Raises:
            PageReadError: If the page is missing or unusable
        """
        start_time = time.time()

        if page is None:
            raise PageReadError(f"Page {page_number} is missing")
        page.validate()

        paragraphs: List[Paragraph] = []
        if self.text_enabled:
            paragraphs = assemble_paragraphs(page, self.config)
            for paragraph in paragraphs:
                classify_paragraph(paragraph, page.width, histogram, self.config.classifier)

        images: List[ImageElement] = []
        if self.config.extract_images or self.config.image_only:
            images = extract_images(page, self.config.images)

        bindings = []
        if self.config.extract_comments and paragraphs:
            ac = self.config.annotations
            bindings = match_annotations(
                paragraphs,
                page.annotations,
                page.height,
                y_window=ac.y_window,
                subtypes=ac.subtypes
            )

        # Save debug image if enabled
        if self.config.debug_mode:
            self._save_debug_image(page, paragraphs, images)

        result = PageResult(
            page_number=page.page_number,
            elements=compose_page(paragraphs, images, page.page_number),
            bindings=bindings,
            num_columns=1 + max((p.column_index for p in paragraphs), default=0),
        )

        elapsed = time.time() - start_time
        logger.info(
            f"Page {page.page_number}: {len(paragraphs)} paragraphs, {len(images)} images, "
            f"{len(bindings)} comments in {elapsed:.2f}s"
        )
        return result

    def process_document(
        self,
        pages: Iterable[Optional[Page]],
        source_file: str = "",
        page_numbers: Optional[Sequence[int]] = None
    ) -> DocumentModel:
        """
        Process a complete document.

        Pages are handled in order; a page that fails to read is recorded as
        failed and contributes no elements (unless fail_fast is set).

        Args:
            pages: Source pages in page order (None for unreadable pages)
            source_file: Original source file path
            page_numbers: Source page number of each slot, used to label
                unreadable pages (defaults to the slot position)

        Returns:
            DocumentModel owned by the caller
        """
        start_time = time.time()

        if self.config.max_pages is not None:
            pages = itertools.islice(pages, self.config.max_pages)
        if self.headings_enabled:
            # The font pass needs every page before the first one is classified
            pages = list(pages)

        doc = DocumentModel(source_file=source_file)
        doc.histogram = self.build_histogram(pages)

        page_elements: List[List[PageElement]] = []
        numbers: List[int] = []
        for index, page in enumerate(pages, 1):
            if page is not None:
                number = page.page_number
            elif page_numbers is not None and index <= len(page_numbers):
                number = page_numbers[index - 1]
            else:
                number = index
            try:
                result = self.process_page(page, doc.histogram, page_number=number)
            except PageReadError as e:
                if self.config.fail_fast:
                    raise
                logger.error(f"Page {number} failed: {e}")
                result = PageResult(page_number=number, status="failed", error=str(e))

            self._register_comments(doc, result)
            doc.pages.append(result)
            page_elements.append(result.elements)
            numbers.append(number)

        doc.elements = compose_document(page_elements, numbers)
        doc.stats = self._calculate_stats(doc)

        elapsed = time.time() - start_time
        logger.info(f"Reconstructed {len(doc.pages)} page(s) in {elapsed:.2f}s")
        return doc

    def _save_debug_image(
        self,
        page: Page,
        paragraphs: Sequence[Paragraph],
        images: Sequence[ImageElement]
    ):
        """Save a page sketch with paragraph and image boxes."""
        if not self.output_dir:
            return
        from PIL import Image, ImageDraw

        sketch = Image.new("RGB", (max(int(page.width), 1), max(int(page.height), 1)), "white")
        draw = ImageDraw.Draw(sketch)

        for paragraph in paragraphs:
            if not paragraph.lines:
                continue
            first, last = paragraph.lines[0], paragraph.lines[-1]
            top = page.height - (first.y + first.font_size)
            bottom = page.height - last.y
            if paragraph.heading_level is not None:
                color = (220, 0, 0)
            elif paragraph.list_kind != ListKind.NONE:
                color = (0, 160, 0)
            else:
                color = (0, 0, 220)
            draw.rectangle([paragraph.x_start, top, paragraph.x_end, bottom], outline=color)
            draw.text((paragraph.x_start, top), str(paragraph.column_index), fill=color)

        for image in images:
            top = page.height - (image.y + image.height)
            draw.rectangle(
                [image.x, top, image.x + image.width, page.height - image.y],
                outline=(255, 140, 0)
            )

        debug_path = self.output_dir / f"debug/page_{page.page_number:04d}_debug.png"
        debug_path.parent.mkdir(parents=True, exist_ok=True)
        sketch.save(str(debug_path))
        logger.debug(f"Saved debug image: {debug_path}")

    def _register_comments(self, doc: DocumentModel, result: PageResult):
        """Number matched annotations in document order."""
        default_author = self.config.annotations.default_author
        for annotation, paragraph in result.bindings:
            comment = Comment(
                comment_id=len(doc.comments),
                author=annotation.author or default_author,
                text=annotation.contents.strip(),
                page_number=result.page_number
            )
            paragraph.comment_id = comment.comment_id
            doc.comments.append(comment)

    def _calculate_stats(self, doc: DocumentModel) -> DocumentStats:
        """Calculate document-wide counts."""
        stats = DocumentStats()
        stats.pages_processed = len(doc.pages)
        stats.pages_failed = sum(1 for p in doc.pages if p.status == "failed")
        stats.comments_total = len(doc.comments)
        stats.images_total = len(doc.images)

        for paragraph in doc.paragraphs:
            stats.paragraphs_total += 1
            if paragraph.heading_level is not None:
                level = paragraph.heading_level
                stats.headings[level] = stats.headings.get(level, 0) + 1
            elif paragraph.list_kind != ListKind.NONE:
                stats.list_items += 1

        return stats
