"""
End-to-end tests for document assembly.
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pdf_reflow.config import ReconstructionConfig
from pdf_reflow.utils.assembler import (
    DocumentAssembler,
    ElementKind,
    PageBreak,
    compose_page,
)
from pdf_reflow.utils.images import ImageElement
from pdf_reflow.utils.layout import Alignment, ListKind, Paragraph
from pdf_reflow.utils.page import (
    Annotation,
    DrawingInstruction,
    GlyphRun,
    ImageSample,
    Opcode,
    Page,
    PageReadError,
)


def make_run(text, x, y, size=12.0, width=None):
    return GlyphRun(text=text, font_size=size, transform=(size, 0, 0, size, x, y), width=width)


def noise_sample(seed=0):
    rng = np.random.default_rng(seed)
    data = rng.integers(0, 256, size=32 * 32 * 3, dtype=np.uint8).tobytes()
    return ImageSample(width=32, height=32, data=data)


def article_page(page_number=1, with_image=False, annotations=()):
    """A centered title, a body paragraph and a bullet item."""
    runs = [make_run("Introduction", 200, 760, size=24, width=200)]
    for i in range(30):
        runs.append(make_run(f"body line {i}", 50, 700 - 14 * i, width=500))
    runs.append(make_run("• A point", 50, 250, width=120))

    instructions = []
    resources = {}
    if with_image:
        resources["Im1"] = noise_sample(page_number)
        instructions = [
            DrawingInstruction(Opcode.SAVE.value),
            DrawingInstruction(Opcode.TRANSFORM.value, (200, 0, 0, 100, 200, 100)),
            DrawingInstruction(Opcode.PAINT_IMAGE.value, ("Im1",)),
            DrawingInstruction(Opcode.RESTORE.value),
        ]

    return Page(
        page_number=page_number,
        width=600,
        height=800,
        glyph_runs=runs,
        instructions=instructions,
        annotations=list(annotations),
        image_resources=resources,
    )


def note_near_body(contents="Check this", author=None):
    # Top edge at y=710, just above the first body line at 700
    return Annotation(subtype="Text", contents=contents, rect=(560, 690, 580, 710), author=author)


def stub_paragraph(y, column_index=0, text="p"):
    return Paragraph(
        lines=[], text=text, font_size=12, x_start=50, x_end=250,
        y_normalized=y, column_index=column_index,
    )


def stub_image(y):
    return ImageElement(
        rgba=b"", png=b"", pixel_width=1, pixel_height=1,
        x=0, y=0, width=50, height=50, y_normalized=y,
    )


@pytest.fixture
def assembler():
    return DocumentAssembler(ReconstructionConfig())


class TestComposePage:
    """Test vertical interleaving of paragraphs and images."""

    def test_sorted_by_position(self):
        """Elements come out top to bottom."""
        elements = compose_page([stub_paragraph(0.6)], [stub_image(0.3)], page_number=1)

        assert [e.kind for e in elements] == [ElementKind.IMAGE, ElementKind.PARAGRAPH]

    def test_paragraph_before_image_on_tie(self):
        """Test equal positions."""
        elements = compose_page([stub_paragraph(0.5)], [stub_image(0.5)], page_number=1)

        assert [e.kind for e in elements] == [ElementKind.PARAGRAPH, ElementKind.IMAGE]

    def test_global_sort_interleaves_columns(self):
        """Known approximation: sorting by Y mixes two-column reading order."""
        left_top = stub_paragraph(0.1, 0, "left top")
        left_bottom = stub_paragraph(0.6, 0, "left bottom")
        right_top = stub_paragraph(0.1, 1, "right top")

        elements = compose_page(
            [left_top, left_bottom, right_top], [stub_image(0.3)], page_number=1
        )

        order = [e.paragraph.text if e.paragraph else "image" for e in elements]
        assert order == ["left top", "right top", "image", "left bottom"]


class TestProcessDocument:
    """Test whole-document reconstruction."""

    def test_paragraph_classification(self, assembler):
        """Title, body and list item are recognized."""
        doc = assembler.process_document([article_page()])

        title, body, bullet = doc.paragraphs
        assert title.text == "Introduction"
        assert title.heading_level == 1
        assert title.alignment == Alignment.CENTER
        assert body.heading_level is None
        assert body.text.startswith("body line 0 body line 1")
        assert bullet.list_kind == ListKind.BULLET
        assert bullet.text == "A point"

    def test_page_break_count(self, assembler):
        """N pages produce N - 1 breaks."""
        pages = [article_page(n) for n in (1, 2, 3)]

        doc = assembler.process_document(pages)

        assert len(doc.page_breaks) == 2
        assert [b.after_page for b in doc.page_breaks] == [1, 2]

    def test_single_page_no_break(self, assembler):
        """Test a one-page document."""
        doc = assembler.process_document([article_page()])

        assert doc.page_breaks == []

    def test_images_interleaved(self, assembler):
        """The image lands after the text printed above it."""
        doc = assembler.process_document([article_page(with_image=True)])

        kinds = [e.kind for e in doc.elements]
        assert kinds == [
            ElementKind.PARAGRAPH,
            ElementKind.PARAGRAPH,
            ElementKind.PARAGRAPH,
            ElementKind.IMAGE,
        ]
        assert doc.stats.images_total == 1

    def test_failed_page_keeps_break_slot(self, assembler):
        """A missing page yields no elements but the break count holds."""
        doc = assembler.process_document([article_page(1), None, article_page(3)])

        assert len(doc.page_breaks) == 2
        assert [p.status for p in doc.pages] == ["success", "failed", "success"]
        assert doc.stats.pages_failed == 1
        assert all(e.page_number != 2 for e in doc.elements if not isinstance(e, PageBreak))

    def test_failed_page_uses_source_number(self, assembler):
        """Unreadable slots take their number from the page selection."""
        doc = assembler.process_document([article_page(3), None], page_numbers=[3, 5])

        assert [(p.page_number, p.status) for p in doc.pages] == [(3, "success"), (5, "failed")]
        assert [b.after_page for b in doc.page_breaks] == [3]

    def test_invalid_page_size_fails(self, assembler):
        """Test a page with zero width."""
        bad = Page(page_number=1, width=0, height=800)

        doc = assembler.process_document([bad])

        assert doc.pages[0].status == "failed"
        assert doc.elements == []

    def test_fail_fast(self):
        """With fail_fast the first bad page aborts the document."""
        config = ReconstructionConfig(fail_fast=True)

        with pytest.raises(PageReadError):
            DocumentAssembler(config).process_document([article_page(1), None])

    def test_idempotent(self):
        """Reprocessing the same input gives the same document."""
        assembler = DocumentAssembler(ReconstructionConfig(extract_comments=True))
        pages = [article_page(1, with_image=True, annotations=[note_near_body()]),
                 article_page(2)]

        first = assembler.process_document(pages).to_dict()
        second = assembler.process_document(pages).to_dict()

        assert first == second

    def test_heading_levels_in_range(self, assembler):
        """Test heading range across a document."""
        doc = assembler.process_document([article_page(n) for n in (1, 2)])

        levels = [p.heading_level for p in doc.paragraphs if p.heading_level is not None]
        assert levels
        assert all(1 <= level <= 3 for level in levels)

    def test_max_pages(self):
        """Test the page limit."""
        config = ReconstructionConfig(max_pages=1)

        doc = DocumentAssembler(config).process_document([article_page(n) for n in (1, 2, 3)])

        assert len(doc.pages) == 1
        assert doc.page_breaks == []

    def test_streams_without_heading_pass(self):
        """Pages may come from a generator when headings are off."""
        config = ReconstructionConfig(smart_headings=False)

        doc = DocumentAssembler(config).process_document(article_page(n) for n in (1, 2))

        assert len(doc.pages) == 2
        assert doc.histogram is None


class TestFeatureSwitches:
    """Test configuration switches."""

    def test_no_smart_headings(self):
        """Without the font pass no paragraph is a heading."""
        config = ReconstructionConfig(smart_headings=False)

        doc = DocumentAssembler(config).process_document([article_page()])

        assert all(p.heading_level is None for p in doc.paragraphs)

    def test_no_images(self):
        """Test disabling image extraction."""
        config = ReconstructionConfig(extract_images=False)

        doc = DocumentAssembler(config).process_document([article_page(with_image=True)])

        assert doc.images == []

    def test_image_only(self):
        """Only images are emitted in image-only mode."""
        config = ReconstructionConfig(image_only=True, extract_images=False)

        doc = DocumentAssembler(config).process_document([article_page(with_image=True)])

        assert doc.paragraphs == []
        assert len(doc.images) == 1

    def test_comments_off_by_default(self, assembler):
        """Annotations are ignored unless comments are enabled."""
        doc = assembler.process_document([article_page(annotations=[note_near_body()])])

        assert doc.comments == []

    def test_comments(self):
        """Matched annotations become numbered comments."""
        config = ReconstructionConfig(extract_comments=True)
        pages = [
            article_page(1, annotations=[note_near_body("First", author="Ann")]),
            article_page(2, annotations=[note_near_body("Second")]),
        ]

        doc = DocumentAssembler(config).process_document(pages)

        assert [c.comment_id for c in doc.comments] == [0, 1]
        assert [c.author for c in doc.comments] == ["Ann", "Unknown"]
        assert doc.comments[0].text == "First"
        commented = [p for p in doc.paragraphs if p.comment_id is not None]
        assert [p.comment_id for p in commented] == [0, 1]
        assert commented[0].text.startswith("body line 0")


class TestDocumentModel:
    """Test the output envelope."""

    def test_to_dict(self, assembler):
        """Test element serialization."""
        doc = assembler.process_document([article_page(1), article_page(2)])

        data = doc.to_dict()

        assert {"type": "pageBreak", "afterPage": 1} in data["elements"]
        heading = data["elements"][0]
        assert heading["type"] == "paragraph"
        assert heading["headingLevel"] == 1
        assert heading["alignment"] == "center"
        assert data["stats"]["pages_processed"] == 2

    def test_stats(self, assembler):
        """Test document counts."""
        doc = assembler.process_document([article_page(1), article_page(2)])

        assert doc.stats.paragraphs_total == 6
        assert doc.stats.headings[1] == 2
        assert doc.stats.list_items == 2


class TestDebugOutput:
    """Test debug page sketches."""

    def test_debug_image_written(self, tmp_path):
        """Debug mode writes one sketch per page into the output directory."""
        from PIL import Image

        config = ReconstructionConfig(debug_mode=True)
        assembler = DocumentAssembler(config, output_dir=tmp_path)

        assembler.process_document([article_page(1, with_image=True), article_page(2)])

        sketches = sorted((tmp_path / "debug").glob("*.png"))
        assert [p.name for p in sketches] == ["page_0001_debug.png", "page_0002_debug.png"]
        assert Image.open(sketches[0]).size == (600, 800)

    def test_no_output_dir(self, tmp_path):
        """Without an output directory nothing is written."""
        config = ReconstructionConfig(debug_mode=True)

        doc = DocumentAssembler(config).process_document([article_page()])

        assert len(doc.paragraphs) == 3
        assert not (tmp_path / "debug").exists()


class TestHeadingFallback:
    """Test heading levels for sizes outside the histogram's heading table."""

    def headings_document(self):
        runs = [
            make_run("Big Title", 200, 760, size=30, width=200),
            make_run("Section", 50, 700, size=24, width=100),
            make_run("Subsection", 50, 640, size=20, width=120),
            make_run("Head 16", 50, 580, size=16, width=80),
            make_run("Centered Title", 240, 520, size=13, width=120),
        ]
        for i in range(30):
            runs.append(make_run(f"body line {i}", 50, 460 - 14 * i, width=500))
        pages = [Page(page_number=1, width=600, height=800, glyph_runs=runs)]

        # Enough body text that every heading size stays rare
        for number in range(2, 7):
            body = [make_run(f"more body {i}", 50, 760 - 14 * i, width=500) for i in range(34)]
            pages.append(Page(page_number=number, width=600, height=800, glyph_runs=body))
        return pages

    def test_rare_sizes_past_level_cap(self, assembler):
        """Rare sizes beyond three levels use the ratio test and title boost."""
        doc = assembler.process_document(self.headings_document())

        assert doc.histogram.heading_sizes == {30.0: 1, 24.0: 2, 20.0: 3}
        levels = {p.text: p.heading_level for p in doc.paragraphs if p.heading_level}
        assert levels == {
            "Big Title": 1,
            "Section": 2,
            "Subsection": 3,
            "Head 16": 2,
            "Centered Title": 2,
        }
