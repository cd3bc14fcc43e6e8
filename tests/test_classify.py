"""
Tests for paragraph classification.
"""

import pytest
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pdf_reflow.utils.classify import (
    classify_alignment,
    classify_heading,
    classify_paragraph,
    detect_list,
)
from pdf_reflow.utils.fonts import FontSizeHistogram
from pdf_reflow.utils.layout import Alignment, ListKind, Paragraph


def make_histogram(body=12, body_runs=100, headings=()):
    histogram = FontSizeHistogram()
    for size in headings:
        histogram.add(size, "Heading")
    for _ in range(body_runs):
        histogram.add(body, "body text")
    return histogram


def make_paragraph(text, font_size=12.0, x_start=50.0, x_end=300.0):
    return Paragraph(
        lines=[],
        text=text,
        font_size=font_size,
        x_start=x_start,
        x_end=x_end,
        y_normalized=0.1,
    )


class TestAlignment:
    """Test alignment from horizontal extent."""

    def test_centered(self):
        """Equal 250-unit margins on a 600-unit page are centered."""
        assert classify_alignment(250, 350, 600) == Alignment.CENTER

    def test_right(self):
        """Small right margin with a large left margin is right aligned."""
        assert classify_alignment(400, 580, 600) == Alignment.RIGHT

    def test_full_width_is_left(self):
        """Wide paragraphs are body text even with symmetric margins."""
        assert classify_alignment(30, 570, 600) == Alignment.LEFT

    def test_default_left(self):
        """Test the fallback."""
        assert classify_alignment(50, 300, 600) == Alignment.LEFT


class TestHeadingLevel:
    """Test heading level assignment."""

    def test_histogram_heading(self):
        """Listed heading sizes take their histogram level."""
        histogram = make_histogram(headings=(24, 24, 24))

        assert classify_heading(24, histogram) == 1

    def test_body_size_not_heading(self):
        """Test body text."""
        histogram = make_histogram()

        assert classify_heading(12, histogram) is None

    def test_frequent_large_size_never_heading(self):
        """A known size absent from the heading table is not a heading."""
        histogram = make_histogram(headings=[18] * 40)

        assert 18.0 not in histogram.heading_sizes
        assert classify_heading(18, histogram) is None

    def test_ratio_fallback(self):
        """Unknown sizes use ratio thresholds against the body size."""
        histogram = make_histogram()

        assert classify_heading(20, histogram) == 1
        assert classify_heading(16, histogram) == 2
        assert classify_heading(14, histogram) == 3
        assert classify_heading(13, histogram) is None

    def test_centered_title_boost(self):
        """Short centered text slightly above body size becomes Heading2."""
        histogram = make_histogram()

        level = classify_heading(
            13, histogram, text="A Short Title", line_count=1, alignment=Alignment.CENTER
        )

        assert level == 2

    def test_long_centered_text_not_boosted(self):
        """Test the title length limit."""
        histogram = make_histogram()

        level = classify_heading(
            13, histogram, text="x" * 150, line_count=1, alignment=Alignment.CENTER
        )

        assert level is None

    def test_rare_size_past_level_cap_uses_ratio(self):
        """A rare size left out of the heading table falls back to the ratio test."""
        histogram = make_histogram(headings=(30, 24, 20, 16))

        assert histogram.heading_sizes == {30.0: 1, 24.0: 2, 20.0: 3}
        assert classify_heading(16, histogram) == 2

    def test_rare_size_past_level_cap_title_boost(self):
        """A rare centered title below the ratio thresholds gets the boost."""
        histogram = make_histogram(headings=(30, 24, 20, 13))

        assert classify_heading(13, histogram) is None
        level = classify_heading(
            13, histogram, text="Centered Title", line_count=1, alignment=Alignment.CENTER
        )
        assert level == 2

    def test_fallback_heading1_below_listed_heading(self):
        """A fallback Heading1 smaller than a listed heading becomes Heading2."""
        histogram = make_histogram(headings=(30, 24, 20, 19.5))

        assert classify_heading(19.5, histogram) == 2
        assert classify_heading(40, histogram) == 1

    def test_frequent_large_size_not_boosted(self):
        """The title boost never applies to a frequent large size."""
        histogram = make_histogram(headings=[13] * 40)

        level = classify_heading(
            13, histogram, text="Centered Title", line_count=1, alignment=Alignment.CENTER
        )

        assert level is None

    def test_levels_in_range(self):
        """Assigned levels are always between 1 and 3."""
        histogram = make_histogram(headings=(30, 24, 20))

        for size in (8, 12, 13, 16, 18, 20, 22, 24, 28, 30, 40):
            level = classify_heading(size, histogram)
            assert level is None or 1 <= level <= 3


class TestListDetection:
    """Test list marker detection."""

    def test_numbered(self):
        """A numbered marker is stripped."""
        assert detect_list("1. First item") == (ListKind.NUMBERED, "First item")

    def test_numbered_variants(self):
        """Test parenthesized and colon markers."""
        assert detect_list("2) Second")[0] == ListKind.NUMBERED
        assert detect_list("(3) Third")[0] == ListKind.NUMBERED
        assert detect_list("4: Fourth")[0] == ListKind.NUMBERED

    def test_bullets(self):
        """Test bullet glyphs."""
        assert detect_list("• Point") == (ListKind.BULLET, "Point")
        assert detect_list("- dash item") == (ListKind.BULLET, "dash item")
        assert detect_list("* star")[0] == ListKind.BULLET

    def test_plain_text(self):
        """Text without a marker is not a list item."""
        assert detect_list("1.5 million people") == (ListKind.NONE, "1.5 million people")
        assert detect_list("Plain text") == (ListKind.NONE, "Plain text")


class TestClassifyParagraph:
    """Test full paragraph classification."""

    def test_numbered_item_without_heading(self):
        """A numbered paragraph loses its marker and is tagged numbered."""
        paragraph = make_paragraph("1. First item")

        classify_paragraph(paragraph, page_width=600)

        assert paragraph.text == "First item"
        assert paragraph.list_kind == ListKind.NUMBERED
        assert paragraph.heading_level is None

    def test_heading_skips_list_detection(self):
        """A numbered section heading keeps its text."""
        histogram = make_histogram(headings=(24, 24, 24))
        paragraph = make_paragraph("1. Introduction", font_size=24)

        classify_paragraph(paragraph, page_width=600, histogram=histogram)

        assert paragraph.heading_level == 1
        assert paragraph.list_kind == ListKind.NONE
        assert paragraph.text == "1. Introduction"

    def test_no_histogram_no_heading(self):
        """Heading detection is off without a histogram."""
        paragraph = make_paragraph("Big text", font_size=40)

        classify_paragraph(paragraph, page_width=600)

        assert paragraph.heading_level is None

    def test_sets_alignment(self):
        """Test alignment tagging."""
        paragraph = make_paragraph("Centered", x_start=250, x_end=350)

        classify_paragraph(paragraph, page_width=600)

        assert paragraph.alignment == Alignment.CENTER

    def test_reclassify_is_stable(self):
        """Classifying twice gives the same result."""
        paragraph = make_paragraph("• Point")

        classify_paragraph(paragraph, page_width=600)
        classify_paragraph(paragraph, page_width=600)

        assert paragraph.text == "Point"
        assert paragraph.list_kind == ListKind.BULLET
