"""
Paragraph classification: alignment, heading level and list kind.

Every decision here is a best guess with a plain default (left aligned body
paragraph, no heading, no list); nothing in this module raises on odd input.
"""

import logging
import re
from typing import Any, Optional, Tuple

from .fonts import FontSizeHistogram, round_font_size
from .layout import Alignment, ListKind, Paragraph

logger = logging.getLogger(__name__)

BULLET_PATTERN = re.compile(r"^\s*[•\-*◦▪▸►●○]\s+(.+)$", re.DOTALL)
NUMBERED_PATTERN = re.compile(r"^\s*(?:\d+[.):]|\(\d+\))\s+(.+)$", re.DOTALL)


# ============================================================================
# Alignment
# ============================================================================

def classify_alignment(
    x_start: float,
    x_end: float,
    page_width: float,
    full_width_fraction: float = 0.70,
    center_tolerance: float = 0.10,
    right_margin_max: float = 0.15,
    right_left_margin_min: float = 0.30
) -> Alignment:
    """
    Infer alignment from a paragraph's horizontal extent.

    Paragraphs wider than full_width_fraction of the page are treated as
    body text regardless of margin symmetry.
    """
    if page_width <= 0:
        return Alignment.LEFT

    left_margin = x_start
    right_margin = page_width - x_end
    line_width = x_end - x_start

    if line_width > full_width_fraction * page_width:
        return Alignment.LEFT
    if abs(left_margin - right_margin) < center_tolerance * page_width:
        return Alignment.CENTER
    if right_margin < right_margin_max * page_width and left_margin > right_left_margin_min * page_width:
        return Alignment.RIGHT
    return Alignment.LEFT


# ============================================================================
# Heading Level
# ============================================================================

def classify_heading(
    font_size: float,
    histogram: FontSizeHistogram,
    text: str = "",
    line_count: int = 1,
    alignment: Alignment = Alignment.LEFT,
    heading_ratios: Tuple[float, ...] = (1.6, 1.3, 1.15),
    title_max_chars: int = 100,
    title_max_lines: int = 2
) -> Optional[int]:
    """
    Assign a heading level (1-3) or None.

    Sizes listed in the histogram's heading table take their level directly,
    and a size used too often above body text is never a heading. Anything
    else falls back to a ratio test against the body size and, failing that,
    to a boost for short centered text larger than body text. A fallback
    Heading1 smaller than a listed heading size becomes Heading2.
    """
    size = round_font_size(font_size, histogram.bucket)
    heading_sizes = histogram.heading_sizes

    if size in heading_sizes:
        return heading_sizes[size]
    if histogram.is_frequent_large(size):
        return None

    body = histogram.body_text_size
    if body > 0:
        ratio = size / body
        for index, threshold in enumerate(heading_ratios):
            if ratio >= threshold:
                level = index + 1
                # Heading1 never goes to a size below a listed heading
                if level == 1 and any(h > size for h in heading_sizes):
                    level = 2
                return level

    is_title_like = (
        len(text) < title_max_chars
        and line_count <= title_max_lines
        and alignment == Alignment.CENTER
        and size > body
    )
    if is_title_like:
        return 2
    return None


# ============================================================================
# List Detection
# ============================================================================

def detect_list(text: str) -> Tuple[ListKind, str]:
    """
    Detect a leading list marker.

    Returns:
        (list kind, text without the marker); bullets win over numbers
    """
    match = BULLET_PATTERN.match(text)
    if match:
        return ListKind.BULLET, match.group(1)
    match = NUMBERED_PATTERN.match(text)
    if match:
        return ListKind.NUMBERED, match.group(1)
    return ListKind.NONE, text


# ============================================================================
# Paragraph Classification
# ============================================================================

def classify_paragraph(
    paragraph: Paragraph,
    page_width: float,
    histogram: Optional[FontSizeHistogram] = None,
    config: Any = None
) -> Paragraph:
    """
    Tag a paragraph with alignment, heading level and list kind in place.

    Args:
        paragraph: Paragraph to classify
        page_width: Width of its page
        histogram: Document font histogram; None disables heading detection
        config: ClassifierConfig (defaults when None)

    Returns:
        The same paragraph, classified
    """
    if config is None:
        from ..config import ClassifierConfig
        config = ClassifierConfig()

    paragraph.alignment = classify_alignment(
        paragraph.x_start,
        paragraph.x_end,
        page_width,
        full_width_fraction=config.full_width_fraction,
        center_tolerance=config.center_tolerance,
        right_margin_max=config.right_margin_max,
        right_left_margin_min=config.right_left_margin_min
    )

    if histogram is not None:
        paragraph.heading_level = classify_heading(
            paragraph.font_size,
            histogram,
            text=paragraph.raw_text,
            line_count=paragraph.line_count,
            alignment=paragraph.alignment,
            heading_ratios=config.heading_ratios,
            title_max_chars=config.title_max_chars,
            title_max_lines=config.title_max_lines
        )

    if paragraph.heading_level is None:
        paragraph.list_kind, paragraph.text = detect_list(paragraph.raw_text)

    return paragraph
