"""
Layout analysis module for the reconstruction engine.

Provides:
- Multi-column detection from an X coverage histogram
- Line grouping of glyph runs
- Paragraph grouping of lines
- Reading order (column-major, top to bottom)

All coordinates are PDF user space: larger Y is higher on the page.
"""

import bisect
import logging
import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Dict, Any

import numpy as np

from .page import GlyphRun, Annotation, Page

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


# ============================================================================
# Data Classes and Enums
# ============================================================================

class Alignment(Enum):
    """Paragraph alignment. LEFT is the untagged default."""
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


class ListKind(Enum):
    """List membership of a paragraph."""
    NONE = "none"
    BULLET = "bullet"
    NUMBERED = "numbered"


@dataclass
class Line:
    """Glyph runs sharing one baseline, ordered left to right."""
    runs: List[GlyphRun]
    text: str
    font_size: float
    y: float
    x_start: float
    x_end: float


@dataclass
class Paragraph:
    """Consecutive lines of one column."""
    lines: List[Line]
    text: str
    font_size: float
    x_start: float
    x_end: float
    y_normalized: float
    column_index: int = 0
    raw_text: str = ""
    heading_level: Optional[int] = None
    alignment: Alignment = Alignment.LEFT
    list_kind: ListKind = ListKind.NONE
    annotation: Optional[Annotation] = None
    comment_id: Optional[int] = None

    def __post_init__(self):
        if not self.raw_text:
            self.raw_text = self.text

    @property
    def width(self) -> float:
        return self.x_end - self.x_start

    @property
    def line_count(self) -> int:
        return len(self.lines)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"text": self.text}
        if self.heading_level is not None:
            result["headingLevel"] = self.heading_level
        if self.alignment != Alignment.LEFT:
            result["alignment"] = self.alignment.value
        if self.list_kind != ListKind.NONE:
            result["listKind"] = self.list_kind.value
        if self.comment_id is not None:
            result["commentId"] = self.comment_id
        return result


# ============================================================================
# Column Detection
# ============================================================================

def detect_columns(
    runs: Sequence[GlyphRun],
    page_width: float,
    min_runs: int = 10,
    bucket_width: float = 10.0,
    search_start: float = 0.10,
    search_end: float = 0.90,
    min_coverage_floor: int = 2,
    coverage_fraction: float = 0.02,
    min_gap_fraction: float = 0.05,
    max_boundaries: int = 2,
    char_width_ratio: float = 0.5
) -> List[float]:
    """
    Find interior column boundaries on a page.

    Every glyph run increments each X bucket its [x, x + width) span overlaps.
    Runs of sparsely covered buckets inside the middle of the page are gutters;
    gutters wide enough to separate columns qualify, and the widest of them
    (up to max_boundaries) each yield one boundary at their center.

    Args:
        runs: Glyph runs of one page
        page_width: Page width in device units
        min_runs: Below this many non-empty runs the page is one column

    Returns:
        Boundary X coordinates, left to right (empty for a single column)
    """
    runs = [r for r in runs if not r.is_blank]
    if len(runs) < min_runs or page_width <= 0:
        return []

    n_buckets = int(math.ceil(page_width / bucket_width))
    coverage = np.zeros(n_buckets, dtype=np.int64)
    for run in runs:
        x0 = run.x
        x1 = run.x + run.measured_width(char_width_ratio)
        first = max(int(math.floor(x0 / bucket_width)), 0)
        last = min(int(math.ceil(x1 / bucket_width)) - 1, n_buckets - 1)
        if last >= first:
            coverage[first:last + 1] += 1

    threshold = max(min_coverage_floor, coverage_fraction * len(runs))
    lo = int(math.ceil(page_width * search_start / bucket_width))
    hi = int(math.floor(page_width * search_end / bucket_width))
    min_gap = page_width * min_gap_fraction

    gaps: List[Tuple[float, float]] = []
    gap_start: Optional[int] = None
    for i in range(lo, hi + 1):
        sparse = i < hi and coverage[i] <= threshold
        if sparse and gap_start is None:
            gap_start = i
        elif not sparse and gap_start is not None:
            gap_left = gap_start * bucket_width
            gap_right = i * bucket_width
            if gap_right - gap_left >= min_gap:
                gaps.append((gap_left, gap_right))
            gap_start = None

    # Widest gutters win; the boundaries come back in position order
    widest = sorted(gaps, key=lambda g: g[0] - g[1])[:max_boundaries]
    boundaries = [(left + right) / 2 for left, right in sorted(widest)]

    if boundaries:
        logger.debug(f"Column boundaries at {boundaries} (threshold {threshold:.1f})")
    return boundaries


def split_into_columns(
    runs: Sequence[GlyphRun],
    boundaries: Sequence[float]
) -> List[List[GlyphRun]]:
    """Partition runs into len(boundaries) + 1 bands by their start X."""
    columns: List[List[GlyphRun]] = [[] for _ in range(len(boundaries) + 1)]
    for run in runs:
        columns[bisect.bisect_right(boundaries, run.x)].append(run)
    return columns


# ============================================================================
# Line and Paragraph Assembly
# ============================================================================

def _build_line(runs: List[GlyphRun], space_gap_ratio: float, char_width_ratio: float) -> Line:
    runs = sorted(runs, key=lambda r: r.x)

    parts: List[str] = []
    prev: Optional[GlyphRun] = None
    for run in runs:
        if prev is not None:
            gap = run.x - (prev.x + prev.measured_width(char_width_ratio))
            taller = max(prev.height, run.height)
            if gap > space_gap_ratio * taller:
                parts.append(" ")
        parts.append(run.text)
        prev = run

    text = _WHITESPACE.sub(" ", "".join(parts)).strip()
    sized = [r.font_size for r in runs if not r.is_blank]

    return Line(
        runs=runs,
        text=text,
        font_size=max(sized) if sized else 0.0,
        y=max(r.y for r in runs),
        x_start=min(r.x for r in runs),
        x_end=max(r.x + r.measured_width(char_width_ratio) for r in runs),
    )


def group_lines(
    runs: Sequence[GlyphRun],
    y_tolerance: float = 2.0,
    space_gap_ratio: float = 0.3,
    char_width_ratio: float = 0.5
) -> List[Line]:
    """
    Merge glyph runs into lines, top of page first.

    A new line starts when a run's Y differs from the previous run's Y by more
    than the tolerance. Lines with no visible text are dropped.
    """
    ordered = sorted(runs, key=lambda r: (-r.y, r.x))

    groups: List[List[GlyphRun]] = []
    prev_y: Optional[float] = None
    for run in ordered:
        if prev_y is None or abs(run.y - prev_y) > y_tolerance:
            groups.append([])
        groups[-1].append(run)
        prev_y = run.y

    lines = [_build_line(g, space_gap_ratio, char_width_ratio) for g in groups]
    return [line for line in lines if line.text]


def _build_paragraph(lines: List[Line], page_height: float, column_index: int) -> Paragraph:
    top = lines[0].y
    y_norm = 1.0 - top / page_height if page_height > 0 else 0.0
    return Paragraph(
        lines=lines,
        text=" ".join(line.text for line in lines),
        font_size=max(line.font_size for line in lines),
        x_start=min(line.x_start for line in lines),
        x_end=max(line.x_end for line in lines),
        y_normalized=min(max(y_norm, 0.0), 1.0),
        column_index=column_index,
    )


def group_paragraphs(
    lines: Sequence[Line],
    page_height: float,
    column_index: int = 0,
    paragraph_gap_ratio: float = 2.0
) -> List[Paragraph]:
    """
    Merge consecutive lines of one column into paragraphs.

    A paragraph closes when the vertical distance to the next line exceeds
    paragraph_gap_ratio times the current line's font size.
    """
    paragraphs: List[Paragraph] = []
    current: List[Line] = []
    for line in lines:
        if current:
            prev = current[-1]
            if prev.y - line.y > paragraph_gap_ratio * prev.font_size:
                paragraphs.append(_build_paragraph(current, page_height, column_index))
                current = []
        current.append(line)

    if current:
        paragraphs.append(_build_paragraph(current, page_height, column_index))
    return paragraphs


def assemble_paragraphs(page: Page, config: Any = None) -> List[Paragraph]:
    """
    Reconstruct a page's paragraphs in column-major reading order.

    Args:
        page: Source page
        config: ReconstructionConfig (defaults when None)

    Returns:
        Paragraphs of column 0 first, then column 1, and so on
    """
    if config is None:
        from ..config import ReconstructionConfig
        config = ReconstructionConfig()
    cols = config.columns
    lc = config.lines

    boundaries = detect_columns(
        page.glyph_runs,
        page.width,
        min_runs=cols.min_runs,
        bucket_width=cols.bucket_width,
        search_start=cols.search_start,
        search_end=cols.search_end,
        min_coverage_floor=cols.min_coverage_floor,
        coverage_fraction=cols.coverage_fraction,
        min_gap_fraction=cols.min_gap_fraction,
        max_boundaries=cols.max_boundaries,
        char_width_ratio=lc.char_width_ratio
    )

    paragraphs: List[Paragraph] = []
    for index, column_runs in enumerate(split_into_columns(page.glyph_runs, boundaries)):
        lines = group_lines(
            column_runs,
            y_tolerance=lc.y_tolerance,
            space_gap_ratio=lc.space_gap_ratio,
            char_width_ratio=lc.char_width_ratio
        )
        paragraphs.extend(group_paragraphs(
            lines,
            page.height,
            column_index=index,
            paragraph_gap_ratio=lc.paragraph_gap_ratio
        ))

    logger.debug(
        f"Page {page.page_number}: {len(boundaries) + 1} column(s), {len(paragraphs)} paragraphs"
    )
    return paragraphs
