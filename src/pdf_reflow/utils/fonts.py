"""
Font-size statistics for heading detection.

A single pass over every page's glyph runs builds a histogram of rounded
font sizes. The size carrying the most characters is the body text size;
rare sizes above it become heading candidates.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional

from .page import Page

logger = logging.getLogger(__name__)


def round_font_size(size: float, bucket: float = 0.5) -> float:
    """Round a font size half-up to the nearest bucket."""
    return math.floor(size / bucket + 0.5) * bucket


@dataclass
class SizeStats:
    """Occurrence and character counts for one rounded font size."""
    occurrences: int = 0
    characters: int = 0


@dataclass
class FontSizeHistogram:
    """
    Document-wide font size histogram.

    Built once before any page is classified and passed read-only to every
    page's classification step.
    """
    sizes: Dict[float, SizeStats] = field(default_factory=dict)
    bucket: float = 0.5
    heading_frequency_limit: float = 0.10
    max_heading_levels: int = 3

    def add(self, font_size: float, text: str):
        if not text.strip():
            return
        key = round_font_size(font_size, self.bucket)
        stats = self.sizes.setdefault(key, SizeStats())
        stats.occurrences += 1
        stats.characters += len(text)

    @property
    def total_runs(self) -> int:
        return sum(s.occurrences for s in self.sizes.values())

    @property
    def body_text_size(self) -> float:
        """Size with the most characters; the first seen size wins ties."""
        best_size = 0.0
        best_chars = -1
        for size, stats in self.sizes.items():
            if stats.characters > best_chars:
                best_size, best_chars = size, stats.characters
        return best_size

    @property
    def heading_sizes(self) -> Dict[float, int]:
        """Rare sizes above body text, largest first, mapped to levels 1..3."""
        total = self.total_runs
        if total == 0:
            return {}

        body = self.body_text_size
        levels: Dict[float, int] = {}
        for size in sorted((s for s in self.sizes if s > body), reverse=True):
            if self.sizes[size].occurrences / total < self.heading_frequency_limit:
                levels[size] = len(levels) + 1
                if len(levels) >= self.max_heading_levels:
                    break
        return levels

    def is_frequent_large(self, font_size: float) -> bool:
        """True for a size above body text used too often to be a heading."""
        key = round_font_size(font_size, self.bucket)
        stats = self.sizes.get(key)
        total = self.total_runs
        if stats is None or total == 0 or key <= self.body_text_size:
            return False
        return stats.occurrences / total >= self.heading_frequency_limit

    def to_dict(self) -> Dict[str, object]:
        return {
            "body_text_size": self.body_text_size,
            "heading_sizes": {str(k): v for k, v in self.heading_sizes.items()},
            "sizes": {
                str(k): {"occurrences": v.occurrences, "characters": v.characters}
                for k, v in self.sizes.items()
            },
        }


def build_font_histogram(
    pages: Iterable[Optional[Page]],
    bucket: float = 0.5,
    heading_frequency_limit: float = 0.10,
    max_heading_levels: int = 3
) -> FontSizeHistogram:
    """
    Accumulate the font size histogram over all pages.

    Args:
        pages: Every page of the document (missing pages are skipped)
        bucket: Rounding resolution for font sizes
        heading_frequency_limit: Occurrence share below which a size may be a heading
        max_heading_levels: Number of heading levels to assign

    Returns:
        FontSizeHistogram with body and heading sizes derived
    """
    histogram = FontSizeHistogram(
        bucket=bucket,
        heading_frequency_limit=heading_frequency_limit,
        max_heading_levels=max_heading_levels
    )
    for page in pages:
        if page is None:
            continue
        for run in page.glyph_runs:
            histogram.add(run.font_size, run.text)

    logger.debug(
        f"Font histogram: {len(histogram.sizes)} sizes, body={histogram.body_text_size}, "
        f"headings={histogram.heading_sizes}"
    )
    return histogram
