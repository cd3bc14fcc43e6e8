"""
Configuration and constants for the page layout reconstruction engine.

This module provides:
- Per-stage tuning parameters (histogram, columns, lines, classifier, images)
- The root reconstruction configuration with feature switches
- Environment variable overrides
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

logger = logging.getLogger("pdf_reflow")


# ============================================================================
# Stage Configuration
# ============================================================================

@dataclass
class HistogramConfig:
    """Font-size histogram configuration."""
    bucket: float = 0.5  # sizes are rounded to the nearest bucket
    heading_frequency_limit: float = 0.10  # share of glyph runs above which a size is body text
    max_heading_levels: int = 3


@dataclass
class ColumnConfig:
    """Column detection configuration."""
    min_runs: int = 10  # fewer non-empty runs => single column
    bucket_width: float = 10.0
    search_start: float = 0.10  # fraction of page width
    search_end: float = 0.90
    min_coverage_floor: int = 2
    coverage_fraction: float = 0.02  # of total glyph runs
    min_gap_fraction: float = 0.05  # of page width
    max_boundaries: int = 2


@dataclass
class LineConfig:
    """Line and paragraph grouping configuration."""
    y_tolerance: float = 2.0
    space_gap_ratio: float = 0.3  # of the taller run's height
    paragraph_gap_ratio: float = 2.0  # of the current line's font size
    char_width_ratio: float = 0.5  # estimated advance per char when width is missing


@dataclass
class ClassifierConfig:
    """Alignment and heading classification configuration."""
    full_width_fraction: float = 0.70
    center_tolerance: float = 0.10
    right_margin_max: float = 0.15
    right_left_margin_min: float = 0.30
    # Font size / body size ratios for Heading1, Heading2, Heading3
    heading_ratios: Tuple[float, float, float] = (1.6, 1.3, 1.15)
    title_max_chars: int = 100
    title_max_lines: int = 2


@dataclass
class ImageConfig:
    """Embedded image extraction configuration."""
    min_size: float = 20.0  # device units, both dimensions
    min_encoded_bytes: int = 500  # smaller PNGs are decode artifacts
    center_band: float = 0.10  # |center offset| / page width treated as centered
    render_dpi: int = 150  # image-only rasterization


@dataclass
class AnnotationConfig:
    """Annotation matching configuration."""
    y_window: float = 0.05
    subtypes: Tuple[str, ...] = ("Text", "FreeText")
    default_author: str = "Unknown"


@dataclass
class ReconstructionConfig:
    """Main engine configuration."""
    histogram: HistogramConfig = field(default_factory=HistogramConfig)
    columns: ColumnConfig = field(default_factory=ColumnConfig)
    lines: LineConfig = field(default_factory=LineConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    images: ImageConfig = field(default_factory=ImageConfig)
    annotations: AnnotationConfig = field(default_factory=AnnotationConfig)

    # Feature switches
    extract_images: bool = True
    smart_headings: bool = True
    extract_comments: bool = False
    image_only: bool = False  # rasterized pages, no text reconstruction

    # Global settings
    fail_fast: bool = False  # abort the document on the first failed page
    debug_mode: bool = False
    max_pages: Optional[int] = None  # None = process all pages


# ============================================================================
# Default Configuration Instance
# ============================================================================

def _env_flag(name: str) -> Optional[bool]:
    value = os.environ.get(name, "").strip().lower()
    if value == "true":
        return True
    if value == "false":
        return False
    return None


_ENV_SWITCHES = {
    "PDF_REFLOW_EXTRACT_IMAGES": "extract_images",
    "PDF_REFLOW_SMART_HEADINGS": "smart_headings",
    "PDF_REFLOW_EXTRACT_COMMENTS": "extract_comments",
    "PDF_REFLOW_IMAGE_ONLY": "image_only",
    "PDF_REFLOW_DEBUG": "debug_mode",
}


def get_config() -> ReconstructionConfig:
    """Get the default engine configuration with environment overrides."""
    config = ReconstructionConfig()

    for env_name, attr in _ENV_SWITCHES.items():
        flag = _env_flag(env_name)
        if flag is not None:
            setattr(config, attr, flag)
            logger.debug(f"{env_name} overrides {attr}={flag}")

    return config
