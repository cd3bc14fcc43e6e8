"""
Input data model for the layout reconstruction engine.

Pages arrive from the content-stream interpreter as positioned glyph runs,
raw drawing instructions and annotations, all in PDF user space (origin at
the bottom-left corner, Y growing upward). Everything here is read-only for
the engine.
"""

import base64
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple, Dict, Any

logger = logging.getLogger(__name__)


class PageReadError(ValueError):
    """Raised when a page is absent or its input record is unusable."""


# ============================================================================
# Data Classes and Enums
# ============================================================================

class Opcode(str, Enum):
    """Drawing instructions the engine interprets."""
    SAVE = "save"
    RESTORE = "restore"
    TRANSFORM = "transform"
    PAINT_IMAGE = "paint_image"
    PAINT_INLINE_IMAGE = "paint_inline_image"


@dataclass(frozen=True)
class GlyphRun:
    """A contiguous run of characters drawn by one text instruction."""
    text: str
    font_size: float
    transform: Tuple[float, float, float, float, float, float]
    width: Optional[float] = None

    @property
    def x(self) -> float:
        return self.transform[4]

    @property
    def y(self) -> float:
        return self.transform[5]

    @property
    def height(self) -> float:
        if self.font_size > 0:
            return self.font_size
        return abs(self.transform[3])

    @property
    def is_blank(self) -> bool:
        return not self.text.strip()

    def measured_width(self, char_width_ratio: float = 0.5) -> float:
        """Measured width, or an estimate from character count and font size."""
        if self.width is not None and self.width > 0:
            return self.width
        return len(self.text) * self.height * char_width_ratio

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GlyphRun':
        transform = tuple(float(v) for v in data["transform"])
        if len(transform) != 6:
            raise PageReadError(f"Glyph run transform needs 6 values, got {len(transform)}")
        width = data.get("width")
        return cls(
            text=str(data.get("text", "")),
            font_size=float(data.get("fontSize", data.get("font_size", 0.0))),
            transform=transform,
            width=float(width) if width is not None else None,
        )


@dataclass(frozen=True)
class ImageSample:
    """Decoded raster samples of one image, row-major, 8 bits per channel."""
    width: int
    height: int
    data: bytes

    @property
    def channels(self) -> Optional[int]:
        pixels = self.width * self.height
        if pixels <= 0 or len(self.data) % pixels:
            return None
        return len(self.data) // pixels

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ImageSample':
        raw = data.get("data", b"")
        if isinstance(raw, str):
            raw = base64.b64decode(raw)
        elif isinstance(raw, list):
            raw = bytes(raw)
        return cls(width=int(data["width"]), height=int(data["height"]), data=bytes(raw))


@dataclass(frozen=True)
class DrawingInstruction:
    """One content-stream operator with its operands."""
    opcode: str
    operands: Tuple[Any, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DrawingInstruction':
        operands = data.get("operands") or ()
        opcode = str(data["opcode"])
        if opcode == Opcode.PAINT_INLINE_IMAGE.value:
            operands = tuple(
                ImageSample.from_dict(op) if isinstance(op, dict) else op
                for op in operands
            )
        return cls(opcode=opcode, operands=tuple(operands))


@dataclass(frozen=True)
class Annotation:
    """A sticky-note or free-text comment placed on the page."""
    subtype: str
    contents: str
    rect: Tuple[float, float, float, float]
    author: Optional[str] = None

    @property
    def top(self) -> float:
        return max(self.rect[1], self.rect[3])

    def y_normalized(self, page_height: float) -> float:
        if page_height <= 0:
            return 0.0
        return min(max(1.0 - self.top / page_height, 0.0), 1.0)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Annotation':
        rect = tuple(float(v) for v in data.get("rect", (0, 0, 0, 0)))
        if len(rect) != 4:
            raise PageReadError(f"Annotation rect needs 4 values, got {len(rect)}")
        return cls(
            subtype=str(data.get("subtype", "")),
            contents=str(data.get("contents") or ""),
            rect=rect,
            author=data.get("author"),
        )


@dataclass
class Page:
    """One source page as exposed by the content-stream interpreter."""
    page_number: int
    width: float
    height: float
    glyph_runs: List[GlyphRun] = field(default_factory=list)
    instructions: List[DrawingInstruction] = field(default_factory=list)
    annotations: List[Annotation] = field(default_factory=list)
    # Images referenced by name from paint_image instructions
    image_resources: Dict[str, ImageSample] = field(default_factory=dict)

    @property
    def text_runs(self) -> List[GlyphRun]:
        return [r for r in self.glyph_runs if not r.is_blank]

    def validate(self):
        """Raise PageReadError if the page cannot be laid out."""
        if self.width <= 0 or self.height <= 0:
            raise PageReadError(
                f"Page {self.page_number} has invalid size {self.width}x{self.height}"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Page':
        """
        Build a page from an input-contract record.

        Accepts camelCase keys (``pageNumber``, ``glyphRuns``,
        ``drawingInstructions``) as well as their snake_case forms.
        Malformed glyph runs and annotations are skipped with a warning.
        """
        if not isinstance(data, dict):
            raise PageReadError(f"Page record must be a mapping, got {type(data).__name__}")

        try:
            page_number = int(data.get("pageNumber", data.get("page_number")))
            width = float(data["width"])
            height = float(data["height"])
        except (KeyError, TypeError, ValueError) as e:
            raise PageReadError(f"Unreadable page record: {e}")

        runs = []
        for raw in data.get("glyphRuns", data.get("glyph_runs", [])):
            try:
                runs.append(GlyphRun.from_dict(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Page {page_number}: skipping glyph run: {e}")

        instructions = []
        for raw in data.get("drawingInstructions", data.get("instructions", [])):
            try:
                instructions.append(DrawingInstruction.from_dict(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Page {page_number}: skipping instruction: {e}")

        annotations = []
        for raw in data.get("annotations", []):
            try:
                annotations.append(Annotation.from_dict(raw))
            except (TypeError, ValueError) as e:
                logger.warning(f"Page {page_number}: skipping annotation: {e}")

        resources = {}
        for name, raw in (data.get("images") or {}).items():
            try:
                resources[name] = ImageSample.from_dict(raw)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Page {page_number}: skipping image resource {name}: {e}")

        return cls(
            page_number=page_number,
            width=width,
            height=height,
            glyph_runs=runs,
            instructions=instructions,
            annotations=annotations,
            image_resources=resources,
        )
