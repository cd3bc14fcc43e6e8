"""
Embedded image extraction for the reconstruction engine.

Walks a page's drawing instructions with a transform stack, resolves every
painted raster, decodes its samples to RGBA and positions it on the page.

Handles:
- save / restore / transform composition of the current transform (CTM)
- inline and referenced image samples
- grayscale, RGB and RGBA sample buffers
- PNG re-encoding with artifact filtering
"""

import base64
import io
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, NamedTuple, Optional, Sequence, Tuple, Dict, Any

import numpy as np
from PIL import Image

from .page import DrawingInstruction, ImageSample, Opcode, Page

logger = logging.getLogger(__name__)


class ImageDecodeError(ValueError):
    """Raised when a sample buffer has no supported channel layout."""


# ============================================================================
# Transform Matrix
# ============================================================================

class Matrix:
    """
    2-D affine transform [a b c d e f] held as a 3x3 row-vector matrix.

    A point (x, y) maps to (a*x + c*y + e, b*x + d*y + f).
    """

    __slots__ = ("values",)

    def __init__(self, values: np.ndarray):
        self.values = values

    @classmethod
    def identity(cls) -> 'Matrix':
        return cls(np.identity(3))

    @classmethod
    def from_operands(cls, operands: Sequence[float]) -> 'Matrix':
        if len(operands) != 6:
            raise ValueError(f"transform needs 6 operands, got {len(operands)}")
        a, b, c, d, e, f = (float(v) for v in operands)
        return cls(np.array([[a, b, 0.0], [c, d, 0.0], [e, f, 1.0]]))

    def compose(self, other: 'Matrix') -> 'Matrix':
        """Pre-multiply: the result applies `other` first, then self."""
        return Matrix(other.values @ self.values)

    @property
    def a(self) -> float:
        return float(self.values[0, 0])

    @property
    def b(self) -> float:
        return float(self.values[0, 1])

    @property
    def c(self) -> float:
        return float(self.values[1, 0])

    @property
    def d(self) -> float:
        return float(self.values[1, 1])

    @property
    def e(self) -> float:
        return float(self.values[2, 0])

    @property
    def f(self) -> float:
        return float(self.values[2, 1])

    def to_tuple(self) -> Tuple[float, ...]:
        return (self.a, self.b, self.c, self.d, self.e, self.f)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Matrix) and np.allclose(self.values, other.values)

    def __repr__(self) -> str:
        return f"Matrix{self.to_tuple()}"


# ============================================================================
# Data Classes
# ============================================================================

class HorizontalBias(Enum):
    """Side of the page an image sits on, for float/inline decisions."""
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


@dataclass
class ImageElement:
    """A decoded raster positioned on its page."""
    rgba: bytes
    png: bytes
    pixel_width: int
    pixel_height: int
    x: float
    y: float
    width: float
    height: float
    y_normalized: float
    horizontal_bias: HorizontalBias = HorizontalBias.CENTER

    def to_dict(self, include_pixels: bool = False) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "width": round(self.width, 2),
            "height": round(self.height, 2),
            "pixelWidth": self.pixel_width,
            "pixelHeight": self.pixel_height,
            "horizontalBias": self.horizontal_bias.value,
            "pngBytes": len(self.png),
        }
        if include_pixels:
            result["png"] = base64.b64encode(self.png).decode("ascii")
        return result


class _ExtractionState(NamedTuple):
    ctm: Matrix
    stack: Tuple[Matrix, ...]


# ============================================================================
# Pixel Decoding
# ============================================================================

def decode_rgba(sample: ImageSample) -> np.ndarray:
    """
    Decode a sample buffer to an (height, width, 4) uint8 RGBA array.

    The channel count is inferred from the buffer length: 1 is grayscale,
    3 is RGB (opaque), 4 is RGBA.

    Raises:
        ImageDecodeError: If the buffer matches none of these layouts
    """
    channels = sample.channels
    if channels not in (1, 3, 4):
        raise ImageDecodeError(
            f"Unsupported sample layout: {len(sample.data)} bytes for "
            f"{sample.width}x{sample.height} pixels"
        )

    pixels = np.frombuffer(sample.data, dtype=np.uint8).reshape(
        sample.height, sample.width, channels
    )
    if channels == 4:
        return pixels.copy()

    alpha = np.full((sample.height, sample.width, 1), 255, dtype=np.uint8)
    if channels == 1:
        return np.concatenate([pixels, pixels, pixels, alpha], axis=2)
    return np.concatenate([pixels, alpha], axis=2)


def encode_png(rgba: np.ndarray) -> bytes:
    """Encode an RGBA array as PNG."""
    buffer = io.BytesIO()
    Image.fromarray(rgba).save(buffer, format="PNG")
    return buffer.getvalue()


def horizontal_bias(
    left: float,
    right: float,
    page_width: float,
    center_band: float = 0.10
) -> HorizontalBias:
    """Classify an image by how far its center sits from the page center."""
    if page_width <= 0:
        return HorizontalBias.CENTER
    offset = ((left + right) / 2 - page_width / 2) / page_width
    if abs(offset) <= center_band:
        return HorizontalBias.CENTER
    return HorizontalBias.LEFT if offset < 0 else HorizontalBias.RIGHT


# ============================================================================
# Instruction Walk
# ============================================================================

def _resolve_sample(instruction: DrawingInstruction, page: Page) -> Optional[ImageSample]:
    if not instruction.operands:
        return None
    operand = instruction.operands[0]
    if instruction.opcode == Opcode.PAINT_INLINE_IMAGE.value:
        return operand if isinstance(operand, ImageSample) else None
    return page.image_resources.get(str(operand))


def _paint(
    ctm: Matrix,
    instruction: DrawingInstruction,
    page: Page,
    config: Any
) -> Optional[ImageElement]:
    sample = _resolve_sample(instruction, page)
    if sample is None:
        logger.warning(f"Page {page.page_number}: unresolved image {instruction.operands[:1]}")
        return None

    width, height = abs(ctm.a), abs(ctm.d)
    if width < config.min_size or height < config.min_size:
        logger.debug(f"Page {page.page_number}: skipping {width:.1f}x{height:.1f} image")
        return None

    try:
        rgba = decode_rgba(sample)
    except ImageDecodeError as e:
        logger.warning(f"Page {page.page_number}: {e}")
        return None

    png = encode_png(rgba)
    if len(png) < config.min_encoded_bytes:
        logger.debug(f"Page {page.page_number}: discarding {len(png)}-byte image")
        return None

    x, y = ctm.e, ctm.f
    y_norm = 1.0 - y / page.height if page.height > 0 else 0.0
    return ImageElement(
        rgba=rgba.tobytes(),
        png=png,
        pixel_width=sample.width,
        pixel_height=sample.height,
        x=x,
        y=y,
        width=width,
        height=height,
        y_normalized=min(max(y_norm, 0.0), 1.0),
        horizontal_bias=horizontal_bias(
            min(x, x + ctm.a), max(x, x + ctm.a), page.width, config.center_band
        ),
    )


def _step(
    state: _ExtractionState,
    instruction: DrawingInstruction,
    page: Page,
    config: Any
) -> Tuple[_ExtractionState, Optional[ImageElement]]:
    opcode = instruction.opcode

    if opcode == Opcode.SAVE.value:
        return _ExtractionState(state.ctm, state.stack + (state.ctm,)), None

    if opcode == Opcode.RESTORE.value:
        if not state.stack:
            logger.warning(f"Page {page.page_number}: restore without matching save")
            return state, None
        return _ExtractionState(state.stack[-1], state.stack[:-1]), None

    if opcode == Opcode.TRANSFORM.value:
        try:
            matrix = Matrix.from_operands(instruction.operands)
        except (TypeError, ValueError) as e:
            logger.warning(f"Page {page.page_number}: bad transform: {e}")
            return state, None
        return _ExtractionState(state.ctm.compose(matrix), state.stack), None

    if opcode in (Opcode.PAINT_IMAGE.value, Opcode.PAINT_INLINE_IMAGE.value):
        return state, _paint(state.ctm, instruction, page, config)

    return state, None


def extract_images(
    page: Page,
    config: Any = None,
    initial: Optional[Matrix] = None
) -> List[ImageElement]:
    """
    Extract positioned images from a page's drawing instructions.

    The walk is a fold over the instruction list carrying (CTM, stack);
    painted images are collected in instruction order. A bad instruction
    is logged and skipped.

    Args:
        page: Source page
        config: ImageConfig (defaults when None)
        initial: Starting transform (identity when None)

    Returns:
        Accepted ImageElements
    """
    if config is None:
        from ..config import ImageConfig
        config = ImageConfig()

    state = _ExtractionState(initial or Matrix.identity(), ())
    images: List[ImageElement] = []
    for instruction in page.instructions:
        state, image = _step(state, instruction, page, config)
        if image is not None:
            images.append(image)

    if images:
        logger.debug(f"Page {page.page_number}: extracted {len(images)} image(s)")
    return images
