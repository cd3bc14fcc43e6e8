"""
Binding of sticky-note and free-text annotations to paragraphs.
"""

import logging
from typing import List, Sequence, Tuple

from .layout import Paragraph
from .page import Annotation

logger = logging.getLogger(__name__)


def comment_annotations(
    annotations: Sequence[Annotation],
    subtypes: Sequence[str] = ("Text", "FreeText")
) -> List[Annotation]:
    """Annotations that carry a comment: matching subtype, non-empty contents."""
    return [a for a in annotations if a.subtype in subtypes and a.contents.strip()]


def match_annotations(
    paragraphs: Sequence[Paragraph],
    annotations: Sequence[Annotation],
    page_height: float,
    y_window: float = 0.05,
    subtypes: Sequence[str] = ("Text", "FreeText")
) -> List[Tuple[Annotation, Paragraph]]:
    """
    Bind annotations to paragraphs, first fit in paragraph order.

    Each paragraph takes the first unconsumed annotation whose normalized Y
    lies within y_window of its own. A bound annotation is not offered to
    later paragraphs; unmatched annotations are dropped.

    Returns:
        (annotation, paragraph) bindings in paragraph order
    """
    candidates = comment_annotations(annotations, subtypes)
    positions = [a.y_normalized(page_height) for a in candidates]
    consumed = [False] * len(candidates)

    bindings: List[Tuple[Annotation, Paragraph]] = []
    for paragraph in paragraphs:
        for index, annotation in enumerate(candidates):
            if consumed[index]:
                continue
            if abs(positions[index] - paragraph.y_normalized) < y_window:
                consumed[index] = True
                paragraph.annotation = annotation
                bindings.append((annotation, paragraph))
                break

    dropped = consumed.count(False)
    if dropped:
        logger.debug(f"Dropped {dropped} unmatched annotation(s)")
    return bindings
