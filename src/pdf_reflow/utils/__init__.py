"""
Utility modules for the layout reconstruction engine.
"""

from .page import Page, GlyphRun, DrawingInstruction, Annotation, ImageSample, PageReadError
from .io import load_pages_json, load_pdf_pages, rasterize_pdf_pages, save_json, ensure_dir
from .fonts import FontSizeHistogram, build_font_histogram
from .layout import Paragraph, Alignment, ListKind, assemble_paragraphs, detect_columns
from .classify import classify_paragraph, classify_heading
from .images import ImageElement, ImageDecodeError, Matrix, extract_images
from .annotations import match_annotations
from .assembler import DocumentAssembler, DocumentModel, PageElement, PageBreak, Comment
from .export import MarkdownExporter, DocxExporter, DocumentExporter

__all__ = [
    # Input
    "Page", "GlyphRun", "DrawingInstruction", "Annotation", "ImageSample", "PageReadError",
    # IO
    "load_pages_json", "load_pdf_pages", "rasterize_pdf_pages", "save_json", "ensure_dir",
    # Fonts
    "FontSizeHistogram", "build_font_histogram",
    # Layout
    "Paragraph", "Alignment", "ListKind", "assemble_paragraphs", "detect_columns",
    # Classification
    "classify_paragraph", "classify_heading",
    # Images
    "ImageElement", "ImageDecodeError", "Matrix", "extract_images",
    # Annotations
    "match_annotations",
    # Assembly
    "DocumentAssembler", "DocumentModel", "PageElement", "PageBreak", "Comment",
    # Export
    "MarkdownExporter", "DocxExporter", "DocumentExporter",
]
