"""
Export module for reconstructed documents.

Provides:
- Markdown export
- DOCX export (using python-docx)
- JSON export of the document model
"""

import io
import logging
import re
from pathlib import Path
from typing import Dict, Any, Optional, List, Union

from .assembler import DocumentModel, PageBreak, PageElement
from .images import HorizontalBias, ImageElement
from .layout import Alignment, ListKind, Paragraph

logger = logging.getLogger(__name__)

POINTS_PER_INCH = 72.0

# Characters XML 1.0 cannot carry; PDF text spans occasionally contain them
XML_INVALID_PATTERN = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ud800-\udfff\ufffe\uffff]")


def xml_safe(text: str) -> str:
    """Strip characters that cannot appear in an XML document."""
    return XML_INVALID_PATTERN.sub("", text)


# ============================================================================
# Markdown Exporter
# ============================================================================

class MarkdownExporter:
    """Export document to Markdown format."""

    def __init__(
        self,
        include_page_breaks: bool = True,
        image_dir_name: str = "images"
    ):
        self.include_page_breaks = include_page_breaks
        self.image_dir_name = image_dir_name

    def export(
        self,
        document: DocumentModel,
        output_path: Union[str, Path]
    ) -> Path:
        """
        Export document to Markdown file.

        Images are written as PNG files to a directory next to the output.

        Args:
            document: Reconstructed document
            output_path: Output file path

        Returns:
            Path to the generated Markdown file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        markdown = self.generate_markdown(document, image_dir=output_path.parent / self.image_dir_name)

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(markdown)

        logger.info(f"Exported Markdown to: {output_path}")
        return output_path

    def generate_markdown(
        self,
        document: DocumentModel,
        image_dir: Optional[Path] = None
    ) -> str:
        """Generate Markdown from the document model."""
        lines: List[str] = []
        image_count = 0

        for element in document.elements:
            if isinstance(element, PageBreak):
                if self.include_page_breaks:
                    lines.append("---")
                    lines.append("")
                continue

            if element.paragraph is not None:
                md = self._paragraph_to_markdown(element.paragraph)
            else:
                image_count += 1
                md = self._image_to_markdown(element, image_count, image_dir)

            if md:
                lines.append(md)
                lines.append("")

        if document.comments:
            for comment in document.comments:
                lines.append(f"[^c{comment.comment_id}]: **{comment.author}**: {comment.text}")
            lines.append("")

        return "\n".join(lines)

    def _paragraph_to_markdown(self, paragraph: Paragraph) -> str:
        """Convert a paragraph to Markdown."""
        text = paragraph.text
        if paragraph.comment_id is not None:
            text = f"{text}[^c{paragraph.comment_id}]"

        if paragraph.heading_level is not None:
            return f"{'#' * paragraph.heading_level} {text}"
        if paragraph.list_kind == ListKind.BULLET:
            return f"- {text}"
        if paragraph.list_kind == ListKind.NUMBERED:
            return f"1. {text}"
        return text

    def _image_to_markdown(
        self,
        element: PageElement,
        index: int,
        image_dir: Optional[Path]
    ) -> str:
        """Write an image next to the Markdown file and link it."""
        if image_dir is None:
            return ""
        image_dir.mkdir(parents=True, exist_ok=True)
        name = f"page{element.page_number:04d}_image{index:03d}.png"
        (image_dir / name).write_bytes(element.image.png)
        return f"![Image {index}]({image_dir.name}/{name})"


# ============================================================================
# DOCX Exporter
# ============================================================================

class DocxExporter:
    """Export document to DOCX format using python-docx."""

    def __init__(
        self,
        template_path: Optional[str] = None,
        max_image_width_inches: float = 6.0
    ):
        self.template_path = template_path
        self.max_image_width_inches = max_image_width_inches

    def export(
        self,
        document: DocumentModel,
        output_path: Union[str, Path]
    ) -> Path:
        """
        Export document to DOCX file.

        Args:
            document: Reconstructed document
            output_path: Output file path

        Returns:
            Path to the generated DOCX file
        """
        try:
            from docx import Document as DocxDocument
        except ImportError:
            raise ImportError(
                "python-docx is required for DOCX export. "
                "Install with: pip install python-docx"
            )

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        # Create document from template or blank
        if self.template_path and Path(self.template_path).exists():
            doc = DocxDocument(self.template_path)
        else:
            doc = DocxDocument()

        comments = {c.comment_id: c for c in document.comments}
        for element in document.elements:
            if isinstance(element, PageBreak):
                doc.add_page_break()
                continue
            try:
                if element.paragraph is not None:
                    self._add_paragraph(doc, element.paragraph, comments)
                elif element.image is not None:
                    self._add_image(doc, element.image)
            except ValueError as e:
                logger.warning(f"Skipping element on page {element.page_number}: {e}")

        doc.save(str(output_path))
        logger.info(f"Exported DOCX to: {output_path}")

        return output_path

    def _add_paragraph(self, doc: Any, paragraph: Paragraph, comments: Dict[int, Any]):
        """Add a paragraph with its heading, list and alignment styling."""
        from docx.enum.text import WD_ALIGN_PARAGRAPH

        text = xml_safe(paragraph.text)
        if paragraph.heading_level is not None:
            p = doc.add_heading(text, level=paragraph.heading_level)
        elif paragraph.list_kind == ListKind.BULLET:
            p = doc.add_paragraph(text, style="List Bullet")
        elif paragraph.list_kind == ListKind.NUMBERED:
            p = doc.add_paragraph(text, style="List Number")
        else:
            p = doc.add_paragraph(text)

        if paragraph.alignment == Alignment.CENTER:
            p.alignment = WD_ALIGN_PARAGRAPH.CENTER
        elif paragraph.alignment == Alignment.RIGHT:
            p.alignment = WD_ALIGN_PARAGRAPH.RIGHT

        comment = comments.get(paragraph.comment_id)
        if comment is not None and p.runs:
            doc.add_comment(p.runs, text=xml_safe(comment.text), author=xml_safe(comment.author))

    def _add_image(self, doc: Any, image: ImageElement):
        """Add an image scaled from device units, aligned by its bias."""
        from docx.shared import Inches
        from docx.enum.text import WD_ALIGN_PARAGRAPH

        width = min(image.width / POINTS_PER_INCH, self.max_image_width_inches)
        doc.add_picture(io.BytesIO(image.png), width=Inches(width))

        alignment = {
            HorizontalBias.LEFT: WD_ALIGN_PARAGRAPH.LEFT,
            HorizontalBias.CENTER: WD_ALIGN_PARAGRAPH.CENTER,
            HorizontalBias.RIGHT: WD_ALIGN_PARAGRAPH.RIGHT,
        }[image.horizontal_bias]
        doc.paragraphs[-1].alignment = alignment


# ============================================================================
# Multi-format Export
# ============================================================================

class DocumentExporter:
    """Convenience class for exporting to multiple formats."""

    FORMATS = ("json", "markdown", "docx")

    def __init__(
        self,
        output_dir: Union[str, Path],
        base_name: str = "document"
    ):
        self.output_dir = Path(output_dir)
        self.base_name = base_name

        self.markdown_exporter = MarkdownExporter()
        self.docx_exporter = DocxExporter()

    def export(
        self,
        document: DocumentModel,
        formats: Optional[List[str]] = None
    ) -> Dict[str, Path]:
        """
        Export document to multiple formats.

        Args:
            document: Reconstructed document
            formats: List of formats ('json', 'markdown', 'docx', 'all')

        Returns:
            Dictionary mapping format to output path
        """
        from .io import save_json

        if formats is None:
            formats = ["json", "markdown"]

        if "all" in formats:
            formats = list(self.FORMATS)

        self.output_dir.mkdir(parents=True, exist_ok=True)

        results = {}

        if "json" in formats:
            path = self.output_dir / f"{self.base_name}.json"
            results["json"] = save_json(document.to_dict(), path)

        if "markdown" in formats:
            path = self.output_dir / f"{self.base_name}.md"
            results["markdown"] = self.markdown_exporter.export(document, path)

        if "docx" in formats:
            path = self.output_dir / f"{self.base_name}.docx"
            results["docx"] = self.docx_exporter.export(document, path)

        return results
