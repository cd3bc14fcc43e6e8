"""
Page Layout Reconstruction Engine
=================================

Rebuilds reflowable documents from fixed-layout PDF pages.
Turns positioned glyph runs, drawing instructions and annotations into an
ordered sequence of paragraphs, images and page breaks.

Main components:
- Font-size histogram (body text and heading sizes)
- Column detection and line/paragraph assembly
- Paragraph classification (alignment, heading level, list kind)
- Embedded image extraction
- Annotation to comment matching
- JSON, Markdown and DOCX export
"""

__version__ = "1.0.0"
__author__ = "Layout Reconstruction Team"
