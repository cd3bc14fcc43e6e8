#!/usr/bin/env python
"""
Generate synthetic sample inputs for the layout reconstruction engine.

This script creates:
- A two-column article PDF with a title, a figure and a sticky note
- A single-column PDF with headings and lists
- An input-contract JSON file describing the same kind of page

Usage:
    python examples/generate_samples.py
"""

import base64
import json
from pathlib import Path

import numpy as np


def create_figure_png(width: int = 160, height: int = 100) -> bytes:
    """Create a gradient figure as PNG bytes."""
    import io
    from PIL import Image

    x = np.linspace(0, 255, width, dtype=np.uint8)
    y = np.linspace(0, 255, height, dtype=np.uint8)
    rgb = np.zeros((height, width, 3), dtype=np.uint8)
    rgb[..., 0] = x[None, :]
    rgb[..., 1] = y[:, None]
    rgb[..., 2] = 128

    buffer = io.BytesIO()
    Image.fromarray(rgb).save(buffer, format="PNG")
    return buffer.getvalue()


def create_multicol_pdf(path: Path):
    """Create a two-column article page."""
    import fitz

    doc = fitz.open()
    page = doc.new_page(width=612, height=792)

    # Title (full width, centered)
    page.insert_text((180, 60), "Multi-Column Layout Demo", fontsize=22)
    page.insert_text((60, 100), "This demonstrates a two-column academic paper layout.", fontsize=10)

    left_text = [
        "1. Introduction",
        "This is the first column of",
        "a two-column layout. The text",
        "here should be read before",
        "moving to the right column.",
        "Multi-column layouts are",
        "common in academic papers",
        "and require special handling",
        "to determine reading order.",
    ]
    right_text = [
        "2. Methods",
        "This is the second column.",
        "Content here follows the",
        "first column in reading",
        "order. Columns are found",
        "from gaps in horizontal",
        "text coverage between",
        "the page margins.",
    ]

    for column_x, lines in ((60, left_text), (330, right_text)):
        y = 150
        for line in lines:
            page.insert_text((column_x, y), line, fontsize=10)
            y += 14

    # Figure below both columns
    page.insert_image(fitz.Rect(226, 320, 386, 420), stream=create_figure_png())
    page.insert_text((250, 440), "Figure 1. A gradient.", fontsize=9)

    page.add_text_annot((560, 150), "Clarify the scope of this section.")

    doc.save(str(path))
    doc.close()


def create_lists_pdf(path: Path):
    """Create a page with headings and lists."""
    import fitz

    doc = fitz.open()
    page = doc.new_page(width=612, height=792)

    y = 80
    page.insert_text((60, y), "Project Notes", fontsize=24)
    y += 50
    page.insert_text((60, y), "Goals", fontsize=16)
    y += 30
    for item in ("- Rebuild paragraphs", "- Keep figures", "- Preserve comments"):
        page.insert_text((60, y), item, fontsize=11)
        y += 16
    y += 30
    page.insert_text((60, y), "Steps", fontsize=16)
    y += 30
    for item in ("1. Read the pages", "2. Detect columns", "3. Export the result"):
        page.insert_text((60, y), item, fontsize=11)
        y += 16
    y += 30
    for line in ("Body text keeps the document readable on small screens and",
                 "is the most common size on the page, which makes it the",
                 "reference for every heading decision."):
        page.insert_text((60, y), line, fontsize=11)
        y += 15

    doc.save(str(path))
    doc.close()


def create_contract_page() -> dict:
    """Create an input-contract page record."""
    runs = [{"text": "Sample Page", "fontSize": 20, "transform": [20, 0, 0, 20, 240, 740], "width": 130}]
    for i in range(12):
        runs.append({
            "text": f"Line {i + 1} of the body paragraph.",
            "fontSize": 11,
            "transform": [11, 0, 0, 11, 72, 690 - 14 * i],
            "width": 180,
        })

    rng = np.random.default_rng(7)
    pixels = rng.integers(0, 256, size=48 * 48 * 3, dtype=np.uint8)

    return {
        "pageNumber": 1,
        "width": 612,
        "height": 792,
        "glyphRuns": runs,
        "drawingInstructions": [
            {"opcode": "save"},
            {"opcode": "transform", "operands": [144, 0, 0, 144, 234, 300]},
            {"opcode": "paint_image", "operands": ["Im1"]},
            {"opcode": "restore"},
        ],
        "annotations": [
            {"subtype": "Text", "contents": "Looks good.", "rect": [540, 670, 560, 692], "author": "Reviewer"},
        ],
        "images": {
            "Im1": {"width": 48, "height": 48, "data": base64.b64encode(pixels.tobytes()).decode("ascii")},
        },
    }


def main():
    samples_dir = Path(__file__).parent / "sample_pages"
    samples_dir.mkdir(exist_ok=True)

    multicol_path = samples_dir / "sample_multicol.pdf"
    create_multicol_pdf(multicol_path)
    print(f"Created: {multicol_path}")

    lists_path = samples_dir / "sample_lists.pdf"
    create_lists_pdf(lists_path)
    print(f"Created: {lists_path}")

    contract_path = samples_dir / "sample_contract.json"
    with open(contract_path, 'w') as f:
        json.dump({"pages": [create_contract_page()]}, f, indent=2)
    print(f"Created: {contract_path}")

    print("\nSample generation complete!")
    print("Try: pdf-reflow --input examples/sample_pages/sample_multicol.pdf --output ./output --comments")


if __name__ == "__main__":
    main()
