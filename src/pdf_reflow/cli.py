#!/usr/bin/env python
"""
Command-line interface for the page layout reconstruction engine.

Usage:
    pdf-reflow --input <pdf_or_json> --output <output_dir> [options]

Examples:
    # Reconstruct a PDF to JSON and Markdown
    pdf-reflow --input paper.pdf --output ./output

    # Write every format, with annotations as comments
    pdf-reflow --input paper.pdf --output ./output --format all --comments

    # Reconstruct from an input-contract JSON file
    pdf-reflow --input pages.json --output ./output --format docx
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List

from . import __version__

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("pdf_reflow")


def setup_argparser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        description="Page layout reconstruction - rebuild reflowable documents from PDF pages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  Reconstruct a PDF and export all formats:
    pdf-reflow --input paper.pdf --output ./output --format all

  Keep sticky notes as document comments:
    pdf-reflow --input paper.pdf --output ./output --comments

  Scanned PDF, images only:
    pdf-reflow --input scan.pdf --output ./output --image-only --dpi 200

  Process only specific pages:
    pdf-reflow --input paper.pdf --output ./output --pages 1-5
        """
    )

    # Required arguments
    parser.add_argument(
        "--input", "-i",
        required=True,
        help="Input PDF file or input-contract JSON file"
    )

    parser.add_argument(
        "--output", "-o",
        required=True,
        help="Output directory for generated files"
    )

    # Optional arguments
    parser.add_argument(
        "--format", "-f",
        nargs="+",
        default=["json", "markdown"],
        choices=["json", "markdown", "docx", "all"],
        help="Output format(s) (default: json markdown)"
    )

    parser.add_argument(
        "--no-images",
        action="store_true",
        help="Do not extract embedded images"
    )

    parser.add_argument(
        "--no-smart-headings",
        action="store_true",
        help="Disable font-size based heading detection"
    )

    parser.add_argument(
        "--comments",
        action="store_true",
        help="Attach Text/FreeText annotations to paragraphs as comments"
    )

    parser.add_argument(
        "--image-only",
        action="store_true",
        help="Rasterize each page and emit it as an image (no text reconstruction)"
    )

    parser.add_argument(
        "--dpi",
        type=int,
        default=150,
        help="DPI for page rasterization in image-only mode (default: 150)"
    )

    parser.add_argument(
        "--pages",
        type=str,
        default=None,
        help="Page range to process, e.g., '1-5' or '1,3,5' (default: all)"
    )

    parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Abort on the first page that cannot be read"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug mode (page sketches with paragraph and image boxes, tracebacks)"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable verbose output"
    )

    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress non-error output"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    return parser


def parse_page_range(page_str: str, max_pages: int) -> List[int]:
    """Parse page range string to list of page numbers."""
    pages = []

    for part in page_str.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            start, end = part.split("-")
            start = max(int(start), 1)
            end = min(int(end), max_pages)
            pages.extend(range(start, end + 1))
        else:
            page = int(part)
            if 1 <= page <= max_pages:
                pages.append(page)

    return sorted(set(pages))


def build_config(args):
    """Apply command-line switches on top of the default configuration."""
    from .config import get_config

    config = get_config()
    if args.no_images:
        config.extract_images = False
    if args.no_smart_headings:
        config.smart_headings = False
    if args.comments:
        config.extract_comments = True
    if args.image_only:
        config.image_only = True
    if args.fail_fast:
        config.fail_fast = True
    if args.debug:
        config.debug_mode = True
    config.images.render_dpi = args.dpi
    return config


def run_pipeline(args) -> int:
    """Run the layout reconstruction pipeline."""
    from .utils.io import (
        detect_input_type,
        ensure_dir,
        get_pdf_page_count,
        load_pages_json,
        load_pdf_pages,
        rasterize_pdf_pages,
    )
    from .utils.assembler import DocumentAssembler
    from .utils.export import DocumentExporter

    start_time = time.time()
    config = build_config(args)

    # Setup output directory
    output_dir = Path(args.output)
    ensure_dir(output_dir)

    # Detect input type and load pages
    input_path = Path(args.input)
    input_type = detect_input_type(input_path)

    logger.info(f"Input type detected: {input_type}")

    page_numbers = None
    if input_type == "pdf":
        page_count = get_pdf_page_count(input_path)
        page_numbers = parse_page_range(args.pages, page_count) if args.pages else None
        if page_numbers is not None:
            logger.info(f"Processing pages: {page_numbers}")
        if config.image_only:
            logger.info(f"Rasterizing PDF at {config.images.render_dpi} DPI...")
            pages = rasterize_pdf_pages(
                input_path, dpi=config.images.render_dpi, page_numbers=page_numbers
            )
        else:
            pages = load_pdf_pages(input_path, page_numbers=page_numbers)
    elif input_type == "json":
        pages = load_pages_json(input_path)
        if args.pages:
            page_numbers = parse_page_range(args.pages, len(pages))
            pages = [pages[i - 1] for i in page_numbers]
            logger.info(f"Processing pages: {page_numbers}")
    else:
        logger.error(f"Unsupported input type: {input_type}")
        return 1

    # Process document
    assembler = DocumentAssembler(config, output_dir=output_dir)
    logger.info("Processing document...")
    try:
        document = assembler.process_document(
            pages, source_file=str(input_path), page_numbers=page_numbers
        )
    except Exception as e:
        logger.error(f"Processing failed: {e}")
        if args.debug:
            raise
        return 1

    if not document.pages:
        logger.error("No pages to process")
        return 1

    # Export to requested formats
    exporter = DocumentExporter(output_dir, input_path.stem)
    export_results = exporter.export(document, args.format)
    for fmt, path in export_results.items():
        logger.info(f"Exported {fmt}: {path}")

    # Print summary
    elapsed = time.time() - start_time
    stats = document.stats

    if not args.quiet:
        print("\n" + "=" * 60)
        print("LAYOUT RECONSTRUCTION COMPLETE")
        print("=" * 60)
        print(f"Source: {input_path}")
        print(f"Output: {output_dir}")
        print(f"Pages processed: {stats.pages_processed} (failed: {stats.pages_failed})")
        print(f"Processing time: {elapsed:.2f}s")
        print()
        print("Content:")
        print(f"  Paragraphs: {stats.paragraphs_total} "
              f"(headings: {sum(stats.headings.values())}, "
              f"list items: {stats.list_items})")
        print(f"  Images: {stats.images_total}")
        print(f"  Comments: {stats.comments_total}")
        print("=" * 60)

    return 0


def main():
    """Main entry point."""
    parser = setup_argparser()
    args = parser.parse_args()

    # Configure logging level
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    elif args.quiet:
        logging.getLogger().setLevel(logging.ERROR)

    # Run pipeline
    try:
        exit_code = run_pipeline(args)
        sys.exit(exit_code)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args.debug:
            raise
        sys.exit(1)


if __name__ == "__main__":
    main()
