from pathlib import Path
import logging
import PyPDF2

logger = logging.getLogger(__name__)


def count_pages(pdf_path: Path) -> int:
    """Page count without laying out any text; used to clamp navigation targets."""
    try:
        with open(pdf_path, "rb") as f:
            return len(PyPDF2.PdfReader(f).pages)
    except Exception as e:
        logger.error(f"PyPDF2 page count failed for {pdf_path}: {e}")
        raise
