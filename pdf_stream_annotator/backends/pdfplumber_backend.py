from pathlib import Path
from typing import Optional
import logging
import pdfplumber

from pdf_stream_annotator.backends.pypdf2_backend import count_pages
from pdf_stream_annotator.core.page_range import neighbour_pages
from pdf_stream_annotator.core.types import PdfText

logger = logging.getLogger(__name__)


def _page_text(pdf, page_number: Optional[int]) -> Optional[str]:
    if page_number is None:
        return None
    return (pdf.pages[page_number - 1].extract_text() or "").strip()


def load_page_context(pdf_path: Path, current_page: int) -> PdfText:
    """Text of the page in view and its neighbours, in the shape a stream payload carries.

    ``current_page`` is clamped into the document, so callers may pass a stale
    or sentinel page number.
    """
    total = count_pages(pdf_path)
    if total <= 0:
        raise ValueError(f"'{pdf_path.name}' has no pages")
    current, previous, following = neighbour_pages(total, current_page)
    try:
        with pdfplumber.open(pdf_path) as pdf:
            return PdfText(
                current=_page_text(pdf, current),
                previous=_page_text(pdf, previous),
                next=_page_text(pdf, following),
                currentPage=current,
                totalPages=total,
            )
    except Exception as e:
        logger.error(f"pdfplumber text extraction failed for {pdf_path}: {e}")
        raise
