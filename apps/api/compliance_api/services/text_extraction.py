"""
Text extraction from uploaded rules documents
"""
import logging
from typing import NamedTuple, Optional

import fitz  # PyMuPDF

from ..core.exceptions import TextExtractionError


logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


class ExtractedText(NamedTuple):
    text: str
    length: int


def is_pdf(content_type: Optional[str]) -> bool:
    """Whether an upload's content type is a PDF document"""
    if not content_type:
        return False
    return content_type.split(";")[0].strip().lower() == PDF_CONTENT_TYPE


def extract_pdf_text(content: bytes) -> ExtractedText:
    """
    Extract plain text from PDF bytes, pages separated by a blank line
    
    Raises:
        TextExtractionError: If the bytes are not a readable PDF
    """
    try:
        with fitz.open(stream=content, filetype="pdf") as document:
            pages = [page.get_text() for page in document]
    except Exception as e:
        raise TextExtractionError(f"Failed to extract text from PDF: {str(e)}") from e
    
    text = "\n\n".join(pages)
    logger.debug(f"Extracted {len(text)} characters from {len(pages)} PDF pages")
    return ExtractedText(text=text, length=len(text))
