"""
attachments.py – Optional PDF attachment for the generation prompt.

The teacher may attach a PDF (school programme, diagnostic report…).  Its
text is extracted with pypdf and appended to the prompt as reference
material, truncated so a large document cannot crowd out the instructions.
"""

from __future__ import annotations

import io
import logging

from pypdf import PdfReader
from pypdf.errors import PdfReadError

logger = logging.getLogger(__name__)

PDF_SIGNATURE   = b"%PDF"
MAX_PROMPT_CHARS = 12_000


class AttachmentError(ValueError):
    """The attachment is not a readable PDF."""


def looks_like_pdf(data: bytes) -> bool:
    return bool(data) and data[:4] == PDF_SIGNATURE


def extract_pdf_text(data: bytes, max_chars: int = MAX_PROMPT_CHARS) -> str:
    """
    Return the text of every page, joined by blank lines and cut to *max_chars*.

    Raises:
        AttachmentError – bytes are not a PDF or pypdf cannot parse them.
    """
    if not looks_like_pdf(data):
        raise AttachmentError("El archivo adjunto no es un PDF válido.")
    try:
        reader = PdfReader(io.BytesIO(data))
        pages  = [(page.extract_text() or "").strip() for page in reader.pages]
    except PdfReadError as exc:
        raise AttachmentError("No se pudo leer el PDF adjunto.") from exc

    text = "\n\n".join(p for p in pages if p)
    if len(text) > max_chars:
        logger.info("Attachment text truncated from %d to %d chars", len(text), max_chars)
        text = text[:max_chars]
    return text
