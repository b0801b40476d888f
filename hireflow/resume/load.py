"""
Résumé text extraction.

Plain text and Markdown files are read as UTF-8.  PDF and Word files go
through ``pdfplumber`` and ``python-docx`` respectively; both are
imported lazily so that a text-only workflow does not pay for them.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable, List

from ..errors import ValidationError
from .schema import ResumeInput

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = {".txt", ".md"}
SUPPORTED_EXTENSIONS = TEXT_EXTENSIONS | {".pdf", ".docx"}


def _read_pdf(file_path: str) -> str:
    try:
        import pdfplumber  # type: ignore
    except ImportError as exc:
        raise RuntimeError("pdfplumber is required to read PDF résumés; install it via pip") from exc
    pages = []
    with pdfplumber.open(file_path) as pdf:
        for page in pdf.pages:
            pages.append(page.extract_text() or "")
    return "\n".join(pages)


def _read_docx(file_path: str) -> str:
    try:
        import docx  # type: ignore
    except ImportError as exc:
        raise RuntimeError("python-docx is required to read Word résumés; install it via pip") from exc
    document = docx.Document(file_path)
    return "\n".join(p.text for p in document.paragraphs)


def extract_text(file_path: str) -> str:
    """Extract text from a résumé file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValidationError: If the extension is not supported.
    """
    if not os.path.exists(file_path):
        raise FileNotFoundError(file_path)
    ext = os.path.splitext(file_path)[1].lower()
    if ext not in SUPPORTED_EXTENSIONS:
        raise ValidationError(
            f"Unsupported résumé format '{ext or file_path}'; expected one of {sorted(SUPPORTED_EXTENSIONS)}"
        )
    if ext == ".pdf":
        return _read_pdf(file_path)
    if ext == ".docx":
        return _read_docx(file_path)
    with open(file_path, "r", encoding="utf-8") as f:
        return f.read()


def load_resumes(paths: Iterable[str]) -> List[ResumeInput]:
    """Read résumé files into ``ResumeInput`` values, in the given order.

    Directories are expanded to the supported files they contain
    (sorted by name).  Empty files are rejected since they cannot be
    scored.
    """
    files: List[str] = []
    for path in paths:
        if os.path.isdir(path):
            for name in sorted(os.listdir(path)):
                if os.path.splitext(name)[1].lower() in SUPPORTED_EXTENSIONS:
                    files.append(os.path.join(path, name))
        else:
            files.append(path)
    resumes: List[ResumeInput] = []
    for file_path in files:
        text = extract_text(file_path)
        if not text.strip():
            raise ValidationError(f"Résumé {file_path} contains no text")
        resumes.append(ResumeInput.create(os.path.basename(file_path), text))
        logger.debug("Loaded %s (%d chars)", file_path, len(text))
    logger.info("Loaded %d résumé(s)", len(resumes))
    return resumes
