"""
PDF Reader Module
Turns the pages of a season schedule PDF into positioned text fragments for the schedule parser.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

from ..pipelines.season_schedule.models import TextFragment

logger = logging.getLogger(__name__)


class ExtractionError(RuntimeError):
    """Raised when a PDF cannot be turned into text fragments."""


class PDFTextReader:
    """
    Extracts ``TextFragment`` pages from PDF files with PyPDF2.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the reader.

        Args:
            config: Optional global configuration; only ``pdf_processing`` is read
        """
        self.config = config or {}
        pdf_config = self.config.get("pdf_processing", {}) or {}
        self.skip_start = max(int(pdf_config.get("skip_start_pages", 0)), 0)
        self.skip_end = max(int(pdf_config.get("skip_end_pages", 0)), 0)

    def calculate_checksum(self, filepath: Path) -> str:
        """
        Calculate SHA256 checksum of a file.
        """
        sha256_hash = hashlib.sha256()
        with open(filepath, "rb") as f:
            for byte_block in iter(lambda: f.read(4096), b""):
                sha256_hash.update(byte_block)
        return sha256_hash.hexdigest()

    def extract_fragments(self, pdf_path: Path) -> Tuple[List[List[TextFragment]], int]:
        """
        Extract positioned text fragments, one list per processed page.

        Whitespace-only fragments are kept: the gaps between columns are what
        separates a car name from the session details that follow it.
        """
        try:
            reader = PdfReader(str(pdf_path))
            page_count = len(reader.pages)
        except (OSError, PdfReadError) as exc:
            raise ExtractionError(f"Failed to open {Path(pdf_path).name}: {exc}") from exc

        processed_end = max(page_count - self.skip_end, self.skip_start)
        pages: List[List[TextFragment]] = []
        fragment_count = 0

        for idx, page in enumerate(reader.pages):
            if idx < self.skip_start or idx >= processed_end:
                continue
            fragments: List[TextFragment] = []

            def visitor(text, cm, tm, font_dict, font_size):
                if not text or not text.strip("\r\n"):
                    return
                x = tm[4] * cm[0] + tm[5] * cm[2] + cm[4]
                y = tm[4] * cm[1] + tm[5] * cm[3] + cm[5]
                clean = text.replace("\r", "").replace("\n", " ")
                fragments.append(TextFragment(text=clean, baseline_y=float(y), x=float(x)))

            try:
                page.extract_text(visitor_text=visitor)
            except Exception as exc:
                raise ExtractionError(
                    f"Error extracting text from page {idx + 1} of {Path(pdf_path).name}: {exc}"
                ) from exc

            fragment_count += len(fragments)
            pages.append(fragments)

        if not fragment_count:
            raise ExtractionError(f"No text found in {Path(pdf_path).name}")

        logger.debug(
            "Extracted %d fragment(s) from %d page(s) of %s",
            fragment_count,
            len(pages),
            Path(pdf_path).name,
        )
        return pages, page_count

    def extract_metadata(self, pdf_path: Path) -> Dict[str, Any]:
        """
        Extract document info from the PDF, leaving blanks where it has none.
        """
        metadata: Dict[str, Any] = {
            "title": None,
            "author": None,
            "subject": None,
            "year": None,
        }

        try:
            info = PdfReader(str(pdf_path)).metadata or {}
        except (OSError, PdfReadError) as e:
            logger.warning(f"Could not extract metadata from {Path(pdf_path).name}: {e}")
            return metadata

        title = (info.get("/Title") or "").strip()
        subject = (info.get("/Subject") or "").strip()
        author = (info.get("/Author") or "").strip()
        creation = (info.get("/CreationDate") or "").strip()

        if title:
            metadata["title"] = title
        if subject:
            metadata["subject"] = subject
        if author:
            metadata["author"] = author
        if creation.startswith("D:"):
            year_str = creation[2:6]
            if year_str.isdigit():
                metadata["year"] = int(year_str)

        return metadata
