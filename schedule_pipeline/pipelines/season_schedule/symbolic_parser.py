from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from uuid import uuid4

from ...modules.pdf_reader import PDFTextReader
from ..base_pipeline import BaseSymbolicParser
from .schedule_parser import (
    ParserSettings,
    ParseResult,
    ScheduleParseError,
    ScheduleTextParser,
)


class SeasonScheduleSymbolicParser(BaseSymbolicParser):
    """Symbolic parser for season schedule PDFs."""

    def __init__(
        self,
        root_dir: Path,
        pipeline_config: dict,
        global_config: dict,
        reader: Optional[PDFTextReader] = None,
    ) -> None:
        super().__init__(root_dir, "season_schedule", pipeline_config, global_config)
        self.symbolic_config = pipeline_config.get("symbolic", {}) or {}
        self.settings = ParserSettings.from_config(self.symbolic_config)
        self.reader = reader or PDFTextReader(global_config)
        self.text_parser = ScheduleTextParser(self.settings)
        self.logger = logging.getLogger("pipeline.season_schedule.symbolic")

    # --------------------------------------------------------------------- #
    # Public API
    # --------------------------------------------------------------------- #
    def parse_document(self, document_path: Path) -> dict:
        pages, page_count = self.reader.extract_fragments(document_path)
        result = self.text_parser.run(pages)

        if not result.series:
            raise ScheduleParseError(
                f"Could not find any series in {document_path.name}"
                f" ({result.detected} header(s) seen, none with a plausible schedule)"
            )

        self.logger.info(
            "%s: %d series detected, %d kept, %d dropped",
            document_path.name,
            result.detected,
            len(result.series),
            len(result.dropped),
        )

        pdf_config = self.global_config.get("pdf_processing", {}) or {}
        return {
            "document_code": self._make_document_code(document_path),
            "title": document_path.stem,
            "datasource_code": pdf_config.get("datasource_code"),
            "ingestion_id": str(uuid4()),
            "created_utc": datetime.now(timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "source": self._build_source_metadata(document_path, page_count),
            "metadata": self.reader.extract_metadata(document_path),
            "series": [series.to_dict() for series in result.series],
            "quality": self._quality(result),
        }

    # --------------------------------------------------------------------- #
    # Helpers - metadata and utilities
    # --------------------------------------------------------------------- #
    def _quality(self, result: ParseResult) -> dict:
        notes = ""
        if result.dropped:
            names = ", ".join(series.season_name for series in result.dropped)
            notes = (
                f"Dropped {len(result.dropped)} series outside "
                f"{self.settings.min_weeks}-{self.settings.max_weeks} weeks: {names}"
            )
        return {
            "series_detected": result.detected,
            "series_kept": len(result.series),
            "series_dropped": len(result.dropped),
            "weeks_parsed": result.weeks_parsed,
            "notes": notes,
        }

    def _build_source_metadata(self, document_path: Path, page_count: int) -> dict:
        return {
            "uri": str(document_path),
            "filename": document_path.name,
            "mime_type": "application/pdf",
            "checksum_sha256": self.reader.calculate_checksum(document_path),
            "page_count": page_count,
        }

    def _make_document_code(self, document_path: Path) -> str:
        slug = re.sub(r"[^A-Za-z0-9]+", "_", document_path.stem).strip("_")
        return slug.upper() or "DOCUMENT"
