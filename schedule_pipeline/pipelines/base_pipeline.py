from __future__ import annotations

import abc
import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional

from jsonschema import ValidationError, validate


class BasePipeline(abc.ABC):
    """Directory layout, document discovery and schema checks shared by pipeline stages."""

    def __init__(
        self,
        root_dir: Path,
        pipeline_name: str,
        pipeline_config: dict,
        global_config: dict,
    ) -> None:
        self.root_dir = Path(root_dir)
        self.pipeline_name = pipeline_name
        self.pipeline_config = pipeline_config or {}
        self.global_config = global_config or {}
        self.logger = logging.getLogger(f"pipeline.{pipeline_name}")
        self._schema: Optional[dict] = None

    def _configured_path(self, key: str) -> Path:
        rel_path = self.pipeline_config.get(key)
        if not rel_path:
            raise ValueError(
                f"Pipeline '{self.pipeline_name}' missing '{key}' configuration"
            )
        return self.root_dir / rel_path

    @property
    def source_dir(self) -> Path:
        return self._configured_path("source_dir")

    @property
    def output_dir(self) -> Path:
        return self._configured_path("output_dir")

    @property
    def document_glob(self) -> str:
        return self.pipeline_config.get("document_glob", "*.pdf")

    @property
    def schema_path(self) -> Optional[Path]:
        rel_path = self.pipeline_config.get("schema_path")
        return self.root_dir / rel_path if rel_path else None

    def discover_documents(self) -> List[Path]:
        """Schedule PDFs in the source directory, in name order."""
        source_dir = self.source_dir
        if not source_dir.exists():
            raise FileNotFoundError(
                f"Source directory not found for pipeline '{self.pipeline_name}': "
                f"{source_dir}"
            )
        return sorted(path for path in source_dir.glob(self.document_glob) if path.is_file())

    def ensure_output_dir(self) -> Path:
        out_dir = self.output_dir
        out_dir.mkdir(parents=True, exist_ok=True)
        return out_dir

    def validate_output(self, data: dict, label: str) -> bool:
        """Check ``data`` against the configured JSON schema, logging any mismatch."""
        schema = self._load_schema()
        if schema is None:
            return True
        try:
            validate(instance=data, schema=schema)
        except ValidationError as e:
            location = "/".join(str(part) for part in e.absolute_path) or "<root>"
            self.logger.warning(
                "Schema validation failed for %s at %s: %s", label, location, e.message
            )
            return False
        return True

    def _load_schema(self) -> Optional[dict]:
        if self._schema is not None:
            return self._schema
        path = self.schema_path
        if path is None:
            return None
        if not path.exists():
            raise FileNotFoundError(f"Schema file not found: {path}")
        with path.open("r", encoding="utf-8") as fh:
            self._schema = json.load(fh)
        return self._schema


class BaseSymbolicParser(BasePipeline, abc.ABC):
    """Turns each source document into one JSON record on disk."""

    output_suffix = ".parsed.json"

    @abc.abstractmethod
    def parse_document(self, document_path: Path) -> dict:
        """Parse a document and return the record to persist."""

    def output_path_for(self, document_path: Path) -> Path:
        return self.output_dir / f"{document_path.stem}{self.output_suffix}"

    def run(
        self,
        document_paths: Optional[Iterable[Path]] = None,
    ) -> List[Path]:
        """
        Parse every document and write its record.

        A document that fails is logged and skipped; the others still run.

        Returns:
            Paths of the JSON files written, in processing order.
        """
        self.ensure_output_dir()
        docs = list(document_paths) if document_paths else self.discover_documents()
        if not docs:
            self.logger.warning(
                "No documents found for pipeline '%s' (pattern: %s)",
                self.pipeline_name,
                self.document_glob,
            )
            return []

        written: List[Path] = []
        failed: List[str] = []
        for doc_path in docs:
            try:
                record = self.parse_document(doc_path)
            except Exception as exc:
                self.logger.exception("Failed parsing %s: %s", doc_path.name, exc)
                failed.append(doc_path.name)
                continue

            self.validate_output(record, doc_path.name)
            output_path = self.output_path_for(doc_path)
            self._write_output(record, output_path)
            written.append(output_path)
            self.logger.info("Wrote %s → %s", doc_path.name, output_path)

        if failed:
            self.logger.warning(
                "%d of %d document(s) failed: %s", len(failed), len(docs), ", ".join(failed)
            )
        return written

    def _write_output(self, data: dict, output_path: Path) -> None:
        output_settings = self.global_config.get("output", {}) or {}
        with output_path.open("w", encoding="utf-8") as fp:
            json.dump(
                data,
                fp,
                indent=output_settings.get("indent", 2),
                ensure_ascii=output_settings.get("ensure_ascii", False),
            )
