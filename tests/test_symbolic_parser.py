from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import ADVANCED_SERIES_PAGE, make_page

from schedule_pipeline.modules.pdf_reader import ExtractionError
from schedule_pipeline.pipelines.season_schedule.schedule_parser import ScheduleParseError
from schedule_pipeline.pipelines.season_schedule.symbolic_parser import (
    SeasonScheduleSymbolicParser,
)


class FakeReader:
    """Serves canned pages keyed by file name."""

    def __init__(self, pages_by_name):
        self.pages_by_name = pages_by_name

    def extract_fragments(self, pdf_path):
        pages = self.pages_by_name[Path(pdf_path).name]
        if isinstance(pages, Exception):
            raise pages
        return pages, len(pages)

    def extract_metadata(self, pdf_path):
        return {"title": None, "author": None, "subject": None, "year": 2025}

    def calculate_checksum(self, pdf_path):
        return "0" * 64


PIPELINE_CONFIG = {
    "source_dir": "Source",
    "output_dir": "output/parsed",
    "schema_path": "schemas/season_schedule.json",
    "symbolic": {"max_weeks": 12},
}
GLOBAL_CONFIG = {
    "pdf_processing": {"datasource_code": "SRC_SEASON_SCHEDULE"},
    "output": {"indent": 2, "ensure_ascii": False},
}


def make_parser(root: Path, pages_by_name) -> SeasonScheduleSymbolicParser:
    source = root / "Source"
    source.mkdir(exist_ok=True)
    for name in pages_by_name:
        (source / name).write_bytes(b"%PDF-1.4\n")
    return SeasonScheduleSymbolicParser(
        root, PIPELINE_CONFIG, GLOBAL_CONFIG, reader=FakeReader(pages_by_name)
    )


def test_parse_document_builds_the_parsed_record(schema_root):
    parser = make_parser(
        schema_root,
        {"2025 S2 Schedule.pdf": [make_page(*ADVANCED_SERIES_PAGE), make_page("Empty Cup - 2025 Season 2")]},
    )
    data = parser.parse_document(schema_root / "Source" / "2025 S2 Schedule.pdf")

    assert data["document_code"] == "2025_S2_SCHEDULE"
    assert data["datasource_code"] == "SRC_SEASON_SCHEDULE"
    assert data["created_utc"].endswith("Z")
    assert data["source"]["page_count"] == 2
    assert data["metadata"]["year"] == 2025
    assert [s["season_name"] for s in data["series"]] == ["Advanced Mazda MX-5 Cup Series"]
    series = data["series"][0]
    assert series["license_group"] == 3
    assert series["license_name"] == "C"
    assert series["series_kind"] == "default"
    assert data["quality"]["series_detected"] == 2
    assert data["quality"]["series_dropped"] == 1
    assert data["quality"]["weeks_parsed"] == 3
    assert "Empty Cup" in data["quality"]["notes"]
    assert parser.validate_output(data, "2025 S2 Schedule.pdf")


def test_document_without_series_raises(schema_root):
    parser = make_parser(schema_root, {"cover.pdf": [make_page("Season overview")]})
    with pytest.raises(ScheduleParseError):
        parser.parse_document(schema_root / "Source" / "cover.pdf")


def test_run_writes_json_and_skips_failing_documents(schema_root):
    parser = make_parser(
        schema_root,
        {
            "a_schedule.pdf": [make_page(*ADVANCED_SERIES_PAGE)],
            "b_broken.pdf": ExtractionError("No text found in b_broken.pdf"),
            "c_cover.pdf": [make_page("Season overview")],
        },
    )
    outputs = parser.run()

    assert outputs == [schema_root / "output" / "parsed" / "a_schedule.parsed.json"]
    with outputs[0].open(encoding="utf-8") as fh:
        data = json.load(fh)
    assert data["series"][0]["schedules"][1]["rain_chance"] == 20


def test_run_with_explicit_documents(schema_root):
    parser = make_parser(
        schema_root,
        {
            "a_schedule.pdf": [make_page(*ADVANCED_SERIES_PAGE)],
            "b_schedule.pdf": [make_page(*ADVANCED_SERIES_PAGE)],
        },
    )
    outputs = parser.run([schema_root / "Source" / "b_schedule.pdf"])
    assert [path.name for path in outputs] == ["b_schedule.parsed.json"]


def test_schema_mismatch_is_reported_not_raised(schema_root):
    parser = make_parser(schema_root, {})
    assert parser.validate_output({"series": []}, "broken") is False


def test_settings_come_from_the_symbolic_block(schema_root):
    config = dict(PIPELINE_CONFIG, symbolic={"y_tolerance": 3, "draft_series_markers": ["Superspeedway"]})
    parser = SeasonScheduleSymbolicParser(schema_root, config, GLOBAL_CONFIG, reader=FakeReader({}))
    assert parser.settings.y_tolerance == 3.0
    assert parser.settings.draft_series_markers == ["Superspeedway"]
    assert parser.settings.car_rotation_series_markers == ["Ring Meister"]
