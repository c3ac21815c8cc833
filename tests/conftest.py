from __future__ import annotations

import shutil
from pathlib import Path
from typing import List

import pytest

from schedule_pipeline.pipelines.season_schedule.models import TextFragment
from schedule_pipeline.pipelines.season_schedule.schedule_parser import ScheduleTextParser

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def make_page(*lines: str, top: float = 780.0, step: float = 14.0) -> List[TextFragment]:
    """One fragment per line, laid out top to bottom."""
    return [
        TextFragment(text=text, baseline_y=top - idx * step)
        for idx, text in enumerate(lines)
    ]


@pytest.fixture
def parser() -> ScheduleTextParser:
    return ScheduleTextParser()


@pytest.fixture
def schema_root(tmp_path: Path) -> Path:
    """A project root in tmp_path with the output schema in place."""
    (tmp_path / "schemas").mkdir()
    shutil.copy(
        PROJECT_ROOT / "schemas" / "season_schedule.json",
        tmp_path / "schemas" / "season_schedule.json",
    )
    return tmp_path


ADVANCED_SERIES_PAGE = [
    "1. Advanced Mazda MX-5 Cup Series - 2025 Season 2",
    "Class D (4.0) -->",
    "Races every 2 hours at :45",
    "Min entries 8, Split at 16",
    "Penalty 17 incidents",
    "Global Mazda MX-5 Cup",
    "Week 1 (2025-03-18) Okayama International Circuit (Full Course) 72°F/22°C, Rain chance None 14 laps",
    "Week 2 (2025-03-25) Summit Point Raceway - Jefferson Circuit 68°F/20°C, Rain chance 20% 12 laps",
    "Week 3 (2025-04-01) Lime Rock Park (Grand Prix) 20 laps",
]
