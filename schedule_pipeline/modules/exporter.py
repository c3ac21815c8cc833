"""
Exporter Module
Projects parsed series into the pivoted schedule CSV and the week-by-week calendar table.
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import date, timedelta
from io import StringIO
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from ..pipelines.season_schedule.models import ScheduleEntry, SeriesKind, SeriesRecord
from .minimizer import Minimizer

logger = logging.getLogger(__name__)

TRACK_CONFIG_SEPARATOR = " - "
HIDDEN_CONFIGS = {"", "oval", "n/a"}


def load_series(paths: Iterable[Path]) -> List[SeriesRecord]:
    """
    Load series from parsed documents or from bare JSON lists of series.
    """
    series: List[SeriesRecord] = []
    for path in paths:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Input not found: {path}")
        with path.open("r", encoding="utf-8") as fh:
            data = json.load(fh)
        items = data.get("series", []) if isinstance(data, dict) else data
        if not isinstance(items, list):
            raise ValueError(f"No series list in {path}")
        series.extend(SeriesRecord.from_dict(item) for item in items)
        logger.debug("Loaded %d series from %s", len(items), path)
    return series


def filter_series(
    series: Iterable[SeriesRecord],
    license_levels: Optional[Iterable[str]] = None,
    search: Optional[str] = None,
) -> List[SeriesRecord]:
    """Keep series whose license is selected (all when none are) and whose name matches ``search``."""
    levels = {level.strip() for level in license_levels or [] if level.strip()}
    needle = (search or "").strip().lower()
    selected = []
    for record in series:
        if levels and record.license_name not in levels:
            continue
        if needle and needle not in record.season_name.lower():
            continue
        selected.append(record)
    return selected


def cars_for_week(series: SeriesRecord, entry: Optional[ScheduleEntry]) -> str:
    if entry is None:
        return "N/A"
    if entry.weekly_cars:
        return entry.weekly_cars
    return series.roster or "N/A"


def split_track_config(track_name: str) -> Tuple[str, str]:
    """Split "Track - Layout" on the last separator."""
    head, sep, tail = track_name.rpartition(TRACK_CONFIG_SEPARATOR)
    if not sep:
        return track_name, ""
    return head, tail


def _track_display(track: str, config: str) -> str:
    if config.strip().lower() in HIDDEN_CONFIGS:
        return track
    return f"{track}{TRACK_CONFIG_SEPARATOR}{config}"


def _display_parts(
    series: SeriesRecord, entry: ScheduleEntry, minimizer: Minimizer
) -> Tuple[str, str]:
    """Return the main text and the secondary text for one week."""
    track, config = split_track_config(entry.track_name)
    track = minimizer.track(track) or ""
    config = minimizer.config(config) or ""
    display = _track_display(track, config)

    if series.kind is SeriesKind.DRAFT:
        return display, minimizer.car_list(entry.weekly_cars or "") or ""
    if series.kind is SeriesKind.CAR_ROTATION:
        return minimizer.car_list(entry.weekly_cars or "") or "", ""
    return display, entry.laps


def week_cell(series: SeriesRecord, entry: Optional[ScheduleEntry], minimizer: Minimizer) -> str:
    if entry is None:
        return ""
    main, secondary = _display_parts(series, entry, minimizer)
    if series.kind is SeriesKind.DRAFT:
        return f"{main}{TRACK_CONFIG_SEPARATOR}{secondary}"
    return main


def build_pivot_rows(
    series: Sequence[SeriesRecord], minimizer: Minimizer, weeks: int = 12
) -> List[List[str]]:
    rows: List[List[str]] = [["RowType"] + [record.season_name for record in series]]
    rows.append(["Time"] + [record.race_frequency or "N/A" for record in series])
    rows.append(["License"] + [record.license_name for record in series])
    rows.append(["Name"] + [record.season_name for record in series])

    for week in range(weeks):
        row = [f"Track{week + 1}"]
        for record in series:
            entry = next(
                (item for item in record.schedules if item.race_week_num == week), None
            )
            row.append(week_cell(record, entry, minimizer))
        rows.append(row)
    return rows


def _entry_date(entry: ScheduleEntry) -> Optional[date]:
    try:
        return date.fromisoformat(entry.start_date)
    except ValueError:
        return None


def _dated_entries(record: SeriesRecord) -> List[Tuple[date, ScheduleEntry]]:
    dated = []
    for entry in record.schedules:
        start = _entry_date(entry)
        if start is None:
            logger.warning(
                "Skipping week %d of '%s': invalid start date %r",
                entry.race_week_num + 1,
                record.season_name,
                entry.start_date,
            )
            continue
        dated.append((start, entry))
    return dated


def _week_spans(dates: Sequence[date]) -> List[Tuple[date, date]]:
    if not dates:
        return []
    first, last = min(dates), max(dates)
    current = first - timedelta(days=(first.weekday() + 1) % 7)
    weeks: List[Tuple[date, date]] = []
    while current <= last:
        weeks.append((current, current + timedelta(days=6)))
        current += timedelta(days=7)
    return weeks


def calendar_weeks(series: Sequence[SeriesRecord]) -> List[Tuple[date, date]]:
    """Sunday-to-Saturday weeks covering every valid start date of ``series``."""
    dates = [
        start
        for record in series
        for start in map(_entry_date, record.schedules)
        if start is not None
    ]
    return _week_spans(dates)


def calendar_cell(
    series: SeriesRecord, entry: Optional[ScheduleEntry], minimizer: Minimizer
) -> str:
    if entry is None:
        return "N/A"
    main, secondary = _display_parts(series, entry, minimizer)
    main = main or "N/A"
    if entry.rain_chance > 0:
        main = f"{main} ({entry.rain_chance}%)"
    return f"{main} | {secondary}" if secondary else main


def build_calendar_rows(
    series: Sequence[SeriesRecord], minimizer: Minimizer
) -> List[List[str]]:
    """One row per calendar week; entries with an impossible start date are left out."""
    dated = [_dated_entries(record) for record in series]
    rows: List[List[str]] = [
        ["Week start", "Week end"] + [record.season_name for record in series]
    ]
    spans = _week_spans([start for entries in dated for start, _ in entries])
    for start, end in spans:
        row = [start.isoformat(), end.isoformat()]
        for record, entries in zip(series, dated):
            entry = next(
                (item for day, item in entries if start <= day <= end), None
            )
            row.append(calendar_cell(record, entry, minimizer))
        rows.append(row)
    return rows


def rows_to_csv(rows: Iterable[Sequence[str]]) -> str:
    buffer = StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for row in rows:
        writer.writerow(row)
    return buffer.getvalue()


def write_rows(rows: Iterable[Sequence[str]], output_path: Path) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8", newline="") as fh:
        fh.write(rows_to_csv(rows))
    logger.info("Saved %s", output_path)
    return output_path
