from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Union


LICENSE_NAMES: Dict[int, str] = {
    0: "Unknown",
    1: "Rookie",
    2: "D",
    3: "C",
    4: "B",
    5: "A",
}


@dataclass(frozen=True)
class TextFragment:
    """A positioned run of text as emitted by the extraction layer."""

    text: str
    baseline_y: float
    x: Optional[float] = None


@dataclass
class Line:
    y: float
    text: str


class SeriesKind(Enum):
    DEFAULT = "default"
    # Track and car share the week line, separated by " - ".
    DRAFT = "draft"
    # Car is printed on the line after the week line.
    CAR_ROTATION = "car_rotation"


@dataclass
class ScheduleEntry:
    race_week_num: int
    start_date: str
    track_name: str
    weekly_cars: Optional[str] = None
    rain_chance: int = 0
    laps: str = ""

    def to_dict(self) -> dict:
        return {
            "race_week_num": self.race_week_num,
            "start_date": self.start_date,
            "track_name": self.track_name,
            "weekly_cars": self.weekly_cars,
            "rain_chance": self.rain_chance,
            "laps": self.laps,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ScheduleEntry":
        return cls(
            race_week_num=int(data["race_week_num"]),
            start_date=data["start_date"],
            track_name=data.get("track_name") or "N/A",
            weekly_cars=data.get("weekly_cars"),
            rain_chance=int(data.get("rain_chance") or 0),
            laps=data.get("laps") or "",
        )


@dataclass
class SeriesRecord:
    season_name: str
    kind: SeriesKind = SeriesKind.DEFAULT
    license_group: int = 0
    schedules: List[ScheduleEntry] = field(default_factory=list)
    car_types: List[Dict[str, str]] = field(default_factory=list)
    race_frequency: str = ""

    @property
    def license_name(self) -> str:
        return LICENSE_NAMES.get(self.license_group, LICENSE_NAMES[0])

    @property
    def same_track_every_week(self) -> bool:
        if not self.schedules:
            return False
        first = self.schedules[0].track_name
        return all(entry.track_name == first for entry in self.schedules)

    @property
    def roster(self) -> str:
        if not self.car_types:
            return ""
        return self.car_types[0].get("car_type", "")

    def add_roster_fragment(self, text: str) -> None:
        combined = f"{self.roster} {text}".strip()
        self.car_types = [{"car_type": combined}]

    def to_dict(self) -> dict:
        return {
            "season_name": self.season_name,
            "series_kind": self.kind.value,
            "license_group": self.license_group,
            "license_name": self.license_name,
            "race_frequency": self.race_frequency,
            "same_track_every_week": self.same_track_every_week,
            "car_types": [dict(item) for item in self.car_types],
            "schedules": [entry.to_dict() for entry in self.schedules],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SeriesRecord":
        kind_value = data.get("series_kind", SeriesKind.DEFAULT.value)
        try:
            kind = SeriesKind(kind_value)
        except ValueError:
            kind = SeriesKind.DEFAULT
        return cls(
            season_name=data["season_name"],
            kind=kind,
            license_group=int(data.get("license_group") or 0),
            schedules=[ScheduleEntry.from_dict(item) for item in data.get("schedules") or []],
            car_types=[dict(item) for item in data.get("car_types") or []],
            race_frequency=data.get("race_frequency") or "",
        )


# Lookahead state for car names printed on the line after a week entry.
@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class AwaitingCar:
    entry_index: int


LookaheadState = Union[Idle, AwaitingCar]


@dataclass
class ParseState:
    """Mutable state owned by a single parse of one document."""

    series: List[SeriesRecord] = field(default_factory=list)
    current_series: Optional[SeriesRecord] = None
    lookahead: LookaheadState = field(default_factory=Idle)

    def flush_current(self) -> None:
        if self.current_series is not None:
            self.series.append(self.current_series)
            self.current_series = None
