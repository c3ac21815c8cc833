from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from .line_builder import DEFAULT_Y_TOLERANCE, build_lines
from .models import (
    AwaitingCar,
    Idle,
    ParseState,
    ScheduleEntry,
    SeriesKind,
    SeriesRecord,
    TextFragment,
)
from .rules import (
    ANY_TEXT_RE,
    DEFAULT_BOILERPLATE_PATTERNS,
    DEFAULT_SESSION_KEYWORDS,
    LAPS_RE,
    LICENSE_RE,
    RACE_FREQUENCY_RE,
    RAIN_CHANCE_RE,
    SERIES_HEADER_RE,
    STRUCTURAL_BOILERPLATE_PATTERNS,
    WEATHER_RE,
    WEEK_LINE_RE,
    WEEK_PREFIX_RE,
    LineRule,
    clean_season_name,
    compile_car_boundary,
    compile_patterns,
    first_match,
    license_group_for,
)


logger = logging.getLogger("pipeline.season_schedule")


class ScheduleParseError(RuntimeError):
    """Raised when a schedule document yields no usable series."""


@dataclass
class ParserSettings:
    y_tolerance: float = DEFAULT_Y_TOLERANCE
    min_weeks: int = 1
    # Sanity bound on season length, not a league rule.
    max_weeks: int = 12
    sort_fragments_by_x: bool = False
    draft_series_markers: List[str] = field(default_factory=lambda: ["Draft Master"])
    car_rotation_series_markers: List[str] = field(default_factory=lambda: ["Ring Meister"])
    car_rotation_fallback_track: str = "Nürburgring Combined"
    missing_track_label: str = "N/A"
    session_keywords: List[str] = field(
        default_factory=lambda: list(DEFAULT_SESSION_KEYWORDS)
    )
    boilerplate_patterns: List[str] = field(
        default_factory=lambda: list(DEFAULT_BOILERPLATE_PATTERNS)
    )

    @classmethod
    def from_config(cls, config: Optional[dict]) -> "ParserSettings":
        config = config or {}
        defaults = cls()
        return cls(
            y_tolerance=float(config.get("y_tolerance", defaults.y_tolerance)),
            min_weeks=int(config.get("min_weeks", defaults.min_weeks)),
            max_weeks=int(config.get("max_weeks", defaults.max_weeks)),
            sort_fragments_by_x=bool(
                config.get("sort_fragments_by_x", defaults.sort_fragments_by_x)
            ),
            draft_series_markers=list(
                config.get("draft_series_markers") or defaults.draft_series_markers
            ),
            car_rotation_series_markers=list(
                config.get("car_rotation_series_markers")
                or defaults.car_rotation_series_markers
            ),
            car_rotation_fallback_track=config.get(
                "car_rotation_fallback_track", defaults.car_rotation_fallback_track
            ),
            missing_track_label=config.get(
                "missing_track_label", defaults.missing_track_label
            ),
            session_keywords=list(
                config.get("session_keywords") or defaults.session_keywords
            ),
            boilerplate_patterns=list(
                config.get("boilerplate_patterns") or defaults.boilerplate_patterns
            ),
        )


@dataclass
class ParseResult:
    series: List[SeriesRecord] = field(default_factory=list)
    dropped: List[SeriesRecord] = field(default_factory=list)

    @property
    def detected(self) -> int:
        return len(self.series) + len(self.dropped)

    @property
    def weeks_parsed(self) -> int:
        return sum(len(series.schedules) for series in self.series)


class ScheduleTextParser:
    """
    Rebuilds series records from the positioned text of a season schedule.

    Pages are consumed in order and all state lives in a ``ParseState``
    created per call, so one parser instance can serve several documents.
    Lines that match nothing are dropped; series outside the plausible
    season length are dropped at the end. Nothing in here raises on bad
    input.
    """

    def __init__(self, settings: Optional[ParserSettings] = None) -> None:
        self.settings = settings or ParserSettings()
        self.boilerplate_patterns = compile_patterns(self.settings.boilerplate_patterns)
        self.structural_patterns = [
            SERIES_HEADER_RE,
            WEEK_LINE_RE,
            LICENSE_RE,
            RACE_FREQUENCY_RE,
            *compile_patterns(STRUCTURAL_BOILERPLATE_PATTERNS),
        ]
        self.car_boundary = compile_car_boundary(self.settings.session_keywords)
        self.rules = self._build_rules()

    # --------------------------------------------------------------------- #
    # Public API
    # --------------------------------------------------------------------- #
    def parse(self, pages: Iterable[Iterable[TextFragment]]) -> List[SeriesRecord]:
        return self.run(pages).series

    def run(self, pages: Iterable[Iterable[TextFragment]]) -> ParseResult:
        state = ParseState()
        for page_number, fragments in enumerate(pages, start=1):
            lines = build_lines(
                fragments,
                y_tolerance=self.settings.y_tolerance,
                sort_by_x=self.settings.sort_fragments_by_x,
            )
            logger.debug("Page %d: %d line(s)", page_number, len(lines))
            for line in lines:
                self.process_line(state, line.text)
        return self.finish(state)

    def parse_lines(self, lines: Iterable[str]) -> List[SeriesRecord]:
        """Parse lines that were already reconstructed, in reading order."""
        state = ParseState()
        for text in lines:
            self.process_line(state, text.strip())
        return self.finish(state).series

    def process_line(self, state: ParseState, text: str) -> None:
        if isinstance(state.lookahead, AwaitingCar):
            if self._resolve_pending_car(state, text):
                return

        found = first_match(self.rules, state, text)
        if found is None:
            return
        rule, match = found
        rule.handler(state, match, text)

    def finish(self, state: ParseState) -> ParseResult:
        state.flush_current()
        state.lookahead = Idle()

        result = ParseResult()
        for series in state.series:
            weeks = len(series.schedules)
            if self.settings.min_weeks <= weeks <= self.settings.max_weeks:
                result.series.append(series)
            else:
                logger.debug(
                    "Dropping series '%s': %d week(s) outside [%d, %d]",
                    series.season_name,
                    weeks,
                    self.settings.min_weeks,
                    self.settings.max_weeks,
                )
                result.dropped.append(series)
        return result

    def classify_kind(self, season_name: str) -> SeriesKind:
        if any(marker in season_name for marker in self.settings.draft_series_markers):
            return SeriesKind.DRAFT
        if any(
            marker in season_name for marker in self.settings.car_rotation_series_markers
        ):
            return SeriesKind.CAR_ROTATION
        return SeriesKind.DEFAULT

    # --------------------------------------------------------------------- #
    # Helpers - rule cascade
    # --------------------------------------------------------------------- #
    def _build_rules(self) -> List[LineRule]:
        rules = [
            LineRule("series_header", SERIES_HEADER_RE, self._on_series_header),
            LineRule("week", WEEK_LINE_RE, self._on_week_line, self._has_series),
            LineRule("week_text", WEEK_PREFIX_RE, self._on_boilerplate, self._in_header_section),
            LineRule("license", LICENSE_RE, self._on_license, self._in_header_section),
            LineRule(
                "race_frequency",
                RACE_FREQUENCY_RE,
                self._on_race_frequency,
                self._in_header_section,
            ),
        ]
        for pattern in self.boilerplate_patterns:
            rules.append(
                LineRule("boilerplate", pattern, self._on_boilerplate, self._in_header_section)
            )
        rules.append(
            LineRule("car_roster", ANY_TEXT_RE, self._on_roster_fragment, self._in_header_section)
        )
        return rules

    @staticmethod
    def _has_series(state: ParseState) -> bool:
        return state.current_series is not None

    @staticmethod
    def _in_header_section(state: ParseState) -> bool:
        return state.current_series is not None and not state.current_series.schedules

    def _on_series_header(self, state: ParseState, match: re.Match, text: str) -> None:
        name = clean_season_name(match.group(1), text)
        if not name:
            logger.debug("Season header without a name: %r", text)
            return
        state.flush_current()
        state.current_series = SeriesRecord(season_name=name, kind=self.classify_kind(name))
        state.lookahead = Idle()
        logger.debug(
            "Series header '%s' (%s)", name, state.current_series.kind.value
        )

    def _on_license(self, state: ParseState, match: re.Match, text: str) -> None:
        series = state.current_series
        if series.license_group:
            return
        series.license_group = license_group_for(match.group(1), match.group(2))

    def _on_race_frequency(self, state: ParseState, match: re.Match, text: str) -> None:
        series = state.current_series
        if not series.race_frequency:
            series.race_frequency = text.strip()

    def _on_boilerplate(self, state: ParseState, match: re.Match, text: str) -> None:
        pass

    def _on_roster_fragment(self, state: ParseState, match: re.Match, text: str) -> None:
        state.current_series.add_roster_fragment(text.strip())

    # --------------------------------------------------------------------- #
    # Helpers - week entries
    # --------------------------------------------------------------------- #
    def _on_week_line(self, state: ParseState, match: re.Match, text: str) -> None:
        series = state.current_series
        week_number = int(match.group(1))
        start_date = match.group(2)

        remainder = text[match.end():].strip()
        remainder, laps = self._split_laps(remainder)
        remainder, rain_chance = self._split_weather(remainder)
        track_name, weekly_cars, awaiting_car = self._extract_track_and_car(
            series.kind, remainder
        )

        series.schedules.append(
            ScheduleEntry(
                race_week_num=week_number - 1,
                start_date=start_date,
                track_name=track_name or self.settings.missing_track_label,
                weekly_cars=weekly_cars,
                rain_chance=rain_chance,
                laps=laps,
            )
        )
        if awaiting_car:
            state.lookahead = AwaitingCar(entry_index=len(series.schedules) - 1)
        else:
            state.lookahead = Idle()

    @staticmethod
    def _split_laps(remainder: str) -> Tuple[str, str]:
        match = LAPS_RE.search(remainder)
        if not match:
            return remainder, ""
        return remainder[: match.start()].strip(), match.group(1)

    @staticmethod
    def _split_weather(remainder: str) -> Tuple[str, int]:
        match = WEATHER_RE.search(remainder)
        if not match:
            return remainder, 0
        rain = RAIN_CHANCE_RE.search(match.group(1))
        rain_chance = min(int(rain.group(1)), 100) if rain else 0
        return remainder[: match.start()].strip(), rain_chance

    def _extract_track_and_car(
        self, kind: SeriesKind, remainder: str
    ) -> Tuple[str, Optional[str], bool]:
        """Return (track name, car name, whether the car is on the next line)."""
        if kind is SeriesKind.DRAFT:
            segments = remainder.split(" - ")
            if len(segments) >= 2:
                track_name = " - ".join(segments[:-1]).strip()
                return track_name, segments[-1].strip() or None, False
            return remainder, None, True

        if kind is SeriesKind.CAR_ROTATION:
            return remainder or self.settings.car_rotation_fallback_track, None, True

        return remainder.split(" (")[0].strip(), None, False

    # --------------------------------------------------------------------- #
    # Helpers - car lookahead
    # --------------------------------------------------------------------- #
    def _resolve_pending_car(self, state: ParseState, text: str) -> bool:
        """
        Try to read the pending entry's car from ``text``.

        Returns True when the line was consumed. A rejected line only resets
        the lookahead and is classified normally afterwards.
        """
        pending = state.lookahead
        state.lookahead = Idle()
        candidate = text.strip()
        if not candidate or self._is_structural(candidate):
            logger.debug(
                "No car line for entry %d, continuing with %r",
                pending.entry_index,
                candidate,
            )
            return False

        boundary = self.car_boundary.search(candidate)
        car_name = (candidate[: boundary.start()] if boundary else candidate).strip()
        if car_name:
            entry = state.current_series.schedules[pending.entry_index]
            entry.weekly_cars = car_name
        return True

    def _is_structural(self, text: str) -> bool:
        return any(pattern.search(text) for pattern in self.structural_patterns)
