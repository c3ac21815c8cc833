from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .models import ParseState


SERIES_HEADER_RE = re.compile(
    r"^(.+?)\s*-?\s*\d{4}\s+Season\s+\d(?:\s*-\s*Fixed)?$", re.IGNORECASE
)
ORDINAL_PREFIX_RE = re.compile(r"^\d+\.\s*")
FIXED_WORD_RE = re.compile(r"\bfixed\b", re.IGNORECASE)

WEEK_LINE_RE = re.compile(r"^Week\s+(\d+)\s+\((\d{4}-\d{2}-\d{2})\)")
# Any other line opening with "Week" is never roster text.
WEEK_PREFIX_RE = re.compile(r"^Week")
LICENSE_RE = re.compile(
    r"^(Rookie|Class\s+[A-D])\s+\((\d+(?:\.\d+)?)\)\s*(?:-->|->|→)"
)
RACE_FREQUENCY_RE = re.compile(r"^Races\s+(?:every|at)\b", re.IGNORECASE)

LAPS_RE = re.compile(r"(\d+(?:\.\d+)?\s+(?:laps|mins))$", re.IGNORECASE)
# "Â" shows up when the degree sign was decoded as latin-1
WEATHER_RE = re.compile(r"(\$?-?\d+\s*Â?°\s*[FC].*)$", re.DOTALL)
RAIN_CHANCE_RE = re.compile(r"Rain chance\s*(\d+)\s*%", re.IGNORECASE)
ANY_TEXT_RE = re.compile(r"\S")

DEFAULT_BOILERPLATE_PATTERNS: List[str] = [
    r"^Races\b",
    r"^Min entries",
    r"^Penalty",
    r"See race week",
]
# Boilerplate that also ends a pending car lookahead.
STRUCTURAL_BOILERPLATE_PATTERNS: List[str] = [
    r"^Min entries",
    r"^Penalty",
]
DEFAULT_SESSION_KEYWORDS: List[str] = [
    "Qualifying",
    "Race",
    "Practice",
    "Fixed Setup",
    "Open Setup",
]

LICENSE_GROUPS: Dict[str, int] = {"Rookie": 1, "D": 2, "C": 3, "B": 4, "A": 5}
# Schedules print the license a driver leaves; the series is one tier up.
LICENSE_PROMOTION: Dict[str, str] = {
    "Rookie": "D",
    "D": "C",
    "C": "B",
    "B": "A",
}


def compile_patterns(patterns: Iterable[str], flags: int = re.IGNORECASE) -> List[re.Pattern]:
    return [re.compile(pattern, flags) for pattern in patterns if pattern]


def compile_car_boundary(session_keywords: Iterable[str]) -> re.Pattern:
    """Pattern marking where a car name stops on a continuation line."""
    keywords = [re.escape(keyword) for keyword in session_keywords if keyword]
    alternatives = [r"\s{2,}"]
    if keywords:
        alternatives.append(r"\b(?:%s)\b" % "|".join(keywords))
    return re.compile("|".join(alternatives), re.IGNORECASE)


def clean_season_name(captured: str, full_line: str) -> str:
    name = ORDINAL_PREFIX_RE.sub("", captured.strip()).strip()
    if FIXED_WORD_RE.search(full_line) and not FIXED_WORD_RE.search(name):
        name += " - Fixed"
    return name


def license_group_for(tier: str, strength_of_field: str) -> int:
    """
    Map a license line to the stored license group.

    Every tier is promoted one level, except Rookie at strength of field 1,
    which stays Rookie. Class A has no entry and yields 0, leaving the
    license open for a later line.
    """
    tier = re.sub(r"^Class\s+", "", tier.strip())
    if tier == "Rookie" and float(strength_of_field) == 1.0:
        return LICENSE_GROUPS["Rookie"]
    promoted = LICENSE_PROMOTION.get(tier)
    if promoted is None:
        return 0
    return LICENSE_GROUPS[promoted]


def _always(state: ParseState) -> bool:
    return True


@dataclass(frozen=True)
class LineRule:
    """One entry of a first-match-wins classification cascade."""

    name: str
    pattern: re.Pattern
    handler: Callable[[ParseState, re.Match, str], None]
    applies: Callable[[ParseState], bool] = _always

    def match(self, state: ParseState, text: str) -> Optional[re.Match]:
        if not self.applies(state):
            return None
        return self.pattern.search(text)


def first_match(
    rules: Iterable[LineRule], state: ParseState, text: str
) -> Optional[Tuple[LineRule, re.Match]]:
    for rule in rules:
        match = rule.match(state, text)
        if match:
            return rule, match
    return None
