"""
Minimizer Module
Shortens track, layout and car names for display with ordered literal find/replace rules.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import yaml

logger = logging.getLogger(__name__)

CAR_LIST_DELIMITERS = re.compile(r"(\s+vs\s+|\s*/\s*|\s*,\s*)", re.IGNORECASE)


@dataclass(frozen=True)
class ReplacementRule:
    original: str
    replacement: str

    def apply(self, text: str) -> str:
        if not self.original:
            return text
        replacement = self.replacement
        return re.sub(
            re.escape(self.original), lambda _: replacement, text, flags=re.IGNORECASE
        )


def apply_replacements(
    text: Optional[str], rules: Iterable[ReplacementRule], active: bool = True
) -> Optional[str]:
    """Apply ``rules`` in list order to every case-insensitive occurrence."""
    if not text or not isinstance(text, str) or not active:
        return text
    for rule in rules:
        text = rule.apply(text)
    return text


def apply_car_list_replacements(
    cars: Optional[str], rules: Sequence[ReplacementRule], active: bool = True
) -> Optional[str]:
    """
    Minimize each car of a "Car A vs Car B" / "A / B" / "A, B" list and
    rejoin them with " / ".
    """
    if not cars or not isinstance(cars, str) or not active:
        return cars
    parts = CAR_LIST_DELIMITERS.split(cars)
    # split() keeps the captured delimiters at odd positions
    names = [apply_replacements(part.strip(), rules) for part in parts[::2]]
    return " / ".join(name for name in names if name and name.strip())


def _load_rules(items: Optional[list]) -> List[ReplacementRule]:
    rules: List[ReplacementRule] = []
    for item in items or []:
        if not isinstance(item, dict) or "original" not in item:
            logger.warning("Skipping malformed replacement rule: %r", item)
            continue
        rules.append(
            ReplacementRule(
                original=str(item["original"]),
                replacement=str(item.get("replacement") or ""),
            )
        )
    return rules


class Minimizer:
    """Holds the three rule lists and the on/off toggle."""

    def __init__(
        self,
        track_names: Sequence[ReplacementRule] = (),
        track_configs: Sequence[ReplacementRule] = (),
        cars: Sequence[ReplacementRule] = (),
        active: bool = False,
    ) -> None:
        self.track_names = list(track_names)
        self.track_configs = list(track_configs)
        self.cars = list(cars)
        self.active = active

    @classmethod
    def from_file(cls, path: Path, active: bool = False) -> "Minimizer":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Replacement rules not found: {path}")
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        minimizer = cls(
            track_names=_load_rules(data.get("track_names")),
            track_configs=_load_rules(data.get("track_configs")),
            cars=_load_rules(data.get("cars")),
            active=active,
        )
        logger.debug(
            "Loaded %d track, %d config and %d car rule(s) from %s",
            len(minimizer.track_names),
            len(minimizer.track_configs),
            len(minimizer.cars),
            path,
        )
        return minimizer

    def track(self, text: Optional[str]) -> Optional[str]:
        return apply_replacements(text, self.track_names, self.active)

    def config(self, text: Optional[str]) -> Optional[str]:
        return apply_replacements(text, self.track_configs, self.active)

    def car_list(self, text: Optional[str]) -> Optional[str]:
        return apply_car_list_replacements(text, self.cars, self.active)
