from .models import ScheduleEntry, SeriesKind, SeriesRecord, TextFragment
from .schedule_parser import ParserSettings, ScheduleParseError, ScheduleTextParser

__all__ = [
    "ParserSettings",
    "ScheduleEntry",
    "ScheduleParseError",
    "ScheduleTextParser",
    "SeriesKind",
    "SeriesRecord",
    "TextFragment",
]
