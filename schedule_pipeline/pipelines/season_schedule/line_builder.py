from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List

from .models import Line, TextFragment


DEFAULT_Y_TOLERANCE = 5.0


@dataclass
class _LineDraft:
    y: float
    fragments: List[TextFragment] = field(default_factory=list)


def build_lines(
    fragments: Iterable[TextFragment],
    y_tolerance: float = DEFAULT_Y_TOLERANCE,
    sort_by_x: bool = False,
) -> List[Line]:
    """
    Group the fragments of one page into visual lines, top to bottom.

    A fragment joins the first line whose y lies within ``y_tolerance`` of
    its baseline, otherwise it starts a new line. The line keeps the y of
    its first fragment. Text is concatenated in extraction order, which is
    assumed to match left-to-right reading order; ``sort_by_x`` reorders a
    line by horizontal position instead, but only when every fragment on
    that line carries an x coordinate.
    """
    drafts: List[_LineDraft] = []
    for fragment in fragments:
        target = None
        for draft in drafts:
            if abs(draft.y - fragment.baseline_y) < y_tolerance:
                target = draft
                break
        if target is None:
            target = _LineDraft(y=fragment.baseline_y)
            drafts.append(target)
        target.fragments.append(fragment)

    lines: List[Line] = []
    for draft in drafts:
        parts = draft.fragments
        if sort_by_x and all(part.x is not None for part in parts):
            # sorted() is stable, so fragments sharing an x keep extraction order
            parts = sorted(parts, key=lambda part: part.x)
        text = "".join(part.text for part in parts).strip()
        lines.append(Line(y=draft.y, text=text))

    lines.sort(key=lambda line: line.y, reverse=True)
    return lines
